# src/guardian_shell/config/const.py
from __future__ import annotations

# Auth0-Client identity reported when the caller does not supply one
DEFAULT_CLIENT_NAME: str = "Guardian.Shell"
DEFAULT_CLIENT_VERSION: str = "1.0.0"

DEFAULT_ENROLLMENTS_DIR: str = ".enrollments"
DEFAULT_PRIVATE_KEY: str = "private.pem"

DEFAULT_HTTP_TIMEOUT: float = 15.0

# Guardian names FCM credentials "GCM"
DEFAULT_PUSH_SERVICE: str = "GCM"
