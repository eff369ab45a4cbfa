"""Runtime settings assembled from defaults, a ``.env`` file and the environment."""
from __future__ import annotations

import base64
import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping

from guardian_shell.config.const import (
    DEFAULT_CLIENT_NAME,
    DEFAULT_CLIENT_VERSION,
    DEFAULT_ENROLLMENTS_DIR,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_PRIVATE_KEY,
    DEFAULT_PUSH_SERVICE,
)

__all__ = ["GuardianSettings", "parse_env_file"]


def parse_env_file(path: Path) -> dict[str, str]:
    """Read ``KEY=VALUE`` lines from a dotenv file.

    Blank lines and ``#`` comments are skipped, a leading ``export`` is
    dropped so shell-sourced files work unchanged, and one layer of quotes is
    removed from values. A missing file yields an empty mapping.
    """

    if not path.exists():
        return {}
    data: dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        if "=" in line:
            key, value = line.split("=", 1)
            data[key.strip()] = value.strip().strip("\"'")
    return data


def _float(value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class GuardianSettings:
    enrollments_dir: Path = Path(DEFAULT_ENROLLMENTS_DIR)
    private_key_path: Path = Path(DEFAULT_PRIVATE_KEY)
    default_domain: str | None = None
    client_name: str = DEFAULT_CLIENT_NAME
    client_version: str = DEFAULT_CLIENT_VERSION
    auth0_client: str | None = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    push_service: str = DEFAULT_PUSH_SERVICE

    @classmethod
    def from_sources(
        cls,
        env: Mapping[str, str] | None = None,
        env_file: Path | None = None,
    ) -> "GuardianSettings":
        values: dict[str, str] = {}
        values.update(parse_env_file(env_file or Path(".env")))
        values.update(os.environ if env is None else env)

        def pick(key: str) -> str | None:
            value = values.get(key)
            return value if value else None

        defaults = cls()
        return cls(
            enrollments_dir=Path(pick("GUARDIAN_ENROLLMENTS_DIR") or defaults.enrollments_dir).expanduser(),
            private_key_path=Path(pick("GUARDIAN_PRIVATE_KEY") or defaults.private_key_path).expanduser(),
            default_domain=pick("AUTH0_DOMAIN"),
            client_name=pick("GUARDIAN_CLIENT_NAME") or defaults.client_name,
            client_version=pick("GUARDIAN_CLIENT_VERSION") or defaults.client_version,
            auth0_client=pick("AUTH0_CLIENT"),
            http_timeout=_float(pick("GUARDIAN_HTTP_TIMEOUT"), defaults.http_timeout),
            push_service=pick("GUARDIAN_PUSH_SERVICE") or defaults.push_service,
        )

    def with_overrides(self, **changes: Any) -> "GuardianSettings":
        """Return a copy with the non-``None`` overrides applied."""

        applied = {key: value for key, value in changes.items() if value is not None}
        for key in ("enrollments_dir", "private_key_path"):
            if key in applied:
                applied[key] = Path(applied[key]).expanduser()
        return replace(self, **applied)

    def auth0_client_header(self) -> str:
        if self.auth0_client:
            return self.auth0_client
        payload = json.dumps({"name": self.client_name, "version": self.client_version}, separators=(",", ":"))
        return base64.urlsafe_b64encode(payload.encode("utf-8")).rstrip(b"=").decode("ascii")
