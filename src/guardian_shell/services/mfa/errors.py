"""Error taxonomy for Guardian MFA device operations."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

__all__ = [
    "GuardianError",
    "GuardianHttpError",
    "AuthenticationError",
    "ConflictError",
    "ValidationError",
    "NotFoundError",
    "UnexpectedStatusError",
    "TransportError",
    "InvalidTicket",
    "AlreadyEnrolled",
    "InvalidRequest",
    "InvalidTransactionToken",
    "InvalidChallenge",
    "InvalidDeviceToken",
    "DeviceNotFound",
    "KeyFormatError",
    "StoreError",
    "AmbiguousDeviceError",
    "UnsavedEnrollmentError",
    "ConfigurationError",
    "InvalidPushMessage",
    "error_detail",
]


class GuardianError(RuntimeError):
    """Base error for every failure surfaced by guardian-shell."""


class GuardianHttpError(GuardianError):
    """Raised when the Guardian API answers with a non-success status."""

    def __init__(self, message: str, *, status_code: int, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class AuthenticationError(GuardianHttpError):
    """401: the ticket, transaction token or device token was rejected."""


class ConflictError(GuardianHttpError):
    """409: the device is already enrolled."""


class ValidationError(GuardianHttpError):
    """400: malformed request or claims."""


class NotFoundError(GuardianHttpError):
    """404: the addressed resource does not exist."""


class UnexpectedStatusError(GuardianHttpError):
    """Any other status outside an operation's success set."""


class TransportError(GuardianHttpError):
    """The request never produced an HTTP response."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=0)


class InvalidTicket(AuthenticationError):
    pass


class AlreadyEnrolled(ConflictError):
    pass


class InvalidRequest(ValidationError):
    pass


class InvalidTransactionToken(AuthenticationError):
    pass


class InvalidChallenge(ValidationError):
    pass


class InvalidDeviceToken(AuthenticationError):
    pass


class DeviceNotFound(NotFoundError):
    pass


class KeyFormatError(GuardianError):
    """Raised when PEM input is not a usable RSA key."""


class StoreError(GuardianError):
    """Raised when an enrollment record is missing or unreadable."""


class AmbiguousDeviceError(StoreError):
    """Raised when a device must be auto-selected but several are enrolled."""

    def __init__(self, candidates: Sequence[str]) -> None:
        self.candidates = list(candidates)
        super().__init__(
            "multiple enrollments found, pass a device id explicitly: " + ", ".join(self.candidates)
        )


class UnsavedEnrollmentError(StoreError):
    """Raised when the server enrolled the device but its record could not be written.

    ``enrollment_id`` and ``device_token`` are kept so the caller can still
    unenroll the device.
    """

    def __init__(self, message: str, *, enrollment_id: str, device_token: str) -> None:
        self.enrollment_id = enrollment_id
        self.device_token = device_token
        super().__init__(message)


class ConfigurationError(GuardianError):
    """Raised when required local configuration cannot be resolved."""


class InvalidPushMessage(GuardianError):
    """Raised when a push payload does not carry a Guardian challenge."""


def error_detail(payload: Any, fallback: str) -> str:
    """Pick a human readable message out of an error response body."""

    if isinstance(payload, Mapping):
        for key in ("message", "error_description", "error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    if isinstance(payload, str) and payload.strip():
        return payload.strip()
    return fallback
