"""Typed request/response bodies and the persisted enrollment record."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from guardian_shell.config.const import DEFAULT_PUSH_SERVICE

__all__ = [
    "DEFAULT_PUSH_SERVICE",
    "EnrollmentRecord",
    "PushCredentials",
    "EnrollmentRequest",
    "EnrollmentResponse",
    "ResolveTransactionRequest",
    "UpdateDeviceRequest",
    "encode_body",
    "decode_body",
    "utc_timestamp",
]


def utc_timestamp(moment: datetime | None = None) -> str:
    moment = (moment or datetime.now(tz=timezone.utc)).astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def encode_body(payload: Mapping[str, Any]) -> bytes:
    """Shared JSON codec for every request body."""

    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode_body(raw: bytes | str | None) -> Any | None:
    if raw is None:
        return None
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


def _text(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


@dataclass(slots=True)
class EnrollmentRecord:
    """Local state for one enrolled device, keyed by ``device_id``."""

    device_id: str
    enrollment_id: str
    device_token: str
    domain: str
    enrolled_at: str
    user_id: str = ""
    issuer: str = ""
    totp_secret: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EnrollmentRecord":
        return cls(
            device_id=_text(data, "device_id"),
            enrollment_id=_text(data, "enrollment_id"),
            device_token=_text(data, "device_token"),
            domain=_text(data, "domain"),
            enrolled_at=_text(data, "enrolled_at"),
            user_id=_text(data, "user_id"),
            issuer=_text(data, "issuer"),
            totp_secret=_text(data, "totp_secret"),
        )

    @classmethod
    def from_enrollment(
        cls,
        response: "EnrollmentResponse",
        *,
        device_id: str,
        domain: str,
        enrolled_at: str | None = None,
    ) -> "EnrollmentRecord":
        return cls(
            device_id=device_id,
            enrollment_id=response.id,
            device_token=response.token,
            domain=domain,
            enrolled_at=enrolled_at or utc_timestamp(),
            user_id=response.user_id,
            issuer=response.issuer,
            totp_secret=response.totp_secret,
        )

    def as_json(self) -> dict[str, str]:
        return asdict(self)


@dataclass(slots=True)
class PushCredentials:
    token: str
    service: str = DEFAULT_PUSH_SERVICE

    def as_payload(self) -> dict[str, str]:
        return {"service": self.service, "token": self.token}


@dataclass(slots=True)
class EnrollmentRequest:
    identifier: str
    name: str
    push_credentials: PushCredentials
    public_key: Mapping[str, str]

    def as_payload(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "name": self.name,
            "push_credentials": self.push_credentials.as_payload(),
            "public_key": dict(self.public_key),
        }


@dataclass(slots=True)
class EnrollmentResponse:
    id: str
    token: str
    user_id: str = ""
    issuer: str = ""
    totp_secret: str = ""
    raw: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "EnrollmentResponse":
        data: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}
        totp = data.get("totp")
        secret = totp.get("secret") if isinstance(totp, Mapping) else None
        return cls(
            id=_text(data, "id"),
            token=_text(data, "token"),
            user_id=_text(data, "user_id"),
            issuer=_text(data, "issuer"),
            totp_secret="" if secret is None else str(secret),
            raw=dict(data),
        )


@dataclass(slots=True)
class ResolveTransactionRequest:
    challenge_response: str

    def as_payload(self) -> dict[str, str]:
        return {"challenge_response": self.challenge_response}


@dataclass(slots=True)
class UpdateDeviceRequest:
    """Partial device-account update; ``push_credentials`` is always sent."""

    push_credentials: PushCredentials
    name: str | None = None
    identifier: str | None = None

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"push_credentials": self.push_credentials.as_payload()}
        if self.name:
            payload["name"] = self.name
        if self.identifier:
            payload["identifier"] = self.identifier
        return payload

    def fields(self) -> list[str]:
        return list(self.as_payload())
