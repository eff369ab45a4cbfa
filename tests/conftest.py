from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from guardian_shell.services.mfa.client import TransportResponse


@dataclass
class SentRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8")) if self.body is not None else None


@dataclass
class RecordingTransport:
    """Fake transport answering from a queue of canned responses."""

    responses: list[TransportResponse] = field(default_factory=list)
    requests: list[SentRequest] = field(default_factory=list)

    def reply(self, status_code: int, body: Any = None) -> "RecordingTransport":
        self.responses.append(TransportResponse(status_code=status_code, body=body))
        return self

    def send(self, method: str, url: str, headers: Mapping[str, str], body: bytes | None) -> TransportResponse:
        self.requests.append(SentRequest(method=method, url=url, headers=dict(headers), body=body))
        if not self.responses:
            raise AssertionError(f"unexpected request {method} {url}")
        return self.responses.pop(0)

    @property
    def last(self) -> SentRequest:
        return self.requests[-1]


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def public_pem(rsa_key) -> str:
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture(autouse=True)
def _reset_guardian_logger():
    logger = logging.getLogger("guardian_shell")
    yield
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
