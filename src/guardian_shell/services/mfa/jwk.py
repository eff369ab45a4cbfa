from __future__ import annotations

import base64
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import KeyFormatError

__all__ = [
    "b64url",
    "b64url_decode",
    "load_public_key",
    "load_private_key",
    "read_pem",
    "rsa_public_jwk",
    "public_pem_to_jwk",
]


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    padding = "=" * ((4 - len(data) % 4) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _as_bytes(pem: str | bytes) -> bytes:
    return pem.encode("ascii") if isinstance(pem, str) else bytes(pem)


def read_pem(path: Path) -> str:
    try:
        return path.read_text(encoding="ascii")
    except FileNotFoundError as exc:
        raise KeyFormatError(f"key file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise KeyFormatError(f"cannot read key file {path}: {exc}") from exc


def load_public_key(pem: str | bytes) -> rsa.RSAPublicKey:
    try:
        key = serialization.load_pem_public_key(_as_bytes(pem))
    except (ValueError, TypeError, UnicodeEncodeError) as exc:
        raise KeyFormatError(f"not a PEM public key: {exc}") from exc
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyFormatError(f"expected an RSA public key, got {type(key).__name__}")
    return key


def load_private_key(pem: str | bytes) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_pem_private_key(_as_bytes(pem), password=None)
    except (ValueError, TypeError, UnicodeEncodeError) as exc:
        raise KeyFormatError(f"not an unencrypted PEM private key: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyFormatError(f"expected an RSA private key, got {type(key).__name__}")
    return key


def _asn1_integer_bytes(value: int) -> bytes:
    # DER INTEGER content: big-endian, with a 0x00 sign byte when the high bit is set
    return value.to_bytes(value.bit_length() // 8 + 1, "big")


def _strip_sign_byte(data: bytes) -> bytes:
    if len(data) > 1 and data[0] == 0:
        return data[1:]
    return data


def rsa_public_jwk(key: rsa.RSAPublicKey) -> dict[str, str]:
    """Render an RSA public key as a signing JWK."""

    numbers = key.public_numbers()
    modulus = _strip_sign_byte(_asn1_integer_bytes(numbers.n))
    exponent = _strip_sign_byte(_asn1_integer_bytes(numbers.e))
    return {
        "kty": "RSA",
        "alg": "RS256",
        "use": "sig",
        "e": b64url(exponent),
        "n": b64url(modulus),
    }


def public_pem_to_jwk(pem: str | bytes) -> dict[str, str]:
    return rsa_public_jwk(load_public_key(pem))
