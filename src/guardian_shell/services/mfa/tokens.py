"""Compact RS256 JWTs for transaction resolution and DPoP proofs.

Header and payload are serialized as compact JSON with a fixed key order
(the order the claims are built in), base64url-encoded without padding and
joined with ``.``; the RSASSA-PKCS1-v1_5/SHA-256 signature covers those
ASCII bytes.
"""

from __future__ import annotations

import hashlib
import json
import time
import uuid
from typing import Any, Callable, Mapping

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .jwk import b64url, b64url_decode, rsa_public_jwk

__all__ = [
    "CHALLENGE_RESPONSE_TTL",
    "GUARDIAN_METHOD_PUSH",
    "canonical_json",
    "sign_jwt",
    "split_jwt",
    "transaction_claims",
    "sign_transaction_token",
    "access_token_hash",
    "dpop_claims",
    "sign_dpop_proof",
]

CHALLENGE_RESPONSE_TTL = 30
GUARDIAN_METHOD_PUSH = "push"

Clock = Callable[[], float]


def canonical_json(obj: Mapping[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def sign_jwt(header: Mapping[str, Any], claims: Mapping[str, Any], private_key: rsa.RSAPrivateKey) -> str:
    signing_input = f"{b64url(canonical_json(header))}.{b64url(canonical_json(claims))}"
    signature = private_key.sign(signing_input.encode("ascii"), padding.PKCS1v15(), hashes.SHA256())
    return f"{signing_input}.{b64url(signature)}"


def split_jwt(token: str) -> tuple[dict[str, Any], dict[str, Any], bytes]:
    """Decode a compact JWT without verifying it."""

    try:
        header_b64, payload_b64, signature_b64 = token.split(".")
    except ValueError as exc:
        raise ValueError("compact JWT must have three segments") from exc
    header = json.loads(b64url_decode(header_b64).decode("utf-8"))
    payload = json.loads(b64url_decode(payload_b64).decode("utf-8"))
    return header, payload, b64url_decode(signature_b64)


def _now(clock: Clock | None) -> int:
    return int((clock or time.time)())


def transaction_claims(
    *,
    audience: str,
    device_id: str,
    challenge: str,
    accepted: bool,
    reason: str | None = None,
    issued_at: int,
) -> dict[str, Any]:
    claims: dict[str, Any] = {
        "iat": issued_at,
        "exp": issued_at + CHALLENGE_RESPONSE_TTL,
        "aud": audience,
        "iss": device_id,
        "sub": challenge,
        "auth0_guardian_method": GUARDIAN_METHOD_PUSH,
        "auth0_guardian_accepted": accepted,
    }
    # the reason claim must be absent, not empty, on accept
    if not accepted and reason:
        claims["auth0_guardian_reason"] = reason
    return claims


def sign_transaction_token(
    private_key: rsa.RSAPrivateKey,
    *,
    audience: str,
    device_id: str,
    challenge: str,
    accepted: bool,
    reason: str | None = None,
    clock: Clock | None = None,
) -> str:
    """Build the ``challenge_response`` JWT sent to resolve-transaction."""

    claims = transaction_claims(
        audience=audience,
        device_id=device_id,
        challenge=challenge,
        accepted=accepted,
        reason=reason,
        issued_at=_now(clock),
    )
    return sign_jwt({"alg": "RS256", "typ": "JWT"}, claims, private_key)


def access_token_hash(token: str) -> str:
    return b64url(hashlib.sha256(token.encode("utf-8")).digest())


def dpop_claims(*, url: str, method: str, access_token: str, issued_at: int, jti: str | None = None) -> dict[str, Any]:
    return {
        "htu": url,
        "htm": method.upper(),
        "ath": access_token_hash(access_token),
        "jti": jti or str(uuid.uuid4()),
        "iat": issued_at,
    }


def sign_dpop_proof(
    private_key: rsa.RSAPrivateKey,
    *,
    url: str,
    method: str,
    access_token: str,
    clock: Clock | None = None,
) -> str:
    """Build a DPoP proof whose header carries the public JWK."""

    header = {
        "alg": "RS256",
        "typ": "dpop+jwt",
        "jwk": rsa_public_jwk(private_key.public_key()),
    }
    claims = dpop_claims(url=url, method=method, access_token=access_token, issued_at=_now(clock))
    return sign_jwt(header, claims, private_key)
