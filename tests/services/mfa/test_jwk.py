from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from guardian_shell.services.mfa.errors import KeyFormatError
from guardian_shell.services.mfa.jwk import (
    _asn1_integer_bytes,
    _strip_sign_byte,
    b64url,
    b64url_decode,
    load_private_key,
    public_pem_to_jwk,
    read_pem,
    rsa_public_jwk,
)


def test_public_pem_to_jwk_fields(public_pem, rsa_key):
    jwk = public_pem_to_jwk(public_pem)
    assert jwk["kty"] == "RSA"
    assert jwk["alg"] == "RS256"
    assert jwk["use"] == "sig"
    assert jwk["e"] == "AQAB"
    assert "=" not in jwk["n"]
    assert "+" not in jwk["n"] and "/" not in jwk["n"]

    modulus = b64url_decode(jwk["n"])
    assert len(modulus) == 256
    assert modulus[0] != 0
    assert int.from_bytes(modulus, "big") == rsa_key.public_key().public_numbers().n


def test_jwk_matches_private_key_public_half(private_pem, public_pem):
    assert rsa_public_jwk(load_private_key(private_pem).public_key()) == public_pem_to_jwk(public_pem)


def test_b64url_has_no_padding():
    assert b64url(b"\xff\xfe") == "__4"
    assert b64url_decode("__4") == b"\xff\xfe"


def test_garbage_pem_raises_key_format_error():
    with pytest.raises(KeyFormatError):
        public_pem_to_jwk("-----BEGIN PUBLIC KEY-----\nnot-base64\n-----END PUBLIC KEY-----\n")


def test_non_rsa_key_is_rejected():
    ec_pem = ec.generate_private_key(ec.SECP256R1()).public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    with pytest.raises(KeyFormatError) as excinfo:
        public_pem_to_jwk(ec_pem)
    assert "RSA" in str(excinfo.value)


def test_private_key_where_public_expected(private_pem):
    with pytest.raises(KeyFormatError):
        public_pem_to_jwk(private_pem)


def test_read_pem_missing_file(tmp_path):
    with pytest.raises(KeyFormatError) as excinfo:
        read_pem(tmp_path / "absent.pem")
    assert "not found" in str(excinfo.value)


@pytest.mark.parametrize("key_size", [1033, 2047, 2049])
def test_modulus_without_sign_byte_is_kept_whole(key_size):
    key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    n = key.public_key().public_numbers().n
    jwk = rsa_public_jwk(key.public_key())
    assert b64url_decode(jwk["n"]) == n.to_bytes((n.bit_length() + 7) // 8, "big")
    assert jwk["e"] == "AQAB"


@pytest.mark.parametrize(
    "value, encoded, stripped",
    [
        (0x7F, b"\x7f", b"\x7f"),
        (0x80, b"\x00\x80", b"\x80"),
        (0x0100, b"\x01\x00", b"\x01\x00"),
        (65537, b"\x01\x00\x01", b"\x01\x00\x01"),
        (0xFFFF, b"\x00\xff\xff", b"\xff\xff"),
    ],
)
def test_integer_encoding_and_sign_byte_strip(value, encoded, stripped):
    assert _asn1_integer_bytes(value) == encoded
    assert _strip_sign_byte(encoded) == stripped


def test_strip_keeps_a_lone_zero_byte():
    assert _strip_sign_byte(b"\x00") == b"\x00"
