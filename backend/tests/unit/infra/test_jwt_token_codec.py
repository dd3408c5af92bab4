"""Unit tests for the PyJWT-backed token codec."""

from __future__ import annotations

import base64
import json
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import jwt
import pytest
from freezegun import freeze_time
from mystorage_auth.infra.jwt.jwt_token_codec import JWTTokenCodec


def _account(**overrides):
    values = {"id": 42, "email": "owner@example.com", "claim_name": "Owner"}
    values.update(overrides)
    return SimpleNamespace(**values)


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _payload(token: str) -> dict:
    return jwt.decode(token, options={"verify_signature": False})


def test_issue_and_verify_round_trip(codec, settings):
    with freeze_time("2026-01-10 12:00:00"):
        issued = codec.issue(_account())
        claims = codec.verify_access_token(issued.access_token)

    assert claims is not None
    assert claims.subject_id == 42
    assert claims.email == "owner@example.com"
    assert claims.display_name == "Owner"
    assert claims.expires_at == issued.access_expires_at
    assert issued.access_expires_at == datetime(2026, 1, 10, 12, 15, tzinfo=UTC)
    assert issued.refresh_expires_at == datetime(2026, 1, 17, 12, 0, tzinfo=UTC)


def test_access_token_carries_registered_claims(codec, settings):
    payload = _payload(codec.issue(_account()).access_token)

    assert payload["iss"] == settings.issuer
    assert payload["aud"] == settings.audience
    assert payload["sub"] == "42"
    assert payload["type"] == "access"
    assert payload["iat"] == payload["nbf"]
    assert payload["jti"]


def test_every_issue_is_unique(codec):
    first, second = codec.issue(_account()), codec.issue(_account())

    assert first.refresh_token != second.refresh_token
    assert _payload(first.access_token)["jti"] != _payload(second.access_token)["jti"]
    assert len(first.refresh_token) >= 64


def test_expired_token_rejected_unless_expiry_ignored(codec):
    with freeze_time("2026-01-10 12:00:00") as frozen:
        token = codec.issue(_account()).access_token
        frozen.tick(timedelta(minutes=16))

        assert codec.verify_access_token(token) is None
        claims = codec.verify_access_token(token, ignore_expiry=True)

    assert claims is not None
    assert claims.subject_id == 42


def test_tampered_payload_is_rejected(codec):
    header, payload, signature = codec.issue(_account()).access_token.split(".")
    forged = _payload(f"{header}.{payload}.{signature}")
    forged["sub"] = "1"

    assert codec.verify_access_token(f"{header}.{_b64(forged)}.{signature}") is None


def test_unsigned_token_is_rejected(codec):
    payload = _payload(codec.issue(_account()).access_token)
    unsigned = f"{_b64({'alg': 'none', 'typ': 'JWT'})}.{_b64(payload)}."

    assert codec.verify_access_token(unsigned) is None


def test_other_algorithm_is_rejected(codec, settings):
    payload = _payload(codec.issue(_account()).access_token)
    token = jwt.encode(payload, settings.signing_key, algorithm="HS512")

    assert codec.verify_access_token(token) is None


@pytest.mark.parametrize(
    "field, value",
    [
        ("issuer", "someone-else"),
        ("audience", "other-clients"),
        ("signing_key", "a-different-signing-key-of-decent-length"),
    ],
)
def test_foreign_tokens_are_rejected(codec, settings, field, value):
    foreign = JWTTokenCodec(replace(settings, **{field: value}))

    assert codec.verify_access_token(foreign.issue(_account()).access_token) is None


def test_wrong_type_and_garbage_are_rejected(codec, settings):
    payload = _payload(codec.issue(_account()).access_token)
    payload["type"] = "refresh"
    refresh_typed = jwt.encode(payload, settings.signing_key, algorithm="HS256")

    assert codec.verify_access_token(refresh_typed) is None
    assert codec.verify_access_token("not-a-jwt") is None
    assert codec.verify_access_token("") is None


def test_missing_required_claim_is_rejected(codec, settings):
    payload = _payload(codec.issue(_account()).access_token)
    del payload["email"]
    token = jwt.encode(payload, settings.signing_key, algorithm="HS256")

    assert codec.verify_access_token(token) is None


def test_hash_secret_is_stable_sha256(codec):
    digest = codec.hash_secret("secret")

    assert digest == codec.hash_secret("secret")
    assert digest != codec.hash_secret("Secret")
    assert len(digest) == 64
