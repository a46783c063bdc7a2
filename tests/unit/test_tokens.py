from __future__ import annotations

from dataclasses import dataclass

import jwt
import pytest

import app.core.auth.tokens as tokens_module
from app.core.auth.tokens import TokenIssuer, TokenType, TokenValidationError
from app.db.models import UserRole

pytestmark = pytest.mark.unit

SECRET_KEY = "unit-test-signing-key-with-at-least-32-bytes"


@dataclass(slots=True)
class _Subject:
    id: str = "user-1"
    login_id: str = "12345678"
    role: UserRole = UserRole.STUDENT


def _issuer(**kwargs) -> TokenIssuer:
    kwargs.setdefault("full_ttl_seconds", 3600)
    return TokenIssuer(SECRET_KEY, **kwargs)


def test_full_token_carries_subject_login_id_and_role() -> None:
    issuer = _issuer()
    token = issuer.issue_full(_Subject())

    claims = issuer.decode(token)
    assert claims.subject == "user-1"
    assert claims.login_id == "12345678"
    assert claims.role == "STUDENT"
    assert claims.token_type is TokenType.FULL
    assert claims.expires_at - claims.issued_at == 3600

    assert issuer.is_valid(token) is True
    assert issuer.is_full_token(token) is True
    assert issuer.is_pending_2fa_token(token) is False
    assert issuer.extract_subject(token) == "user-1"
    assert issuer.extract_login_id(token) == "12345678"
    assert issuer.extract_role(token) == "STUDENT"


def test_pending_token_is_short_lived_and_not_full() -> None:
    issuer = _issuer()
    token = issuer.issue_pending_2fa(_Subject(role=UserRole.STAFF))

    claims = issuer.decode(token)
    assert claims.token_type is TokenType.PENDING_2FA
    assert claims.role == "STAFF"
    assert claims.expires_at - claims.issued_at == 300
    assert issuer.is_pending_2fa_token(token) is True
    assert issuer.is_full_token(token) is False


def test_payload_uses_wire_claim_names() -> None:
    token = _issuer().issue_full(_Subject())
    payload = jwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    assert payload["sub"] == "user-1"
    assert payload["loginId"] == "12345678"
    assert payload["role"] == "STUDENT"
    assert payload["type"] == "FULL"


def test_expired_token_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    issuer = _issuer(full_ttl_seconds=60)
    monkeypatch.setattr(tokens_module, "time", lambda: 1_000_000)
    token = issuer.issue_full(_Subject())
    monkeypatch.undo()

    assert issuer.is_valid(token) is False
    assert issuer.is_full_token(token) is False
    with pytest.raises(TokenValidationError):
        issuer.extract_subject(token)


def test_token_signed_with_other_key_is_rejected() -> None:
    other = TokenIssuer("another-signing-key-that-is-also-32-bytes", full_ttl_seconds=3600)
    token = other.issue_full(_Subject())

    issuer = _issuer()
    assert issuer.is_valid(token) is False
    with pytest.raises(TokenValidationError):
        issuer.decode(token)


def test_tampered_token_is_rejected() -> None:
    issuer = _issuer()
    header, payload, signature = issuer.issue_full(_Subject()).split(".")
    flipped = "A" if signature[0] != "A" else "B"
    tampered = ".".join([header, payload, flipped + signature[1:]])

    assert issuer.is_valid(tampered) is False


def test_garbage_and_empty_tokens_are_invalid() -> None:
    issuer = _issuer()
    assert issuer.is_valid("") is False
    assert issuer.is_valid(None) is False
    assert issuer.is_valid("not-a-jwt") is False
    assert issuer.is_pending_2fa_token("not-a-jwt") is False
    with pytest.raises(TokenValidationError):
        issuer.extract_role("not-a-jwt")


def test_token_without_type_claim_is_rejected() -> None:
    token = jwt.encode(
        {"sub": "user-1", "loginId": "12345678", "role": "STUDENT", "iat": 1, "exp": 4_000_000_000},
        SECRET_KEY,
        algorithm="HS256",
    )
    assert _issuer().is_valid(token) is False


def test_short_signing_key_is_refused() -> None:
    with pytest.raises(ValueError):
        TokenIssuer("too-short", full_ttl_seconds=3600)


def test_non_positive_lifetimes_are_refused() -> None:
    with pytest.raises(ValueError):
        TokenIssuer(SECRET_KEY, full_ttl_seconds=0)
    with pytest.raises(ValueError):
        TokenIssuer(SECRET_KEY, full_ttl_seconds=60, pending_ttl_seconds=-1)
