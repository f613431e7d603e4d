"""Tests for session token signing."""

import pytest
from authlib.jose import jwt

from sso_bridge.exceptions import SigningError
from sso_bridge.services.token_issuer import TokenIssuer, strip_transport_fields

TOKEN_SECRET = "session-token-secret"


def test_strip_transport_fields_returns_new_mapping():
    """Input claims are never mutated."""
    claims = {"nonce": "abc", "return_sso_url": "http://test/", "username": "alice"}

    stripped = strip_transport_fields(claims)

    assert stripped == {"username": "alice"}
    assert claims == {"nonce": "abc", "return_sso_url": "http://test/", "username": "alice"}


def test_issue_signs_claims_without_transport_fields(token_issuer: TokenIssuer):
    token = token_issuer.issue(
        {"nonce": "abc", "return_sso_url": "http://test/", "username": "alice", "admin": "true"}
    )

    assert token_issuer.decode(token) == {"username": "alice", "admin": "true"}


@pytest.mark.parametrize(
    "claims",
    [
        {"token": "abc"},
        {"password": "hunter2", "secret": "s", "secret_key": "k"},
        {"external_id": "4111111111111111"},
        {"external_id": "123-45-6789"},
    ],
)
def test_issue_accepts_sensitive_looking_claims(token_issuer: TokenIssuer, claims):
    """Identity claims are signed as given, whatever their names or values."""
    assert token_issuer.decode(token_issuer.issue(claims)) == claims


def test_issue_has_no_expiry_by_default(token_issuer: TokenIssuer):
    claims = token_issuer.decode(token_issuer.issue({"foo": "bar"}))

    assert "exp" not in claims
    assert "iat" not in claims


def test_token_is_independently_verifiable():
    """Anyone holding the signing secret can verify the token with a plain JWT library."""
    token = TokenIssuer(TOKEN_SECRET).issue({"foo": "bar"})

    header = jwt.decode(token, TOKEN_SECRET).header
    assert header["alg"] == "HS256"
    assert dict(jwt.decode(token, TOKEN_SECRET)) == {"foo": "bar"}


def test_issue_with_expiry_adds_exp_and_iat():
    issuer = TokenIssuer(TOKEN_SECRET, expires_in_seconds=3600)

    claims = issuer.decode(issuer.issue({"foo": "bar"}))

    assert claims["foo"] == "bar"
    assert claims["exp"] - claims["iat"] == 3600


def test_decode_rejects_expired_token():
    issuer = TokenIssuer(TOKEN_SECRET)
    token = issuer.issue({"foo": "bar", "exp": 1})

    with pytest.raises(SigningError, match="Invalid session token"):
        issuer.decode(token)


def test_decode_rejects_token_signed_with_other_secret(token_issuer: TokenIssuer):
    forged = TokenIssuer("another-secret").issue({"foo": "bar"})

    with pytest.raises(SigningError):
        token_issuer.decode(forged)


def test_decode_rejects_garbage(token_issuer: TokenIssuer):
    with pytest.raises(SigningError):
        token_issuer.decode("not.a.token")


def test_requires_secret():
    with pytest.raises(SigningError, match="not configured"):
        TokenIssuer("")
