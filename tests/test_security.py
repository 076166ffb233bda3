"""Password hashing and bearer tokens."""

import time

import jwt
import pytest

from sorgulen_api.errors import ConfigurationError, InvalidTokenError
from sorgulen_api.security import TokenService, hash_password, verify_password


def test_password_hash_round_trip():
    hashed = hash_password("correct horse", rounds=4)

    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_password_hash_is_salted():
    assert hash_password("same", rounds=4) != hash_password("same", rounds=4)


def test_verify_against_garbage_hash_is_false():
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_token_round_trip():
    tokens = TokenService("secret", lifetime_seconds=60)

    claims = tokens.verify(tokens.issue("abc123"))

    assert claims["sub"] == "abc123"
    assert claims["exp"] - claims["iat"] == 60


def test_token_signed_with_other_secret_is_rejected():
    token = TokenService("other").issue("abc123")

    with pytest.raises(InvalidTokenError):
        TokenService("secret").verify(token)


def test_expired_token_is_rejected():
    now = int(time.time())
    token = jwt.encode({"sub": "abc123", "iat": now - 120, "exp": now - 60}, "secret", algorithm="HS256")

    with pytest.raises(InvalidTokenError, match="expired"):
        TokenService("secret").verify(token)


@pytest.mark.parametrize("token", ["", "abc", "a.b.c"])
def test_malformed_token_is_rejected(token):
    with pytest.raises(InvalidTokenError):
        TokenService("secret").verify(token)


def test_token_without_subject_is_rejected():
    token = jwt.encode({"exp": int(time.time()) + 60}, "secret", algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        TokenService("secret").verify(token)


def test_missing_secret_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        TokenService("")
