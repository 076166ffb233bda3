"""Password hashing and bearer token signing.

Passwords are stored as bcrypt hashes only. Tokens are HS256 JWTs whose
subject is the administrator id; there is no refresh, an expired token means
logging in again.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict

import bcrypt
import jwt

from .errors import ConfigurationError, InvalidTokenError

logger = logging.getLogger("sorgulen_api.security")

TOKEN_ALGORITHM = "HS256"

# bcrypt only looks at the first 72 bytes of its input
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    """Return a salted bcrypt hash for a plain-text password."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain-text password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        logger.warning("Password hash could not be parsed")
        return False


class TokenService:
    """Issues and verifies signed, time-limited bearer tokens."""

    def __init__(self, secret: str, lifetime_seconds: int = 12 * 3600):
        if not secret:
            raise ConfigurationError("JWT_SECRET is not defined")
        self._secret = secret
        self.lifetime_seconds = lifetime_seconds

    def issue(self, admin_id: str, **claims: Any) -> str:
        now = int(time.time())
        payload = {
            **claims,
            "sub": admin_id,
            "iat": now,
            "exp": now + self.lifetime_seconds,
        }
        token = jwt.encode(payload, self._secret, algorithm=TOKEN_ALGORITHM)
        if isinstance(token, bytes):
            return token.decode("utf-8")
        return token

    def verify(self, token: str) -> Dict[str, Any]:
        """Decode a token and return its claims.

        Raises:
            InvalidTokenError if the token is malformed, expired, signed with
            another key, or carries no subject.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[TOKEN_ALGORITHM],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token has expired")
        except jwt.PyJWTError as e:
            raise InvalidTokenError(str(e))

        if not isinstance(claims.get("sub"), str) or not claims["sub"]:
            raise InvalidTokenError("Token has no subject")
        return claims
