from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from jose import jwt, JWTError, ExpiredSignatureError

from accounts.utils.base import TokenFailure
from accounts.utils.config import settings


class InvalidToken(Exception):
    """Base class for every reason a presented token is rejected."""
    reason: TokenFailure


class MalformedToken(InvalidToken):
    reason = TokenFailure.MALFORMED


class BadSignature(InvalidToken):
    reason = TokenFailure.BAD_SIGNATURE


class Expired(InvalidToken):
    reason = TokenFailure.EXPIRED


class TokenIssuer:
    """Mints and verifies signed, time-scoped bearer tokens.

    The signing secret is handed in at construction; any process built with
    the same secret and algorithm accepts the tokens of any other.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", expires_delta: timedelta = timedelta(days=7)):
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self.algorithm = algorithm
        self.expires_delta = expires_delta

    def issue(self, user_id: str) -> str:
        """Create a signed JWT bound to ``user_id``.

        ``jti`` makes two tokens issued within the same second distinct.
        """
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + self.expires_delta).timestamp()),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        """Return the user id bound to ``token`` or raise an ``InvalidToken``."""
        claims = self._unverified_claims(token)
        if not isinstance(claims.get("sub"), str) or not isinstance(claims.get("exp"), int):
            raise MalformedToken("Token is missing its subject or expiry")

        # jose checks the signature before the registered claims
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise Expired(str(exc)) from exc
        except JWTError as exc:
            raise BadSignature(str(exc)) from exc
        return payload["sub"]

    def is_expired(self, token: str, now: datetime | None = None) -> bool:
        """Check only the ``exp`` claim; undecodable tokens count as expired."""
        try:
            exp = self._unverified_claims(token).get("exp")
        except MalformedToken:
            return True
        if not isinstance(exp, int):
            return True
        now = now or datetime.now(timezone.utc)
        return exp < now.timestamp()

    @staticmethod
    def _unverified_claims(token: str) -> dict:
        try:
            return jwt.get_unverified_claims(token)
        except (JWTError, AttributeError, TypeError) as exc:
            raise MalformedToken(str(exc)) from exc


@lru_cache
def get_token_issuer() -> TokenIssuer:
    """Process-wide issuer built from settings; override in tests via FastAPI."""
    return TokenIssuer(
        secret=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(days=settings.token_expires_days),
    )
