from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NoReturn

from bson.objectid import ObjectId
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from accounts.errors import Unauthenticated
from accounts.models.user import User
from accounts.services.sessions import has_token, prune_expired_tokens
from accounts.services.tokens import InvalidToken, TokenIssuer, get_token_issuer
from accounts.utils.base import TokenFailure


logger = logging.getLogger(__name__)

# auto_error off so a missing header gets the same response as every other failure
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/users/login", auto_error=False)


@dataclass
class AuthSession:
    """The authenticated caller and the exact token they presented."""
    user: User
    token: str


def _reject(reason: TokenFailure, **extra) -> NoReturn:
    logger.info("Rejected bearer token", extra={"reason": reason.value, **extra})
    raise Unauthenticated()


def _find_user(user_id: str) -> User | None:
    if not ObjectId.is_valid(user_id):
        return None
    return User.objects(id=user_id).first()


def get_current_session(
    token: str | None = Depends(oauth2_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthSession:
    """Auth dependency resolving ``Authorization: Bearer <token>`` to a session.

    The token must verify (signature and expiry) and still be listed in its
    owner's sessions; anything else is a 401.
    """
    if not token:
        _reject(TokenFailure.MISSING_HEADER)

    try:
        user_id = issuer.verify(token)
    except InvalidToken as exc:
        _reject(exc.reason)

    user = _find_user(user_id)
    if user is None:
        _reject(TokenFailure.UNKNOWN_USER, user_id=user_id)
    if not has_token(user, token):
        _reject(TokenFailure.REVOKED, user_id=user_id)

    prune_expired_tokens(user, issuer)
    return AuthSession(user=user, token=token)


def get_current_user(session: AuthSession = Depends(get_current_session)) -> User:
    return session.user
