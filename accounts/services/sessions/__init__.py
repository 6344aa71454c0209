"""Session store: the per-user list of tokens that are still allowed to authenticate.

A signed, unexpired token is only usable while it is listed in its owner's
``tokens``; every function here is a read-modify-write of that one document.
"""
from __future__ import annotations

import logging

from accounts.models.user import Token, User
from accounts.services.tokens import TokenIssuer
from accounts.utils.config import settings


logger = logging.getLogger(__name__)


def has_token(user: User, value: str) -> bool:
    return any(t.token == value for t in user.tokens)


def append_token(user: User, value: str, max_sessions: int | None = None) -> Token:
    """Record a freshly issued token as the newest session and save the user.

    When more than ``max_sessions`` sessions are held the oldest ones are evicted.
    """
    limit = settings.max_sessions if max_sessions is None else max_sessions
    token = Token(token=value)
    user.tokens.append(token)
    if limit and len(user.tokens) > limit:
        evicted = len(user.tokens) - limit
        user.tokens = user.tokens[evicted:]
        logger.info("Evicted oldest sessions", extra={"user_id": str(user.id), "evicted": evicted})
    user.save()
    return token


def remove_token(user: User, value: str) -> bool:
    """Revoke one session. Returns False, without writing, when it is not listed."""
    remaining = [t for t in user.tokens if t.token != value]
    if len(remaining) == len(user.tokens):
        return False
    user.tokens = remaining
    user.save()
    return True


def remove_all_tokens(user: User) -> int:
    revoked = len(user.tokens)
    user.tokens = []
    user.save()
    return revoked


def prune_expired_tokens(user: User, issuer: TokenIssuer) -> int:
    """Drop sessions whose token expiry has passed; saves only if any were dropped."""
    alive = [t for t in user.tokens if not issuer.is_expired(t.token)]
    pruned = len(user.tokens) - len(alive)
    if pruned:
        user.tokens = alive
        user.save()
        logger.info("Pruned expired sessions", extra={"user_id": str(user.id), "pruned": pruned})
    return pruned
