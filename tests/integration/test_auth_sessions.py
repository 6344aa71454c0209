import logging
from datetime import timedelta

from pymongo.errors import DuplicateKeyError, OperationFailure, ServerSelectionTimeoutError

from accounts.models.user import User
from accounts.services import auth as auth_service
from accounts.services.sessions import append_token
from accounts.services.tokens import TokenIssuer
from accounts.utils.config import settings
from tests.conftest import USER_ONE_PASSWORD, bearer


def _login(client, user):
    resp = client.post("/users/login", json={"email": user.email, "password": USER_ONE_PASSWORD})
    assert resp.status_code == 200
    return resp.json()["token"]


def _rejection_reasons(caplog):
    return [r.reason for r in caplog.records if r.name == "accounts.services.auth"]


def test_malformed_header_is_rejected(client, user_one_token):
    for header in (user_one_token, f"Basic {user_one_token}", "Bearer", "Bearer "):
        resp = client.get("/users/me", headers={"Authorization": header})
        assert resp.status_code == 401, header


def test_expired_token_is_rejected(client, user_one, caplog):
    stale = TokenIssuer(secret=settings.jwt_secret_key, expires_delta=timedelta(seconds=-30))
    token = stale.issue(str(user_one.id))
    append_token(user_one, token)

    caplog.set_level(logging.INFO, logger="accounts.services.auth")
    resp = client.get("/users/me", headers=bearer(token))
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Please authenticate"}
    assert _rejection_reasons(caplog) == ["expired"]


def test_forged_token_is_rejected(client, user_one, caplog):
    forged = TokenIssuer(secret="not-the-server-secret").issue(str(user_one.id))
    append_token(user_one, forged)

    caplog.set_level(logging.INFO, logger="accounts.services.auth")
    resp = client.get("/users/me", headers=bearer(forged))
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Please authenticate"}
    assert _rejection_reasons(caplog) == ["bad_signature"]


def test_unlisted_token_is_rejected(client, user_one, issuer, caplog):
    """A genuine, unexpired token that was never stored as a session does not authenticate."""
    caplog.set_level(logging.INFO, logger="accounts.services.auth")
    resp = client.get("/users/me", headers=bearer(issuer.issue(str(user_one.id))))
    assert resp.status_code == 401
    assert _rejection_reasons(caplog) == ["revoked"]


def test_logout_revokes_only_that_token(client, user_one, user_one_token):
    second = _login(client, user_one)

    resp = client.post("/users/logout", headers=bearer(user_one_token))
    assert resp.status_code == 200

    assert client.get("/users/me", headers=bearer(user_one_token)).status_code == 401
    assert client.get("/users/me", headers=bearer(second)).status_code == 200
    assert [t.token for t in User.objects(id=user_one.id).first().tokens] == [second]


def test_logout_of_only_session_revokes_it(client, user_one, user_one_token):
    resp = client.post("/users/logout", headers=bearer(user_one_token))
    assert resp.status_code == 200

    assert client.get("/users/me", headers=bearer(user_one_token)).status_code == 401
    assert User.objects(id=user_one.id).first().tokens == []


def test_logout_all_revokes_every_token(client, user_one, user_one_token):
    second = _login(client, user_one)

    resp = client.post("/users/logout-all", headers=bearer(second))
    assert resp.status_code == 200

    assert client.get("/users/me", headers=bearer(user_one_token)).status_code == 401
    assert client.get("/users/me", headers=bearer(second)).status_code == 401
    assert User.objects(id=user_one.id).first().tokens == []


def test_deleted_user_tokens_stop_working(client, user_one, user_one_token, caplog):
    second = _login(client, user_one)
    assert client.delete("/users/me", headers=bearer(user_one_token)).status_code == 200

    caplog.set_level(logging.INFO, logger="accounts.services.auth")
    for token in (user_one_token, second):
        assert client.get("/users/me", headers=bearer(token)).status_code == 401
    assert _rejection_reasons(caplog) == ["unknown_user", "unknown_user"]


def test_expired_sessions_are_pruned_on_access(client, user_one, user_one_token):
    stale = TokenIssuer(secret=settings.jwt_secret_key, expires_delta=timedelta(seconds=-30))
    append_token(user_one, stale.issue(str(user_one.id)))
    assert len(User.objects(id=user_one.id).first().tokens) == 2

    assert client.get("/users/me", headers=bearer(user_one_token)).status_code == 200
    assert [t.token for t in User.objects(id=user_one.id).first().tokens] == [user_one_token]


def test_session_cap_evicts_oldest_login(client, user_one, user_one_token, monkeypatch):
    monkeypatch.setattr(settings, "max_sessions", 2)
    second = _login(client, user_one)
    third = _login(client, user_one)

    assert client.get("/users/me", headers=bearer(user_one_token)).status_code == 401
    assert client.get("/users/me", headers=bearer(second)).status_code == 200
    assert client.get("/users/me", headers=bearer(third)).status_code == 200


def test_store_failure_is_503(client, user_one_token, monkeypatch):
    def unavailable(user_id):
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(auth_service, "_find_user", unavailable)
    resp = client.get("/users/me", headers=bearer(user_one_token))
    assert resp.status_code == 503


def test_failed_save_is_503(client, user_one, user_one_token, monkeypatch):
    def failing(*args, **kwargs):
        raise OperationFailure("not primary")

    monkeypatch.setattr(User._get_collection(), "update_one", failing)
    resp = client.patch("/users/me", json={"age": 3}, headers=bearer(user_one_token))
    assert resp.status_code == 503
    assert resp.json() == {"detail": "Database unavailable, try again later"}


def test_duplicate_key_on_save_is_409(client, user_one, user_one_token, monkeypatch):
    def duplicate(*args, **kwargs):
        raise DuplicateKeyError("E11000 duplicate key error")

    monkeypatch.setattr(User._get_collection(), "update_one", duplicate)
    resp = client.patch("/users/me", json={"age": 3}, headers=bearer(user_one_token))
    assert resp.status_code == 409
