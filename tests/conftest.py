import mongomock
import pytest
from bson.objectid import ObjectId
from fastapi.testclient import TestClient
from mongoengine import connect, disconnect

from accounts.models.user import User
from accounts.services.sessions import append_token
from accounts.services.tokens import get_token_issuer
from main import app


USER_ONE_PASSWORD = "Piesek1234!"


@pytest.fixture(scope="session", autouse=True)
def mongo():
    """
    Point mongoengine at an in-memory mongomock client for the whole run.
    """
    connect("accounts_test", host="mongodb://localhost", alias="default", mongo_client_class=mongomock.MongoClient)
    yield
    disconnect(alias="default")


@pytest.fixture(autouse=True)
def clean_users():
    # delete() rather than drop so the unique email index survives between tests
    User.objects.delete()
    yield


@pytest.fixture
def issuer():
    return get_token_issuer()


@pytest.fixture
def user_one(issuer):
    """
    A stored user holding exactly one session token.
    """
    user = User(id=ObjectId(), name="Michał", email="michalfedorczyk@gmail.com", password=USER_ONE_PASSWORD)
    append_token(user, issuer.issue(str(user.id)))
    return user


@pytest.fixture
def user_one_token(user_one):
    return user_one.tokens[0].token


@pytest.fixture
def client():
    """
    TestClient without the lifespan, so no real MongoDB connection is attempted.
    """
    return TestClient(app)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
