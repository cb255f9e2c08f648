import os

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import create_document
from main import create_app
from security import create_access_token, get_password_hash


@pytest.fixture
def store():
    return mongomock.MongoClient().db


@pytest.fixture
def client(store):
    with TestClient(create_app(store)) as c:
        yield c


@pytest.fixture
def make_user(store):
    def _make(role="student", email=None, name=None, password="secret1"):
        email = email or f"{role}-{store['user'].count_documents({})}@school.edu"
        user_id = create_document(store, "user", {
            "name": name or role.title(),
            "email": email,
            "password": get_password_hash(password),
            "role": role,
            "department": None,
            "mustChangePassword": False,
        })
        return {"id": user_id, "role": role, "email": email, "password": password,
                "token": create_access_token(user_id, role)}
    return _make


def auth(user_or_token):
    token = user_or_token["token"] if isinstance(user_or_token, dict) else user_or_token
    return {"Authorization": f"Bearer {token}"}
