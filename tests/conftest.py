# tests/conftest.py

import os
import sys
from types import SimpleNamespace

# Add the project root (the folder containing `app/`) to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from pymongo import DESCENDING
from pymongo.errors import ServerSelectionTimeoutError

from app.core.jwt import create_access_token
from app.db.mongo import get_messages_collection
from app.main import app
from app.services.connection_registry import ConnectionRegistry, get_registry


def _matches(doc: dict, query: dict) -> bool:
    if "$or" in query:
        return any(_matches(doc, sub) for sub in query["$or"])
    return all(doc.get(key) == value for key, value in query.items())


class FakeCursor:
    def __init__(self, docs, unreachable=False):
        self._docs = docs
        self._unreachable = unreachable

    def sort(self, keys):
        for key, direction in reversed(keys):
            self._docs.sort(key=lambda d: d[key], reverse=direction == DESCENDING)
        return self

    def skip(self, n):
        self._docs = self._docs[n:]
        return self

    def limit(self, n):
        if n:
            self._docs = self._docs[:n]
        return self

    async def to_list(self, length=None):
        if self._unreachable:
            raise ServerSelectionTimeoutError("localhost:27017: connection refused")
        return list(self._docs)


class FakeCollection:
    """Just enough of a Motor collection for the message store."""

    def __init__(self):
        self.docs = []
        self.unreachable = False

    async def insert_one(self, doc):
        if self.unreachable:
            raise ServerSelectionTimeoutError("localhost:27017: connection refused")
        self.docs.append(dict(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    def find(self, query):
        # Motor cursors are lazy: failures surface when iterated
        return FakeCursor([dict(d) for d in self.docs if _matches(d, query)], self.unreachable)


@pytest.fixture
def collection():
    return FakeCollection()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def client(monkeypatch, collection, registry):
    async def fake_verify():
        return None

    monkeypatch.setattr("app.main.verify_mongodb_connection", fake_verify)
    app.dependency_overrides[get_messages_collection] = lambda: collection
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def token_for():
    def _token_for(user_id: str) -> str:
        return create_access_token({"userId": user_id, "email": f"{user_id}@example.com", "userType": "student"})
    return _token_for


@pytest.fixture
def auth_headers(token_for):
    def _auth_headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {token_for(user_id)}"}
    return _auth_headers


@pytest.fixture
def anyio_backend():
    return "asyncio"
