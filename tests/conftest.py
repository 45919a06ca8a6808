"""
Users API — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Tests run without a MongoDB server: the repository is handed either an
       AsyncMock collection (to force driver errors) or an in-memory
       collection that mimics the handful of driver calls the code makes.

Fixture Hierarchy (all function-scoped):
    ├── users_collection:     In-memory collection with a unique email index
    ├── unindexed_collection: Same, before the email index has been created
    ├── mock_collection:      AsyncMock collection for error-path tests
    ├── repository:           UserRepository over users_collection
    ├── sample_user_payload:  Valid create body
    ├── app:                  FastAPI app with the repository dependency overridden
    └── test_client:          HTTPX AsyncClient bound to `app`
"""

import copy
import os
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, OperationFailure

# Override settings for testing BEFORE any app imports
os.environ["MONGO_URI"] = "mongodb://localhost:27017/userapi_test"
os.environ["LOG_LEVEL"] = "WARNING"

from userapi.config import Settings  # noqa: E402
from userapi.database import get_user_repository  # noqa: E402
from userapi.main import create_app  # noqa: E402
from userapi.services.user_repository import UserRepository  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# In-memory collection
# ══════════════════════════════════════════════════════════════════════════

class _Cursor:
    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents

    async def to_list(self, length: Optional[int] = None) -> List[Dict[str, Any]]:
        return self._documents if length is None else self._documents[:length]


class InMemoryUsersCollection:
    """
    Supports only the calls UserRepository makes, keyed by `_id`.

    Enforces a unique index on `email` the way MongoDB does, by raising
    DuplicateKeyError from the write that would break it. Built with
    `email_indexed=False`, uniqueness holds only after create_index();
    `index_errors` are raised, in order, by the next create_index() calls.
    """

    def __init__(self, email_indexed: bool = True, index_errors: Optional[List[Exception]] = None):
        self.documents: Dict[ObjectId, Dict[str, Any]] = {}
        self.email_indexed = email_indexed
        self.index_errors = list(index_errors or [])
        self.create_index_calls = 0

    async def create_index(self, keys, unique: bool = False, name: Optional[str] = None) -> str:
        self.create_index_calls += 1
        if self.index_errors:
            raise self.index_errors.pop(0)
        emails = [doc.get("email") for doc in self.documents.values()]
        if unique and len(emails) != len(set(emails)):
            raise OperationFailure("E11000 duplicate key error", code=11000)
        self.email_indexed = True
        return name

    def _check_unique_email(self, email: Any, exclude: Optional[ObjectId] = None) -> None:
        if not self.email_indexed:
            return
        for oid, doc in self.documents.items():
            if oid != exclude and doc.get("email") == email:
                raise DuplicateKeyError("E11000 duplicate key error", code=11000)

    async def insert_one(self, document: Dict[str, Any]) -> MagicMock:
        self._check_unique_email(document.get("email"))
        oid = ObjectId()
        stored = dict(document, _id=oid)
        self.documents[oid] = stored
        return MagicMock(inserted_id=oid)

    def find(self, query: Dict[str, Any]) -> _Cursor:
        assert query == {}
        return _Cursor([copy.deepcopy(doc) for doc in self.documents.values()])

    async def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        doc = self.documents.get(query["_id"])
        return copy.deepcopy(doc) if doc else None

    async def find_one_and_update(
        self,
        query: Dict[str, Any],
        update: Dict[str, Any],
        return_document: bool = ReturnDocument.BEFORE,
    ) -> Optional[Dict[str, Any]]:
        oid = query["_id"]
        doc = self.documents.get(oid)
        if doc is None:
            return None
        changes = update["$set"]
        if "email" in changes:
            self._check_unique_email(changes["email"], exclude=oid)
        before = copy.deepcopy(doc)
        doc.update(changes)
        return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before

    async def find_one_and_delete(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.documents.pop(query["_id"], None)


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def users_collection():
    return InMemoryUsersCollection()


@pytest.fixture
def unindexed_collection():
    """Collection before the unique email index exists (fresh or unreachable database)."""
    return InMemoryUsersCollection(email_indexed=False)


@pytest.fixture
def mock_collection():
    """
    AsyncMock collection for forcing driver failures.

    Usage:
        mock_collection.insert_one.side_effect = PyMongoError("boom")
    """
    collection = MagicMock()
    collection.insert_one = AsyncMock()
    collection.find_one = AsyncMock()
    collection.find_one_and_update = AsyncMock()
    collection.find_one_and_delete = AsyncMock()
    collection.find = MagicMock()
    collection.create_index = AsyncMock()
    return collection


@pytest.fixture
def repository(users_collection):
    return UserRepository(users_collection)


@pytest.fixture
def sample_user_payload():
    return {
        "name": "John Doe",
        "email": "johndoe@example.com",
        "dateOfBirth": "1990-01-01",
    }


@pytest.fixture
def test_settings():
    return Settings(mongo_uri="mongodb://localhost:27017/userapi_test", log_level="WARNING")


@pytest.fixture
def app(test_settings, repository):
    """
    App wired to the in-memory repository.

    ASGITransport does not run the lifespan, so no MongoDB client is built.
    """
    application = create_app(config=test_settings)
    application.dependency_overrides[get_user_repository] = lambda: repository
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_list(test_client):
            response = await test_client.get("/users")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
