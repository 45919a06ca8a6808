"""
Users API — MongoDB Client Management
======================================

What:  Builds the async MongoDB client, prepares the users collection, and
       exposes FastAPI dependencies that hand the collection to routes.
Why:   Centralizes all connection logic in one place, and keeps the client
       off module globals so tests can run against a fake collection.
How:   The application lifespan calls create_client() once, stores the
       client and collection on `app.state`, and closes it on shutdown.
       Routes receive a UserRepository through get_user_repository().
When:  Client is created at startup; repositories are created per request.

Connection Pooling:
    AsyncMongoClient owns a connection pool that is safe to share between
    concurrently handled requests. The only lock here guards the one-time
    creation of the unique email index. /health bounds its ping with
    HEALTH_CHECK_TIMEOUT rather than the driver's server-selection timeout.
"""

import asyncio
import logging
from typing import Optional

from fastapi import Request
from pymongo import ASCENDING, AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import OperationFailure, PyMongoError

from userapi.config import Settings
from userapi.exceptions import StorageError
from userapi.services.user_repository import UserRepository

logger = logging.getLogger(__name__)

# Collection that holds one document per user
USERS_COLLECTION = "users"


def create_client(settings: Settings) -> AsyncMongoClient:
    """
    What:  Builds an AsyncMongoClient from settings.
    Why:   The driver connects lazily, so this never blocks or fails on an
           unreachable server; the first operation (ping) surfaces that.
    """
    return AsyncMongoClient(
        settings.mongo_uri,
        maxPoolSize=settings.mongo_max_pool_size,
        # Dates come back timezone-aware so .date() is taken in UTC
        tz_aware=True,
    )


def get_users_collection(client: AsyncMongoClient, settings: Settings) -> AsyncCollection:
    """Returns the users collection in the configured database."""
    return client[settings.database_name][USERS_COLLECTION]


class EmailIndex:
    """
    Tracks whether the unique index on `email` exists and builds it on demand.

    What:  Email uniqueness is enforced by MongoDB itself, so two concurrent
           creates with the same email cannot both succeed. That only holds
           once the index exists.
    How:   ensure() is tried at startup, by /health and before every write
           until one attempt succeeds; after that it returns immediately.
           create_index is a no-op if the index already exists.
    """

    NAME = "email_unique"

    def __init__(self, collection: AsyncCollection):
        self._collection = collection
        self._lock = asyncio.Lock()
        self.ready = False

    async def ensure(self) -> None:
        """
        Raises:
            StorageError: MongoDB unreachable, or existing documents already
                          share an email so the index cannot be built.
        """
        if self.ready:
            return
        async with self._lock:
            if self.ready:
                return
            try:
                await self._collection.create_index(
                    [("email", ASCENDING)], unique=True, name=self.NAME
                )
            except OperationFailure as e:
                # Reached the server, but it refused (e.g. duplicate emails already stored)
                logger.error("Unable to create unique email index: %s", str(e))
                raise StorageError(
                    message="Database is not ready",
                    context={"index": self.NAME, "error_type": type(e).__name__},
                )
            except PyMongoError as e:
                logger.warning("Unique email index not created, database unreachable: %s", str(e))
                raise StorageError(
                    message="Database is not ready",
                    context={"index": self.NAME, "error_type": type(e).__name__},
                )
            self.ready = True
            logger.info("Unique email index is in place")


async def ping(client: AsyncMongoClient, timeout: Optional[float] = None) -> None:
    """
    Round-trips a `ping` command; raises the driver error if unreachable.

    With `timeout`, gives up after that many seconds with asyncio.TimeoutError
    instead of waiting out the driver's server-selection timeout.
    """
    if timeout is None:
        await client.admin.command("ping")
    else:
        await asyncio.wait_for(client.admin.command("ping"), timeout=timeout)


# ── FastAPI Dependencies ──────────────────────────────────────────────────

def get_collection(request: Request) -> AsyncCollection:
    """
    FastAPI dependency returning the collection created by the lifespan.

    Tests override get_user_repository (or this function) through
    `app.dependency_overrides` instead of patching module state.
    """
    return request.app.state.users_collection


def get_user_repository(request: Request) -> UserRepository:
    """
    FastAPI dependency that provides a repository per request.

    Example usage in a route:
        @router.get("/users")
        async def list_users(repository: UserRepository = Depends(get_user_repository)):
            return await repository.get_all()
    """
    return UserRepository(
        get_collection(request),
        email_index=getattr(request.app.state, "email_index", None),
    )
