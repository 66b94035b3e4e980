"""
Database Connection

A single MongoClient per process, owned by MongoConnectionManager. The manager
is created in the application lifespan and handed to request handlers through
the get_database dependency; nothing here connects at import time.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from fastapi import Request
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

RESTAURANTS = "restaurants"
MENU_ITEMS = "menu_items"
ORDERS = "orders"
RIDES = "rides"
RAIDERS = "raiders"


class DatabaseNotInitializedError(RuntimeError):
    def __init__(self):
        super().__init__("Database not initialized. Call connect() first.")


class MongoConnectionManager:
    """Opens, memoizes and closes the connection to the document store."""

    def __init__(
        self,
        uri: str,
        db_name: str,
        client_factory: Callable[..., MongoClient] = MongoClient,
        server_selection_timeout_ms: int = 5000,
    ):
        self.uri = uri
        self.db_name = db_name
        self._client_factory = client_factory
        self._timeout_ms = server_selection_timeout_ms
        self._client: Optional[MongoClient] = None
        self._db: Optional[Database] = None

    @property
    def is_connected(self) -> bool:
        return self._db is not None

    def connect(self) -> Database:
        """Connect on first call and return the cached handle afterwards.

        A failed connection is fatal: it is logged and the process exits.
        """
        if self._db is not None:
            return self._db

        try:
            client = self._client_factory(
                self.uri,
                serverSelectionTimeoutMS=self._timeout_ms,
                tz_aware=True,
            )
            client.admin.command("ping")
        except PyMongoError:
            logger.critical("MongoDB connection error", exc_info=True)
            raise SystemExit(1)

        self._client = client
        self._db = client[self.db_name]
        logger.info(f"Connected to MongoDB database '{self.db_name}'")
        return self._db

    def get_handle(self) -> Database:
        if self._db is None:
            raise DatabaseNotInitializedError()
        return self._db

    def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            self._client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"MongoDB ping failed: {e}")
            return False

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            logger.info("MongoDB connection closed")
        self._client = None
        self._db = None


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the shared database handle."""
    manager: Optional[MongoConnectionManager] = getattr(request.app.state, "mongo", None)
    if manager is None:
        raise DatabaseNotInitializedError()
    return manager.get_handle()


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]):
    """Insert a record (pydantic model or plain dict) and return its ObjectId."""
    if isinstance(data, BaseModel):
        data_dict = data.model_dump()
    else:
        data_dict = dict(data)
    result = db[collection_name].insert_one(data_dict)
    return result.inserted_id


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    sort: Optional[List[Tuple[str, int]]] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    return list(cursor)
