"""
MongoDB connection lifecycle.

The gridfs provider borrows the process-wide database handle from here.
connect_database() must run (normally in the app lifespan) before a
gridfs provider is constructed.
"""

import logging

from pymongo import MongoClient
from pymongo.database import Database

from app.storage.exceptions import StorageConfigurationError

logger = logging.getLogger(__name__)

_client: MongoClient | None = None
_database: Database | None = None


def connect_database(uri: str, db_name: str, **client_kwargs) -> Database:
    """
    Open the MongoDB client and select the database.

    Calling it again replaces the previous connection.
    """
    global _client, _database

    close_database()
    _client = MongoClient(uri, **client_kwargs)
    _database = _client[db_name]
    logger.info(f"MongoDB connected: db={db_name}")
    return _database


def set_database(database: Database | None) -> None:
    """
    Set the database handle directly (useful for testing).
    """
    global _database
    _database = database


def get_database() -> Database:
    """
    Return the connected database.

    Raises:
        StorageConfigurationError: If connect_database() has not run
    """
    if _database is None:
        raise StorageConfigurationError("gridfs", "MongoDB is not connected yet")
    return _database


def close_database() -> None:
    """Close the client, if any, and forget the database handle."""
    global _client, _database

    if _client is not None:
        _client.close()
        logger.info("MongoDB connection closed")
    _client = None
    _database = None
