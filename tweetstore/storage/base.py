"""
Shared plumbing for the store components.
"""

from typing import Type

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import ValidationError
from pymongo.errors import ConnectionFailure, PyMongoError

from ..core.exceptions import ConnectivityError, StorageError
from ..foundation.logging import get_logger, LogContext
from ..infrastructure.database import MongoDocument


def is_connectivity_failure(error: PyMongoError) -> bool:
    """True for errors meaning the server could not be reached at all."""
    return isinstance(error, ConnectionFailure)


def translate_error(error: PyMongoError, operation: str, collection: str) -> StorageError:
    """Map a driver error onto the store's typed errors."""
    if is_connectivity_failure(error):
        return ConnectivityError(
            f"{operation} could not reach MongoDB: {error}",
            operation=operation,
            collection=collection
        )
    return StorageError(
        f"{operation} failed on {collection}: {error}",
        operation=operation,
        collection=collection
    )


def invalid_document_error(error: ValidationError, operation: str, collection: str) -> StorageError:
    """A stored document that does not fit its model."""
    return StorageError(
        f"{operation} read an invalid document from {collection}: {error}",
        operation=operation,
        collection=collection,
        validation_errors=error.errors(include_url=False)
    )


class BaseRepository:
    """Base class for components operating on an injected database handle."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.logger = get_logger(self.__class__.__module__,
                                 LogContext(component=self.__class__.__name__))

    def collection(self, document_class: Type[MongoDocument]) -> AsyncIOMotorCollection:
        return self.database[document_class.get_collection_name()]
