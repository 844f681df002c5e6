"""
Creates the uniqueness indexes every collection needs before writes start.
"""

from typing import List, Optional, Sequence, Type

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError, OperationFailure, PyMongoError

from ..core.exceptions import SchemaConflictError
from ..domain.models import SCHEMA_REGISTRY, index_name
from ..infrastructure.database import MongoDocument
from .base import BaseRepository, translate_error

# Server error codes raised when a declared index cannot coexist with the
# indexes or documents already present.
INDEX_OPTIONS_CONFLICT = 85
INDEX_KEY_SPECS_CONFLICT = 86
DUPLICATE_KEY = 11000


class IndexManager(BaseRepository):
    """Ensures each registered collection carries its declared indexes."""

    def __init__(self,
                 database: AsyncIOMotorDatabase,
                 registry: Optional[Sequence[Type[MongoDocument]]] = None):
        super().__init__(database)
        self.registry = list(registry) if registry is not None else list(SCHEMA_REGISTRY)

    async def ensure_indexes(self) -> List[str]:
        """Create all declared indexes.

        Safe to call repeatedly; MongoDB treats an identical definition as a
        no-op. Raises SchemaConflictError when an existing index disagrees
        with the declaration, ConnectivityError or StorageError otherwise.

        Returns:
            Names of the indexes that are now in place.
        """
        op_logger = self.logger.start_operation("ensure_indexes",
                                                collections=len(self.registry))
        ensured = []

        for document_class in self.registry:
            ensured.extend(await self._ensure_for(document_class, op_logger))

        op_logger.complete("Indexes ensured", indexes=ensured)
        return ensured

    async def _ensure_for(self, document_class: Type[MongoDocument], op_logger) -> List[str]:
        collection = self.collection(document_class)
        names = []

        for index_spec in document_class.get_indexes():
            keys = index_spec["keys"]
            options = {k: v for k, v in index_spec.items() if k != "keys"}
            name = options.get("name") or index_name(keys)

            try:
                names.append(await collection.create_index(keys, **options))
            except DuplicateKeyError as e:
                op_logger.fail("Existing documents violate unique index", exception=e,
                               collection=collection.name, index=name)
                raise SchemaConflictError(
                    f"Documents in {collection.name} violate unique index {name}",
                    index=name,
                    collection=collection.name
                ) from e
            except OperationFailure as e:
                if e.code in (INDEX_OPTIONS_CONFLICT, INDEX_KEY_SPECS_CONFLICT, DUPLICATE_KEY):
                    op_logger.fail("Index definition conflicts with existing index", exception=e,
                                   collection=collection.name, index=name)
                    raise SchemaConflictError(
                        f"Index {name} on {collection.name} conflicts with an existing index: {e}",
                        index=name,
                        collection=collection.name
                    ) from e
                op_logger.fail("Failed to create index", exception=e,
                               collection=collection.name, index=name)
                raise translate_error(e, "ensure_indexes", collection.name) from e
            except PyMongoError as e:
                op_logger.fail("Failed to create index", exception=e,
                               collection=collection.name, index=name)
                raise translate_error(e, "ensure_indexes", collection.name) from e

        return names
