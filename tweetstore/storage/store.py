"""
Store facade wiring every component around one database handle.
"""

from typing import Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from ..foundation.config import StoreConfig
from ..foundation.logging import setup_logging
from ..infrastructure.database import DatabaseManager
from .indexes import IndexManager
from .labels import LabelWorkflow
from .queries import QueryEngine
from .writes import WriteGateway


class TweetStore:
    """Entry point for callers holding an open database handle."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.indexes = IndexManager(database)
        self.writes = WriteGateway(database)
        self.queries = QueryEngine(database)
        self.labels = LabelWorkflow(self.writes)


async def open_store(config: StoreConfig, configure_logging: bool = True) -> Tuple[DatabaseManager, TweetStore]:
    """Connect, ensure indexes and return the manager with a ready store.

    Unless ``configure_logging`` is False, root logging is first set up from
    the config's level, file and structured flag.

    Any failure here is fatal for the caller's startup: connection errors
    raise ConnectivityError and index mismatches raise SchemaConflictError.
    """
    if configure_logging:
        setup_logging(level=config.log_level,
                      log_file=config.log_file,
                      structured=config.structured_logging)

    manager = DatabaseManager(config.database)
    database = await manager.connect()

    store = TweetStore(database)
    try:
        await store.indexes.ensure_indexes()
    except Exception:
        await manager.disconnect()
        raise

    return manager, store
