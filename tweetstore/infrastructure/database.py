"""MongoDB document base class and connection management."""

from typing import Dict, List, Optional, Any, Type, TypeVar, ClassVar

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pydantic import BaseModel, Field, ConfigDict
from pymongo.errors import PyMongoError

from tweetstore.core.exceptions import ConnectivityError
from tweetstore.foundation.config import DatabaseConfig
from tweetstore.foundation.logging import get_logger, LogContext

T = TypeVar('T', bound='MongoDocument')


class MongoDocument(BaseModel):
    """Base class for MongoDB documents with auto-validation."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        populate_by_name=True,
        str_strip_whitespace=True
    )

    id: Optional[str] = Field(default=None, alias="_id")

    collection_name: ClassVar[str] = ""
    indexes: ClassVar[List[Dict[str, Any]]] = []

    @classmethod
    def get_collection_name(cls) -> str:
        """Get the MongoDB collection name for this document type."""
        if cls.collection_name:
            return cls.collection_name
        return cls.__name__.lower() + "s"

    @classmethod
    def get_indexes(cls) -> List[Dict[str, Any]]:
        """Get the index definitions for this document type."""
        return list(cls.indexes)

    def model_dump_mongo(self) -> Dict[str, Any]:
        """Convert to a MongoDB-compatible dictionary without unset optionals."""
        data = self.model_dump(by_alias=True, exclude_none=True)

        if self.id:
            data["_id"] = ObjectId(self.id) if ObjectId.is_valid(self.id) else self.id

        return data

    @classmethod
    def from_mongo(cls: Type[T], data: Dict[str, Any]) -> T:
        """Create instance from MongoDB document."""
        data = dict(data)
        if "_id" in data:
            data["_id"] = str(data["_id"])

        return cls.model_validate(data)


class DatabaseManager:
    """Opens the MongoDB session the store components share.

    The manager only bootstraps the connection; it holds no query logic.
    Components receive ``manager.database`` through their constructors.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.logger = get_logger(__name__, LogContext(component="DatabaseManager"))
        self._connected = False

    def _client_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "host": self.config.address,
            "maxPoolSize": self.config.connection_pool_size,
            "readPreference": self.config.read_preference.value,
            "serverSelectionTimeoutMS": self.config.timeout_ms,
            "connectTimeoutMS": self.config.timeout_ms,
            "socketTimeoutMS": self.config.timeout_ms,
        }

        if self.config.username:
            options["username"] = self.config.username
            options["password"] = self.config.password
            options["authSource"] = self.config.auth_source or self.config.database_name

        return options

    async def connect(self) -> AsyncIOMotorDatabase:
        """Connect to MongoDB and verify the server answers a ping."""
        if self._connected:
            return self.database

        self.logger.info("Connecting to MongoDB",
                         address=self.config.address,
                         database=self.config.database_name)

        try:
            self.client = AsyncIOMotorClient(**self._client_options())
            await self.client.admin.command('ping')
        except PyMongoError as e:
            self.logger.error("Failed to connect to MongoDB", error=str(e))
            if self.client is not None:
                self.client.close()
                self.client = None
            raise ConnectivityError(
                f"Cannot reach MongoDB at {self.config.address}: {e}",
                operation="connect"
            ) from e

        self.database = self.client[self.config.database_name]
        self._connected = True

        self.logger.info("Successfully connected to MongoDB",
                         database=self.config.database_name,
                         pool_size=self.config.connection_pool_size)
        return self.database

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            self.client = None
            self.database = None
            self._connected = False
            self.logger.info("Disconnected from MongoDB")

    @property
    def connected(self) -> bool:
        return self._connected

    async def health_check(self) -> Dict[str, Any]:
        """Check database health and return status."""
        if not self._connected:
            return {
                "status": "unhealthy",
                "error": "not connected",
                "connected": False
            }

        try:
            result = await self.client.admin.command('ping')
            return {
                "status": "healthy",
                "ping": result,
                "database": self.config.database_name,
                "connected": True
            }
        except PyMongoError as e:
            return {
                "status": "unhealthy",
                "error": str(e),
                "connected": self._connected
            }
