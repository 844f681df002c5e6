"""
Custom exceptions for the tweet store.

Duplicate-key conditions never appear here: the write path absorbs them.
Everything else that goes wrong talking to MongoDB reaches the caller as
one of these types, with the original driver exception as ``__cause__``.
"""

from typing import Optional, Dict, Any


class StoreError(Exception):
    """Base exception for all store errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize store error.

        Args:
            message: Error message
            error_code: Optional error code for categorization
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class StorageError(StoreError):
    """A storage operation failed."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        collection: Optional[str] = None,
        **kwargs
    ):
        """Initialize storage error.

        Args:
            message: Error message
            operation: Storage operation that failed
            collection: Collection involved
            **kwargs: Additional error details
        """
        super().__init__(
            message,
            error_code="STORAGE_ERROR",
            details={
                "operation": operation,
                "collection": collection,
                **kwargs
            }
        )
        self.operation = operation
        self.collection = collection


class ConnectivityError(StorageError):
    """MongoDB could not be reached."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.error_code = "CONNECTIVITY_ERROR"


class SchemaConflictError(StorageError):
    """A required index disagrees with what the server already holds."""

    def __init__(self, message: str, index: Optional[str] = None, **kwargs):
        super().__init__(message, operation="ensure_indexes", index=index, **kwargs)
        self.error_code = "SCHEMA_CONFLICT"
        self.index = index


class ConfigurationError(StoreError):
    """Invalid store configuration."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            error_code="CONFIGURATION_ERROR",
            details={"config_key": config_key, **kwargs}
        )
        self.config_key = config_key
