"""Core error types shared by every layer."""

from .exceptions import (
    StoreError,
    StorageError,
    ConnectivityError,
    SchemaConflictError,
    ConfigurationError
)

__all__ = [
    "StoreError",
    "StorageError",
    "ConnectivityError",
    "SchemaConflictError",
    "ConfigurationError"
]
