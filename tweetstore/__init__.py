"""
Tweet Store

Persistence layer for a social-media monitoring pipeline. Stores collected
tweets, monitored accounts and human labels in MongoDB and serves the
queries of the labeling workflow.

Layers:
1. Foundation (configuration, structured logging)
2. Domain (document models, unique index registry)
3. Infrastructure (connection bootstrap)
4. Storage (index manager, write gateway, query engine, label workflow)
"""

__version__ = "1.0.0"

from .core.exceptions import (
    StoreError,
    StorageError,
    ConnectivityError,
    SchemaConflictError,
    ConfigurationError
)
from .domain.models import Tweet, TwitterProfile, ObservableTwitter, TweetLabel, TwitterAccounts
from .storage import TweetStore, open_store

__all__ = [
    # Errors
    'StoreError',
    'StorageError',
    'ConnectivityError',
    'SchemaConflictError',
    'ConfigurationError',

    # Models
    'Tweet',
    'TwitterProfile',
    'ObservableTwitter',
    'TweetLabel',
    'TwitterAccounts',

    # Store
    'TweetStore',
    'open_store'
]
