"""Domain layer: document models and the collection schema registry."""

from .models import *

__all__ = [
    "CollectionName", "HUMAN_CERTAINTY", "SCHEMA_REGISTRY", "index_name", "unique_index",
    "Tweet", "TwitterProfile", "ObservableTwitter", "TweetLabel", "TwitterAccounts"
]
