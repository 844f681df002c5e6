"""
Storage layer: index setup, writes, queries and the label workflow.
"""

from .indexes import IndexManager
from .labels import LabelWorkflow
from .queries import QueryEngine
from .store import TweetStore, open_store
from .writes import WriteGateway

__all__ = [
    'IndexManager',
    'LabelWorkflow',
    'QueryEngine',
    'TweetStore',
    'WriteGateway',
    'open_store'
]
