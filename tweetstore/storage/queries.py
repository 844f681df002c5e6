"""
Read-side queries for the labeling workflow.

Every query either returns its full result or raises; a failed read is
never reported as an empty result.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from ..domain.models import (
    ObservableTwitter,
    Tweet,
    TweetLabel,
    TwitterAccounts,
    TwitterProfile,
)
from ..infrastructure.database import MongoDocument
from .base import BaseRepository, invalid_document_error, translate_error

T = TypeVar('T', bound=MongoDocument)

_LABEL_MATCHES = "_labels"


class QueryEngine(BaseRepository):
    """Filtered, windowed, anti-join and distinct reads over the collections."""

    async def find_by_account_and_class(self, account: str, tweet_class: str) -> List[Tweet]:
        """Tweets addressed to ``account`` that carry ``tweet_class``."""
        return await self._find(Tweet, {"in_reply_to_screen_name": account, "tweet_class": tweet_class},
                                "find_by_account_and_class")

    async def find_all_by_account(self, account: str) -> List[Tweet]:
        return await self._find(Tweet, {"in_reply_to_screen_name": account}, "find_all_by_account")

    async def find_unlabeled_by_account(self, account: str) -> List[Tweet]:
        """Tweets addressed to ``account`` whose status_id has no label.

        Runs as one aggregation: each tweet is joined against the label
        collection by status_id and kept only when the join comes back empty.
        """
        pipeline = [
            {"$match": {"in_reply_to_screen_name": account}},
            {"$lookup": {
                "from": TweetLabel.get_collection_name(),
                "localField": "status_id",
                "foreignField": "status_id",
                "as": _LABEL_MATCHES,
            }},
            {"$match": {_LABEL_MATCHES: {"$size": 0}}},
            {"$project": {_LABEL_MATCHES: 0}},
        ]
        return await self._aggregate(Tweet, pipeline, "find_unlabeled_by_account")

    async def find_by_account_in_window(self, account: str, from_ordinal: int, to_ordinal: int) -> List[Tweet]:
        """Tweets addressed to ``account`` with from_ordinal <= created_at <= to_ordinal."""
        pipeline = [
            {"$match": {
                "$and": [{
                    "in_reply_to_screen_name": account,
                    "created_at": {"$gte": from_ordinal, "$lte": to_ordinal},
                }]
            }},
        ]
        return await self._aggregate(Tweet, pipeline, "find_by_account_in_window")

    async def distinct_accounts(self) -> TwitterAccounts:
        """Every in_reply_to_screen_name seen across stored tweets."""
        collection = self.collection(Tweet)

        try:
            accounts = TwitterAccounts(names=await collection.distinct("in_reply_to_screen_name"))
        except PyMongoError as e:
            self.logger.error("Distinct query failed", collection=collection.name, error=str(e))
            raise translate_error(e, "distinct_accounts", collection.name) from e
        except ValidationError as e:
            self.logger.error("Stored account names failed validation", collection=collection.name, error=str(e))
            raise invalid_document_error(e, "distinct_accounts", collection.name) from e

        self.logger.debug("Distinct accounts loaded", accounts=accounts.names)
        return accounts

    async def get_tweet(self, status_id: str) -> Optional[Tweet]:
        collection = self.collection(Tweet)

        try:
            data = await collection.find_one({"status_id": status_id})
            return Tweet.from_mongo(data) if data else None
        except PyMongoError as e:
            self.logger.error("Failed to find tweet", status_id=status_id, error=str(e))
            raise translate_error(e, "get_tweet", collection.name) from e
        except ValidationError as e:
            self.logger.error("Stored tweet failed validation", status_id=status_id, error=str(e))
            raise invalid_document_error(e, "get_tweet", collection.name) from e

    async def list_observable_accounts(self) -> List[ObservableTwitter]:
        return await self._find(ObservableTwitter, {}, "list_observable_accounts")

    async def list_labels(self) -> List[TweetLabel]:
        return await self._find(TweetLabel, {}, "list_labels")

    async def list_profiles(self) -> List[TwitterProfile]:
        return await self._find(TwitterProfile, {}, "list_profiles")

    async def _find(self, document_class: Type[T], filter_dict: Dict[str, Any], operation: str) -> List[T]:
        collection = self.collection(document_class)

        try:
            return [document_class.from_mongo(data) async for data in collection.find(filter_dict)]
        except PyMongoError as e:
            self.logger.error("Failed to find documents",
                              collection=collection.name,
                              filter=filter_dict,
                              error=str(e))
            raise translate_error(e, operation, collection.name) from e
        except ValidationError as e:
            self.logger.error("Stored document failed validation",
                              collection=collection.name,
                              filter=filter_dict,
                              error=str(e))
            raise invalid_document_error(e, operation, collection.name) from e

    async def _aggregate(self, document_class: Type[T], pipeline: List[Dict[str, Any]], operation: str) -> List[T]:
        collection = self.collection(document_class)

        try:
            return [document_class.from_mongo(data) async for data in collection.aggregate(pipeline)]
        except PyMongoError as e:
            self.logger.error("Failed to execute aggregation",
                              collection=collection.name,
                              pipeline=pipeline,
                              error=str(e))
            raise translate_error(e, operation, collection.name) from e
        except ValidationError as e:
            self.logger.error("Stored document failed validation",
                              collection=collection.name,
                              pipeline=pipeline,
                              error=str(e))
            raise invalid_document_error(e, operation, collection.name) from e
