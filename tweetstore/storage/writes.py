"""
Idempotent write operations.

Duplicate keys are the expected steady state here: the unique indexes
decide which writer wins and later attempts report success without change.
"""

from typing import Iterable

from pymongo.errors import DuplicateKeyError, PyMongoError

from ..domain.models import (
    HUMAN_CERTAINTY,
    ObservableTwitter,
    Tweet,
    TweetLabel,
    TwitterProfile,
)
from ..infrastructure.database import MongoDocument
from .base import BaseRepository, is_connectivity_failure


class WriteGateway(BaseRepository):
    """Inserts, upserts and deletes documents one round-trip at a time."""

    async def insert_tweets(self, tweets: Iterable[Tweet]) -> bool:
        """Insert tweets in order, skipping ones already stored.

        Returns False only when MongoDB becomes unreachable mid-batch.
        """
        return await self._insert_each(tweets, Tweet, "insert_tweets")

    async def insert_profiles(self, profiles: Iterable[TwitterProfile]) -> bool:
        """Insert profiles in order, skipping ones already stored."""
        return await self._insert_each(profiles, TwitterProfile, "insert_profiles")

    async def _insert_each(self, documents: Iterable[MongoDocument], document_class, operation: str) -> bool:
        collection = self.collection(document_class)
        op_logger = self.logger.start_operation(operation, collection=collection.name)
        inserted = duplicates = failed = 0

        for document in documents:
            try:
                await collection.insert_one(document.model_dump_mongo())
                inserted += 1
            except DuplicateKeyError:
                duplicates += 1
                op_logger.logger.debug("Document already stored, skipping",
                                       document_key=_key_of(document))
            except PyMongoError as e:
                if is_connectivity_failure(e):
                    op_logger.fail("Lost connection during batch insert", exception=e,
                                   inserted=inserted, duplicates=duplicates, failed=failed)
                    return False
                failed += 1
                op_logger.error("Failed to insert document",
                                document_key=_key_of(document), error=str(e))

        op_logger.complete("Batch insert finished",
                           inserted=inserted, duplicates=duplicates, failed=failed)
        return True

    async def upsert_observable_account(self, account: ObservableTwitter) -> bool:
        """Store ``account`` as the only entry for its (account_name, lang)."""
        collection = self.collection(ObservableTwitter)
        data = account.model_dump_mongo()
        data.pop("_id", None)

        try:
            await collection.replace_one(account.key, data, upsert=True)
        except DuplicateKeyError:
            # A concurrent upsert inserted the same key first; overwrite it.
            self.logger.debug("Observable account upserted concurrently", **account.key)
            try:
                await collection.replace_one(account.key, data)
            except PyMongoError as e:
                self.logger.error("Failed to upsert observable account", error=str(e), **account.key)
                return False
        except PyMongoError as e:
            self.logger.error("Failed to upsert observable account", error=str(e), **account.key)
            return False

        self.logger.info("Observable account registered", **account.key)
        return True

    async def delete_observable_account(self, account: ObservableTwitter) -> bool:
        """Remove every entry registered under the account's name, in all languages."""
        collection = self.collection(ObservableTwitter)

        try:
            result = await collection.delete_many({"account_name": account.account_name})
        except PyMongoError as e:
            self.logger.error("Failed to delete observable account",
                              account_name=account.account_name, error=str(e))
            return False

        self.logger.info("Observable account removed",
                         account_name=account.account_name,
                         deleted_count=result.deleted_count)
        return True

    async def insert_label(self, label: TweetLabel) -> bool:
        """Insert a label; an existing label for the same status_id is left as is."""
        collection = self.collection(TweetLabel)

        try:
            await collection.insert_one(label.model_dump_mongo())
        except DuplicateKeyError:
            self.logger.debug("Label already stored", status_id=label.status_id)
        except PyMongoError as e:
            self.logger.error("Failed to insert label", status_id=label.status_id, error=str(e))
            return False

        return True

    async def apply_label_to_tweet(self, label: TweetLabel) -> bool:
        """Overwrite the tweet's class with the human label at full certainty.

        Upserts, so a tweet not yet ingested is created holding only
        status_id, tweet_class and classifier_certainty.
        """
        collection = self.collection(Tweet)
        update = {"$set": {"tweet_class": label.label, "classifier_certainty": HUMAN_CERTAINTY}}

        try:
            result = await collection.update_one({"status_id": label.status_id}, update, upsert=True)
        except DuplicateKeyError:
            # Lost an upsert race against the tweet's ingestion; retry as a plain update.
            try:
                await collection.update_one({"status_id": label.status_id}, update)
            except PyMongoError as e:
                self.logger.error("Failed to apply label", status_id=label.status_id, error=str(e))
                return False
            return True
        except PyMongoError as e:
            self.logger.error("Failed to apply label", status_id=label.status_id, error=str(e))
            return False

        if result.upserted_id is not None:
            self.logger.warning("Label applied to a tweet that was never ingested",
                                status_id=label.status_id)
        return True


def _key_of(document: MongoDocument) -> str:
    for field_name in ("status_id", "profile_name", "account_name"):
        value = getattr(document, field_name, None)
        if value:
            return value
    return repr(document)
