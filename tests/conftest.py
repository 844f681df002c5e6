"""
Pytest configuration and shared fixtures for the test suite.

``FakeDatabase`` mimics the slice of the motor API the store uses, with
unique sparse indexes that raise ``pymongo.errors.DuplicateKeyError`` the
way the server does, so consistency rules can be tested without MongoDB.
"""

import copy
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, OperationFailure

from tweetstore.domain.models import ObservableTwitter, Tweet, TweetLabel, TwitterProfile, index_name
from tweetstore.storage import TweetStore

_MISSING = object()


def _compare(value, op: str, operand) -> bool:
    if value is _MISSING or value is None:
        return False
    if op == "$gte":
        return value >= operand
    if op == "$lte":
        return value <= operand
    if op == "$gt":
        return value > operand
    if op == "$lt":
        return value < operand
    raise NotImplementedError(op)


def _matches_condition(value, condition) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for op, operand in condition.items():
            if op in ("$gte", "$lte", "$gt", "$lt"):
                if not _compare(value, op, operand):
                    return False
            elif op == "$in":
                if value is _MISSING or value not in operand:
                    return False
            elif op == "$nin":
                if value is not _MISSING and value in operand:
                    return False
            elif op == "$ne":
                if value is not _MISSING and value == operand:
                    return False
            elif op == "$size":
                if not isinstance(value, list) or len(value) != operand:
                    return False
            elif op == "$exists":
                if (value is not _MISSING) != bool(operand):
                    return False
            else:
                raise NotImplementedError(op)
        return True

    if condition is None:
        return value is _MISSING or value is None
    return value is not _MISSING and value == condition


def matches(document: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    for key, condition in (query or {}).items():
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif not _matches_condition(document.get(key, _MISSING), condition):
            return False
    return True


class FakeCursor:
    """Async-iterable result set; raises the injected error on first fetch."""

    def __init__(self, documents: List[Dict[str, Any]], error: Optional[Exception] = None):
        self._documents = documents
        self._error = error

    def __aiter__(self):
        self._iter = iter(self._documents)
        return self

    async def __anext__(self):
        if self._error is not None:
            raise self._error
        try:
            return copy.deepcopy(next(self._iter))
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    """In-memory collection honouring unique sparse indexes."""

    def __init__(self, database: "FakeDatabase", name: str):
        self.database = database
        self.name = name
        self.documents: List[Dict[str, Any]] = []
        self.index_specs: Dict[str, Dict[str, Any]] = {}
        self.fail_with: Optional[Exception] = None
        self.calls: List[str] = []

    def _check_failure(self, operation: str) -> None:
        self.calls.append(operation)
        if self.fail_with is not None:
            raise self.fail_with

    def _unique_keys(self):
        return [spec["keys"] for spec in self.index_specs.values() if spec.get("unique")]

    def _violates_unique(self, candidate: Dict[str, Any], ignore_id=None) -> bool:
        for keys in self._unique_keys():
            fields = [field for field, _ in keys]
            if not any(field in candidate for field in fields):
                continue
            key = tuple(candidate.get(field) for field in fields)
            for existing in self.documents:
                if existing["_id"] == ignore_id:
                    continue
                if not any(field in existing for field in fields):
                    continue
                if tuple(existing.get(field) for field in fields) == key:
                    return True
        return False

    def _duplicate(self) -> DuplicateKeyError:
        return DuplicateKeyError(f"E11000 duplicate key error collection: {self.name}", code=11000)

    async def create_index(self, keys, **options) -> str:
        self._check_failure("create_index")
        keys = [tuple(k) for k in keys]
        name = options.get("name") or index_name(keys)
        # The server ignores the background flag when comparing definitions
        spec = {"keys": keys, **{k: v for k, v in options.items() if k not in ("name", "background")}}

        existing = self.index_specs.get(name)
        if existing is not None:
            if existing != spec:
                raise OperationFailure(
                    f"Index with name: {name} already exists with different options", code=85
                )
            return name

        for other_name, other in self.index_specs.items():
            if other["keys"] == keys:
                raise OperationFailure(
                    f"Index already exists with a different name: {other_name}", code=85
                )

        self.index_specs[name] = spec
        if spec.get("unique"):
            for document in self.documents:
                if self._violates_unique(document, ignore_id=document["_id"]):
                    del self.index_specs[name]
                    raise self._duplicate()
        return name

    async def insert_one(self, document: Dict[str, Any]):
        self._check_failure("insert_one")
        stored = copy.deepcopy(document)
        stored.setdefault("_id", ObjectId())
        if self._violates_unique(stored):
            raise self._duplicate()
        self.documents.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    def _first(self, filter_dict):
        return next((doc for doc in self.documents if matches(doc, filter_dict)), None)

    def _seed_from_filter(self, filter_dict: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in filter_dict.items()
                if not k.startswith("$") and not isinstance(v, dict)}

    async def replace_one(self, filter_dict, replacement, upsert: bool = False):
        self._check_failure("replace_one")
        target = self._first(filter_dict)
        if target is not None:
            updated = {"_id": target["_id"], **copy.deepcopy(replacement)}
            if self._violates_unique(updated, ignore_id=target["_id"]):
                raise self._duplicate()
            self.documents[self.documents.index(target)] = updated
            return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

        created = {**self._seed_from_filter(filter_dict), **copy.deepcopy(replacement), "_id": ObjectId()}
        if self._violates_unique(created):
            raise self._duplicate()
        self.documents.append(created)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=created["_id"])

    async def update_one(self, filter_dict, update, upsert: bool = False):
        self._check_failure("update_one")
        changes = update.get("$set", {})
        target = self._first(filter_dict)
        if target is not None:
            target.update(copy.deepcopy(changes))
            return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if not upsert:
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

        created = {**self._seed_from_filter(filter_dict), **copy.deepcopy(changes), "_id": ObjectId()}
        if self._violates_unique(created):
            raise self._duplicate()
        self.documents.append(created)
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=created["_id"])

    async def delete_many(self, filter_dict):
        self._check_failure("delete_many")
        kept = [doc for doc in self.documents if not matches(doc, filter_dict)]
        deleted = len(self.documents) - len(kept)
        self.documents = kept
        return SimpleNamespace(deleted_count=deleted)

    async def find_one(self, filter_dict=None):
        self._check_failure("find_one")
        found = self._first(filter_dict or {})
        return copy.deepcopy(found) if found is not None else None

    def find(self, filter_dict=None) -> FakeCursor:
        self.calls.append("find")
        return FakeCursor([doc for doc in self.documents if matches(doc, filter_dict)], self.fail_with)

    async def distinct(self, key: str, filter_dict=None):
        self._check_failure("distinct")
        values = []
        for doc in self.documents:
            if matches(doc, filter_dict) and key in doc and doc[key] not in values:
                values.append(doc[key])
        return values

    async def count_documents(self, filter_dict):
        self._check_failure("count_documents")
        return sum(1 for doc in self.documents if matches(doc, filter_dict))

    def aggregate(self, pipeline: List[Dict[str, Any]]) -> FakeCursor:
        self.calls.append("aggregate")
        if self.fail_with is not None:
            return FakeCursor([], self.fail_with)

        results = [copy.deepcopy(doc) for doc in self.documents]
        for stage in pipeline:
            (operator, argument), = stage.items()
            if operator == "$match":
                results = [doc for doc in results if matches(doc, argument)]
            elif operator == "$lookup":
                foreign = self.database[argument["from"]].documents
                for doc in results:
                    local = doc.get(argument["localField"])
                    doc[argument["as"]] = [copy.deepcopy(other) for other in foreign
                                           if other.get(argument["foreignField"]) == local]
            elif operator == "$project":
                excluded = [field for field, flag in argument.items() if not flag]
                for doc in results:
                    for field in excluded:
                        doc.pop(field, None)
            else:
                raise NotImplementedError(operator)
        return FakeCursor(results)


class FakeDatabase:
    """Dictionary of FakeCollections addressed like a motor database."""

    def __init__(self, name: str = "twitter_data"):
        self.name = name
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name)
        return self.collections[name]


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest_asyncio.fixture
async def store(fake_db: FakeDatabase) -> TweetStore:
    """Store over a fake database with all indexes in place."""
    tweet_store = TweetStore(fake_db)
    await tweet_store.indexes.ensure_indexes()
    return tweet_store


@pytest.fixture
def tweets_collection(fake_db: FakeDatabase) -> FakeCollection:
    return fake_db[Tweet.get_collection_name()]


@pytest.fixture
def labels_collection(fake_db: FakeDatabase) -> FakeCollection:
    return fake_db[TweetLabel.get_collection_name()]


@pytest.fixture
def accounts_collection(fake_db: FakeDatabase) -> FakeCollection:
    return fake_db[ObservableTwitter.get_collection_name()]


@pytest.fixture
def profiles_collection(fake_db: FakeDatabase) -> FakeCollection:
    return fake_db[TwitterProfile.get_collection_name()]


# Test data factories

@pytest.fixture
def make_tweet():
    """Factory for tweets addressed to an account."""
    def _make(status_id: str, account: str = "acme_support", **fields) -> Tweet:
        fields.setdefault("text", f"tweet {status_id}")
        return Tweet(status_id=status_id, in_reply_to_screen_name=account, **fields)
    return _make


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "requires_mongodb: mark test as requiring MongoDB"
    )
