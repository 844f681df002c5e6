"""Document models and the collection schema registry."""

from enum import Enum
from typing import Dict, List, Optional, Any, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tweetstore.infrastructure.database import MongoDocument

HUMAN_CERTAINTY = 100


class CollectionName(str, Enum):
    """Physical collection names in the ``twitter_data`` database."""
    TWEETS = "tweet"
    PROFILES = "twitter_profile"
    OBSERVABLE_ACCOUNTS = "observable_twitter"
    LABELS = "tweet_label"


def index_name(keys: List[Tuple[str, int]]) -> str:
    """Server default name for an index over ``keys``, e.g. ``account_name_1_lang_1``."""
    return "_".join(f"{field}_{direction}" for field, direction in keys)


def unique_index(*keys: str) -> Dict[str, Any]:
    """Background, sparse, unique index over ``keys`` in ascending order.

    The server assigns its default name, the same one other drivers use for
    these keys.
    """
    return {
        "keys": [(key, 1) for key in keys],
        "unique": True,
        "sparse": True,
        "background": True,
    }


class Tweet(MongoDocument):
    """A collected tweet.

    Only ``status_id`` is required: applying a label to a tweet that was
    never ingested creates a partial record holding just the label fields.
    """

    collection_name = CollectionName.TWEETS.value
    indexes = [unique_index("status_id")]

    status_id: str = Field(..., min_length=1)
    text: Optional[str] = None
    user_name: Optional[str] = None
    in_reply_to_screen_name: Optional[str] = None
    in_reply_to_status_id: Optional[str] = None
    lang: Optional[str] = None
    tweet_class: Optional[str] = None
    classifier_certainty: Optional[float] = Field(default=None, ge=0, le=HUMAN_CERTAINTY)
    created_at: Optional[int] = Field(default=None, description="Time ordinal used for window queries")


class TwitterProfile(MongoDocument):
    """Profile metadata of a Twitter account."""

    collection_name = CollectionName.PROFILES.value
    indexes = [unique_index("profile_name")]

    profile_name: str = Field(..., min_length=1)
    display_name: Optional[str] = None
    description: Optional[str] = None
    followers_count: Optional[int] = Field(default=None, ge=0)


class ObservableTwitter(MongoDocument):
    """Watch-list entry for an account in one language.

    Any extra keyword is kept as a free-form config field and persisted.
    """

    model_config = ConfigDict(extra="allow")

    collection_name = CollectionName.OBSERVABLE_ACCOUNTS.value
    indexes = [unique_index("account_name", "lang")]

    account_name: str = Field(..., min_length=1)
    lang: str = Field(..., min_length=1)

    @property
    def key(self) -> Dict[str, str]:
        return {"account_name": self.account_name, "lang": self.lang}


class TweetLabel(MongoDocument):
    """Human-assigned class for one tweet."""

    collection_name = CollectionName.LABELS.value
    indexes = [unique_index("status_id")]

    status_id: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)


class TwitterAccounts(BaseModel):
    """Distinct accounts tweets were addressed to. Computed, never stored."""

    names: List[str] = Field(default_factory=list)

    @field_validator('names', mode='before')
    @classmethod
    def drop_missing(cls, v):
        return [name for name in v or [] if name is not None]

    @field_validator('names')
    @classmethod
    def dedupe_and_sort(cls, v):
        return sorted(set(v))

    def __contains__(self, name: str) -> bool:
        return name in self.names

    def __len__(self) -> int:
        return len(self.names)


SCHEMA_REGISTRY: List[Type[MongoDocument]] = [
    Tweet,
    TwitterProfile,
    ObservableTwitter,
    TweetLabel,
]
