"""
Human annotation workflow.
"""

from typing import Iterable

from ..domain.models import TweetLabel
from ..foundation.logging import get_logger, LogContext
from .writes import WriteGateway


class LabelWorkflow:
    """Records a human label and mirrors it onto the labeled tweet.

    The two writes are independent: if the second fails the label stays
    recorded while the tweet keeps its previous class and certainty.
    """

    def __init__(self, writes: WriteGateway):
        self.writes = writes
        self.logger = get_logger(__name__, LogContext(component="LabelWorkflow"))

    async def annotate(self, label: TweetLabel) -> bool:
        if not await self.writes.insert_label(label):
            return False

        if not await self.writes.apply_label_to_tweet(label):
            self.logger.warning("Label recorded but tweet not updated",
                                status_id=label.status_id, label=label.label)
            return False

        self.logger.info("Tweet annotated", status_id=label.status_id, label=label.label)
        return True

    async def annotate_many(self, labels: Iterable[TweetLabel]) -> bool:
        """Annotate each label in order; True only if all of them succeeded."""
        ok = True
        for label in labels:
            ok = await self.annotate(label) and ok
        return ok
