"""
Commit Policy
=============

Decides whether a freshly classified frame is novel enough to buffer.

Rules (evaluated in order):
    1. Category differs from the last committed useful category
       -> COMMITTED_NEW_ANGLE
    2. Same category, and more than ``refresh_after`` seconds since that
       category was last committed -> COMMITTED_REFRESH
    3. Otherwise -> DUPLICATE_ANGLE (frame discarded)

Rule 2 keeps the preserved slot from going stale while the camera lingers
on one preset. A refresh exactly ``refresh_after`` seconds later does not
commit; the gap must be strictly greater.

USELESS frames never reach this policy.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from bridgewatch.models.reason_codes import TickReason
from bridgewatch.models.view import ViewCategory


logger = logging.getLogger(__name__)


@dataclass
class CommitPolicy:
    """
    Novelty test for the capture scheduler.

    Attributes:
        refresh_after: Seconds after which an unchanged angle is re-committed
        last_category: Last committed useful category
        last_commit: Timestamp of the last commit per category
    """

    refresh_after: float = 180.0
    last_category: Optional[ViewCategory] = None
    last_commit: Dict[ViewCategory, float] = field(default_factory=dict)
    last_commit_time: Optional[float] = None

    def decide(self, category: ViewCategory, now: float) -> TickReason:
        """
        Decide what to do with a frame of ``category`` captured at ``now``.

        Does not record anything; call ``mark_committed`` after committing.
        """
        if not category.is_useful:
            return TickReason.USELESS_VIEW

        # Commits must stay timestamp-ordered
        if self.last_commit_time is not None and now <= self.last_commit_time:
            return TickReason.DUPLICATE_ANGLE

        if category is not self.last_category:
            return TickReason.COMMITTED_NEW_ANGLE

        previous = self.last_commit.get(category)
        if previous is None or now - previous > self.refresh_after:
            return TickReason.COMMITTED_REFRESH

        return TickReason.DUPLICATE_ANGLE

    def mark_committed(self, category: ViewCategory, now: float) -> None:
        self.last_category = category
        self.last_commit[category] = now
        self.last_commit_time = now

