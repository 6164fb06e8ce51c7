"""
Storage-agnostic work queue contract.

Workers never lock anything themselves. The only mutual-exclusion primitive
is ``ClaimableQueue.claim``: an atomic conditional write that moves an item
from its queued state to its in-progress state and reports whether this
caller made the change. Any backend that can express "update only if the
status still matches" (a SQL row update, a key-value conditional put, a
dict behind a lock) can implement it.
"""

from __future__ import annotations

from typing import Any, Dict, Generic, List, TypeVar

T = TypeVar("T")


class ClaimableQueue(Generic[T]):
    """
    Abstract queue of work items ordered by creation time.
    """

    kind: str = "item"

    def list_queued(self, limit: int) -> List[T]:
        """
        Return up to ``limit`` queued items, oldest first.
        """
        raise NotImplementedError

    def claim(self, item_id: str) -> bool:
        """
        Move ``item_id`` from queued to in-progress and stamp ``started_at``.
        Returns True only if this call performed the transition.
        """
        raise NotImplementedError

    def mark_failed(self, item_id: str, error: Dict[str, Any]) -> bool:
        """
        Terminal failure write. Applies only while the item is in progress.
        """
        raise NotImplementedError


def claim(queue: ClaimableQueue, item_id: str) -> bool:
    return queue.claim(item_id)
