from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional, Protocol

from .queue import ClaimableQueue, claim

logger = logging.getLogger(__name__)


class Pipeline(Protocol):
    def process(self, item: Any) -> None:
        ...


def describe_error(exc: BaseException) -> Dict[str, Any]:
    """
    Error payload stored on a failed item. The message is never empty.
    """
    error: Dict[str, Any] = {"message": str(exc) or exc.__class__.__name__, "type": exc.__class__.__name__}
    if exc.__cause__ is not None:
        error["cause"] = str(exc.__cause__) or exc.__cause__.__class__.__name__
    return error


class QueueWorker:
    """
    Polls one queue forever: fetch the oldest queued items, claim each one,
    run the pipeline synchronously, then sleep. Items lost to another worker's
    claim are skipped. Nothing is held in memory across the sleep.

    A process crash between claim and the terminal write leaves the item in
    its in-progress state; no lease or heartbeat reclaims it.
    """

    def __init__(
        self,
        queue: ClaimableQueue,
        pipeline: Pipeline,
        batch_size: int = 1,
        poll_interval_ms: float = 15000,
        name: Optional[str] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.queue = queue
        self.pipeline = pipeline
        self.batch_size = batch_size
        self.poll_interval_ms = poll_interval_ms
        self.name = name or queue.kind
        self._stop = threading.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def run_forever(self) -> None:
        logger.info(
            "Worker %s polling %s every %sms (batch %s)",
            self.name,
            self.queue.kind,
            self.poll_interval_ms,
            self.batch_size,
        )
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:  # noqa: BLE001
                logger.exception("Loop error in worker %s", self.name)
            if self._stop.wait(self.poll_interval_ms / 1000.0):
                break
        logger.info("Worker %s stopped", self.name)

    def run_once(self) -> int:
        """
        One poll iteration. Returns the number of items this worker claimed.
        """
        try:
            candidates = self.queue.list_queued(self.batch_size)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to list queued %s items", self.queue.kind)
            return 0

        claimed = 0
        for item in candidates:
            if self._stop.is_set():
                break
            if not claim(self.queue, item.id):
                logger.debug("%s %s already claimed or no longer queued", self.queue.kind, item.id)
                continue
            claimed += 1
            logger.info("Claimed %s %s", self.queue.kind, item.id)
            self._execute(item)
        return claimed

    def _execute(self, item: Any) -> None:
        try:
            self.pipeline.process(item)
        except Exception as exc:  # noqa: BLE001
            logger.exception("%s %s failed", self.queue.kind, item.id)
            try:
                self.queue.mark_failed(item.id, describe_error(exc))
            except Exception:  # noqa: BLE001
                logger.exception("Could not record failure for %s %s", self.queue.kind, item.id)
