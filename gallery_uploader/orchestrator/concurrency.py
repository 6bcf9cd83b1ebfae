"""Adaptive concurrency policy for batch uploads."""
import logging
from typing import List

from ..models import UploadConfig

logger = logging.getLogger(__name__)


def initial_concurrency(batch_size: int, requested: int, config: UploadConfig) -> int:
    """
    Get the starting concurrency limit for a batch.

    Large and medium batches are capped at their reduced limits, small
    batches keep one slot less than requested.
    """
    requested = max(1, requested)
    if batch_size > config.large_batch_threshold:
        return min(config.reduced_concurrency, requested)
    if batch_size > config.medium_batch_threshold:
        return min(config.medium_concurrency, requested)
    return max(1, requested - 1)


def should_degrade(successful: int, failed: int, limit: int) -> bool:
    """Decide from a snapshot of the counters whether to fall back to one slot."""
    return failed > successful and limit > 1


class AdaptiveConcurrency:
    """
    Concurrency limit shared by every chunk of one batch.

    Tracks successes and failures for the whole batch. The limit only ever
    goes down: once it drops to 1 it stays there.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError("Concurrency limit must be at least 1")
        self._limit = limit
        self.successful_uploads = 0
        self.failed_uploads = 0
        self.history: List[int] = [limit]

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def degraded(self) -> bool:
        return len(self.history) > 1

    def record_success(self) -> None:
        self.successful_uploads += 1

    def record_failure(self) -> None:
        self.failed_uploads += 1

    def evaluate(self) -> int:
        """Apply the degradation rule and return the current limit."""
        if should_degrade(self.successful_uploads, self.failed_uploads, self._limit):
            logger.warning(
                f"Reducing concurrency from {self._limit} to 1 "
                f"({self.failed_uploads} failed, {self.successful_uploads} succeeded)"
            )
            self._limit = 1
            self.history.append(1)
        return self._limit
