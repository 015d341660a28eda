"""
Batch job support.

Shared summary type for the scheduled batches and a cache-backed lock that
keeps a job from overlapping with itself.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import List
from uuid import UUID

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

logger = logging.getLogger(__name__)

LOCK_KEY_PREFIX = 'couples:job-lock:'


@dataclass
class SweepSummary:
    """Outcome of one batch run."""

    processed: int = 0
    succeeded: int = 0
    errors: int = 0
    failed_ids: List[UUID] = field(default_factory=list)
    alert: bool = False

    @property
    def error_rate(self) -> float:
        if not self.processed:
            return 0.0
        return self.errors / self.processed

    def record_failure(self, item_id: UUID) -> None:
        self.errors += 1
        self.failed_ids.append(item_id)

    def finish(self, job_name: str, batch_logger: logging.Logger) -> 'SweepSummary':
        """Set the alert flag and log the run summary."""
        self.alert = self.error_rate > settings.COUPLE_JOB_ALERT_ERROR_RATE

        batch_logger.info(
            "%s finished: processed=%d succeeded=%d errors=%d",
            job_name, self.processed, self.succeeded, self.errors
        )
        if self.alert:
            batch_logger.error(
                "%s error rate %.0f%% above threshold, failed items: %s",
                job_name,
                self.error_rate * 100,
                ', '.join(str(item_id) for item_id in self.failed_ids)
            )
        return self


@contextmanager
def job_lock(name: str, timeout: int):
    """
    Time-boxed lock around a scheduled job.

    Yields True when the lock was taken. The lock expires after ``timeout``
    seconds even if the holder dies.

    Example::

        with job_lock('reveal_due_gifts', timeout=600) as acquired:
            if not acquired:
                return
            sweep_gift_reveals()
    """
    key = f'{LOCK_KEY_PREFIX}{name}'
    acquired = cache.add(key, timezone.now().isoformat(), timeout)
    if not acquired:
        logger.warning("Job %s is already running, skipping this run", name)
    try:
        yield acquired
    finally:
        if acquired:
            cache.delete(key)
