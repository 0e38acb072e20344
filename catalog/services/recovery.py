"""
Recovery Supervisor.

Runs periodically (Celery beat, every 2 minutes) and keeps the processing
pipeline moving:

1. processing runs whose heartbeat is stale are marked as error
2. the oldest pending run is dispatched to a worker
3. with nothing pending, nothing running and products still unprocessed,
   a new pending run is created and dispatched

Every intervention is written to the append-only ProcessingRecoveryLog.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from django.conf import settings
from django.utils import timezone

from catalog.models import (
    Product,
    ProcessingQueue,
    ProcessingRecoveryLog,
    ProcessingStatus,
    RecoveryType,
)
from catalog.monitoring import capture_alert

logger = logging.getLogger(__name__)


class RecoveryAction:
    RESUMED_PENDING = "resumed_pending"
    IDLE = "idle"
    ALREADY_RUNNING = "already_running"
    NEW_BATCH_CREATED = "new_batch_created"
    STARTED = "started"


@dataclass
class RecoveryReport:
    """What one supervisor pass did."""

    action: str
    stalled_jobs: int = 0
    remaining: int = 0
    queue_id: Optional[str] = None
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "stalled_jobs": self.stalled_jobs,
            "remaining": self.remaining,
            "queue_id": self.queue_id,
            "message": self.message,
        }


def dispatch_queue_worker(queue_id) -> None:
    """Default dispatch: a process_queue task that claims the pending row."""
    from catalog.tasks import process_queue

    process_queue.delay(str(queue_id))


class RecoverySupervisor:
    """
    Args:
        stale_after: heartbeat age in seconds after which a run is stalled
            (defaults to settings.PROCESSING_STALE_AFTER_SECONDS)
        dispatch: callable(queue_id) starting a worker for a pending run
        now: fixed current time, for tests
    """

    def __init__(
        self,
        stale_after: Optional[int] = None,
        dispatch: Optional[Callable[[Any], None]] = None,
        now=None,
    ):
        self.stale_after = stale_after or getattr(settings, "PROCESSING_STALE_AFTER_SECONDS", 300)
        self.dispatch = dispatch or dispatch_queue_worker
        self._now = now

    def _current_time(self):
        return self._now or timezone.now()

    def run(self) -> RecoveryReport:
        now = self._current_time()
        stalled = self.recover_stalled(now)

        pending = ProcessingQueue.objects.pending_oldest_first().first()
        if pending is not None:
            remaining = Product.objects.unprocessed().count()
            self.dispatch(pending.id)
            message = f"Resumed pending queue {pending.id} ({remaining} products remaining)"
            ProcessingRecoveryLog.objects.create(
                recovery_type=RecoveryType.PENDING_QUEUE_RESUMED,
                queue=pending,
                products_remaining=remaining,
                message=message,
            )
            logger.info(message)
            return RecoveryReport(
                action=RecoveryAction.RESUMED_PENDING,
                stalled_jobs=stalled,
                remaining=remaining,
                queue_id=str(pending.id),
                message=message,
            )

        remaining = Product.objects.unprocessed().count()
        if remaining == 0:
            return RecoveryReport(
                action=RecoveryAction.IDLE,
                stalled_jobs=stalled,
                message="No products pending processing",
            )

        if ProcessingQueue.objects.active().exists():
            return RecoveryReport(
                action=RecoveryAction.ALREADY_RUNNING,
                stalled_jobs=stalled,
                remaining=remaining,
                message="A processing run is already active",
            )

        queue = ProcessingQueue.objects.create_pending(total_count=remaining)
        self.dispatch(queue.id)
        message = f"Created queue {queue.id} for {remaining} unprocessed products"
        ProcessingRecoveryLog.objects.create(
            recovery_type=RecoveryType.NEW_BATCH_CREATED,
            queue=queue,
            products_remaining=remaining,
            message=message,
        )
        logger.info(message)
        return RecoveryReport(
            action=RecoveryAction.NEW_BATCH_CREATED,
            stalled_jobs=stalled,
            remaining=remaining,
            queue_id=str(queue.id),
            message=message,
        )

    def recover_stalled(self, now=None) -> int:
        """Mark stalled processing runs as error. Returns how many were marked."""
        now = now or self._current_time()
        marked = 0

        for queue in ProcessingQueue.objects.stalled(self.stale_after, now=now):
            if not ProcessingQueue.mark_stalled(queue.id, self.stale_after, now=now):
                continue
            marked += 1

            remaining = Product.objects.unprocessed().count()
            message = (
                f"Queue {queue.id} stalled at {queue.processed_count}/{queue.total_count}, "
                f"last heartbeat {queue.last_heartbeat.isoformat() if queue.last_heartbeat else 'never'}"
            )
            ProcessingRecoveryLog.objects.create(
                recovery_type=RecoveryType.STALLED_JOB_DETECTED,
                queue=queue,
                products_remaining=remaining,
                message=message,
            )
            logger.warning(message)
            capture_alert(
                message,
                queue_id=str(queue.id),
                extra_data={
                    "processed_count": queue.processed_count,
                    "total_count": queue.total_count,
                    "stale_after_seconds": self.stale_after,
                },
            )

        return marked

    def start(self, batch_size: Optional[int] = None) -> RecoveryReport:
        """
        Operator-initiated run: create and dispatch a pending run unless one
        is already pending or processing.
        """
        remaining = Product.objects.unprocessed().count()
        if remaining == 0:
            return RecoveryReport(
                action=RecoveryAction.IDLE, message="No products pending processing"
            )

        existing = ProcessingQueue.objects.filter(
            status__in=[ProcessingStatus.PENDING, ProcessingStatus.PROCESSING]
        ).order_by("created_at").first()
        if existing is not None:
            return RecoveryReport(
                action=RecoveryAction.ALREADY_RUNNING,
                remaining=remaining,
                queue_id=str(existing.id),
                message=f"Queue {existing.id} is already {existing.status}",
            )

        queue = ProcessingQueue.objects.create_pending(total_count=remaining, batch_size=batch_size)
        self.dispatch(queue.id)
        logger.info(f"Started queue {queue.id} for {remaining} products")
        return RecoveryReport(
            action=RecoveryAction.STARTED,
            remaining=remaining,
            queue_id=str(queue.id),
            message=f"Started processing {remaining} products",
        )


def get_recovery_supervisor(**kwargs) -> RecoverySupervisor:
    return RecoverySupervisor(**kwargs)
