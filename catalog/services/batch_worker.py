"""
Batch Worker.

Processes unprocessed products (translated_title IS NULL) one batch at a
time: expands supplier abbreviations, asks the listing service for a
title and bullet points, and writes them back to the product.

Queue runs are cursor-based. Each batch claims (or continues) a
ProcessingQueue row, reads up to batch_size products with
id > last_product_id, refreshes the heartbeat before every listing
request (rate-limit retries included), records progress after every
product and then either completes the row or hands the next batch off
to a fresh task carrying the claim token.

Error handling:
- Per-product problems (listing failures, a failed product update) are
  counted as failed and the loop continues.
- Anything escaping the loop marks the queue as error, is reported to
  Sentry and re-raised.
- Losing ownership of the queue row (recovery supervisor marked it as
  stalled) stops the run quietly.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from catalog.exceptions import QueueClaimError
from catalog.models import Product, ProcessingQueue, ProcessingStatus, VehicleCompatibility
from catalog.monitoring import add_processing_breadcrumb, capture_processing_error
from catalog.services.abbreviations import DEFAULT_ABBREVIATIONS, expand_abbreviations
from catalog.services.listing_client import ListingClient, get_listing_client
from catalog.services.listing_prompt import CompatibilityEntry

logger = logging.getLogger(__name__)

# Status of a run whose queue row was taken away mid-batch
STATUS_LOST = "lost"

# Fields filled from the listing only while still empty on the product
EXTRACTED_FIELDS = ("part_type", "vehicle_brand", "vehicle_model")


@dataclass
class BatchResult:
    """Outcome of one batch."""

    queue_id: Optional[str] = None
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    remaining: int = 0
    status: str = ProcessingStatus.PROCESSING
    errors: List[Dict[str, str]] = field(default_factory=list)
    handed_off: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "queue_id": self.queue_id,
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "remaining": self.remaining,
            "status": str(self.status),
            "errors": self.errors,
            "handed_off": self.handed_off,
        }


def enqueue_next_batch(queue_id, claim_token) -> None:
    """Default handoff: a new process_queue task carrying the claim token."""
    from catalog.tasks import process_queue

    process_queue.delay(str(queue_id), str(claim_token))


class BatchWorker:
    """
    Sequential listing generation over products.

    Args:
        client: ListingClient to use; one is built from settings when omitted
            and closed at the end of each run
        abbreviations: read-only abbreviation dictionary
        request_delay: pause between two listing requests in seconds
            (defaults to settings.LISTING_REQUEST_DELAY)
        dispatch: callable(queue_id, claim_token) scheduling the next batch
        sleep: sleep function for the request delay
    """

    def __init__(
        self,
        client: Optional[ListingClient] = None,
        abbreviations: Mapping[str, str] = DEFAULT_ABBREVIATIONS,
        request_delay: Optional[float] = None,
        dispatch: Optional[Callable[[Any, Any], None]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._client = client
        self._owns_client = client is None
        self.abbreviations = abbreviations
        self.request_delay = (
            request_delay
            if request_delay is not None
            else getattr(settings, "LISTING_REQUEST_DELAY", 0.1)
        )
        self.dispatch = dispatch or enqueue_next_batch
        self._sleep = sleep

    @property
    def client(self) -> ListingClient:
        if self._client is None:
            self._client = get_listing_client()
        return self._client

    def _close_client(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------
    # Queue runs
    # ------------------------------------------------------------------

    def run_queue(self, queue_id, claim_token=None) -> BatchResult:
        """
        Process one batch of a queue run.

        Without claim_token the pending row is claimed; with it the run
        continues only if the row is still processing under that token.

        Raises:
            QueueClaimError: the row could not be claimed or continued
        """
        token = self._acquire(queue_id, claim_token)
        result = BatchResult(queue_id=str(queue_id))
        current_sku = None

        try:
            queue = ProcessingQueue.objects.get(id=queue_id)
            products = list(self._next_batch(queue.last_product_id, queue.batch_size))

            add_processing_breadcrumb(
                queue_id=queue_id,
                message="Batch started",
                extra_data={"batch_size": queue.batch_size, "selected": len(products)},
            )
            logger.info(
                f"Queue {queue_id}: processing batch of {len(products)} products "
                f"after id {queue.last_product_id}"
            )

            cursor = queue.last_product_id
            for index, product in enumerate(products):
                if index and self.request_delay:
                    self._sleep(self.request_delay)

                current_sku = product.sku
                succeeded = self._process_product(
                    product, result, on_attempt=lambda: ProcessingQueue.heartbeat(queue_id, token)
                )
                cursor = product.id

                if not ProcessingQueue.record_progress(queue_id, token, product.id, succeeded):
                    logger.warning(
                        f"Queue {queue_id}: ownership lost after {product.sku}, stopping"
                    )
                    result.status = STATUS_LOST
                    return result
            current_sku = None

            result.remaining = self._remaining(cursor).count()
            if result.remaining == 0:
                if ProcessingQueue.mark_completed(queue_id, token):
                    result.status = ProcessingStatus.COMPLETED
                    logger.info(f"Queue {queue_id}: completed")
                else:
                    result.status = STATUS_LOST
            elif ProcessingQueue.heartbeat(queue_id, token):
                self.dispatch(queue_id, token)
                result.handed_off = True
                logger.info(
                    f"Queue {queue_id}: {result.remaining} products remaining, next batch queued"
                )
            else:
                result.status = STATUS_LOST

        except Exception as e:
            logger.exception(f"Queue {queue_id}: run failed: {e}")
            ProcessingQueue.mark_error(queue_id, f"{type(e).__name__}: {e}")
            capture_processing_error(
                error=e,
                queue_id=queue_id,
                sku=current_sku,
                extra_context={"attempted": result.attempted, "failed": result.failed},
            )
            raise

        finally:
            self._close_client()

        return result

    def _acquire(self, queue_id, claim_token):
        if claim_token is None:
            token = ProcessingQueue.claim(queue_id)
            if token is None:
                raise QueueClaimError(queue_id, "queue is not pending")
            logger.info(f"Queue {queue_id}: claimed")
            return token

        if not ProcessingQueue.heartbeat(queue_id, claim_token):
            raise QueueClaimError(queue_id, "claim token does not own the queue")
        return claim_token

    def _next_batch(self, cursor: Optional[int], batch_size: int):
        return self._remaining(cursor).order_by("id")[:batch_size]

    def _remaining(self, cursor: Optional[int]):
        products = Product.objects.unprocessed()
        if cursor is not None:
            products = products.filter(id__gt=cursor)
        return products

    # ------------------------------------------------------------------
    # Ad-hoc runs
    # ------------------------------------------------------------------

    def run_products(self, product_ids: Iterable[int]) -> BatchResult:
        """Process the given products without queue bookkeeping."""
        result = BatchResult()
        try:
            products = Product.objects.filter(id__in=list(product_ids)).order_by("id")
            for index, product in enumerate(products):
                if index and self.request_delay:
                    self._sleep(self.request_delay)
                self._process_product(product, result)
        finally:
            self._close_client()

        result.status = ProcessingStatus.COMPLETED
        logger.info(
            f"Processed {result.attempted} products: "
            f"{result.succeeded} succeeded, {result.failed} failed"
        )
        return result

    # ------------------------------------------------------------------
    # Per product
    # ------------------------------------------------------------------

    def _process_product(
        self,
        product: Product,
        result: BatchResult,
        on_attempt: Optional[Callable[[], Any]] = None,
    ) -> bool:
        result.attempted += 1

        description = expand_abbreviations(product.description, self.abbreviations)
        compatibility = [
            CompatibilityEntry.from_model(row)
            for row in VehicleCompatibility.objects.filter(sku=product.sku)
        ]

        listing = self.client.generate_listing(
            sku=product.sku,
            description=description,
            category=product.category,
            price=product.price,
            stock=product.stock,
            compatibility=compatibility,
            on_attempt=on_attempt,
        )
        if not listing.success:
            return self._fail(product, listing.error or "Listing generation failed", result)

        updates: Dict[str, Any] = {
            "translated_title": listing.translated_title,
            "bullet_points": listing.bullet_points,
            "updated_at": timezone.now(),
        }
        for name in EXTRACTED_FIELDS:
            value = getattr(listing, name)
            if value and not getattr(product, name):
                updates[name] = value

        try:
            with transaction.atomic():
                Product.objects.filter(id=product.id).update(**updates)
        except DatabaseError as e:
            return self._fail(product, f"Update failed: {e}", result)

        result.succeeded += 1
        logger.debug(f"Listing saved for {product.sku}")
        return True

    def _fail(self, product: Product, error: str, result: BatchResult) -> bool:
        result.failed += 1
        result.errors.append({"sku": product.sku, "error": error})
        logger.warning(f"Product {product.sku} failed: {error}")
        return False


def get_batch_worker(**kwargs) -> BatchWorker:
    return BatchWorker(**kwargs)
