"""
Celery tasks for the catalog enrichment pipeline.

Enrichment queue:
- process_queue: one batch of a processing queue run
- process_products: ad-hoc listing generation for given product ids

Default queue:
- start_processing: operator-initiated run
- resume_processing: recovery supervisor pass (Celery beat, every 2 minutes)
- after_catalog_sync: hook for catalog sync collaborators

Matching queue:
- analyze_equivalences: brand/model equivalence proposals
- match_vehicle_years: year-range derivation
"""

import logging
from typing import Any, Dict, List, Optional

from celery import shared_task

from catalog.exceptions import QueueClaimError
from catalog.services.batch_worker import BatchWorker
from catalog.services.equivalence_resolver import get_equivalence_resolver
from catalog.services.recovery import RecoverySupervisor
from catalog.services.year_range import get_year_range_deriver

logger = logging.getLogger(__name__)


@shared_task(name="catalog.tasks.process_queue", bind=True)
def process_queue(self, queue_id: str, claim_token: Optional[str] = None) -> Dict[str, Any]:
    """
    Process one batch of a queue run.

    Without claim_token the pending row is claimed; continuation batches
    carry the token of the run they belong to. A refused claim means the
    row is owned elsewhere or finished, and the task ends without error.

    Run-fatal errors have already marked the queue as error and are
    re-raised so Celery records the failure.
    """
    logger.info(f"process_queue {queue_id} (continuation: {claim_token is not None})")

    try:
        result = BatchWorker().run_queue(queue_id, claim_token=claim_token)
    except QueueClaimError as e:
        logger.info(str(e))
        return {"queue_id": queue_id, "status": "skipped", "reason": e.reason}

    return result.to_dict()


@shared_task(name="catalog.tasks.process_products", bind=True)
def process_products(self, product_ids: List[int]) -> Dict[str, Any]:
    """Generate listings for the given products, processed or not."""
    logger.info(f"process_products for {len(product_ids)} products")
    return BatchWorker().run_products(product_ids).to_dict()


@shared_task(name="catalog.tasks.start_processing")
def start_processing(batch_size: Optional[int] = None) -> Dict[str, Any]:
    return RecoverySupervisor().start(batch_size=batch_size).to_dict()


@shared_task(name="catalog.tasks.resume_processing")
def resume_processing() -> Dict[str, Any]:
    """Periodic recovery pass."""
    report = RecoverySupervisor().run()
    logger.info(f"resume_processing: {report.action} ({report.message})")
    return report.to_dict()


@shared_task(name="catalog.tasks.after_catalog_sync")
def after_catalog_sync() -> Dict[str, Any]:
    """
    Called once a catalog sync has written new or changed products:
    refreshes year ranges and starts processing of new products.
    """
    years = get_year_range_deriver().run()
    report = RecoverySupervisor().run()
    return {"years": years.to_dict(), "processing": report.to_dict()}


@shared_task(name="catalog.tasks.analyze_equivalences")
def analyze_equivalences() -> Dict[str, Any]:
    return get_equivalence_resolver().analyze().to_dict()


@shared_task(name="catalog.tasks.match_vehicle_years")
def match_vehicle_years(product_ids: Optional[List[int]] = None) -> Dict[str, Any]:
    return get_year_range_deriver().run(product_ids=product_ids).to_dict()
