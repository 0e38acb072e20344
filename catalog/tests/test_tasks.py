"""
Tests for the catalog Celery tasks (eager mode).
"""

from unittest.mock import patch

from django.test import TestCase

from catalog import tasks
from catalog.models import BrandEquivalence, ProcessingQueue, ProcessingStatus, VehicleGeneration
from catalog.services.batch_worker import BatchWorker
from catalog.tests.factories import chat_response, listing_content, make_listing_client, make_product


def _worker_with_mock_service(*args, **kwargs):
    client = make_listing_client(lambda request: chat_response(listing_content()))
    return BatchWorker(client=client, request_delay=0)


class TestProcessingTasks(TestCase):
    def test_refused_claim_is_skipped(self):
        queue = ProcessingQueue.objects.create(status=ProcessingStatus.COMPLETED)

        result = tasks.process_queue.delay(str(queue.id)).get()

        assert result["status"] == "skipped"
        assert result["reason"] == "queue is not pending"

    def test_process_queue_runs_all_batches(self):
        for i in range(3):
            make_product(sku=f"SKU-{i}")
        queue = ProcessingQueue.objects.create_pending(total_count=3, batch_size=2)

        with patch("catalog.tasks.BatchWorker", side_effect=_worker_with_mock_service):
            result = tasks.process_queue.delay(str(queue.id)).get()

        queue.refresh_from_db()
        assert result["handed_off"] is True
        assert queue.status == ProcessingStatus.COMPLETED
        assert queue.processed_count == 3

    def test_start_processing_with_nothing_to_do(self):
        result = tasks.start_processing.delay().get()
        assert result["action"] == "idle"

    def test_resume_processing_idle(self):
        result = tasks.resume_processing.delay().get()
        assert result["action"] == "idle"
        assert result["stalled_jobs"] == 0


class TestMatchingTasks(TestCase):
    def setUp(self):
        make_product(sku="F1", vehicle_brand="FORD", vehicle_model="FOCUS", translated_title="Hecho")
        VehicleGeneration.objects.create(brand="FORD", model_range="FOCUS", year_from="2004.09")

    def test_analyze_equivalences(self):
        result = tasks.analyze_equivalences.delay().get()

        assert result["brands_found"] == 1
        assert BrandEquivalence.objects.get().is_active is True

    def test_match_vehicle_years_after_analysis(self):
        tasks.analyze_equivalences.delay()

        result = tasks.match_vehicle_years.delay().get()

        assert result["matched"] == 1

    def test_after_catalog_sync(self):
        BrandEquivalence.objects.create(supplier_brand="FORD", reference_brand="FORD", is_active=True)

        result = tasks.after_catalog_sync.delay().get()

        assert result["years"]["matched"] == 1
        assert result["processing"]["action"] == "idle"
