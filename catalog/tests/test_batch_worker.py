"""
Tests for the Batch Worker.

The listing service is an httpx.MockTransport and the next-batch dispatch
is a Mock, so every batch runs in the test process.
"""

from unittest.mock import Mock, patch

import httpx
import pytest
from django.db import DatabaseError
from django.test import TestCase

from catalog.exceptions import QueueClaimError
from catalog.models import ProcessingQueue, ProcessingStatus, Product, VehicleCompatibility
from catalog.services.batch_worker import STATUS_LOST, BatchWorker
from catalog.tests.factories import (
    chat_response,
    listing_content,
    make_listing_client,
    make_product,
    user_prompt,
)


def _ok(request):
    return chat_response(listing_content())


def _worker(handler=_ok, sleeps=None, **kwargs):
    kwargs.setdefault("dispatch", Mock())
    return BatchWorker(client=make_listing_client(handler, sleeps=sleeps), request_delay=0, **kwargs)


def _queue(batch_size=25):
    total = Product.objects.unprocessed().count()
    return ProcessingQueue.objects.create_pending(total_count=total, batch_size=batch_size)


class TestRunQueue(TestCase):
    def setUp(self):
        self.products = [make_product(sku=f"SKU-{i}") for i in range(1, 4)]

    def test_full_run_with_one_rate_limited_request(self):
        responses = [httpx.Response(429, json={"error": "slow down"})]
        sleeps = []

        def handler(request):
            if responses:
                return responses.pop(0)
            return _ok(request)

        queue = _queue(batch_size=3)
        worker = _worker(handler, sleeps=sleeps)

        result = worker.run_queue(queue.id)

        queue.refresh_from_db()
        assert result.status == ProcessingStatus.COMPLETED
        assert result.succeeded == 3
        assert result.failed == 0
        assert result.remaining == 0
        assert queue.status == ProcessingStatus.COMPLETED
        assert queue.processed_count == queue.total_count == 3
        assert queue.failed_count == 0
        assert queue.completed_at is not None
        assert queue.last_product_id == self.products[-1].id
        assert sleeps == [1.0]
        assert not Product.objects.unprocessed().exists()
        worker.dispatch.assert_not_called()

        product = Product.objects.get(sku="SKU-1")
        assert len(product.bullet_points) == 5
        assert product.translated_title.startswith("Piloto")

    def test_item_failure_does_not_stop_the_batch(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 2:
                return chat_response("not json at all")
            return _ok(request)

        queue = _queue()

        result = _worker(handler).run_queue(queue.id)

        queue.refresh_from_db()
        assert result.status == ProcessingStatus.COMPLETED
        assert result.succeeded == 2
        assert result.failed == 1
        assert result.errors[0]["sku"] == "SKU-2"
        assert queue.processed_count == 3
        assert queue.failed_count == 1
        assert Product.objects.get(sku="SKU-2").translated_title is None

    def test_content_parts_reply_is_an_item_failure(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 2:
                return chat_response([{"type": "text", "text": "x"}])
            return _ok(request)

        queue = _queue(batch_size=3)

        result = _worker(handler).run_queue(queue.id)

        queue.refresh_from_db()
        assert result.status == ProcessingStatus.COMPLETED
        assert result.failed == 1
        assert result.errors == [{"sku": "SKU-2", "error": "Listing content is not text"}]
        assert queue.status == ProcessingStatus.COMPLETED
        assert queue.processed_count == 3
        assert queue.failed_count == 1

    def test_continuation_batches_are_handed_off(self):
        make_product(sku="SKU-4")
        make_product(sku="SKU-5")
        queue = _queue(batch_size=2)
        dispatch = Mock()
        worker = _worker(dispatch=dispatch)

        first = worker.run_queue(queue.id)

        assert first.handed_off is True
        assert first.remaining == 3
        dispatch.assert_called_once()
        queue_id, token = dispatch.call_args[0]
        assert queue_id == queue.id

        second = worker.run_queue(queue_id, claim_token=token)
        third = worker.run_queue(queue_id, claim_token=dispatch.call_args[0][1])

        queue.refresh_from_db()
        assert second.handed_off is True
        assert third.status == ProcessingStatus.COMPLETED
        assert third.attempted == 1
        assert dispatch.call_count == 2
        assert queue.processed_count == 5
        assert queue.status == ProcessingStatus.COMPLETED

    def test_pending_row_is_claimed_once(self):
        queue = _queue()
        ProcessingQueue.claim(queue.id)

        with pytest.raises(QueueClaimError):
            _worker().run_queue(queue.id)

    def test_wrong_claim_token_is_refused(self):
        queue = _queue()
        ProcessingQueue.claim(queue.id)

        with pytest.raises(QueueClaimError):
            _worker().run_queue(queue.id, claim_token="00000000-0000-0000-0000-000000000000")

        assert ProcessingQueue.objects.get(id=queue.id).processed_count == 0

    def test_stops_when_ownership_is_lost(self):
        queue = _queue()

        def handler(request):
            # recovery supervisor takes the row away mid-batch
            ProcessingQueue.objects.filter(id=queue.id).update(status=ProcessingStatus.ERROR)
            return _ok(request)

        result = _worker(handler).run_queue(queue.id)

        queue.refresh_from_db()
        assert result.status == STATUS_LOST
        assert result.attempted == 1
        assert queue.status == ProcessingStatus.ERROR
        assert queue.processed_count == 0

    def test_fatal_error_marks_queue_as_error(self):
        queue = _queue()

        with patch("catalog.services.batch_worker.capture_processing_error") as capture, \
                patch.object(ProcessingQueue, "record_progress", side_effect=DatabaseError("db gone")):
            with pytest.raises(DatabaseError):
                _worker().run_queue(queue.id)

        queue.refresh_from_db()
        assert queue.status == ProcessingStatus.ERROR
        assert "DatabaseError: db gone" in queue.error_message
        capture.assert_called_once()
        assert capture.call_args.kwargs["sku"] == "SKU-1"


class TestHeartbeat(TestCase):
    def test_heartbeat_before_every_rate_limited_attempt(self):
        make_product(sku="SKU-1")
        queue = _queue()
        responses = [
            httpx.Response(429, json={"error": "slow down"}),
            httpx.Response(429, json={"error": "slow down"}),
        ]

        def handler(request):
            if responses:
                return responses.pop(0)
            return _ok(request)

        with patch.object(
            ProcessingQueue, "heartbeat", wraps=ProcessingQueue.heartbeat
        ) as heartbeat:
            result = _worker(handler).run_queue(queue.id)

        queue.refresh_from_db()
        assert result.status == ProcessingStatus.COMPLETED
        assert heartbeat.call_count == 3
        for call in heartbeat.call_args_list:
            assert call.args == (queue.id, queue.claim_token)

    def test_products_without_queue_do_not_heartbeat(self):
        product = make_product(sku="SKU-1")

        with patch.object(ProcessingQueue, "heartbeat") as heartbeat:
            _worker().run_products([product.id])

        heartbeat.assert_not_called()


class TestProductUpdates(TestCase):
    def test_extracted_fields_only_fill_empty_values(self):
        kept = make_product(sku="A", part_type="Faro", vehicle_brand="FORD")
        filled = make_product(sku="B")

        _worker().run_products([kept.id, filled.id])

        kept.refresh_from_db()
        filled.refresh_from_db()
        assert kept.part_type == "Faro"
        assert kept.vehicle_model == "FOCUS"
        assert filled.part_type == "Piloto trasero"
        assert filled.vehicle_brand == "FORD"

    def test_prompt_has_expanded_description_and_compatibility(self):
        prompts = []

        def handler(request):
            prompts.append(user_prompt(request))
            return _ok(request)

        product = make_product(sku="ESP-1", description="ESP ELECT REB DRT")
        VehicleCompatibility.objects.create(
            sku="ESP-1",
            vehicle_brand="SEAT",
            vehicle_model="IBIZA",
            year_from="2008.05",
            oem_reference="6J1857508",
            alkar_reference="6126110",
        )

        _worker(handler).run_products([product.id])

        assert "Descripción: Retrovisor Eléctrico Abatible Derecho" in prompts[0]
        assert "Modelo PRINCIPAL: IBIZA (2008.05)" in prompts[0]
        assert "Referencias equivalentes: ALKAR 6126110" in prompts[0]

    def test_run_products_reprocesses_finished_products(self):
        product = make_product(sku="A", translated_title="Viejo", bullet_points=["x"] * 5)

        result = _worker().run_products([product.id])

        product.refresh_from_db()
        assert result.status == ProcessingStatus.COMPLETED
        assert result.succeeded == 1
        assert product.translated_title != "Viejo"

    def test_client_is_closed_only_when_owned(self):
        client = make_listing_client(_ok)
        client.close = Mock()

        BatchWorker(client=client, request_delay=0).run_products([])

        client.close.assert_not_called()
