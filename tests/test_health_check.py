"""
Tests for the health check endpoint.
"""

from unittest.mock import Mock, patch

import pytest
import redis
from django.test import override_settings

from catalog.models import ProcessingQueue, ProcessingRecoveryLog, RecoveryType
from catalog.tests.factories import make_product
from catalog.views import get_redis_status


@pytest.fixture
def no_workers():
    with patch("catalog.views.get_celery_worker_count", return_value=0) as mock_count:
        yield mock_count


@pytest.mark.django_db
class TestHealthCheck:
    url = "/api/health/"

    def test_healthy_response(self, client, no_workers):
        response = client.get(self.url)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["redis"] == "not_configured"
        assert data["celery_workers"] == 0
        assert data["products_pending"] == 0
        assert data["active_queue"] is None
        assert data["last_recovery"] is None

    def test_reports_pipeline_state(self, client, no_workers):
        make_product(sku="A")
        make_product(sku="B", translated_title="Hecho")
        queue = ProcessingQueue.objects.create_pending(total_count=1)
        ProcessingQueue.claim(queue.id)
        ProcessingRecoveryLog.objects.create(recovery_type=RecoveryType.NEW_BATCH_CREATED, queue=queue)

        data = client.get(self.url).json()

        assert data["products_pending"] == 1
        assert data["active_queue"]["id"] == str(queue.id)
        assert data["active_queue"]["last_heartbeat"] is not None
        assert data["last_recovery"] is not None

    def test_database_failure_is_unhealthy(self, client, no_workers):
        with patch("catalog.views.connection") as connection:
            connection.ensure_connection.side_effect = Exception("database is down")
            response = client.get(self.url)

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["database"] == "error"
        assert data["products_pending"] is None


class TestRedisStatus:
    @override_settings(CELERY_BROKER_URL="redis://localhost:6379/0")
    def test_connected(self):
        client = Mock()
        client.ping.return_value = True
        with patch("catalog.views.redis.Redis.from_url", return_value=client):
            assert get_redis_status() == "connected"

    @override_settings(CELERY_BROKER_URL="redis://localhost:6379/0")
    def test_connection_error(self):
        client = Mock()
        client.ping.side_effect = redis.ConnectionError("refused")
        with patch("catalog.views.redis.Redis.from_url", return_value=client):
            assert get_redis_status() == "error"
