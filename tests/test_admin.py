"""
Tests for the catalog Django admin.
"""

from unittest.mock import patch

import pytest
from django.contrib.admin.sites import AdminSite
from django.contrib.auth import get_user_model
from django.contrib.messages.storage.fallback import FallbackStorage
from django.contrib.sessions.middleware import SessionMiddleware
from django.test import RequestFactory

from catalog.admin import (
    BrandEquivalenceAdmin,
    ProcessingQueueAdmin,
    ProcessingRecoveryLogAdmin,
    ProductAdmin,
)
from catalog.models import (
    BrandEquivalence,
    ProcessingQueue,
    ProcessingRecoveryLog,
    ProcessingStatus,
    Product,
)
from catalog.tests.factories import make_product


@pytest.fixture
def admin_user(db):
    """Create an admin user for testing."""
    User = get_user_model()
    return User.objects.create_superuser(
        username="admin",
        email="admin@test.com",
        password="testpass123",
    )


@pytest.fixture
def admin_request(admin_user):
    """Create an admin request with user and messages support attached."""
    request = RequestFactory().get("/admin/")
    request.user = admin_user

    middleware = SessionMiddleware(lambda x: None)
    middleware.process_request(request)
    request.session.save()

    setattr(request, "_messages", FallbackStorage(request))
    return request


@pytest.mark.django_db
class TestProductAdmin:
    def test_regenerate_listings_dispatches_task(self, admin_request):
        first = make_product(sku="A")
        second = make_product(sku="B")
        admin = ProductAdmin(Product, AdminSite())

        with patch("catalog.admin.process_products") as task:
            admin.regenerate_listings(admin_request, Product.objects.all())

        task.delay.assert_called_once_with([first.id, second.id])

    def test_processed_badge(self):
        admin = ProductAdmin(Product, AdminSite())

        assert "Pending" in admin.processed_badge(make_product(sku="A"))
        assert "Listed" in admin.processed_badge(make_product(sku="B", translated_title="Hecho"))


@pytest.mark.django_db
class TestEquivalenceAdmin:
    def test_activate_and_deactivate(self, admin_request):
        BrandEquivalence.objects.create(supplier_brand="VW", reference_brand="VOLKSWAGEN")
        BrandEquivalence.objects.create(supplier_brand="MB", reference_brand="MERCEDES-BENZ")
        admin = BrandEquivalenceAdmin(BrandEquivalence, AdminSite())

        admin.activate(admin_request, BrandEquivalence.objects.all())
        assert BrandEquivalence.objects.filter(is_active=True).count() == 2

        admin.deactivate(admin_request, BrandEquivalence.objects.filter(supplier_brand="VW"))
        assert BrandEquivalence.objects.filter(is_active=True).count() == 1

    def test_confidence_badge(self):
        equivalence = BrandEquivalence.objects.create(
            supplier_brand="VW", reference_brand="VOLKSWAGEN", confidence_level="medium"
        )
        admin = BrandEquivalenceAdmin(BrandEquivalence, AdminSite())

        assert "Medium" in admin.confidence_badge(equivalence)


@pytest.mark.django_db
class TestProcessingAdmin:
    def test_queue_admin_is_read_only(self, admin_request):
        admin = ProcessingQueueAdmin(ProcessingQueue, AdminSite())

        assert admin.has_add_permission(admin_request) is False
        assert admin.has_change_permission(admin_request) is False

    def test_progress_and_duration(self):
        queue = ProcessingQueue.objects.create(
            status=ProcessingStatus.PROCESSING, total_count=4, processed_count=1
        )
        admin = ProcessingQueueAdmin(ProcessingQueue, AdminSite())

        assert admin.progress_display(queue) == "1/4 (25.0%)"
        assert admin.duration_display(queue) == "-"
        assert "Processing" in admin.status_badge(queue)

    def test_run_recovery_dispatches_supervisor(self, admin_request):
        admin = ProcessingQueueAdmin(ProcessingQueue, AdminSite())

        with patch("catalog.admin.resume_processing") as task:
            admin.run_recovery(admin_request, ProcessingQueue.objects.none())

        task.delay.assert_called_once_with()

    def test_recovery_log_cannot_be_edited(self, admin_request):
        admin = ProcessingRecoveryLogAdmin(ProcessingRecoveryLog, AdminSite())

        assert admin.has_add_permission(admin_request) is False
        assert admin.has_change_permission(admin_request) is False
        assert admin.has_delete_permission(admin_request) is False
