"""
Pytest configuration and fixtures for the Parts Catalog Enrichment test suite.
"""

import pytest


@pytest.fixture(scope="session")
def django_db_setup(django_db_blocker):
    """Configure the test database and run migrations."""
    from django.core.management import call_command

    with django_db_blocker.unblock():
        call_command("migrate", "--run-syncdb", verbosity=0)


@pytest.fixture(autouse=True)
def clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """Create a test API client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def staff_user(db):
    """Create a staff user for authenticated API calls."""
    from django.contrib.auth import get_user_model

    return get_user_model().objects.create_user(
        username="operator",
        email="operator@test.com",
        password="testpass123",
        is_staff=True,
    )


@pytest.fixture
def authenticated_client(api_client, staff_user):
    api_client.force_authenticate(user=staff_user)
    return api_client


@pytest.fixture
def product(db):
    """Create an unprocessed product."""
    from catalog.tests.factories import make_product

    return make_product(sku="SKU-100", description="FAROLIM TRAS DRT")
