"""
Celery configuration for the Parts Catalog Enrichment Service.

This module configures Celery for asynchronous task processing
with separate task queues for enrichment and matching operations.
"""

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("catalog_enrichment")

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

# Configure task queues for different operations
app.conf.task_queues = {
    "enrichment": {
        "exchange": "enrichment",
        "routing_key": "enrichment",
    },
    "matching": {
        "exchange": "matching",
        "routing_key": "matching",
    },
    "default": {
        "exchange": "default",
        "routing_key": "default",
    },
}

# Default task routing
app.conf.task_default_queue = "default"
app.conf.task_default_exchange = "default"
app.conf.task_default_routing_key = "default"

# Route specific tasks to their queues
app.conf.task_routes = {
    "catalog.tasks.process_queue": {"queue": "enrichment"},
    "catalog.tasks.process_products": {"queue": "enrichment"},
    "catalog.tasks.analyze_equivalences": {"queue": "matching"},
    "catalog.tasks.match_vehicle_years": {"queue": "matching"},
    "catalog.tasks.resume_processing": {"queue": "default"},
    "catalog.tasks.start_processing": {"queue": "default"},
    "catalog.tasks.after_catalog_sync": {"queue": "default"},
}

# Configure Celery Beat schedule for periodic tasks
app.conf.beat_schedule = {
    "resume-processing-every-2-minutes": {
        "task": "catalog.tasks.resume_processing",
        "schedule": crontab(minute="*/2"),  # Every 2 minutes
    },
}
