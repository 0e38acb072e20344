"""
Monitoring for the processing pipeline.

Sentry error tracking with queue context; stalled-queue alerts are raised
by the recovery supervisor.
"""

from .sentry_integration import (
    add_processing_breadcrumb,
    capture_alert,
    capture_processing_error,
)

__all__ = [
    "add_processing_breadcrumb",
    "capture_alert",
    "capture_processing_error",
]
