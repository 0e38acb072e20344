"""
Sentry error tracking for the processing pipeline.

- Breadcrumbs for queue context (queue id, SKU, batch position)
- Filters sensitive data (API keys, tokens, claim tokens)
- Captures run-fatal exceptions and supervisor alerts with scope context

Usage:
    from catalog.monitoring import capture_processing_error

    try:
        worker.run_queue(queue_id)
    except Exception as e:
        capture_processing_error(error=e, queue_id=queue_id)
        raise

Sentry itself is initialized in config/settings/base.py when SENTRY_DSN
is set; without it every call here is a no-op inside the SDK.
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk

logger = logging.getLogger(__name__)

# Sensitive fields to filter from Sentry events
SENSITIVE_FIELDS = {
    "api_key",
    "apikey",
    "api-key",
    "authorization",
    "auth",
    "password",
    "secret",
    "token",
}


def _filter_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace values of keys that look sensitive, recursing into nested dicts.
    """
    if not isinstance(data, dict):
        return data

    filtered = {}
    for key, value in data.items():
        key_lower = str(key).lower()
        if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
            filtered[key] = "[Filtered]"
        elif isinstance(value, dict):
            filtered[key] = _filter_sensitive_data(value)
        else:
            filtered[key] = value
    return filtered


def add_processing_breadcrumb(
    queue_id: Optional[str],
    message: str = "Processing operation",
    level: str = "info",
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Add a breadcrumb for queue context.

    Args:
        queue_id: ProcessingQueue id, or None for ad-hoc product runs
        message: Description of the operation
        level: Log level (info, warning, error)
        extra_data: Additional context data
    """
    breadcrumb_data: Dict[str, Any] = {"queue_id": str(queue_id) if queue_id else None}
    if extra_data:
        breadcrumb_data.update(_filter_sensitive_data(extra_data))

    try:
        sentry_sdk.add_breadcrumb(
            category="processing",
            message=message,
            level=level,
            data=breadcrumb_data,
        )
    except Exception as e:
        logger.warning(f"Failed to add Sentry breadcrumb: {e}")


def capture_processing_error(
    error: Exception,
    queue_id: Optional[str] = None,
    sku: Optional[str] = None,
    extra_context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Capture a run-fatal processing error with queue context.

    Args:
        error: The exception that stopped the run
        queue_id: ProcessingQueue id
        sku: SKU being processed when the error occurred
        extra_context: Additional context (filtered for sensitive data)
    """
    add_processing_breadcrumb(
        queue_id=queue_id,
        message=f"Error: {type(error).__name__}",
        level="error",
        extra_data=extra_context,
    )

    try:
        with sentry_sdk.new_scope() as scope:
            scope.set_tag("catalog.component", "batch_worker")
            if queue_id:
                scope.set_extra("queue_id", str(queue_id))
            if sku:
                scope.set_extra("sku", sku)
            if extra_context:
                scope.set_extra("processing_context", _filter_sensitive_data(extra_context))

            sentry_sdk.capture_exception(error)
    except Exception as e:
        logger.warning(f"Failed to capture exception to Sentry: {e}")


def capture_alert(
    message: str,
    level: str = "warning",
    queue_id: Optional[str] = None,
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Capture an alert message, e.g. a stalled queue detected by the supervisor.
    """
    try:
        with sentry_sdk.new_scope() as scope:
            scope.set_tag("alert.type", "processing_recovery")
            if queue_id:
                scope.set_extra("queue_id", str(queue_id))
            if extra_data:
                scope.set_extra("alert_data", _filter_sensitive_data(extra_data))

            sentry_sdk.capture_message(message, level=level)
    except Exception as e:
        logger.warning(f"Failed to capture alert to Sentry: {e}")
