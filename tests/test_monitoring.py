"""
Tests for the Sentry integration of the processing pipeline.
"""

from unittest.mock import MagicMock, patch

import pytest

from catalog.monitoring import sentry_integration
from catalog.monitoring.sentry_integration import (
    _filter_sensitive_data,
    add_processing_breadcrumb,
    capture_alert,
    capture_processing_error,
)


@pytest.fixture
def mock_sentry():
    with patch.object(sentry_integration, "sentry_sdk") as sdk:
        scope = MagicMock()
        sdk.new_scope.return_value.__enter__.return_value = scope
        sdk.scope = scope
        yield sdk


class TestSensitiveDataFilter:
    def test_filters_nested_secrets(self):
        data = {
            "api_key": "sk-123",
            "claim_token": "abc",
            "context": {"Authorization": "Bearer x", "sku": "SKU-1"},
            "attempted": 3,
        }

        filtered = _filter_sensitive_data(data)

        assert filtered["api_key"] == "[Filtered]"
        assert filtered["claim_token"] == "[Filtered]"
        assert filtered["context"]["Authorization"] == "[Filtered]"
        assert filtered["context"]["sku"] == "SKU-1"
        assert filtered["attempted"] == 3

    def test_non_dict_passes_through(self):
        assert _filter_sensitive_data(["a"]) == ["a"]


class TestSentryCapture:
    def test_breadcrumb_carries_queue_context(self, mock_sentry):
        add_processing_breadcrumb("q-1", message="Batch started", extra_data={"selected": 25})

        kwargs = mock_sentry.add_breadcrumb.call_args.kwargs
        assert kwargs["category"] == "processing"
        assert kwargs["data"] == {"queue_id": "q-1", "selected": 25}

    def test_processing_error_with_scope(self, mock_sentry):
        error = RuntimeError("db gone")

        capture_processing_error(error, queue_id="q-1", sku="SKU-1", extra_context={"token": "t"})

        mock_sentry.capture_exception.assert_called_once_with(error)
        mock_sentry.scope.set_tag.assert_called_with("catalog.component", "batch_worker")
        mock_sentry.scope.set_extra.assert_any_call("sku", "SKU-1")
        mock_sentry.scope.set_extra.assert_any_call("processing_context", {"token": "[Filtered]"})

    def test_alert_is_captured_as_message(self, mock_sentry):
        capture_alert("Queue q-1 stalled", queue_id="q-1")

        mock_sentry.capture_message.assert_called_once_with("Queue q-1 stalled", level="warning")
        mock_sentry.scope.set_tag.assert_called_with("alert.type", "processing_recovery")

    def test_sentry_failures_are_logged_not_raised(self, mock_sentry, caplog):
        mock_sentry.capture_message.side_effect = RuntimeError("transport closed")

        capture_alert("Queue q-1 stalled")

        assert "Failed to capture alert to Sentry" in caplog.text
