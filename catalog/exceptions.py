"""
Exceptions raised by the catalog enrichment services.
"""


class CatalogError(Exception):
    """Base class for catalog service errors."""


class QueueClaimError(CatalogError):
    """A processing queue row could not be claimed or is no longer owned."""

    def __init__(self, queue_id, reason: str = ""):
        self.queue_id = queue_id
        self.reason = reason
        message = f"Processing queue {queue_id} not available"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ListingParseError(CatalogError):
    """The text-generation service returned content that is not a usable listing."""
