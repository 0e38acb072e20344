"""
Django models for the Parts Catalog Enrichment Service.

Models: Product, VehicleCompatibility, VehicleGeneration, BrandEquivalence,
        ModelEquivalence, ProcessingQueue, ProcessingRecoveryLog

Product rows come from the supplier catalog sync. The enrichment pipeline
fills the AI listing fields through ProcessingQueue runs, and the matching
services reconcile supplier brand/model labels with the reference
VehicleGeneration table.
"""

import uuid
from datetime import timedelta
from typing import Iterable, Optional

from django.db import models, transaction
from django.db.models import F, Q
from django.utils import timezone

from catalog.exceptions import CatalogError


class ConfidenceLevel(models.TextChoices):
    """Confidence tier of a proposed equivalence."""

    HIGH = "high", "High"
    MEDIUM = "medium", "Medium"
    LOW = "low", "Low"


class EquivalenceOrigin(models.TextChoices):
    """Who created an equivalence record."""

    MANUAL = "manual", "Manual"
    AUTO = "auto", "Automatic"


class ProcessingStatus(models.TextChoices):
    """Status of a processing queue run."""

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    ERROR = "error", "Error"


class RecoveryType(models.TextChoices):
    """Kinds of recovery supervisor interventions."""

    STALLED_JOB_DETECTED = "stalled_job_detected", "Stalled job detected"
    PENDING_QUEUE_RESUMED = "pending_queue_resumed", "Pending queue resumed"
    NEW_BATCH_CREATED = "new_batch_created", "New batch created"


# ============================================================
# Catalog
# ============================================================


class ProductQuerySet(models.QuerySet):
    def unprocessed(self):
        """Products still waiting for an AI listing."""
        return self.filter(translated_title__isnull=True)

    def with_vehicle(self):
        """Products with both vehicle brand and model known."""
        return self.filter(vehicle_brand__isnull=False, vehicle_model__isnull=False)


class ProductManager(models.Manager.from_queryset(ProductQuerySet)):
    def upsert_by_sku(self, sku: str, **fields):
        """Create or update a product keyed by SKU. Returns (product, created)."""
        return self.update_or_create(sku=sku, defaults=fields)


class Product(models.Model):
    """
    One supplier catalog item.

    Created/updated by catalog sync (upsert by SKU). The listing fields
    (translated_title, bullet_points) are written only by the batch worker,
    the year range only by the year-range deriver.
    """

    sku = models.CharField(max_length=100, unique=True)
    description = models.TextField()
    category = models.CharField(max_length=100, blank=True, null=True)
    stock = models.IntegerField(default=0)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    has_image = models.BooleanField(default=False)
    raw_data = models.JSONField(default=dict, blank=True)

    # Extracted vehicle data
    part_type = models.CharField(
        max_length=100, blank=True, null=True, help_text="Part type (articulo)"
    )
    vehicle_brand = models.CharField(
        max_length=100, blank=True, null=True, help_text="Vehicle brand (marca)"
    )
    vehicle_model = models.CharField(
        max_length=100, blank=True, null=True, help_text="Vehicle model (modelo)"
    )
    year_from = models.CharField(
        max_length=7, blank=True, null=True, help_text="Validity start, YYYY or YYYY.MM"
    )
    year_to = models.CharField(
        max_length=7, blank=True, null=True, help_text="Validity end, YYYY or YYYY.MM"
    )

    # AI listing
    translated_title = models.TextField(blank=True, null=True)
    bullet_points = models.JSONField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductManager()

    class Meta:
        db_table = "catalog_products"
        ordering = ["id"]
        indexes = [
            models.Index(fields=["vehicle_brand", "vehicle_model"], name="catalog_pro_vehicle_3f6c1e_idx"),
        ]

    def __str__(self):
        return f"{self.sku} - {self.description[:60]}"

    @property
    def is_processed(self) -> bool:
        return self.translated_title is not None


class VehicleCompatibility(models.Model):
    """
    Vehicles a supplier SKU fits, with OEM and aftermarket cross references.

    The oldest row of a SKU is its principal model.
    """

    sku = models.CharField(max_length=100, db_index=True)
    vehicle_brand = models.CharField(max_length=100)
    vehicle_model = models.CharField(max_length=100)
    year_from = models.CharField(max_length=7, blank=True, null=True)
    year_to = models.CharField(max_length=7, blank=True, null=True)

    oem_reference = models.CharField(max_length=100, blank=True, null=True)
    alkar_reference = models.CharField(max_length=100, blank=True, null=True)
    jumasa_reference = models.CharField(max_length=100, blank=True, null=True)
    geimex_reference = models.CharField(max_length=100, blank=True, null=True)

    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "catalog_vehicle_compatibility"
        ordering = ["sku", "created_at", "id"]
        verbose_name_plural = "Vehicle compatibilities"

    def __str__(self):
        return f"{self.sku} -> {self.vehicle_brand} {self.vehicle_model}"

    @property
    def years_label(self) -> str:
        if self.year_to:
            return f"{self.year_from}-{self.year_to}"
        return f"{self.year_from or ''}"


# ============================================================
# Reference taxonomy
# ============================================================


class VehicleGenerationManager(models.Manager):
    IMPORT_BATCH_SIZE = 500

    def replace_all(self, rows: Iterable[dict]) -> int:
        """
        Replace the whole reference table.

        Deletes every generation and inserts the given rows in batches.
        Returns the number of inserted rows.
        """
        generations = [self.model(**row) for row in rows]
        with transaction.atomic():
            self.all().delete()
            for start in range(0, len(generations), self.IMPORT_BATCH_SIZE):
                self.bulk_create(generations[start:start + self.IMPORT_BATCH_SIZE])
        return len(generations)


class VehicleGeneration(models.Model):
    """
    One generation of a vehicle model range, identified by its start period.

    Several generations share brand + model_range; they are ordered by
    year_from within the group. Immutable reference data.
    """

    brand = models.CharField(max_length=100, help_text="Reference brand (marca)")
    model_range = models.CharField(max_length=100, help_text="Model range (gama)")
    year_from = models.CharField(max_length=7, help_text="Start period, YYYY or YYYY.MM")
    year_to = models.CharField(max_length=7, blank=True, null=True)
    brand_ref_id = models.IntegerField(null=True, blank=True)
    range_ref_id = models.IntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = VehicleGenerationManager()

    class Meta:
        db_table = "catalog_vehicle_generations"
        ordering = ["brand", "model_range", "year_from"]
        indexes = [
            models.Index(fields=["brand", "model_range"], name="catalog_veh_brand_8d2a41_idx"),
        ]

    def __str__(self):
        return f"{self.brand} {self.model_range} ({self.year_from})"


# ============================================================
# Equivalences
# ============================================================


class EquivalenceBase(models.Model):
    confidence_level = models.CharField(
        max_length=10, choices=ConfidenceLevel.choices, default=ConfidenceLevel.LOW
    )
    is_active = models.BooleanField(default=False)
    created_by = models.CharField(
        max_length=10, choices=EquivalenceOrigin.choices, default=EquivalenceOrigin.MANUAL
    )
    notes = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def toggle(self) -> bool:
        """Flip the active flag. Returns the new value."""
        self.is_active = not self.is_active
        self.save(update_fields=["is_active", "updated_at"])
        return self.is_active


class BrandEquivalence(EquivalenceBase):
    """Mapping between a supplier brand label and a reference brand label."""

    supplier_brand = models.CharField(max_length=100)
    reference_brand = models.CharField(max_length=100)

    class Meta:
        db_table = "catalog_brand_equivalences"
        ordering = ["supplier_brand", "reference_brand"]
        constraints = [
            models.UniqueConstraint(
                fields=["supplier_brand", "reference_brand"],
                name="unique_brand_equivalence",
            ),
        ]

    def __str__(self):
        return f"{self.supplier_brand} <-> {self.reference_brand} ({self.confidence_level})"


class ModelEquivalence(EquivalenceBase):
    """Mapping between a supplier model label and a reference model range."""

    supplier_brand = models.CharField(max_length=100)
    supplier_model = models.CharField(max_length=100)
    reference_brand = models.CharField(max_length=100)
    reference_model = models.CharField(max_length=100)

    class Meta:
        db_table = "catalog_model_equivalences"
        ordering = ["supplier_brand", "supplier_model"]
        constraints = [
            models.UniqueConstraint(
                fields=["supplier_brand", "supplier_model", "reference_brand", "reference_model"],
                name="unique_model_equivalence",
            ),
        ]

    def __str__(self):
        return (
            f"{self.supplier_brand} {self.supplier_model} <-> "
            f"{self.reference_brand} {self.reference_model} ({self.confidence_level})"
        )


# ============================================================
# Processing queue
# ============================================================


class ProcessingQueueQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status=ProcessingStatus.PROCESSING)

    def stalled(self, stale_after_seconds: int, now=None):
        """Processing runs whose heartbeat is missing or older than the threshold."""
        cutoff = (now or timezone.now()) - timedelta(seconds=stale_after_seconds)
        return self.active().filter(
            Q(last_heartbeat__isnull=True) | Q(last_heartbeat__lt=cutoff)
        )

    def pending_oldest_first(self):
        return self.filter(status=ProcessingStatus.PENDING).order_by("created_at")

    def create_pending(self, total_count: int, batch_size: Optional[int] = None):
        from django.conf import settings

        return self.create(
            status=ProcessingStatus.PENDING,
            total_count=total_count,
            batch_size=batch_size or getattr(settings, "PROCESSING_BATCH_SIZE", 25),
        )


class ProcessingQueue(models.Model):
    """
    One reprocessing run over the unprocessed products.

    The status field is the lease between workers and the recovery
    supervisor: a worker owns the row while it is ``processing`` and its
    claim_token matches. All state changes are single conditional UPDATEs.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    status = models.CharField(
        max_length=20, choices=ProcessingStatus.choices, default=ProcessingStatus.PENDING
    )

    batch_size = models.IntegerField(default=25)
    total_count = models.IntegerField(default=0)
    processed_count = models.IntegerField(default=0)
    failed_count = models.IntegerField(default=0)

    last_product_id = models.BigIntegerField(
        null=True, blank=True, help_text="Cursor: id of the last product attempted"
    )
    claim_token = models.UUIDField(null=True, blank=True, editable=False)
    last_heartbeat = models.DateTimeField(null=True, blank=True)
    error_message = models.TextField(blank=True, null=True)

    created_at = models.DateTimeField(default=timezone.now)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = models.Manager.from_queryset(ProcessingQueueQuerySet)()

    class Meta:
        db_table = "catalog_processing_queue"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="catalog_pro_status_5b7e92_idx"),
        ]

    def __str__(self):
        return f"Queue {self.id} ({self.status}, {self.processed_count}/{self.total_count})"

    @property
    def is_terminal(self) -> bool:
        return self.status in (ProcessingStatus.COMPLETED, ProcessingStatus.ERROR)

    @property
    def progress_percent(self) -> float:
        if not self.total_count:
            return 100.0 if self.status == ProcessingStatus.COMPLETED else 0.0
        return round(min(self.processed_count, self.total_count) * 100.0 / self.total_count, 1)

    @property
    def duration_seconds(self):
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @classmethod
    def _owned(cls, queue_id, token):
        return cls.objects.filter(
            id=queue_id, status=ProcessingStatus.PROCESSING, claim_token=token
        )

    @classmethod
    def claim(cls, queue_id) -> Optional[uuid.UUID]:
        """
        Atomically move a pending run to processing.

        Returns the claim token, or None when the row was not pending
        (already claimed, finished, or missing).
        """
        token = uuid.uuid4()
        now = timezone.now()
        updated = cls.objects.filter(id=queue_id, status=ProcessingStatus.PENDING).update(
            status=ProcessingStatus.PROCESSING,
            claim_token=token,
            started_at=now,
            last_heartbeat=now,
            updated_at=now,
        )
        return token if updated else None

    @classmethod
    def heartbeat(cls, queue_id, token) -> bool:
        """Refresh the heartbeat of an owned run. False if ownership was lost."""
        now = timezone.now()
        return cls._owned(queue_id, token).update(last_heartbeat=now, updated_at=now) == 1

    @classmethod
    def record_progress(cls, queue_id, token, product_id: int, succeeded: bool) -> bool:
        """Count one attempted product, move the cursor and refresh the heartbeat."""
        now = timezone.now()
        fields = {
            "processed_count": F("processed_count") + 1,
            "last_product_id": product_id,
            "last_heartbeat": now,
            "updated_at": now,
        }
        if not succeeded:
            fields["failed_count"] = F("failed_count") + 1
        return cls._owned(queue_id, token).update(**fields) == 1

    @classmethod
    def mark_completed(cls, queue_id, token) -> bool:
        now = timezone.now()
        return cls._owned(queue_id, token).update(
            status=ProcessingStatus.COMPLETED,
            completed_at=now,
            last_heartbeat=now,
            updated_at=now,
        ) == 1

    @classmethod
    def mark_error(cls, queue_id, message: str) -> bool:
        """Terminal failure of a run that has not already finished."""
        now = timezone.now()
        return cls.objects.filter(id=queue_id).exclude(
            status__in=[ProcessingStatus.COMPLETED, ProcessingStatus.ERROR]
        ).update(
            status=ProcessingStatus.ERROR,
            error_message=message[:2000],
            completed_at=now,
            updated_at=now,
        ) == 1

    @classmethod
    def mark_stalled(cls, queue_id, stale_after_seconds: int, now=None) -> bool:
        """
        Fail a run only if it is still stalled at update time, so a worker
        that heartbeats in between keeps its lease.
        """
        now = now or timezone.now()
        return cls.objects.stalled(stale_after_seconds, now=now).filter(id=queue_id).update(
            status=ProcessingStatus.ERROR,
            error_message=f"Heartbeat stale for more than {stale_after_seconds} seconds",
            completed_at=now,
            updated_at=now,
        ) == 1


class ProcessingRecoveryLog(models.Model):
    """
    Append-only audit trail of recovery supervisor interventions.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    recovery_type = models.CharField(max_length=40, choices=RecoveryType.choices)
    queue = models.ForeignKey(
        ProcessingQueue,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recovery_logs",
    )
    products_remaining = models.IntegerField(null=True, blank=True)
    message = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "catalog_processing_recovery_log"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recovery_type", "created_at"], name="catalog_pro_recover_c41d07_idx"),
        ]

    def __str__(self):
        return f"{self.recovery_type} at {self.created_at}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise CatalogError("Recovery log entries cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise CatalogError("Recovery log entries cannot be deleted")
