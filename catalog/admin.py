"""
Django admin configuration for the catalog models.

Provides interfaces for reviewing products and their AI listings,
curating brand/model equivalences, and watching processing runs and
the recovery log.
"""

from django.contrib import admin
from django.utils.html import format_html

from catalog.models import (
    BrandEquivalence,
    ModelEquivalence,
    ProcessingQueue,
    ProcessingRecoveryLog,
    Product,
    VehicleCompatibility,
    VehicleGeneration,
)
from catalog.tasks import process_products, resume_processing

BADGE_STYLE = "background-color: {}; color: white; padding: 2px 8px; border-radius: 4px;"


def _badge(color: str, text: str):
    return format_html('<span style="' + BADGE_STYLE + '">{}</span>', color, text)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = [
        "sku",
        "description_short",
        "vehicle_brand",
        "vehicle_model",
        "year_from",
        "year_to",
        "stock",
        "price",
        "processed_badge",
    ]
    list_filter = ["category", "vehicle_brand", "has_image"]
    search_fields = ["sku", "description", "vehicle_brand", "vehicle_model", "translated_title"]
    readonly_fields = ["created_at", "updated_at"]
    ordering = ["id"]

    fieldsets = (
        ("Catalog", {
            "fields": ("sku", "description", "category", "stock", "price", "has_image"),
        }),
        ("Vehicle", {
            "fields": ("part_type", "vehicle_brand", "vehicle_model", "year_from", "year_to"),
        }),
        ("Listing", {
            "fields": ("translated_title", "bullet_points"),
        }),
        ("Raw Data", {
            "fields": ("raw_data",),
            "classes": ("collapse",),
        }),
        ("Metadata", {
            "fields": ("created_at", "updated_at"),
            "classes": ("collapse",),
        }),
    )

    actions = ["regenerate_listings"]

    def description_short(self, obj):
        return obj.description[:60]
    description_short.short_description = "Description"

    def processed_badge(self, obj):
        if obj.is_processed:
            return _badge("#28a745", "Listed")
        return _badge("#ffc107", "Pending")
    processed_badge.short_description = "Listing"

    @admin.action(description="Regenerate AI listing")
    def regenerate_listings(self, request, queryset):
        product_ids = list(queryset.values_list("id", flat=True))
        process_products.delay(product_ids)
        self.message_user(request, f"Queued listing generation for {len(product_ids)} product(s).")


@admin.register(VehicleCompatibility)
class VehicleCompatibilityAdmin(admin.ModelAdmin):
    list_display = ["sku", "vehicle_brand", "vehicle_model", "year_from", "year_to", "oem_reference"]
    list_filter = ["vehicle_brand"]
    search_fields = ["sku", "vehicle_model", "oem_reference"]


@admin.register(VehicleGeneration)
class VehicleGenerationAdmin(admin.ModelAdmin):
    list_display = ["brand", "model_range", "year_from", "year_to"]
    list_filter = ["brand"]
    search_fields = ["brand", "model_range"]


class EquivalenceAdmin(admin.ModelAdmin):
    list_filter = ["is_active", "confidence_level", "created_by"]
    readonly_fields = ["created_at", "updated_at"]
    actions = ["activate", "deactivate"]

    def is_active_badge(self, obj):
        if obj.is_active:
            return _badge("#28a745", "Active")
        return _badge("#6c757d", "Inactive")
    is_active_badge.short_description = "Active"
    is_active_badge.admin_order_field = "is_active"

    def confidence_badge(self, obj):
        colors = {
            "high": "#28a745",
            "medium": "#ffc107",
            "low": "#dc3545",
        }
        return _badge(colors.get(obj.confidence_level, "#6c757d"), obj.confidence_level.title())
    confidence_badge.short_description = "Confidence"
    confidence_badge.admin_order_field = "confidence_level"

    @admin.action(description="Activate selected equivalences")
    def activate(self, request, queryset):
        count = queryset.update(is_active=True)
        self.message_user(request, f"Activated {count} equivalence(s).")

    @admin.action(description="Deactivate selected equivalences")
    def deactivate(self, request, queryset):
        count = queryset.update(is_active=False)
        self.message_user(request, f"Deactivated {count} equivalence(s).")


@admin.register(BrandEquivalence)
class BrandEquivalenceAdmin(EquivalenceAdmin):
    list_display = [
        "supplier_brand",
        "reference_brand",
        "confidence_badge",
        "is_active_badge",
        "created_by",
        "created_at",
    ]
    search_fields = ["supplier_brand", "reference_brand"]


@admin.register(ModelEquivalence)
class ModelEquivalenceAdmin(EquivalenceAdmin):
    list_display = [
        "supplier_brand",
        "supplier_model",
        "reference_brand",
        "reference_model",
        "confidence_badge",
        "is_active_badge",
        "created_by",
    ]
    search_fields = ["supplier_brand", "supplier_model", "reference_model"]


@admin.register(ProcessingQueue)
class ProcessingQueueAdmin(admin.ModelAdmin):
    """
    Read-only view of processing runs. State changes go through the
    worker and the recovery supervisor only.
    """

    list_display = [
        "id_short",
        "status_badge",
        "progress_display",
        "failed_count",
        "last_heartbeat",
        "created_at",
        "duration_display",
    ]
    list_filter = ["status", ("created_at", admin.DateFieldListFilter)]
    search_fields = ["id"]
    ordering = ["-created_at"]
    actions = ["run_recovery"]

    def id_short(self, obj):
        return str(obj.id)[:8]
    id_short.short_description = "Queue ID"

    def status_badge(self, obj):
        colors = {
            "pending": "#ffc107",
            "processing": "#007bff",
            "completed": "#28a745",
            "error": "#dc3545",
        }
        return _badge(colors.get(obj.status, "#6c757d"), obj.status.title())
    status_badge.short_description = "Status"
    status_badge.admin_order_field = "status"

    def progress_display(self, obj):
        return f"{obj.processed_count}/{obj.total_count} ({obj.progress_percent}%)"
    progress_display.short_description = "Progress"

    def duration_display(self, obj):
        seconds = obj.duration_seconds
        if seconds is None:
            return "-"
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            return f"{seconds / 60:.1f}m"
        return f"{seconds / 3600:.1f}h"
    duration_display.short_description = "Duration"

    @admin.action(description="Run recovery supervisor now")
    def run_recovery(self, request, queryset):
        resume_processing.delay()
        self.message_user(request, "Recovery supervisor dispatched.")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(ProcessingRecoveryLog)
class ProcessingRecoveryLogAdmin(admin.ModelAdmin):
    """Append-only audit trail."""

    list_display = ["created_at", "recovery_type", "queue", "products_remaining", "message"]
    list_filter = ["recovery_type", ("created_at", admin.DateFieldListFilter)]
    ordering = ["-created_at"]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
