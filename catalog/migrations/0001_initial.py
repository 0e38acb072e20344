import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("sku", models.CharField(max_length=100, unique=True)),
                ("description", models.TextField()),
                ("category", models.CharField(blank=True, max_length=100, null=True)),
                ("stock", models.IntegerField(default=0)),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("has_image", models.BooleanField(default=False)),
                ("raw_data", models.JSONField(blank=True, default=dict)),
                ("part_type", models.CharField(blank=True, help_text="Part type (articulo)", max_length=100, null=True)),
                ("vehicle_brand", models.CharField(blank=True, help_text="Vehicle brand (marca)", max_length=100, null=True)),
                ("vehicle_model", models.CharField(blank=True, help_text="Vehicle model (modelo)", max_length=100, null=True)),
                ("year_from", models.CharField(blank=True, help_text="Validity start, YYYY or YYYY.MM", max_length=7, null=True)),
                ("year_to", models.CharField(blank=True, help_text="Validity end, YYYY or YYYY.MM", max_length=7, null=True)),
                ("translated_title", models.TextField(blank=True, null=True)),
                ("bullet_points", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "catalog_products",
                "ordering": ["id"],
                "indexes": [
                    models.Index(fields=["vehicle_brand", "vehicle_model"], name="catalog_pro_vehicle_3f6c1e_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="VehicleCompatibility",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("sku", models.CharField(db_index=True, max_length=100)),
                ("vehicle_brand", models.CharField(max_length=100)),
                ("vehicle_model", models.CharField(max_length=100)),
                ("year_from", models.CharField(blank=True, max_length=7, null=True)),
                ("year_to", models.CharField(blank=True, max_length=7, null=True)),
                ("oem_reference", models.CharField(blank=True, max_length=100, null=True)),
                ("alkar_reference", models.CharField(blank=True, max_length=100, null=True)),
                ("jumasa_reference", models.CharField(blank=True, max_length=100, null=True)),
                ("geimex_reference", models.CharField(blank=True, max_length=100, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "db_table": "catalog_vehicle_compatibility",
                "ordering": ["sku", "created_at", "id"],
                "verbose_name_plural": "Vehicle compatibilities",
            },
        ),
        migrations.CreateModel(
            name="VehicleGeneration",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("brand", models.CharField(help_text="Reference brand (marca)", max_length=100)),
                ("model_range", models.CharField(help_text="Model range (gama)", max_length=100)),
                ("year_from", models.CharField(help_text="Start period, YYYY or YYYY.MM", max_length=7)),
                ("year_to", models.CharField(blank=True, max_length=7, null=True)),
                ("brand_ref_id", models.IntegerField(blank=True, null=True)),
                ("range_ref_id", models.IntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "catalog_vehicle_generations",
                "ordering": ["brand", "model_range", "year_from"],
                "indexes": [
                    models.Index(fields=["brand", "model_range"], name="catalog_veh_brand_8d2a41_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BrandEquivalence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("confidence_level", models.CharField(choices=[("high", "High"), ("medium", "Medium"), ("low", "Low")], default="low", max_length=10)),
                ("is_active", models.BooleanField(default=False)),
                ("created_by", models.CharField(choices=[("manual", "Manual"), ("auto", "Automatic")], default="manual", max_length=10)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("supplier_brand", models.CharField(max_length=100)),
                ("reference_brand", models.CharField(max_length=100)),
            ],
            options={
                "db_table": "catalog_brand_equivalences",
                "ordering": ["supplier_brand", "reference_brand"],
                "constraints": [
                    models.UniqueConstraint(fields=("supplier_brand", "reference_brand"), name="unique_brand_equivalence"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ModelEquivalence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("confidence_level", models.CharField(choices=[("high", "High"), ("medium", "Medium"), ("low", "Low")], default="low", max_length=10)),
                ("is_active", models.BooleanField(default=False)),
                ("created_by", models.CharField(choices=[("manual", "Manual"), ("auto", "Automatic")], default="manual", max_length=10)),
                ("notes", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("supplier_brand", models.CharField(max_length=100)),
                ("supplier_model", models.CharField(max_length=100)),
                ("reference_brand", models.CharField(max_length=100)),
                ("reference_model", models.CharField(max_length=100)),
            ],
            options={
                "db_table": "catalog_model_equivalences",
                "ordering": ["supplier_brand", "supplier_model"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("supplier_brand", "supplier_model", "reference_brand", "reference_model"),
                        name="unique_model_equivalence",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProcessingQueue",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("processing", "Processing"), ("completed", "Completed"), ("error", "Error")], default="pending", max_length=20)),
                ("batch_size", models.IntegerField(default=25)),
                ("total_count", models.IntegerField(default=0)),
                ("processed_count", models.IntegerField(default=0)),
                ("failed_count", models.IntegerField(default=0)),
                ("last_product_id", models.BigIntegerField(blank=True, help_text="Cursor: id of the last product attempted", null=True)),
                ("claim_token", models.UUIDField(blank=True, editable=False, null=True)),
                ("last_heartbeat", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "catalog_processing_queue",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="catalog_pro_status_5b7e92_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProcessingRecoveryLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("recovery_type", models.CharField(choices=[("stalled_job_detected", "Stalled job detected"), ("pending_queue_resumed", "Pending queue resumed"), ("new_batch_created", "New batch created")], max_length=40)),
                ("products_remaining", models.IntegerField(blank=True, null=True)),
                ("message", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("queue", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="recovery_logs", to="catalog.processingqueue")),
            ],
            options={
                "db_table": "catalog_processing_recovery_log",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["recovery_type", "created_at"], name="catalog_pro_recover_c41d07_idx"),
                ],
            },
        ),
    ]
