import apps.negotiation.models
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="NegotiationSession",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "session_id",
                    models.CharField(
                        default=apps.negotiation.models.generate_session_id,
                        editable=False,
                        max_length=64,
                        unique=True,
                    ),
                ),
                ("sku", models.CharField(db_index=True, max_length=100)),
                ("user_id", models.CharField(db_index=True, max_length=128)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("base_price", models.DecimalField(decimal_places=2, max_digits=12)),
                ("current_round", models.PositiveSmallIntegerField(default=0)),
                ("offer_history", models.JSONField(blank=True, default=list)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("accepted", "Accepted"),
                            ("rejected", "Rejected"),
                            ("expired", "Expired"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "final_price",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=12, null=True
                    ),
                ),
                (
                    "discount_token",
                    models.CharField(blank=True, max_length=64, null=True, unique=True),
                ),
                ("discount_applied", models.BooleanField(default=False)),
                ("discount_applied_at", models.DateTimeField(blank=True, null=True)),
                ("redemption_source", models.CharField(blank=True, max_length=32)),
                ("accepted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "expires_at",
                    models.DateTimeField(blank=True, db_index=True, null=True),
                ),
                (
                    "last_offer_at",
                    models.DateTimeField(default=django.utils.timezone.now),
                ),
                ("version", models.PositiveIntegerField(default=0)),
                (
                    "initial_offer",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=12, null=True
                    ),
                ),
                (
                    "final_offer",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=12, null=True
                    ),
                ),
                (
                    "discount_given",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=12, null=True
                    ),
                ),
                (
                    "discount_pct",
                    models.DecimalField(
                        blank=True, decimal_places=2, max_digits=5, null=True
                    ),
                ),
                (
                    "time_to_decision_seconds",
                    models.PositiveIntegerField(blank=True, null=True),
                ),
                (
                    "rejected_at_round",
                    models.PositiveSmallIntegerField(blank=True, null=True),
                ),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.CharField(blank=True, max_length=255)),
                (
                    "conversion_source",
                    models.CharField(
                        choices=[
                            ("product_page", "Product Page"),
                            ("product_detail", "Product Detail"),
                            ("cart_page", "Cart Page"),
                            ("exit_intent", "Exit Intent"),
                            ("dwell_trigger", "Dwell Trigger"),
                        ],
                        default="product_page",
                        max_length=20,
                    ),
                ),
                ("language", models.CharField(default="en", max_length=5)),
            ],
            options={
                "db_table": "negotiation_sessions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "created_at"],
                        name="neg_status_created_idx",
                    ),
                    models.Index(
                        fields=["sku", "status"], name="neg_sku_status_idx"
                    ),
                    models.Index(
                        fields=["user_id", "created_at"],
                        name="neg_user_created_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status", "pending")),
                        fields=("sku", "user_id"),
                        name="unique_pending_negotiation_per_sku_user",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("final_price__isnull", True),
                            ("final_price__lte", models.F("base_price")),
                            _connector="OR",
                        ),
                        name="negotiation_final_price_lte_base_price",
                    ),
                ],
            },
        ),
    ]
