import secrets

from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from apps.core.models import BaseModel


def generate_session_id():
    return secrets.token_hex(16)


class NegotiationSession(BaseModel):
    """
    One shopper's negotiation over one SKU.

    Round/history updates and the discount redemption flag are written with
    conditional ``UPDATE`` statements in the services, never by mutating and
    saving a loaded instance.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        ACCEPTED = "accepted", "Accepted"
        REJECTED = "rejected", "Rejected"
        EXPIRED = "expired", "Expired"

    class ConversionSource(models.TextChoices):
        PRODUCT_PAGE = "product_page", "Product Page"
        PRODUCT_DETAIL = "product_detail", "Product Detail"
        CART_PAGE = "cart_page", "Cart Page"
        EXIT_INTENT = "exit_intent", "Exit Intent"
        DWELL_TRIGGER = "dwell_trigger", "Dwell Trigger"

    TERMINAL_STATUSES = (Status.ACCEPTED, Status.REJECTED, Status.EXPIRED)

    session_id = models.CharField(
        max_length=64, unique=True, default=generate_session_id, editable=False
    )
    sku = models.CharField(max_length=100, db_index=True)
    # Authenticated user id or anonymous device identifier
    user_id = models.CharField(max_length=128, db_index=True)
    quantity = models.PositiveIntegerField(default=1)

    base_price = models.DecimalField(max_digits=12, decimal_places=2)
    current_round = models.PositiveSmallIntegerField(default=0)
    offer_history = models.JSONField(default=list, blank=True)

    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True
    )
    final_price = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )

    discount_token = models.CharField(max_length=64, unique=True, null=True, blank=True)
    discount_applied = models.BooleanField(default=False)
    discount_applied_at = models.DateTimeField(null=True, blank=True)
    redemption_source = models.CharField(max_length=32, blank=True)

    accepted_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True, db_index=True)
    last_offer_at = models.DateTimeField(default=timezone.now)

    # Optimistic concurrency counter, bumped on every offer write
    version = models.PositiveIntegerField(default=0)

    # Analytics
    initial_offer = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    final_offer = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    discount_given = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    discount_pct = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True
    )
    time_to_decision_seconds = models.PositiveIntegerField(null=True, blank=True)
    rejected_at_round = models.PositiveSmallIntegerField(null=True, blank=True)

    # Request metadata
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)
    conversion_source = models.CharField(
        max_length=20,
        choices=ConversionSource.choices,
        default=ConversionSource.PRODUCT_PAGE,
    )
    language = models.CharField(max_length=5, default="en")
    # Risk flags raised when the session was opened
    fraud_flags = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "negotiation_sessions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="neg_status_created_idx"),
            models.Index(fields=["sku", "status"], name="neg_sku_status_idx"),
            models.Index(fields=["user_id", "created_at"], name="neg_user_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["sku", "user_id"],
                condition=Q(status="pending"),
                name="unique_pending_negotiation_per_sku_user",
            ),
            models.CheckConstraint(
                condition=Q(final_price__isnull=True)
                | Q(final_price__lte=F("base_price")),
                name="negotiation_final_price_lte_base_price",
            ),
        ]

    def __str__(self):
        return f"Negotiation {self.session_id} - {self.sku} ({self.status})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def is_expired(self, now=None):
        now = now or timezone.now()
        if self.status == self.Status.EXPIRED:
            return True
        return bool(self.expires_at and now > self.expires_at)

    @property
    def discount_code(self):
        if not self.discount_token:
            return None
        return f"NEGO-{self.discount_token[:8].upper()}"

    @property
    def discount_amount(self):
        if self.final_price is None:
            return None
        return self.base_price - self.final_price

    @property
    def negotiated_discount_pct(self):
        if self.final_price is None or not self.base_price:
            return None
        return (self.base_price - self.final_price) / self.base_price * 100
