from django.conf import settings
from django.db import models
from django.utils import timezone


class PaymentOrder(models.Model):
    CREATED = "created"
    PAID = "paid"
    FAILED = "failed"
    STATUS = [(CREATED, "Created"), (PAID, "Paid"), (FAILED, "Failed")]
    TERMINAL = (PAID, FAILED)

    order_id = models.CharField(max_length=64, unique=True)  # gateway-issued
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="payment_orders")
    amount = models.PositiveIntegerField(help_text="Smallest currency unit (paise)")
    currency = models.CharField(max_length=3, default="INR")
    receipt = models.CharField(max_length=40)
    notes = models.JSONField(default=dict, blank=True)

    status = models.CharField(max_length=12, choices=STATUS, default=CREATED, db_index=True)
    payment_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    verification_source = models.CharField(max_length=16, blank=True, default="")
    gateway_payload = models.JSONField(blank=True, null=True)

    entitlement_pending = models.BooleanField(default=False, db_index=True)
    entitlement_attempts = models.PositiveIntegerField(default=0)
    entitlement_error = models.TextField(blank=True, default="")
    entitled_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(default=timezone.now)
    verified_at = models.DateTimeField(blank=True, null=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [models.Index(fields=["user", "-created_at"], name="payments_user_created_idx")]

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL

    @property
    def is_paid(self) -> bool:
        return self.status == self.PAID

    def summary(self) -> dict:
        """Client-safe view of the order; never includes notes."""
        return {
            "id": self.order_id,
            "amount": self.amount,
            "currency": self.currency,
            "receipt": self.receipt,
        }

    def __str__(self):
        return f"{self.order_id} ({self.status})"
