import logging

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from .models import PaymentOrder

logger = logging.getLogger(__name__)


class OrderRepository:
    """Storage operations the payment services depend on.

    ``compare_and_swap_status`` and ``settle_entitlement`` must be atomic at
    the storage layer: several stateless app instances may race on the same
    order, so no in-process lock can stand in for them.
    """

    def get(self, order_id):
        raise NotImplementedError

    def create_if_absent(self, order):
        """Insert ``order``; return ``(stored_order, created)``."""
        raise NotImplementedError

    def compare_and_swap_status(self, order_id, expected, new, **changes) -> bool:
        raise NotImplementedError

    def settle_entitlement(self, order_id, grant) -> bool:
        """Clear ``entitlement_pending`` and run ``grant(order)`` as one unit.

        Returns False when the flag was already cleared by someone else. If
        ``grant`` raises, the flag stays set and the exception propagates.
        """
        raise NotImplementedError

    def record_entitlement_failure(self, order_id, error: str) -> None:
        raise NotImplementedError

    def pending_entitlements(self, *, max_attempts: int, limit: int):
        raise NotImplementedError

    def exhausted_entitlements(self, *, max_attempts: int, limit: int):
        """Paid orders still owed coins after ``max_attempts`` failed credits."""
        raise NotImplementedError

    def stale_created(self, *, older_than, limit: int):
        raise NotImplementedError

    def for_user(self, user_id):
        raise NotImplementedError


class DjangoOrderRepository(OrderRepository):

    def get(self, order_id):
        return PaymentOrder.objects.filter(order_id=order_id).first()

    def create_if_absent(self, order):
        try:
            with transaction.atomic():
                order.save(force_insert=True)
        except IntegrityError:
            existing = self.get(order.order_id)
            if existing is None:
                raise
            return existing, False
        return order, True

    def compare_and_swap_status(self, order_id, expected, new, **changes) -> bool:
        now = timezone.now()
        changes["status"] = new
        changes["updated_at"] = now
        if new in PaymentOrder.TERMINAL:
            changes.setdefault("verified_at", now)
        # Single conditional UPDATE; the row count says who won
        updated = PaymentOrder.objects.filter(order_id=order_id, status=expected).update(**changes)
        return updated == 1

    def settle_entitlement(self, order_id, grant) -> bool:
        with transaction.atomic():
            now = timezone.now()
            claimed = PaymentOrder.objects.filter(
                order_id=order_id, status=PaymentOrder.PAID, entitlement_pending=True,
            ).update(entitlement_pending=False, entitlement_error="", entitled_at=now, updated_at=now)
            if not claimed:
                return False
            grant(PaymentOrder.objects.get(order_id=order_id))
        return True

    def record_entitlement_failure(self, order_id, error: str) -> None:
        PaymentOrder.objects.filter(order_id=order_id).update(
            entitlement_attempts=F("entitlement_attempts") + 1,
            entitlement_error=(error or "")[:2000],
            updated_at=timezone.now(),
        )

    def pending_entitlements(self, *, max_attempts: int, limit: int):
        qs = PaymentOrder.objects.filter(
            status=PaymentOrder.PAID, entitlement_pending=True, entitlement_attempts__lt=max_attempts,
        ).order_by("verified_at")
        return list(qs[:limit])

    def exhausted_entitlements(self, *, max_attempts: int, limit: int):
        qs = PaymentOrder.objects.filter(
            status=PaymentOrder.PAID, entitlement_pending=True, entitlement_attempts__gte=max_attempts,
        ).order_by("verified_at")
        return list(qs[:limit])

    def stale_created(self, *, older_than, limit: int):
        qs = PaymentOrder.objects.filter(status=PaymentOrder.CREATED, created_at__lt=older_than).order_by("created_at")
        return list(qs[:limit])

    def for_user(self, user_id):
        return PaymentOrder.objects.filter(user_id=user_id).order_by("-created_at")
