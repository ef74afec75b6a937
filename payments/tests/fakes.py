import copy
import threading
from types import SimpleNamespace

from django.utils import timezone

from payments.exceptions import GatewayError
from payments.models import PaymentOrder
from payments.repository import OrderRepository


class InMemoryOrderRepository(OrderRepository):
    """Order store with the same compare-and-swap contract as the ORM one."""

    def __init__(self):
        self._orders = {}
        self._lock = threading.RLock()

    def get(self, order_id):
        with self._lock:
            order = self._orders.get(order_id)
            return copy.deepcopy(order) if order else None

    def create_if_absent(self, order):
        with self._lock:
            if order.order_id in self._orders:
                return self.get(order.order_id), False
            self._orders[order.order_id] = copy.deepcopy(order)
            return order, True

    def compare_and_swap_status(self, order_id, expected, new, **changes) -> bool:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None or order.status != expected:
                return False
            now = timezone.now()
            changes["status"] = new
            if new in PaymentOrder.TERMINAL:
                changes.setdefault("verified_at", now)
            for field, value in changes.items():
                setattr(order, field, value)
            return True

    def settle_entitlement(self, order_id, grant) -> bool:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None or order.status != PaymentOrder.PAID or not order.entitlement_pending:
                return False
            order.entitlement_pending = False
            try:
                grant(copy.deepcopy(order))
            except Exception:
                order.entitlement_pending = True
                raise
            order.entitled_at = timezone.now()
            return True

    def record_entitlement_failure(self, order_id, error: str) -> None:
        with self._lock:
            order = self._orders[order_id]
            order.entitlement_attempts += 1
            order.entitlement_error = error

    def pending_entitlements(self, *, max_attempts: int, limit: int):
        with self._lock:
            return [
                copy.deepcopy(o) for o in self._orders.values()
                if o.status == PaymentOrder.PAID and o.entitlement_pending and o.entitlement_attempts < max_attempts
            ][:limit]

    def exhausted_entitlements(self, *, max_attempts: int, limit: int):
        with self._lock:
            return [
                copy.deepcopy(o) for o in self._orders.values()
                if o.status == PaymentOrder.PAID and o.entitlement_pending and o.entitlement_attempts >= max_attempts
            ][:limit]

    def stale_created(self, *, older_than, limit: int):
        with self._lock:
            return [
                copy.deepcopy(o) for o in self._orders.values()
                if o.status == PaymentOrder.CREATED and o.created_at < older_than
            ][:limit]

    def for_user(self, user_id):
        with self._lock:
            return [copy.deepcopy(o) for o in self._orders.values() if o.user_id == user_id]


class FakeGateway:
    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self._counter = 0

    def create_order(self, *, amount, currency, receipt, notes):
        self.calls.append({"amount": amount, "currency": currency, "receipt": receipt, "notes": dict(notes)})
        if self.error:
            raise self.error
        self._counter += 1
        return {
            "id": f"order_TEST{self._counter:04d}",
            "entity": "order",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "status": "created",
            "notes": notes,
        }


class FakeLedger:
    def __init__(self, fail_times=0):
        self.fail_times = fail_times
        self.credits = []
        self._lock = threading.Lock()

    def credit(self, user_id, coins, *, reason, reference=""):
        with self._lock:
            if self.fail_times:
                self.fail_times -= 1
                raise RuntimeError("balance store unavailable")
            self.credits.append((user_id, coins, reference))
            return sum(c for u, c, _ in self.credits if u == user_id)


class FakeCatalog:
    def __init__(self, *packages):
        self.packages = {p.pk: p for p in packages}

    def get_active(self, package_id):
        try:
            pkg = self.packages.get(int(package_id))
        except (TypeError, ValueError):
            return None
        return pkg if pkg and pkg.is_active else None


def fake_user(pk=1, email="player@example.com", authenticated=True):
    return SimpleNamespace(pk=pk, email=email, is_authenticated=authenticated)


def fake_package(pk=1, coins=100, bonus_coins=10, price_inr=50000, is_active=True):
    return SimpleNamespace(pk=pk, coins=coins, bonus_coins=bonus_coins, price_inr=price_inr, is_active=is_active)


GATEWAY_DOWN = GatewayError("Payment gateway timed out", status_code=504)
