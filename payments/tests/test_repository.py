from django.contrib.auth import get_user_model
from django.test import TestCase

from payments.models import PaymentOrder
from payments.repository import DjangoOrderRepository

User = get_user_model()


class DjangoOrderRepositoryTests(TestCase):
    def setUp(self):
        self.repo = DjangoOrderRepository()
        self.user = User.objects.create_user("karna", password="pw")

    def _order(self, order_id="order_D1", **kwargs):
        fields = dict(order_id=order_id, user=self.user, amount=1000, currency="INR", receipt="r1", notes={"coins": "5"})
        fields.update(kwargs)
        return PaymentOrder(**fields)

    def test_create_if_absent_keeps_first_record(self):
        stored, created = self.repo.create_if_absent(self._order())
        self.assertTrue(created)

        again, created = self.repo.create_if_absent(self._order(amount=9999))
        self.assertFalse(created)
        self.assertEqual(again.pk, stored.pk)
        self.assertEqual(PaymentOrder.objects.get().amount, 1000)

    def test_compare_and_swap_applies_once(self):
        self.repo.create_if_absent(self._order())

        self.assertTrue(self.repo.compare_and_swap_status(
            "order_D1", PaymentOrder.CREATED, PaymentOrder.PAID, payment_id="pay_1",
        ))
        first = self.repo.get("order_D1")
        self.assertEqual(first.status, PaymentOrder.PAID)
        self.assertIsNotNone(first.verified_at)

        self.assertFalse(self.repo.compare_and_swap_status(
            "order_D1", PaymentOrder.CREATED, PaymentOrder.FAILED, payment_id="pay_2",
        ))
        second = self.repo.get("order_D1")
        self.assertEqual(second.status, PaymentOrder.PAID)
        self.assertEqual(second.payment_id, "pay_1")
        self.assertEqual(second.verified_at, first.verified_at)

    def test_compare_and_swap_on_missing_order(self):
        self.assertFalse(self.repo.compare_and_swap_status("order_none", PaymentOrder.CREATED, PaymentOrder.PAID))

    def test_settle_entitlement_rolls_back_on_failure(self):
        self.repo.create_if_absent(self._order(status=PaymentOrder.PAID, entitlement_pending=True))

        def boom(order):
            raise RuntimeError("ledger offline")

        with self.assertRaises(RuntimeError):
            self.repo.settle_entitlement("order_D1", boom)
        order = self.repo.get("order_D1")
        self.assertTrue(order.entitlement_pending)
        self.assertIsNone(order.entitled_at)

        seen = []
        self.assertTrue(self.repo.settle_entitlement("order_D1", seen.append))
        self.assertEqual([o.order_id for o in seen], ["order_D1"])
        self.assertFalse(self.repo.settle_entitlement("order_D1", seen.append))
        self.assertEqual(len(seen), 1)

    def test_settle_requires_paid_order(self):
        self.repo.create_if_absent(self._order(entitlement_pending=True))
        self.assertFalse(self.repo.settle_entitlement("order_D1", lambda o: None))

    def test_record_entitlement_failure(self):
        self.repo.create_if_absent(self._order(status=PaymentOrder.PAID, entitlement_pending=True))
        self.repo.record_entitlement_failure("order_D1", "timeout")
        self.repo.record_entitlement_failure("order_D1", "timeout again")
        order = self.repo.get("order_D1")
        self.assertEqual(order.entitlement_attempts, 2)
        self.assertEqual(order.entitlement_error, "timeout again")
        self.assertEqual(
            [o.order_id for o in self.repo.pending_entitlements(max_attempts=3, limit=10)], ["order_D1"],
        )
        self.assertEqual(self.repo.pending_entitlements(max_attempts=2, limit=10), [])
        self.assertEqual(
            [o.order_id for o in self.repo.exhausted_entitlements(max_attempts=2, limit=10)], ["order_D1"],
        )
        self.assertEqual(self.repo.exhausted_entitlements(max_attempts=3, limit=10), [])
