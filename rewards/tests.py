from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from .models import CoinPackage, CoinTransaction, UserRewards
from .services import RewardsError, add_coins, get_balance

User = get_user_model()


class AddCoinsTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user("yudhishthir", password="pw")

    def test_first_credit_creates_balance_and_ledger_row(self):
        self.assertEqual(get_balance(self.user.pk), 0)
        self.assertEqual(add_coins(self.user.pk, 120, reason="Payment: pay_1", reference="order_1"), 120)
        self.assertEqual(add_coins(self.user.pk, 30, reason="Payment: pay_2", reference="order_2"), 150)

        rewards = UserRewards.objects.get(user=self.user)
        self.assertEqual(rewards.coins, 150)
        self.assertEqual(rewards.version, 2)
        rows = list(CoinTransaction.objects.order_by("id").values_list("delta", "balance_after", "reference"))
        self.assertEqual(rows, [(120, 120, "order_1"), (30, 150, "order_2")])

    def test_rejects_non_positive_amount(self):
        with self.assertRaises(RewardsError):
            add_coins(self.user.pk, 0, reason="nothing")
        self.assertFalse(CoinTransaction.objects.exists())


class RewardsViewTests(TestCase):
    def test_packages_lists_active_only(self):
        CoinPackage.objects.create(name="Big", coins=1000, bonus_coins=200, price_inr=400000, sort_order=2)
        CoinPackage.objects.create(name="Starter", coins=100, price_inr=50000, sort_order=1, is_popular=True)
        CoinPackage.objects.create(name="Retired", coins=50, price_inr=30000, is_active=False)

        resp = self.client.get(reverse("rewards:packages"))
        self.assertEqual(resp.status_code, 200)
        packages = resp.json()["packages"]
        self.assertEqual([p["name"] for p in packages], ["Starter", "Big"])
        self.assertEqual(packages[1]["total_coins"], 1200)

    def test_balance_requires_login(self):
        self.assertEqual(self.client.get(reverse("rewards:balance")).status_code, 401)

        user = User.objects.create_user("kunti", password="pw")
        add_coins(user.pk, 40, reason="test")
        self.client.force_login(user)
        resp = self.client.get(reverse("rewards:balance"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": True, "coins": 40})
