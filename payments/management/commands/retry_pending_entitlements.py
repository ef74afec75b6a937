from django.conf import settings
from django.core.management.base import BaseCommand

from payments.entitlements import EntitlementGranter
from payments.repository import DjangoOrderRepository
from rewards.services import CoinLedger


class Command(BaseCommand):
    help = "Retry coin credits for paid orders whose entitlement is still pending"

    def add_arguments(self, parser):
        parser.add_argument("--max", type=int, default=100, help="Max orders to process")
        parser.add_argument(
            "--max-attempts", type=int, default=None,
            help="Skip orders that already failed this many times (default: PAYMENTS_MAX_ENTITLEMENT_ATTEMPTS)",
        )

    def handle(self, *args, **opts):
        max_attempts = opts["max_attempts"] or getattr(settings, "PAYMENTS_MAX_ENTITLEMENT_ATTEMPTS", 10)
        repository = DjangoOrderRepository()
        granter = EntitlementGranter(repository, CoinLedger())

        cnt = 0
        ok = 0
        for order, coins in granter.retry_pending(max_attempts=max_attempts, limit=opts["max"]):
            cnt += 1
            if coins is None:
                self.stdout.write(self.style.WARNING(f"{order.order_id}: credit failed, still pending"))
            else:
                ok += 1
                self.stdout.write(self.style.SUCCESS(f"{order.order_id}: credited {coins} coins"))

        # Listed on every run until someone credits them by hand
        for order in granter.exhausted(max_attempts=max_attempts, limit=opts["max"]):
            self.stdout.write(self.style.ERROR(
                f"{order.order_id}: gave up after {order.entitlement_attempts} attempts, needs a manual credit"
            ))

        if not cnt:
            self.stdout.write(self.style.SUCCESS("No pending entitlements."))
            return
        self.stdout.write(self.style.SUCCESS(f"Checked {cnt}, settled {ok} orders."))
