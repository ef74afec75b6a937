import time
from django.core.management.base import BaseCommand
from django.utils import timezone
from payments.config import GatewayConfig
from payments.exceptions import AlreadyProcessed, GatewayError, InvalidRequest
from payments.integrations.razorpay import RazorpayClient
from payments.repository import DjangoOrderRepository
from payments.services import payment_verification_service

class Command(BaseCommand):
    help = "Poll Razorpay for stale created orders and confirm any captured payment"

    def add_arguments(self, parser):
        parser.add_argument("--max", type=int, default=50)
        parser.add_argument("--sleep", type=float, default=0.5)
        parser.add_argument("--older-than-minutes", type=int, default=15)

    def handle(self, *args, **opts):
        cutoff = timezone.now() - timezone.timedelta(minutes=opts["older_than_minutes"])
        orders = DjangoOrderRepository().stale_created(older_than=cutoff, limit=opts["max"])

        if not orders:
            self.stdout.write(self.style.SUCCESS("No stale orders to reconcile."))
            return

        config = GatewayConfig.from_settings()
        client = RazorpayClient(config)
        service = payment_verification_service(config)
        confirmed = 0
        for o in orders:
            try:
                payments = client.fetch_order_payments(o.order_id)
                captured = next((p for p in payments if p.get("status") == "captured"), None)
                if captured is None:
                    self.stdout.write(f"{o.order_id}: no captured payment")
                else:
                    result = service.confirm_captured(
                        order_id=o.order_id,
                        payment_id=captured.get("id") or "",
                        amount=captured.get("amount"),
                        currency=captured.get("currency"),
                        source="reconcile",
                        payload=captured,
                    )
                    confirmed += 1
                    suffix = " (coins pending)" if result.entitlement_pending else ""
                    self.stdout.write(self.style.SUCCESS(f"Updated {o.order_id} -> {result.order.status}{suffix}"))
            except AlreadyProcessed as e:
                self.stdout.write(f"{o.order_id}: already {e.order.status}")
            except (GatewayError, InvalidRequest) as e:
                self.stdout.write(self.style.WARNING(f"{o.order_id}: {e}"))
            time.sleep(opts["sleep"])

        self.stdout.write(self.style.SUCCESS(f"Checked {len(orders)}, confirmed {confirmed} orders."))
