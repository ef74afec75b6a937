# payments/services.py
import logging
import re
from dataclasses import dataclass

from django.conf import settings

from rewards.services import CoinLedger, PackageCatalog

from .config import GatewayConfig
from .entitlements import COIN_NOTE_KEYS, EntitlementGranter, coins_for_order
from .exceptions import AlreadyProcessed, EntitlementPending, InvalidRequest, NotFound, SignatureMismatch, Unauthorized
from .integrations.razorpay import RazorpayClient
from .models import PaymentOrder
from .repository import DjangoOrderRepository
from .utils import verify_payment_signature

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("payments.security")

CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
MAX_RECEIPT_LENGTH = 40  # Razorpay limit
MAX_NOTES = 15
MAX_NOTE_LENGTH = 256
MAX_COINS_PER_ORDER = 100000
DEFAULT_MAX_COINS_PER_RUPEE = 10


def _clean_notes(raw) -> dict:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise InvalidRequest("notes must be an object")
    notes = {}
    for key, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise InvalidRequest(f"notes.{key} must be a string")
        value = str(value)
        if len(value) > MAX_NOTE_LENGTH:
            raise InvalidRequest(f"notes.{key} is longer than {MAX_NOTE_LENGTH} characters")
        notes[str(key)] = value
    for key in COIN_NOTE_KEYS:
        if key in notes and not notes[key].isdigit():
            raise InvalidRequest(f"notes.{key} must be a non-negative integer")
    return notes


class OrderCreationService:
    """Validate a coin purchase, mint a gateway order, and persist it as ``created``."""

    def __init__(self, gateway, repository, catalog=None, max_coins_per_rupee=DEFAULT_MAX_COINS_PER_RUPEE):
        self.gateway = gateway
        self.repository = repository
        self.catalog = catalog
        self.max_coins_per_rupee = max_coins_per_rupee

    def create(self, user, *, amount, currency, receipt, notes=None) -> PaymentOrder:
        if user is None or not getattr(user, "is_authenticated", False):
            raise Unauthorized()

        required = {"amount": amount, "currency": currency, "receipt": receipt}
        missing = [k for k, v in required.items() if v is None or v == ""]
        if missing:
            raise InvalidRequest(f"Missing fields: {', '.join(missing)}")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidRequest("amount must be a positive integer in the smallest currency unit")
        currency = str(currency).strip().upper()
        if not CURRENCY_RE.match(currency):
            raise InvalidRequest("currency must be a 3-letter ISO code")
        receipt = str(receipt).strip()
        if not receipt or len(receipt) > MAX_RECEIPT_LENGTH:
            raise InvalidRequest(f"receipt must be 1-{MAX_RECEIPT_LENGTH} characters")

        notes = _clean_notes(notes)
        package = self._find_package(notes, amount, currency)
        if package is not None:
            notes["package_id"] = str(package.pk)
            notes["coins"] = str(package.coins)
            notes["bonus"] = str(package.bonus_coins)
        else:
            self._check_coin_price(notes, amount)
        notes["user_id"] = str(user.pk)
        notes["user_email"] = getattr(user, "email", "") or ""
        if len(notes) > MAX_NOTES:
            raise InvalidRequest(f"notes may hold at most {MAX_NOTES} entries")

        # GatewayError propagates untouched; nothing has been stored yet
        data = self.gateway.create_order(amount=amount, currency=currency, receipt=receipt, notes=notes)

        order = PaymentOrder(
            order_id=data["id"],
            user_id=user.pk,
            amount=amount,
            currency=currency,
            receipt=receipt,
            notes=notes,
            status=PaymentOrder.CREATED,
        )
        try:
            order, created = self.repository.create_if_absent(order)
        except Exception:
            logger.exception(
                "Gateway order %s minted but could not be stored (user=%s receipt=%s)",
                data["id"], user.pk, receipt,
            )
            raise
        if not created:
            logger.error("Gateway returned an order id we already hold: %s", data["id"])
            raise InvalidRequest("Duplicate order")

        logger.info("Created order %s for user=%s: %s %s receipt=%s", order.order_id, user.pk, amount, currency, receipt)
        return order

    def _find_package(self, notes: dict, amount: int, currency: str):
        package_id = notes.get("package_id")
        if not package_id or self.catalog is None:
            return None
        pkg = self.catalog.get_active(package_id)
        if pkg is None:
            raise InvalidRequest("Unknown or inactive package")
        if currency != "INR" or pkg.price_inr != amount:
            raise InvalidRequest("amount does not match the package price")
        return pkg

    def _check_coin_price(self, notes: dict, amount: int) -> None:
        """Bound client-priced coins: a fixed per-order cap and a coins-per-rupee rate."""
        coins = sum(int(notes.get(key) or 0) for key in COIN_NOTE_KEYS)
        if coins > MAX_COINS_PER_ORDER:
            raise InvalidRequest(f"An order may buy at most {MAX_COINS_PER_ORDER} coins")
        # amount is in paise
        if coins * 100 > amount * self.max_coins_per_rupee:
            raise InvalidRequest("coins do not match the amount paid")


@dataclass
class VerificationResult:
    order: PaymentOrder
    coins_added: int = 0
    entitlement_pending: bool = False


class PaymentVerificationService:
    """Move a ``created`` order to ``paid`` or ``failed`` exactly once.

    Client callbacks (:meth:`verify`), gateway webhooks and the reconcile
    command (:meth:`confirm_captured`) all end in the same conditional
    ``created -> paid`` write, so only one of any number of racing callers
    reaches the entitlement granter.
    """

    def __init__(self, config: GatewayConfig, repository, granter):
        self.config = config
        self.repository = repository
        self.granter = granter

    def _load(self, order_id, user=None) -> PaymentOrder:
        order = self.repository.get(order_id)
        if order is None or (user is not None and order.user_id != user.pk):
            raise NotFound()
        return order

    def verify(self, *, order_id, payment_id, signature, user=None) -> VerificationResult:
        required = {"order_id": order_id, "payment_id": payment_id, "signature": signature}
        missing = [k for k, v in required.items() if not v or not isinstance(v, str)]
        if missing:
            raise InvalidRequest(f"Missing fields: {', '.join(missing)}")
        if user is not None and not getattr(user, "is_authenticated", False):
            raise Unauthorized()

        order = self._load(order_id, user)
        if order.is_terminal:
            raise AlreadyProcessed(order)

        if not verify_payment_signature(order_id, payment_id, signature, self.config.key_secret):
            security_logger.warning(
                "Signature mismatch for order=%s payment=%s user=%s", order_id, payment_id, order.user_id,
            )
            self.repository.compare_and_swap_status(
                order_id, PaymentOrder.CREATED, PaymentOrder.FAILED,
                payment_id=payment_id, verification_source="client",
            )
            raise SignatureMismatch(order_id)

        return self._mark_paid(order_id, payment_id, source="client")

    def confirm_captured(self, *, order_id, payment_id, amount=None, currency=None, source, payload=None) -> VerificationResult:
        """Mark an order paid from an already-authenticated gateway report."""
        if not order_id or not payment_id:
            raise InvalidRequest("Missing fields: order_id, payment_id")
        order = self._load(order_id)
        if order.is_terminal:
            raise AlreadyProcessed(order)
        try:
            amount_matches = amount is None or int(amount) == order.amount
        except (TypeError, ValueError):
            amount_matches = False
        if not amount_matches or (currency and str(currency).upper() != order.currency):
            security_logger.warning(
                "Captured %s %s does not match order=%s (%s %s)", amount, currency, order_id, order.amount, order.currency,
            )
            raise InvalidRequest("Captured amount does not match the order")
        return self._mark_paid(order_id, payment_id, source=source, payload=payload)

    def _mark_paid(self, order_id, payment_id, *, source, payload=None) -> VerificationResult:
        swapped = self.repository.compare_and_swap_status(
            order_id, PaymentOrder.CREATED, PaymentOrder.PAID,
            payment_id=payment_id, verification_source=source,
            gateway_payload=payload, entitlement_pending=True,
        )
        if not swapped:
            raise AlreadyProcessed(self.repository.get(order_id))

        order = self.repository.get(order_id)
        logger.info("Order %s paid by %s (via %s)", order_id, payment_id, source)
        try:
            self.granter.grant(order)
        except EntitlementPending:
            logger.warning("Order %s is paid but its coins are pending a retry", order_id)
            return VerificationResult(order=self.repository.get(order_id), entitlement_pending=True)
        return VerificationResult(order=self.repository.get(order_id), coins_added=coins_for_order(order))


def order_creation_service(config: GatewayConfig = None) -> OrderCreationService:
    config = config or GatewayConfig.from_settings()
    return OrderCreationService(
        RazorpayClient(config), DjangoOrderRepository(), catalog=PackageCatalog(),
        max_coins_per_rupee=getattr(settings, "PAYMENTS_MAX_COINS_PER_RUPEE", DEFAULT_MAX_COINS_PER_RUPEE),
    )


def payment_verification_service(config: GatewayConfig = None) -> PaymentVerificationService:
    config = config or GatewayConfig.from_settings()
    repository = DjangoOrderRepository()
    return PaymentVerificationService(config, repository, EntitlementGranter(repository, CoinLedger()))
