import logging

from .exceptions import EntitlementPending

logger = logging.getLogger(__name__)

# Note keys whose integer values add up to the coins an order buys
COIN_NOTE_KEYS = ("coins", "bonus")


def coins_for_order(order) -> int:
    notes = order.notes or {}
    total = 0
    for key in COIN_NOTE_KEYS:
        try:
            total += int(notes.get(key) or 0)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-integer notes.%s=%r on order %s", key, notes.get(key), order.order_id)
    return total


class EntitlementGranter:
    """Credit the coins a paid order bought, at most once.

    Only the single successful ``created -> paid`` transition sets
    ``entitlement_pending``; this class consumes that flag in the same
    transaction as the credit. A failed credit leaves the flag set for
    :meth:`retry_pending` (the sweep) and raises :class:`EntitlementPending`.
    """

    def __init__(self, repository, ledger):
        self.repository = repository
        self.ledger = ledger

    def grant(self, order) -> int:
        credited = []

        def _credit(locked):
            coins = coins_for_order(locked)
            if coins > 0:
                self.ledger.credit(
                    locked.user_id, coins,
                    reason=f"Payment: {locked.payment_id}",
                    reference=locked.order_id,
                )
            else:
                logger.warning("Paid order %s carries no coins to credit", locked.order_id)
            credited.append(coins)

        try:
            settled = self.repository.settle_entitlement(order.order_id, _credit)
        except Exception as e:
            logger.exception("Coin credit failed for order=%s; leaving it pending", order.order_id)
            self.repository.record_entitlement_failure(order.order_id, str(e) or e.__class__.__name__)
            raise EntitlementPending(order.order_id) from e

        if not settled:
            logger.info("Entitlement for order=%s was already settled", order.order_id)
            return 0
        return credited[0]

    def retry_pending(self, *, max_attempts: int, limit: int = 100):
        """Yield ``(order, coins_or_None)`` for each pending order retried."""
        for order in self.repository.pending_entitlements(max_attempts=max_attempts, limit=limit):
            try:
                yield order, self.grant(order)
            except EntitlementPending:
                if order.entitlement_attempts + 1 >= max_attempts:
                    logger.error(
                        "Order %s is paid but coin credit failed %s times; the sweep stops retrying it",
                        order.order_id, order.entitlement_attempts + 1,
                    )
                yield order, None

    def exhausted(self, *, max_attempts: int, limit: int = 100):
        """Paid orders the sweep no longer retries; each one needs a manual credit."""
        orders = self.repository.exhausted_entitlements(max_attempts=max_attempts, limit=limit)
        for order in orders:
            logger.error(
                "Order %s still owes %s coins after %s failed credits: %s",
                order.order_id, coins_for_order(order), order.entitlement_attempts, order.entitlement_error,
            )
        return orders
