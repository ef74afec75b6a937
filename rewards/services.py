import logging

from django.db import transaction
from django.db.models import F

from .models import CoinPackage, CoinTransaction, UserRewards

logger = logging.getLogger(__name__)


class RewardsError(Exception): pass


@transaction.atomic
def add_coins(user_id, coins: int, *, reason: str, reference: str = "") -> int:
    """Credit ``coins`` to the user's balance and append a ledger row.

    The balance is changed with a single ``F()`` UPDATE so concurrent credits
    for the same user never lose an increment. Returns the new balance.
    """
    if coins <= 0:
        raise RewardsError(f"Cannot credit a non-positive amount: {coins}")
    UserRewards.objects.get_or_create(user_id=user_id)
    UserRewards.objects.filter(user_id=user_id).update(
        coins=F("coins") + coins,
        version=F("version") + 1,
    )
    balance = UserRewards.objects.values_list("coins", flat=True).get(user_id=user_id)
    CoinTransaction.objects.create(
        user_id=user_id,
        delta=coins,
        balance_after=balance,
        reason=reason[:128],
        reference=reference[:64],
    )
    logger.info("Credited %s coins to user=%s (%s); balance=%s", coins, user_id, reason, balance)
    return balance


def get_balance(user_id) -> int:
    return UserRewards.objects.filter(user_id=user_id).values_list("coins", flat=True).first() or 0


class CoinLedger:
    """Balance store handed to the payments entitlement granter."""

    def credit(self, user_id, coins: int, *, reason: str, reference: str = "") -> int:
        return add_coins(user_id, coins, reason=reason, reference=reference)


class PackageCatalog:
    def get_active(self, package_id):
        try:
            pk = int(package_id)
        except (TypeError, ValueError):
            return None
        return CoinPackage.objects.filter(pk=pk, is_active=True).first()

    def list_active(self):
        return list(CoinPackage.objects.filter(is_active=True))
