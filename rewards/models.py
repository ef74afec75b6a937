from django.conf import settings
from django.db import models


class CoinPackage(models.Model):
    """A purchasable bundle of coins, priced in paise."""

    name = models.CharField(max_length=64)
    description = models.CharField(max_length=255, blank=True, default="")
    coins = models.PositiveIntegerField()
    bonus_coins = models.PositiveIntegerField(default=0)
    price_inr = models.PositiveIntegerField(help_text="Price in paise")
    is_active = models.BooleanField(default=True)
    is_popular = models.BooleanField(default=False)
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("sort_order", "price_inr")

    @property
    def total_coins(self) -> int:
        return self.coins + self.bonus_coins

    def __str__(self):
        return f"{self.name} ({self.total_coins} coins)"


class UserRewards(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="rewards")
    coins = models.IntegerField(default=0)
    xp = models.IntegerField(default=0)
    level = models.PositiveIntegerField(default=1)
    version = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "user rewards"

    def __str__(self):
        return f"{self.user_id}: {self.coins} coins"


class CoinTransaction(models.Model):
    """Append-only ledger of balance changes."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="coin_transactions")
    delta = models.IntegerField()
    balance_after = models.IntegerField()
    reason = models.CharField(max_length=128)
    reference = models.CharField(max_length=64, blank=True, default="", db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self):
        return f"{self.user_id} {self.delta:+d} ({self.reason})"
