from django.contrib import admin
from .models import CoinPackage, CoinTransaction, UserRewards


@admin.register(CoinPackage)
class CoinPackageAdmin(admin.ModelAdmin):
    list_display = ("name", "coins", "bonus_coins", "price_inr", "is_active", "is_popular", "sort_order")
    list_filter = ("is_active", "is_popular")
    list_editable = ("is_active", "is_popular", "sort_order")
    search_fields = ("name",)


@admin.register(UserRewards)
class UserRewardsAdmin(admin.ModelAdmin):
    list_display = ("user", "coins", "xp", "level", "version", "updated_at")
    search_fields = ("user__username", "user__email")
    raw_id_fields = ("user",)
    readonly_fields = ("version", "created_at", "updated_at")


@admin.register(CoinTransaction)
class CoinTransactionAdmin(admin.ModelAdmin):
    list_display = ("user", "delta", "balance_after", "reason", "reference", "created_at")
    search_fields = ("user__username", "reference", "reason")
    list_filter = ("created_at",)
    readonly_fields = ("user", "delta", "balance_after", "reason", "reference", "created_at")

    def has_delete_permission(self, request, obj=None):
        return False
