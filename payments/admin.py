from django.contrib import admin
from .models import PaymentOrder

@admin.register(PaymentOrder)
class PaymentOrderAdmin(admin.ModelAdmin):
    list_display = ("order_id", "status", "amount", "currency", "user", "entitlement_pending", "created_at", "verified_at")
    search_fields = ("order_id", "payment_id", "receipt", "user__username", "user__email")
    list_filter = ("status", "currency", "entitlement_pending", "verification_source", "created_at")
    ordering = ("-created_at",)

    # Orders are an audit trail: every state change goes through the payment services
    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
