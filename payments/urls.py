from django.urls import path
from . import views
app_name = "payments"
urlpatterns = [
    path("orders", views.orders_view, name="orders"),
    path("orders/<str:order_id>", views.order_status_view, name="order_status"),
    path("verify", views.verify_payment_view, name="verify_payment"),
    path("webhook", views.razorpay_webhook, name="razorpay_webhook"),
]
