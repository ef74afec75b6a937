from django.urls import path
from . import views
app_name = "rewards"
urlpatterns = [
    path("packages", views.packages_view, name="packages"),
    path("balance", views.balance_view, name="balance"),
]
