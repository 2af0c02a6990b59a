"""URL routes for the orders app (v1)."""

from django.urls import path

from .views import OrderDetailView, OrderListView, OrderPaymentView

app_name = "orders"

urlpatterns = [
    path("", OrderListView.as_view(), name="order-list"),
    path("<int:order_id>/", OrderDetailView.as_view(), name="order-detail"),
    path("<int:order_id>/payments/", OrderPaymentView.as_view(), name="order-payments"),
]
