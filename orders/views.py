"""Orders API endpoints: list, detail and payment recording."""

from common.api import error_response
from common.exceptions import StoreError
from django.http import Http404
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import generics
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Order
from .selectors import orders_for_user
from .serializers import OrderSerializer, PaymentSerializer, RecordPaymentSerializer
from .services import record_payment

ErrorSerializer = inline_serializer(
    name="OrderError",
    fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField()},
)


class DefaultPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"


class OrderListView(generics.ListAPIView):
    """List the authenticated user's orders.

    Filters:
    - `number`: order number, case-insensitive
    - `start`: ISO date/time string; filters `created_at >= start`
    - `end`: ISO date/time string; filters `created_at <= end`
    """

    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = DefaultPagination
    throttle_scope = "orders"

    def get_queryset(self):
        qs = orders_for_user(self.request.user.id)
        number = self.request.query_params.get("number")
        if number:
            qs = qs.filter(number__iexact=number.strip())
        start = self.request.query_params.get("start")
        if start:
            qs = qs.filter(created_at__gte=start)
        end = self.request.query_params.get("end")
        if end:
            qs = qs.filter(created_at__lte=end)
        return qs

    @extend_schema(
        tags=["Orders"],
        summary="List orders",
        description="List current user's orders with optional filters and pagination.",
        parameters=[
            OpenApiParameter(name="number", description="Order number (case-insensitive)", required=False, type=str),
            OpenApiParameter(name="start", description="Created at >= start (ISO)", required=False, type=str),
            OpenApiParameter(name="end", description="Created at <= end (ISO)", required=False, type=str),
            OpenApiParameter(name="page", description="Page number", required=False, type=int),
            OpenApiParameter(name="page_size", description="Items per page", required=False, type=int),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderDetailView(generics.RetrieveAPIView):
    """Retrieve a single order owned by the authenticated user."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders"
    serializer_class = OrderSerializer

    def get_queryset(self):
        return orders_for_user(self.request.user.id)

    def get_object(self):
        try:
            return self.get_queryset().get(id=int(self.kwargs["order_id"]))
        except (Order.DoesNotExist, ValueError):
            raise Http404("Not found.")

    @extend_schema(
        tags=["Orders"],
        summary="Get order detail",
        examples=[
            OpenApiExample(
                "Order",
                value={
                    "id": 123,
                    "number": "ORD-20250101-004211",
                    "created_at": "2025-01-01T12:00:00Z",
                    "shipping_address": 7,
                    "billing_address": 7,
                    "items": [
                        {
                            "id": 10,
                            "product": 555,
                            "product_name": "Denim Jacket",
                            "product_sku": "JCK-001",
                            "quantity": 2,
                            "unit_price": "75.00",
                            "line_total": "150.00",
                        }
                    ],
                    "subtotal": "150.00",
                    "tax": "28.50",
                    "shipping_cost": "0.00",
                    "total": "178.50",
                    "payments": [],
                    "amount_paid": "0.00",
                    "is_paid": False,
                },
            )
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderPaymentView(APIView):
    """Record a payment outcome for an order owned by the authenticated user."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Record payment",
        description="Appends a payment record. `paid_at` is set when the status is `completed`.",
        request=RecordPaymentSerializer,
        responses={201: PaymentSerializer, 400: ErrorSerializer, 404: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Card payment",
                value={"amount": "178.50", "method": "card", "status": "completed", "provider_reference": "ch_123"},
                request_only=True,
            )
        ],
    )
    def post(self, request, order_id: int):
        if not Order.objects.filter(pk=order_id, user_id=request.user.id).exists():
            raise Http404
        serializer = RecordPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            payment = record_payment(order_id=order_id, **serializer.validated_data)
        except StoreError as exc:
            return error_response(exc)
        return Response(PaymentSerializer(payment).data, status=status.HTTP_201_CREATED)
