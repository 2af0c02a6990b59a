"""DRF views for cart operations.

User endpoints act on the authenticated user's OPEN cart; guest endpoints
act on the OPEN cart of the `X-Session-Id` header. Domain errors are
rendered by `common.api.error_response`.
"""

from common.api import error_response
from common.exceptions import StoreError
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from orders.serializers import OrderSerializer
from orders.services import checkout
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .selectors import find_open_cart_for_session, get_open_cart_for_session, get_open_cart_for_user
from .serializers import AddItemSerializer, CartReadSerializer, CheckoutSerializer, UpdateItemQuantitySerializer
from .services import add_item, clear_cart, merge_guest_cart_to_user_cart, remove_item, update_item_quantity

ErrorSerializer = inline_serializer(
    name="CartError",
    fields={"detail": rf_serializers.CharField(), "code": rf_serializers.CharField()},
)

SESSION_HEADER = OpenApiParameter(
    name="X-Session-Id",
    location=OpenApiParameter.HEADER,
    required=True,
    description="Guest session identifier",
    type=str,
)

MISSING_SESSION = {"detail": "Missing X-Session-Id.", "code": "validation_failed"}


class UserCartMixin:
    """Resolve the authenticated user's open cart."""

    permission_classes = [IsAuthenticated]

    def missing_session(self, request) -> bool:
        return False

    def resolve_cart(self, request):
        return get_open_cart_for_user(user_id=request.user.id)


class GuestCartMixin:
    """Resolve the open cart of the `X-Session-Id` guest session."""

    permission_classes = [AllowAny]

    def missing_session(self, request) -> bool:
        return not request.headers.get("X-Session-Id")

    def resolve_cart(self, request):
        return get_open_cart_for_session(session_id=request.headers["X-Session-Id"])


class CartDetailView(UserCartMixin, APIView):
    """Return the cart with its lines and totals."""

    throttle_scope = "cart"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Get open cart",
        examples=[
            OpenApiExample(
                "Cart",
                value={
                    "id": 1,
                    "status": "open",
                    "session_id": None,
                    "items": [
                        {
                            "id": 10,
                            "product_id": 100,
                            "product_name": "Denim Jacket",
                            "quantity": 2,
                            "unit_price": "10.00",
                            "line_total": "20.00",
                            "added_at": "2025-01-01T12:00:00Z",
                        }
                    ],
                    "item_count": 2,
                    "subtotal": "20.00",
                    "total": "20.00",
                },
            )
        ],
    )
    def get(self, request):
        if self.missing_session(request):
            return Response(MISSING_SESSION, status=status.HTTP_400_BAD_REQUEST)
        try:
            cart = self.resolve_cart(request)
        except StoreError as exc:
            return error_response(exc)
        return Response(CartReadSerializer.from_cart(cart=cart).data, status=status.HTTP_200_OK)


class CartAddItemView(UserCartMixin, APIView):
    """Add a product to the cart, summing into an existing line."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Add item to cart",
        request=AddItemSerializer,
        responses={
            201: inline_serializer(
                name="CartItemCreatedResponse",
                fields={"id": rf_serializers.IntegerField(), "quantity": rf_serializers.IntegerField()},
            ),
            400: ErrorSerializer,
            404: ErrorSerializer,
            409: ErrorSerializer,
        },
        examples=[OpenApiExample("Added", value={"id": 10, "quantity": 2}, response_only=True)],
    )
    def post(self, request):
        if self.missing_session(request):
            return Response(MISSING_SESSION, status=status.HTTP_400_BAD_REQUEST)
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            cart = self.resolve_cart(request)
            item = add_item(cart_id=cart.id, **serializer.validated_data)
        except StoreError as exc:
            return error_response(exc)
        return Response({"id": item.id, "quantity": item.quantity}, status=status.HTTP_201_CREATED)


class CartItemUpdateView(UserCartMixin, APIView):
    """Replace the quantity of a cart line."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Update cart item quantity",
        request=UpdateItemQuantitySerializer,
        responses={
            200: inline_serializer(
                name="CartItemUpdatedResponse",
                fields={"id": rf_serializers.IntegerField(), "quantity": rf_serializers.IntegerField()},
            ),
            400: ErrorSerializer,
            409: ErrorSerializer,
        },
    )
    def patch(self, request, product_id: int):
        if self.missing_session(request):
            return Response(MISSING_SESSION, status=status.HTTP_400_BAD_REQUEST)
        serializer = UpdateItemQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            cart = self.resolve_cart(request)
            item = update_item_quantity(
                cart_id=cart.id, product_id=product_id, quantity=serializer.validated_data["quantity"]
            )
        except StoreError as exc:
            return error_response(exc)
        return Response({"id": item.id, "quantity": item.quantity}, status=status.HTTP_200_OK)


class CartItemDeleteView(UserCartMixin, APIView):
    """Remove a product's line from the cart."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Delete cart item",
        responses={204: None, 400: ErrorSerializer},
    )
    def delete(self, request, product_id: int):
        if self.missing_session(request):
            return Response(MISSING_SESSION, status=status.HTTP_400_BAD_REQUEST)
        try:
            cart = self.resolve_cart(request)
            remove_item(cart_id=cart.id, product_id=product_id)
        except StoreError as exc:
            return error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CartClearView(UserCartMixin, APIView):
    """Delete every line; the cart stays open."""

    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Clear cart",
        responses={
            200: inline_serializer(name="CartStatusCleared", fields={"status": rf_serializers.CharField()}),
            409: ErrorSerializer,
        },
        examples=[OpenApiExample("Cleared", value={"status": "cleared"})],
    )
    def post(self, request):
        if self.missing_session(request):
            return Response(MISSING_SESSION, status=status.HTTP_400_BAD_REQUEST)
        try:
            cart = self.resolve_cart(request)
            clear_cart(cart_id=cart.id)
        except StoreError as exc:
            return error_response(exc)
        return Response({"status": "cleared"}, status=status.HTTP_200_OK)


@extend_schema(parameters=[SESSION_HEADER])
class GuestCartDetailView(GuestCartMixin, CartDetailView):
    pass


@extend_schema(parameters=[SESSION_HEADER])
class GuestCartAddItemView(GuestCartMixin, CartAddItemView):
    pass


@extend_schema(parameters=[SESSION_HEADER])
class GuestCartItemUpdateView(GuestCartMixin, CartItemUpdateView):
    pass


@extend_schema(parameters=[SESSION_HEADER])
class GuestCartItemDeleteView(GuestCartMixin, CartItemDeleteView):
    pass


@extend_schema(parameters=[SESSION_HEADER])
class GuestCartClearView(GuestCartMixin, CartClearView):
    pass


class MergeGuestCartView(APIView):
    """Merge the `X-Session-Id` guest cart into the authenticated user's cart."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Merge guest cart into user cart",
        description="Sums shared products, moves the rest and retires the guest cart as abandoned.",
        parameters=[SESSION_HEADER],
        responses={200: CartReadSerializer, 400: ErrorSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
    )
    def post(self, request):
        session_id = request.headers.get("X-Session-Id")
        if not session_id:
            return Response(MISSING_SESSION, status=status.HTTP_400_BAD_REQUEST)
        try:
            guest = find_open_cart_for_session(session_id=session_id)
            cart = merge_guest_cart_to_user_cart(guest_cart_id=guest.id, user_id=request.user.id)
        except StoreError as exc:
            return error_response(exc)
        return Response(CartReadSerializer.from_cart(cart=cart).data, status=status.HTTP_200_OK)


class CartCheckoutView(APIView):
    """Convert the authenticated user's open cart into an order."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Checkout cart",
        request=CheckoutSerializer,
        responses={201: OrderSerializer, 400: ErrorSerializer, 404: ErrorSerializer, 409: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Checkout",
                value={"shipping_address_id": 7, "billing_address_id": 7},
                request_only=True,
            ),
            OpenApiExample(
                "Out of stock",
                value={"detail": "Insufficient stock for product JCK-001 ...", "code": "insufficient_stock"},
                response_only=True,
                status_codes=["409"],
            ),
        ],
    )
    def post(self, request):
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            cart = get_open_cart_for_user(user_id=request.user.id)
            order = checkout(user_id=request.user.id, cart_id=cart.id, **serializer.validated_data)
        except StoreError as exc:
            return error_response(exc)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)
