"""Order API views.

Exposes the ``OrderService`` via HTTP using a DRF ViewSet.  Domain
exceptions carry their own HTTP status and code; the view translates
them into ``{"detail", "code"}`` responses and never swallows generic
exceptions.
"""

from __future__ import annotations

import pydantic
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import ViewSet

from modules.catalog.repositories.django_repository import ProductDjangoRepository
from modules.core.exceptions import DomainError, NotFoundError
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO, OrderListQueryDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CreateOrderSerializer,
    OrderHistorySerializer,
    OrderListSerializer,
    OrderSerializer,
    UpdateOrderStatusSerializer,
    UpdatePaymentStatusSerializer,
)
from modules.orders.services import OrderService
from modules.users.permissions import IsStaffOrAdmin
from modules.users.repositories.django_repository import (
    ShippingAddressDjangoRepository,
)
from modules.vouchers.repositories.django_repository import VoucherDjangoRepository

LIST_QUERY_PARAMS = ("page", "limit", "sort_by", "sort_order", "status", "payment_status")


def domain_error_response(exc: DomainError, status_code: int | None = None) -> Response:
    return Response(
        {"detail": str(exc), "code": exc.code},
        status=status_code or exc.status_code,
    )


def validation_error_response(exc: pydantic.ValidationError) -> Response:
    errors = [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return Response(
        {"detail": "Invalid request.", "code": "invalid", "errors": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


def build_order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        voucher_repository=VoucherDjangoRepository(),
        address_repository=ShippingAddressDjangoRepository(),
    )


class OrderViewSet(ViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).  Customers see
    and cancel their own orders; staff and admins manage every order.
    """

    STAFF_ACTIONS = {"list", "set_status", "set_payment_status"}

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_permissions(self):
        if self.action in self.STAFF_ACTIONS:
            return [IsStaffOrAdmin()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Per-action throttling scopes."""
        if self.action == "create":
            self.throttle_scope = "order_creation"
        elif self.action in {"list", "mine", "retrieve", "history"}:
            self.throttle_scope = "order_listing"
        else:
            self.throttle_scope = None
        return super().get_throttles()

    def _owner_scope(self, request: Request):
        """``None`` for staff (see everything), the caller's id otherwise."""
        return None if request.user.is_elevated else request.user.id

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @extend_schema(request=CreateOrderSerializer, responses={201: OrderSerializer})
    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = CreateOrderDTO(
                user_id=request.user.id,
                shipping_address_id=data["shipping_address_id"],
                payment_method=data["payment_method"],
                items=[
                    CreateOrderItemDTO(
                        product_id=item["product_id"],
                        product_variant_id=item.get("product_variant_id"),
                        quantity=item["quantity"],
                    )
                    for item in data["items"]
                ],
                voucher_code=data.get("voucher_code"),
                note=data.get("note"),
                shipping_fee=data.get("shipping_fee"),
            )
            order = self._service.create_order(dto)
        except pydantic.ValidationError as exc:
            return validation_error_response(exc)
        except NotFoundError as exc:
            # Unknown references in the payload answer 400 on create.
            return domain_error_response(exc, status.HTTP_400_BAD_REQUEST)
        except DomainError as exc:
            return domain_error_response(exc)

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @extend_schema(
        parameters=[
            OpenApiParameter("page", int),
            OpenApiParameter("limit", int),
            OpenApiParameter("sort_by", str),
            OpenApiParameter("sort_order", str, enum=["asc", "desc"]),
            OpenApiParameter("status", str),
            OpenApiParameter("payment_status", str),
            OpenApiParameter(
                "user_id", str, description="One id, repeated, or comma-separated."
            ),
        ],
        responses={200: OrderListSerializer(many=True)},
    )
    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/ (staff)

        Answers ``{"data": [...], "total": n}``.
        """
        params = request.query_params
        options = {
            key: params[key] for key in LIST_QUERY_PARAMS if params.get(key, "") != ""
        }

        try:
            query = OrderListQueryDTO(**options, user_ids=params.getlist("user_id"))
        except pydantic.ValidationError as exc:
            return validation_error_response(exc)

        orders, total = self._service.list_orders(query)
        return Response(
            {"data": OrderListSerializer(orders, many=True).data, "total": total}
        )

    @extend_schema(responses={200: OrderSerializer(many=True)})
    @action(detail=False, methods=["get"])
    def mine(self, request: Request) -> Response:
        """GET /api/v1/orders/mine/"""
        orders = self._service.list_user_orders(request.user.id)
        return Response(OrderSerializer(orders, many=True).data)

    @extend_schema(responses={200: OrderSerializer})
    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk, owner_id=self._owner_scope(request))
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    @extend_schema(responses={200: OrderHistorySerializer(many=True)})
    @action(detail=True, methods=["get"])
    def history(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/history/"""
        try:
            entries = self._service.get_order_history(
                pk, owner_id=self._owner_scope(request)
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderHistorySerializer(entries, many=True).data)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @extend_schema(request=UpdateOrderStatusSerializer, responses={200: OrderSerializer})
    @action(detail=True, methods=["put"], url_path="status")
    def set_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/status/ (staff)"""
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.update_status(
                pk,
                serializer.validated_data["status"],
                actor_id=request.user.id,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    @extend_schema(
        request=UpdatePaymentStatusSerializer, responses={200: OrderSerializer}
    )
    @action(detail=True, methods=["put"], url_path="payment-status")
    def set_payment_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/payment-status/ (staff)"""
        serializer = UpdatePaymentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = self._service.update_payment_status(
                pk,
                data["payment_status"],
                actor_id=request.user.id,
                transaction_id=data.get("transaction_id") or None,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    @extend_schema(request=None, responses={200: OrderSerializer})
    @action(detail=True, methods=["put"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/cancel/ (owner or staff)"""
        try:
            order = self._service.cancel_order(
                pk,
                user_id=request.user.id,
                user_role=request.user.role,
                actor_id=request.user.id,
            )
        except DomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)
