"""Order API views.

Exposes ``OrderService`` and ``ReconciliationService`` via HTTP using DRF
ViewSets.  Every request is scoped to the authenticated user's shop.
Domain exceptions are caught and translated into appropriate HTTP status
codes; the view never swallows generic exceptions.

Reconciliation actions honour two optional headers:

- ``Idempotency-Key``: a replayed key returns the current order.
- ``If-Match``: the order ``version`` the client last saw; a stale
  version is answered with 409.
"""

from __future__ import annotations

from typing import Callable, Optional

import structlog
from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.pagination import StandardResultsSetPagination
from modules.medicines.exceptions import InsufficientStock, MedicineNotFound
from modules.medicines.repositories.django_repository import MedicineDjangoRepository
from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO, ReconcileQuantitiesDTO
from modules.orders.exceptions import (
    ConcurrencyConflict,
    InvalidOrder,
    InvalidOrderStatus,
    InvalidReconciliationRequest,
    NoValidSelection,
    OrderNotFound,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    OrderListSerializer,
    OrderSerializer,
    PlaceOrderSerializer,
    ReconcileQuantitiesSerializer,
)
from modules.orders.services import OrderService, ReconciliationService

logger = structlog.get_logger(__name__)

_ERROR_STATUS = (
    (OrderNotFound, status.HTTP_404_NOT_FOUND),
    (MedicineNotFound, status.HTTP_404_NOT_FOUND),
    (InvalidReconciliationRequest, status.HTTP_400_BAD_REQUEST),
    (NoValidSelection, status.HTTP_400_BAD_REQUEST),
    (InvalidOrder, status.HTTP_400_BAD_REQUEST),
    (InvalidOrderStatus, status.HTTP_409_CONFLICT),
    (ConcurrencyConflict, status.HTTP_409_CONFLICT),
    (InsufficientStock, status.HTTP_409_CONFLICT),
)
_DOMAIN_ERRORS = tuple(exc_class for exc_class, _ in _ERROR_STATUS)

_RECONCILIATION_ACTIONS = {
    "accept",
    "cancel",
    "partial_accept",
    "partial_cancel",
    "accept_rest",
    "cancel_rest",
}


class OrderViewSet(GenericViewSet):
    """ViewSet for supplier orders.

    Does **not** extend ``ModelViewSet``: all ORM access goes through the
    service/repository layer.
    """

    queryset = Order.objects.none()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    search_fields = ["order_number", "supplier_name"]
    ordering_fields = ["created_at", "status", "supplier_name"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        order_repository = OrderDjangoRepository()
        medicine_repository = MedicineDjangoRepository()
        self._service = OrderService(
            order_repository=order_repository,
            medicine_repository=medicine_repository,
        )
        self._reconciliation = ReconciliationService(
            order_repository=order_repository,
            medicine_repository=medicine_repository,
        )

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttling scope per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_placement"
        elif self.action in _RECONCILIATION_ACTIONS:
            throttle_scope = "order_reconciliation"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        if self.action == "actionable":
            return self._service.list_actionable(self.request.user.username)
        return self._service.list_orders(self.request.user.username)

    # ------------------------------------------------------------------
    # Place
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            dto = PlaceOrderDTO(
                username=request.user.username,
                supplier_name=data["supplier_name"],
                items=[
                    PlaceOrderItemDTO(
                        medicine_id=item["medicine_id"],
                        quantity=item["quantity"],
                    )
                    for item in data["items"]
                ],
                notes=data.get("notes", ""),
            )
        except PydanticValidationError as exc:
            return _validation_error(exc)

        return self._respond(lambda: self._service.place_order(dto), status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, supplier, order number, date range) is handled by
        ``OrderFilter``; ordering by ``OrderingFilter``.  Results are
        paginated.
        """
        return self._paginated(request)

    @action(detail=False, methods=["get"])
    def actionable(self, request: Request) -> Response:
        """GET /api/v1/orders/actionable/

        Open orders plus closed ones still waiting for a refund.
        """
        return self._paginated(request)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        return self._respond(lambda: self._service.get_order(str(pk), request.user.username))

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def accept(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/accept/ (accept everything remaining)."""
        return self._reconcile(request, pk, self._reconciliation.accept_all)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/ (cancel the whole order)."""
        return self._reconcile(request, pk, self._reconciliation.cancel_all)

    @action(detail=True, methods=["post"], url_path="partial-accept")
    def partial_accept(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/partial-accept/

        Body: ``{"quantities": {"<medicine_id>": <quantity>, ...}}``
        """
        return self._reconcile_quantities(request, pk, self._reconciliation.partial_accept)

    @action(detail=True, methods=["post"], url_path="partial-cancel")
    def partial_cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/partial-cancel/"""
        return self._reconcile_quantities(request, pk, self._reconciliation.partial_cancel)

    @action(detail=True, methods=["post"], url_path="accept-rest")
    def accept_rest(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/accept-rest/"""
        return self._reconcile(request, pk, self._reconciliation.accept_rest)

    @action(detail=True, methods=["post"], url_path="cancel-rest")
    def cancel_rest(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel-rest/"""
        return self._reconcile(request, pk, self._reconciliation.cancel_rest)

    # ------------------------------------------------------------------
    # Refunds
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def refund(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/refund/"""
        return self._respond(
            lambda: self._service.mark_refund_received(str(pk), request.user.username)
        )

    @action(detail=True, methods=["post"], url_path="partial-refund")
    def partial_refund(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/partial-refund/"""
        return self._respond(
            lambda: self._service.mark_partial_refund_received(str(pk), request.user.username)
        )

    @action(detail=True, methods=["post"], url_path="full-refund")
    def full_refund(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/full-refund/"""
        return self._respond(
            lambda: self._service.mark_full_refund_received(str(pk), request.user.username)
        )

    @action(detail=True, methods=["post"], url_path="remaining-partial-refund")
    def remaining_partial_refund(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/remaining-partial-refund/

        The rest of a partial refund arrived: the refund is now complete.
        """
        return self._respond(
            lambda: self._service.mark_full_refund_received(str(pk), request.user.username)
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _paginated(self, request: Request) -> Response:
        queryset = self.filter_queryset(self.get_queryset())
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def _reconcile(self, request: Request, pk: str | None, operation: Callable) -> Response:
        expected_version = _parse_if_match(request)
        if expected_version is False:
            return Response(
                {"detail": "If-Match must be an order version number."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        return self._respond(
            lambda: operation(
                str(pk),
                request.user.username,
                idempotency_key=request.headers.get("Idempotency-Key"),
                expected_version=expected_version,
            )
        )

    def _reconcile_quantities(
        self, request: Request, pk: str | None, operation: Callable
    ) -> Response:
        serializer = ReconcileQuantitiesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = ReconcileQuantitiesDTO(quantities=serializer.validated_data["quantities"])
        except PydanticValidationError as exc:
            return _validation_error(exc)

        return self._reconcile(
            request,
            pk,
            lambda order_id, username, **headers: operation(
                order_id, username, dto.quantities, **headers
            ),
        )

    def _respond(self, call: Callable[[], Order], success_status: int = status.HTTP_200_OK) -> Response:
        try:
            order = call()
        except _DOMAIN_ERRORS as exc:
            return _domain_error(exc)
        return Response(OrderSerializer(order).data, status=success_status)


def _parse_if_match(request: Request) -> Optional[int] | bool:
    """Version from ``If-Match`` (``3``, ``"3"`` or ``W/"3"``).

    ``None`` when absent, ``False`` when unparseable.
    """
    raw = request.headers.get("If-Match")
    if not raw:
        return None
    value = raw.strip()
    if value.startswith("W/"):
        value = value[2:]
    value = value.strip('"')
    if not value.isdigit():
        return False
    return int(value)


def _domain_error(exc: Exception) -> Response:
    for exc_class, http_status in _ERROR_STATUS:
        if isinstance(exc, exc_class):
            logger.info(
                "order.request_rejected",
                error=type(exc).__name__,
                status_code=http_status,
            )
            return Response({"detail": str(exc)}, status=http_status)
    raise exc


def _validation_error(exc: PydanticValidationError) -> Response:
    return Response(
        {"detail": "; ".join(error["msg"] for error in exc.errors())},
        status=status.HTTP_400_BAD_REQUEST,
    )
