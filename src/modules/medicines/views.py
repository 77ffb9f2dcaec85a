"""Medicine API views.

Exposes the ``MedicineService`` via HTTP using DRF ViewSets.  Every
request is scoped to the authenticated user's shop (``username``).
Domain exceptions are caught and translated into HTTP status codes.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.medicines.dtos import CreateMedicineDTO, StockMovementDTO, UpdateMedicineDTO
from modules.medicines.exceptions import InsufficientStock, MedicineNotFound
from modules.medicines.filters import MedicineFilter
from modules.medicines.models import Medicine
from modules.medicines.repositories.django_repository import MedicineDjangoRepository
from modules.medicines.serializers import (
    CreateMedicineSerializer,
    MedicineSerializer,
    StockMovementSerializer,
    UpdateMedicineSerializer,
)
from modules.medicines.services import MedicineService

_NOT_FOUND = {"detail": "Medicine not found."}


class MedicineViewSet(ListModelMixin, GenericViewSet):
    """ViewSet for a shop's medicine catalogue.

    Stock is read-only here except for ``consume``; supplier deliveries
    add stock through order reconciliation.
    """

    filterset_class = MedicineFilter
    search_fields = ["name"]
    ordering_fields = ["name", "price", "quantity"]
    ordering = ["name", "id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    queryset = Medicine.objects.none()
    serializer_class = MedicineSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = MedicineService(repository=MedicineDjangoRepository())

    def get_queryset(self):
        return self._service.list_medicines(self.request.user.username)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/medicines/{pk}/"""
        try:
            medicine = self._service.get_medicine(str(pk), request.user.username)
        except MedicineNotFound:
            return Response(_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(MedicineSerializer(medicine).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/medicines/"""
        serializer = CreateMedicineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = CreateMedicineDTO(username=request.user.username, **serializer.validated_data)
        medicine = self._service.create_medicine(dto)
        return Response(MedicineSerializer(medicine).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/medicines/{pk}/ (name and price only)."""
        serializer = UpdateMedicineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            dto = UpdateMedicineDTO(**serializer.validated_data)
        except (PydanticValidationError, ValueError) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            medicine = self._service.update_medicine(str(pk), request.user.username, dto)
        except MedicineNotFound:
            return Response(_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(MedicineSerializer(medicine).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/medicines/{pk}/"""
        try:
            self._service.delete_medicine(str(pk), request.user.username)
        except MedicineNotFound:
            return Response(_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"])
    def consume(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/medicines/{pk}/consume/

        Takes ``{"quantity": N}`` units out of stock; 409 if stock is short.
        """
        serializer = StockMovementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = StockMovementDTO(quantity=serializer.validated_data["quantity"])

        try:
            medicine = self._service.consume(str(pk), request.user.username, dto)
        except MedicineNotFound:
            return Response(_NOT_FOUND, status=status.HTTP_404_NOT_FOUND)
        except InsufficientStock as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        return Response(MedicineSerializer(medicine).data)
