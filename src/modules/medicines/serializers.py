"""Medicine DRF serializers for API input/output."""

from __future__ import annotations

from rest_framework import serializers

from modules.medicines.models import Medicine


class MedicineSerializer(serializers.ModelSerializer):
    """Read serializer for the Medicine resource."""

    class Meta:
        model = Medicine
        fields = [
            "id",
            "name",
            "quantity",
            "price",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CreateMedicineSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)
    quantity = serializers.IntegerField(min_value=0, required=False, default=0)


class UpdateMedicineSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False
    )


class StockMovementSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)
