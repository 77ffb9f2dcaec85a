import django_filters

from modules.medicines.models import Medicine


class MedicineFilter(django_filters.FilterSet):
    name = django_filters.CharFilter(field_name="name", lookup_expr="icontains")
    min_price = django_filters.NumberFilter(field_name="price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="price", lookup_expr="lte")
    max_quantity = django_filters.NumberFilter(field_name="quantity", lookup_expr="lte")

    class Meta:
        model = Medicine
        fields = ["name", "min_price", "max_price", "max_quantity"]
