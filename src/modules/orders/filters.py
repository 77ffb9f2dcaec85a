import django_filters

from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    supplier = django_filters.CharFilter(field_name="supplier_name", lookup_expr="icontains")
    order_number = django_filters.CharFilter(field_name="order_number", lookup_expr="iexact")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    refund_received = django_filters.BooleanFilter(field_name="refund_received")

    class Meta:
        model = Order
        fields = [
            "status",
            "supplier",
            "order_number",
            "start_date",
            "end_date",
            "refund_received",
        ]
