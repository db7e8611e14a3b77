import django_filters as filters

from orders.models import Order, OrderItem


class OrderFilter(filters.FilterSet):
    created_from = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_to = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = ["status", "created_from", "created_to"]


class OrderItemFilter(filters.FilterSet):
    class Meta:
        model = OrderItem
        fields = ["status"]
