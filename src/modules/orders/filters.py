import django_filters

from modules.orders.constants import OrderStatus, PaymentMethod, PaymentStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    payment_status = django_filters.ChoiceFilter(choices=PaymentStatus.choices)
    payment_method = django_filters.ChoiceFilter(choices=PaymentMethod.choices)
    order_number = django_filters.CharFilter(
        field_name="order_number", lookup_expr="icontains"
    )
    start_date = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__gte"
    )
    end_date = django_filters.DateFilter(
        field_name="created_at", lookup_expr="date__lte"
    )

    class Meta:
        model = Order
        fields = [
            "status",
            "payment_status",
            "payment_method",
            "order_number",
            "start_date",
            "end_date",
        ]
