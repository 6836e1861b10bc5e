import django_filters

from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    """Parses the list query string; scoping and lookups live in ``OrderService``."""

    status = django_filters.CharFilter()
    active = django_filters.BooleanFilter()
    seller = django_filters.UUIDFilter()
    buyer = django_filters.UUIDFilter()
    start_date = django_filters.IsoDateTimeFilter()
    end_date = django_filters.IsoDateTimeFilter()

    class Meta:
        model = Order
        fields = ["status", "active", "seller", "buyer", "start_date", "end_date"]


class OrderStatsFilter(django_filters.FilterSet):
    """Dashboard query string: ``seller`` is for admins, ``product`` for sellers."""

    seller = django_filters.UUIDFilter()
    product = django_filters.UUIDFilter()
    start_date = django_filters.IsoDateTimeFilter()
    end_date = django_filters.IsoDateTimeFilter()

    class Meta:
        model = Order
        fields = ["seller", "product", "start_date", "end_date"]
