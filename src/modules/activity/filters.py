import django_filters

from modules.accounts.models import Role
from modules.activity.constants import ActivityType, TargetType
from modules.activity.models import Activity


class ActivityFilter(django_filters.FilterSet):
    user = django_filters.UUIDFilter(field_name="actor_id")
    role = django_filters.ChoiceFilter(choices=Role.choices)
    type = django_filters.ChoiceFilter(choices=ActivityType.choices)
    target_type = django_filters.ChoiceFilter(choices=TargetType.choices)
    start_date = django_filters.IsoDateTimeFilter(
        field_name="created_at", lookup_expr="gte"
    )
    end_date = django_filters.IsoDateTimeFilter(
        field_name="created_at", lookup_expr="lte"
    )

    class Meta:
        model = Activity
        fields = ["user", "role", "type", "target_type", "start_date", "end_date"]
