import django_filters
from django.db.models import Q

from cityruns.models import ALL_DAYS, DAYS_OF_WEEK, CityRun


def _django_week_day(day: str) -> int:
    # __week_day: 1 = domingo ... 7 = sábado
    return (DAYS_OF_WEEK.index(day) + 1) % 7 + 1


class CityRunPublicFilter(django_filters.FilterSet):
    city = django_filters.CharFilter(field_name="city_slug", lookup_expr="iexact")
    gofastCity = django_filters.CharFilter(field_name="city_slug", lookup_expr="iexact")
    day = django_filters.CharFilter(method="filter_day")

    class Meta:
        model = CityRun
        fields = []

    def filter_day(self, queryset, name, value):
        """
        Recurrentes: coincide `day_of_week`.
        Únicos: coincide el día de la semana de `start_date`.
        "All Days" (o un valor que no es un día) no filtra.
        """
        day = (value or "").strip().capitalize()
        if not day or value == ALL_DAYS or day not in DAYS_OF_WEEK:
            return queryset
        return queryset.filter(
            Q(is_recurring=True, day_of_week=day)
            | Q(is_recurring=False, start_date__week_day=_django_week_day(day))
        )
