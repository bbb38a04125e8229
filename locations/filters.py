# ============================= LOCATIONS/FILTERS.PY =============================
import django_filters
from django.db.models import Q

from .models import ParkingLocation, ParkingSpace


class ParkingLocationFilter(django_filters.FilterSet):
    """Filtering for parking location listings"""

    available = django_filters.BooleanFilter(
        method='filter_available',
        label='Has Free Spaces'
    )
    space_type = django_filters.ChoiceFilter(
        choices=ParkingSpace.TYPE_CHOICES,
        method='filter_space_type',
        label='Has Available Space Of Type'
    )
    price_range = django_filters.CharFilter(
        method='filter_price_range',
        label='Hourly Rate Range (min-max)'
    )
    price_min = django_filters.NumberFilter(
        field_name='hourly_rate',
        lookup_expr='gte',
        label='Minimum Hourly Rate'
    )
    price_max = django_filters.NumberFilter(
        field_name='hourly_rate',
        lookup_expr='lte',
        label='Maximum Hourly Rate'
    )
    amenities = django_filters.CharFilter(
        method='filter_amenities',
        label='Amenities (comma separated, any of)'
    )

    class Meta:
        model = ParkingLocation
        fields = {
            'current_status': ['exact'],
            'created_at': ['gte', 'lte'],
        }

    def filter_available(self, queryset, name, value):
        if value:
            return queryset.filter(available_spaces__gt=0, current_status='open')
        return queryset

    def filter_space_type(self, queryset, name, value):
        return queryset.filter(
            spaces__space_type=value,
            spaces__status='available',
        ).distinct()

    def filter_price_range(self, queryset, name, value):
        try:
            low, high = (float(part) for part in value.split('-', 1))
        except ValueError:
            return queryset
        return queryset.filter(hourly_rate__gte=low, hourly_rate__lte=high)

    def filter_amenities(self, queryset, name, value):
        wanted = [item.strip() for item in value.split(',') if item.strip()]
        if not wanted:
            return queryset
        # JSON list stored as text: match the quoted item
        condition = Q()
        for amenity in wanted:
            condition |= Q(amenities__icontains=f'"{amenity}"')
        return queryset.filter(condition)
