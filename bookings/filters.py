# ============================= BOOKINGS/FILTERS.PY =============================
import django_filters

from .models import Booking


class BookingFilter(django_filters.FilterSet):
    """Filtering for booking listings"""

    start_date = django_filters.DateTimeFilter(
        field_name='created_at',
        lookup_expr='gte',
        label='Created On Or After'
    )
    end_date = django_filters.DateTimeFilter(
        field_name='created_at',
        lookup_expr='lte',
        label='Created On Or Before'
    )

    class Meta:
        model = Booking
        fields = ['status', 'payment_status', 'location']
