# ==================== USERS/SERVICES.PY ====================
import logging
from decimal import Decimal

from django.db.models import Count, Q, Sum

from utils.exceptions import LocationNotFound

logger = logging.getLogger(__name__)


class UserService:
    """Per-user booking statistics and favourite locations"""

    @staticmethod
    def get_booking_stats(user):
        """Booking totals for the profile page

        Only paid bookings count towards spending; hours are summed over
        completed bookings.
        """
        from bookings.models import Booking

        bookings = Booking.objects.filter(user=user)
        totals = bookings.aggregate(
            total_bookings=Count('id'),
            completed_bookings=Count('id', filter=Q(status='completed')),
            active_bookings=Count('id', filter=Q(status__in=['confirmed', 'active'])),
            cancelled_bookings=Count('id', filter=Q(status='cancelled')),
            total_spent=Sum('total_amount', filter=Q(payment_status='completed')),
        )
        total_bookings = totals['total_bookings']
        total_spent = totals['total_spent'] or Decimal('0')

        hours = sum(
            (b.end_time - b.start_time).total_seconds() / 3600
            for b in bookings.filter(status='completed').only('start_time', 'end_time')
        )
        favorite = (
            bookings.values('location__name')
            .annotate(count=Count('id'))
            .order_by('-count', 'location__name')
            .first()
        )

        return {
            'total_bookings': total_bookings,
            'completed_bookings': totals['completed_bookings'],
            'active_bookings': totals['active_bookings'],
            'cancelled_bookings': totals['cancelled_bookings'],
            'total_spent': total_spent,
            'average_booking_value': round(total_spent / total_bookings) if total_bookings else 0,
            'total_hours_parked': round(hours),
            'favorite_location': favorite['location__name'] if favorite else '',
        }

    @staticmethod
    def add_favorite(user, location_id):
        from locations.models import ParkingLocation

        location = ParkingLocation.objects.filter(pk=location_id, is_active=True).first()
        if location is None:
            raise LocationNotFound()
        if user.favorite_locations.filter(pk=location.pk).exists():
            return location, False
        user.favorite_locations.add(location)
        logger.info(f"User {user.id} added location {location.id} to favorites")
        return location, True

    @staticmethod
    def remove_favorite(user, location_id):
        location = user.favorite_locations.filter(pk=location_id).first()
        if location is None:
            return False
        user.favorite_locations.remove(location)
        logger.info(f"User {user.id} removed location {location.id} from favorites")
        return True
