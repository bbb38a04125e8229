# ==================== LOCATIONS/SERVICES.PY ====================
import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.db.models.functions import ExtractHour
from django.utils import timezone

from utils.distance_calculator import DistanceCalculator
from utils.exceptions import InvalidCoordinates, LocationUnavailable
from .models import ParkingLocation, ParkingSpace, generate_spaces

logger = logging.getLogger(__name__)

ACTIVE_BOOKING_STATUSES = ['confirmed', 'active']

STATS_PERIODS = {
    '1d': timedelta(days=1),
    '7d': timedelta(days=7),
    '30d': timedelta(days=30),
    '90d': timedelta(days=90),
}


class LocationService:
    """Search, availability and statistics for parking locations"""

    @staticmethod
    def parse_search_point(lat, lng, radius=None):
        """Validate query-string coordinates; radius in km

        Raises InvalidCoordinates (HTTP 400) for missing or out of range input.
        """
        try:
            latitude, longitude = DistanceCalculator.validate_coordinates(lat, lng)
            radius_km = float(radius) if radius not in (None, '') else settings.NEARBY_DEFAULT_RADIUS_KM
        except (TypeError, ValueError) as e:
            raise InvalidCoordinates(f"Invalid latitude, longitude, or radius: {e}")

        if not radius_km > 0:
            raise InvalidCoordinates('Radius must be greater than zero')
        return latitude, longitude, radius_km

    @staticmethod
    def find_nearby(latitude, longitude, radius_km, limit=None, queryset=None):
        """Active locations within radius_km of the point, nearest first

        Each returned location carries `distance` (meters) and `distance_km`.
        """
        if queryset is None:
            queryset = ParkingLocation.objects.filter(is_active=True)

        min_lat, max_lat, min_lng, max_lng = DistanceCalculator.bounding_box(latitude, longitude, radius_km)
        candidates = queryset.filter(
            latitude__gte=min_lat, latitude__lte=max_lat,
            longitude__gte=min_lng, longitude__lte=max_lng,
        )

        ranked = []
        for location in candidates:
            distance_km = DistanceCalculator.haversine(latitude, longitude, location.latitude, location.longitude)
            if distance_km <= radius_km:
                location.distance = round(distance_km * 1000)
                location.distance_km = round(distance_km, 2)
                ranked.append((distance_km, location.name, location.pk, location))

        ranked.sort(key=lambda item: item[:3])
        locations = [item[3] for item in ranked]

        logger.debug(f"Nearby search ({latitude}, {longitude}) r={radius_km}km -> {len(locations)} locations")
        if limit is not None:
            return locations[:limit]
        return locations

    @staticmethod
    def popular(limit=10):
        return ParkingLocation.objects.filter(is_active=True).order_by('-total_bookings', 'name')[:limit]

    @staticmethod
    def suggestions(query, limit=10):
        return list(
            ParkingLocation.objects.filter(is_active=True)
            .filter(Q(name__icontains=query) | Q(address__icontains=query))
            .values('id', 'name', 'address')[:limit]
        )

    @staticmethod
    @transaction.atomic
    def create_location(validated_data, spaces=None, owner=None):
        """Create a location, generating its spaces when none are given"""
        if not spaces:
            spaces = generate_spaces(validated_data['total_spaces'])

        validated_data['available_spaces'] = sum(1 for s in spaces if s.get('status', 'available') == 'available')
        if owner is not None and not validated_data.get('parking_owner'):
            validated_data['parking_owner'] = owner

        location = ParkingLocation.objects.create(**validated_data)
        ParkingSpace.objects.bulk_create([ParkingSpace(location=location, **space) for space in spaces])
        logger.info(f"Parking location created: {location.id} ({location.name}) with {len(spaces)} spaces")
        return location

    @staticmethod
    def active_bookings_now(location, now=None):
        from bookings.models import Booking

        now = now or timezone.now()
        return Booking.objects.filter(
            location=location,
            status__in=ACTIVE_BOOKING_STATUSES,
            start_time__lte=now,
            end_time__gte=now,
        )

    @staticmethod
    def update_space_status(location, space_id, new_status, updated_by=None, reason=''):
        """Change a space's status, refusing maintenance under an active booking"""
        if new_status == 'maintenance' and LocationService.active_bookings_now(location).filter(
                space__space_id=space_id).exists():
            raise LocationUnavailable('Cannot set space to maintenance - active booking exists')

        with transaction.atomic():
            location = ParkingLocation.objects.select_for_update().get(pk=location.pk)
            location.update_space_status(space_id, new_status)

        logger.info(f"Space {space_id} at location {location.id} set to {new_status}"
                    f" by {getattr(updated_by, 'id', None)}: {reason or 'no reason given'}")
        return location

    @staticmethod
    def get_availability(location):
        spaces = location.spaces.all()
        by_status = {}
        for space in spaces:
            by_status[space.status] = by_status.get(space.status, 0) + 1

        return {
            'location_id': location.id,
            'total_spaces': location.total_spaces,
            'available_spaces': location.available_spaces,
            'occupied_spaces': by_status.get('occupied', 0),
            'reserved_spaces': by_status.get('reserved', 0),
            'maintenance_spaces': by_status.get('maintenance', 0),
            'occupancy_percentage': location.occupancy_percentage,
            'available_space_types': location.available_space_types,
            'is_currently_open': location.is_currently_open(),
        }

    @staticmethod
    def resolve_period(period='7d', start_date=None, end_date=None):
        end = end_date or timezone.now()
        start = start_date or end - STATS_PERIODS.get(period, STATS_PERIODS['7d'])
        return start, end

    @staticmethod
    def get_stats(location, start, end):
        """Booking counts, revenue, average duration and hourly distribution"""
        from bookings.models import Booking

        bookings = Booking.objects.filter(location=location, created_at__gte=start, created_at__lte=end)
        totals = bookings.aggregate(total_bookings=Count('id'), total_revenue=Sum('total_amount'))

        durations = [
            (b.end_time - b.start_time).total_seconds() / 3600
            for b in bookings.only('start_time', 'end_time')
        ]
        average_duration = round(sum(durations) / len(durations), 2) if durations else 0

        hourly = (
            bookings.filter(status__in=['completed', 'active'])
            .annotate(hour=ExtractHour('start_time'))
            .values('hour')
            .annotate(count=Count('id'))
            .order_by('hour')
        )

        return {
            'location': {
                'id': location.id,
                'name': location.name,
                'total_spaces': location.total_spaces,
                'available_spaces': location.available_spaces,
                'occupancy_percentage': location.occupancy_percentage,
            },
            'period': {
                'start_date': start.isoformat(),
                'end_date': end.isoformat(),
                'days': max(1, (end - start).days + (1 if (end - start).seconds else 0)),
            },
            'bookings': {
                'total_bookings': totals['total_bookings'] or 0,
                'total_revenue': totals['total_revenue'] or 0,
                'average_duration': average_duration,
                'completed_bookings': bookings.filter(status='completed').count(),
                'cancelled_bookings': bookings.filter(status='cancelled').count(),
            },
            'hourly_utilization': [{'hour': row['hour'], 'count': row['count']} for row in hourly],
            'current_status': {
                'is_open': location.is_currently_open(),
                'status': location.current_status,
                'last_updated': location.updated_at.isoformat(),
            },
        }

    @staticmethod
    def deactivate(location):
        """Soft delete, refused while confirmed or active bookings exist"""
        active = location.bookings.filter(status__in=ACTIVE_BOOKING_STATUSES).count()
        if active:
            raise LocationUnavailable(f"Cannot delete location - {active} active bookings exist")

        location.is_active = False
        location.current_status = 'closed'
        location.save(update_fields=['is_active', 'current_status', 'updated_at'])
        logger.info(f"Parking location {location.id} deactivated")
        return location

    @staticmethod
    def refresh_occupancy(location):
        """Fold the current occupancy into the running average"""
        current = location.occupancy_percentage
        if location.average_occupancy:
            location.average_occupancy = round((location.average_occupancy + current) / 2, 2)
        else:
            location.average_occupancy = float(current)
        location.stats_updated_at = timezone.now()
        # current_status is operator-controlled; fullness is read from available_spaces
        location.save(update_fields=['average_occupancy', 'stats_updated_at', 'updated_at'])
        return location
