# ============================= LOCATIONS/VIEWS.PY =============================
import logging
from datetime import datetime

from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, status, permissions, filters
from rest_framework.decorators import action
from rest_framework.response import Response

from utils.permissions import IsSuperAdmin, IsLocationManager
from .filters import ParkingLocationFilter
from .models import ParkingLocation
from .pricing import PricingService, VEHICLE_RATE_MULTIPLIERS
from .serializers import (
    ParkingLocationListSerializer,
    ParkingLocationDetailSerializer,
    ParkingLocationCreateUpdateSerializer,
    SpaceStatusSerializer,
)
from .services import LocationService

logger = logging.getLogger(__name__)

DEFAULT_MAX_DISTANCE_M = 5000


def parse_query_datetime(value):
    """Accept full ISO datetimes or plain dates; naive values use the current timezone"""
    if not value:
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        parsed = datetime.fromisoformat(value)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


def parse_limit(value, default=None):
    """Positive integer from the query string; raises ValueError otherwise"""
    if value in (None, ''):
        return default
    limit = int(value)
    if limit < 1:
        raise ValueError('limit must be a positive integer')
    return limit


class ParkingLocationViewSet(viewsets.ModelViewSet):
    """Parking location listing, search, and management"""

    queryset = ParkingLocation.objects.filter(is_active=True).prefetch_related('images')
    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter
    ]
    filterset_class = ParkingLocationFilter
    search_fields = ['name', 'address', 'description']
    ordering_fields = ['name', 'hourly_rate', 'available_spaces', 'total_bookings', 'created_at']
    ordering = ['name']

    def get_serializer_class(self):
        if self.action in ['list', 'nearby', 'popular']:
            return ParkingLocationListSerializer
        elif self.action in ['create', 'update', 'partial_update']:
            return ParkingLocationCreateUpdateSerializer
        return ParkingLocationDetailSerializer

    def get_permissions(self):
        if self.action in ['list', 'retrieve', 'nearby', 'popular', 'suggestions', 'availability', 'pricing']:
            permission_classes = [permissions.AllowAny]
        elif self.action in ['create', 'destroy']:
            permission_classes = [IsSuperAdmin]
        else:
            permission_classes = [IsLocationManager]
        return [permission() for permission in permission_classes]

    def list(self, request, *args, **kwargs):
        """List locations; with latitude/longitude the results are ranked by distance

        Query params: search, available, space_type, price_range, amenities,
        latitude, longitude, max_distance (meters), page, limit
        """
        queryset = self.filter_queryset(self.get_queryset())

        lat = request.query_params.get('latitude')
        lng = request.query_params.get('longitude')
        if lat is not None and lng is not None:
            max_distance = request.query_params.get('max_distance') or DEFAULT_MAX_DISTANCE_M
            try:
                radius_km = float(max_distance) / 1000
            except ValueError:
                return Response({'error': 'max_distance must be a number of meters'},
                                status=status.HTTP_400_BAD_REQUEST)
            latitude, longitude, radius_km = LocationService.parse_search_point(lat, lng, radius_km)
            queryset = LocationService.find_nearby(latitude, longitude, radius_km, queryset=queryset)

        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)

        serializer = self.get_serializer(queryset, many=True)
        return Response(serializer.data)

    def perform_create(self, serializer):
        location = serializer.save()
        logger.info(f"Location {location.id} created by user {self.request.user.id}")

    def perform_destroy(self, instance):
        LocationService.deactivate(instance)

    @action(detail=False, methods=['get'])
    def nearby(self, request):
        """Search parking locations near a point
        Query params: lat, lng, radius (in km), limit

        Example: /api/v1/locations/nearby/?lat=27.7172&lng=85.3240&radius=5
        """
        latitude, longitude, radius_km = LocationService.parse_search_point(
            request.query_params.get('lat'),
            request.query_params.get('lng'),
            request.query_params.get('radius'),
        )
        try:
            limit = parse_limit(request.query_params.get('limit'))
        except ValueError:
            return Response({'error': 'limit must be a positive integer'}, status=status.HTTP_400_BAD_REQUEST)

        locations = LocationService.find_nearby(latitude, longitude, radius_km, limit=limit)
        serializer = self.get_serializer(locations, many=True)
        return Response({
            'count': len(locations),
            'radius_km': radius_km,
            'results': serializer.data,
        })

    @action(detail=False, methods=['get'])
    def popular(self, request):
        try:
            limit = min(parse_limit(request.query_params.get('limit'), 10), 50)
        except ValueError:
            return Response({'error': 'limit must be a positive integer'},
                            status=status.HTTP_400_BAD_REQUEST)
        serializer = self.get_serializer(LocationService.popular(limit), many=True)
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def suggestions(self, request):
        """Name/address autocomplete, needs at least two characters"""
        query = request.query_params.get('q', '').strip()
        if len(query) < 2:
            return Response([])
        return Response(LocationService.suggestions(query))

    @action(detail=True, methods=['get'])
    def availability(self, request, pk=None):
        location = self.get_object()
        return Response(LocationService.get_availability(location))

    @action(detail=True, methods=['get'])
    def stats(self, request, pk=None):
        """Booking statistics for a location (managers only)

        Query params: period (1d|7d|30d|90d) or start_date and end_date
        """
        location = self.get_object()
        try:
            start, end = LocationService.resolve_period(
                request.query_params.get('period', '7d'),
                parse_query_datetime(request.query_params.get('start_date')),
                parse_query_datetime(request.query_params.get('end_date')),
            )
        except ValueError:
            return Response({'error': 'Invalid date format (use ISO format: 2025-10-27)'},
                            status=status.HTTP_400_BAD_REQUEST)

        return Response(LocationService.get_stats(location, start, end))

    @action(detail=True, methods=['get'])
    def pricing(self, request, pk=None):
        """Dynamic price quote

        Query params: start_time (ISO, default now), duration (minutes, default 60), vehicle_type
        """
        location = self.get_object()
        vehicle_type = request.query_params.get('vehicle_type', 'car')
        if vehicle_type not in VEHICLE_RATE_MULTIPLIERS:
            return Response({'error': 'Invalid vehicle type'}, status=status.HTTP_400_BAD_REQUEST)

        try:
            start_time = parse_query_datetime(request.query_params.get('start_time')) or timezone.now()
            duration = int(request.query_params.get('duration', 60))
            quote = PricingService.calculate_price(location, start_time, duration, vehicle_type)
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(quote)

    @action(detail=True, methods=['patch'], url_path=r'spaces/(?P<space_id>[^/.]+)/status')
    def space_status(self, request, pk=None, space_id=None):
        """Update a single space status

        Body: { "status": "available|occupied|maintenance|reserved", "reason": "..." }
        """
        location = self.get_object()
        serializer = SpaceStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        location = LocationService.update_space_status(
            location,
            space_id,
            serializer.validated_data['status'],
            updated_by=request.user,
            reason=serializer.validated_data.get('reason', ''),
        )
        return Response({
            'message': f"Space {space_id} set to {serializer.validated_data['status']}",
            'available_spaces': location.available_spaces,
            'occupancy_percentage': location.occupancy_percentage,
        })
