# ============================= BOOKINGS/VIEWS.PY =============================
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import viewsets, mixins, status, permissions, filters
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response

from utils.permissions import CanViewBooking, is_super_admin, manages_location
from .filters import BookingFilter
from .models import Booking
from .serializers import (
    AvailableSlotsQuerySerializer,
    BookingCreateSerializer,
    BookingDetailSerializer,
    BookingListSerializer,
    CancelBookingSerializer,
    CheckInSerializer,
    ConfirmPaymentSerializer,
    ExtendBookingSerializer,
)
from .services import BookingService


class BookingViewSet(mixins.CreateModelMixin,
                     mixins.ListModelMixin,
                     mixins.RetrieveModelMixin,
                     viewsets.GenericViewSet):
    """Booking creation, listing and lifecycle actions"""

    permission_classes = [permissions.IsAuthenticated, CanViewBooking]
    filter_backends = [
        DjangoFilterBackend,
        filters.SearchFilter,
        filters.OrderingFilter
    ]
    filterset_class = BookingFilter
    search_fields = ['plate_number', 'location__name', 'space__space_id']
    ordering_fields = ['created_at', 'start_time', 'total_amount']
    ordering = ['-created_at']

    def get_serializer_class(self):
        if self.action == 'create':
            return BookingCreateSerializer
        elif self.action == 'list':
            return BookingListSerializer
        return BookingDetailSerializer

    def get_queryset(self):
        queryset = Booking.objects.select_related('location', 'space', 'user')
        if self.action != 'list':
            # Object-level permission decides visibility of single bookings
            return queryset

        user = self.request.user
        if is_super_admin(user):
            return queryset
        if user.role == 'parking_admin':
            return queryset.filter(location__in=user.assigned_locations.all())
        return queryset.filter(user=user)

    def _require_owner(self, booking, message):
        if booking.user_id != self.request.user.id:
            raise PermissionDenied(message)

    def create(self, request, *args, **kwargs):
        """Create a booking

        Body: { "location": 1, "space_id": "A001", "vehicle": 3 | "plate_number"/"vehicle_type",
                "start_time": ISO, "end_time": ISO, "payment_method": "cash|card|esewa|paypal" }
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = BookingService.create_booking(
            user=request.user,
            location_id=data['location'],
            space_id=data['space_id'],
            start_time=data['start_time'],
            end_time=data['end_time'],
            payment_method=data['payment_method'],
            vehicle=data['vehicle_info'],
            notes=data.get('notes', ''),
            special_instructions=data.get('special_instructions', ''),
        )
        return Response(BookingDetailSerializer(booking).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def available_slots(self, request):
        """Free one-hour slots for a space on a date

        Example: /api/v1/bookings/available_slots/?location=1&space_id=A001&date=2025-10-27
        """
        query = AvailableSlotsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return Response(BookingService.available_slots(
            query.validated_data['location'],
            query.validated_data['space_id'],
            query.validated_data['date'],
        ))

    @action(detail=True, methods=['post'])
    def check_in(self, request, pk=None):
        """Check in a confirmed booking

        Body: { "qr_code": "..." } (optional)
        """
        booking = self.get_object()
        serializer = CheckInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = BookingService.check_in(booking, qr_code=serializer.validated_data.get('qr_code'))
        return Response({
            'message': 'Successfully checked in',
            'booking': BookingDetailSerializer(booking).data,
        })

    @action(detail=True, methods=['post'])
    def check_out(self, request, pk=None):
        booking = self.get_object()
        booking = BookingService.check_out(booking)
        return Response({
            'message': 'Successfully checked out',
            'booking': BookingDetailSerializer(booking).data,
        })

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Cancel a booking with refund by notice period

        Body: { "reason": "..." }
        """
        booking = self.get_object()
        if booking.user_id != request.user.id and not manages_location(request.user, booking.location):
            raise PermissionDenied('You can only cancel your own bookings')

        serializer = CancelBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking, percentage = BookingService.cancel(
            booking, request.user, reason=serializer.validated_data.get('reason', ''))
        return Response({
            'message': 'Booking cancelled successfully',
            'refund': {
                'amount': booking.refund_amount,
                'percentage': percentage,
                'status': booking.refund_status,
            },
            'booking': BookingDetailSerializer(booking).data,
        })

    @action(detail=True, methods=['post'])
    def extend(self, request, pk=None):
        """Extend a confirmed or active booking

        Body: { "new_end_time": ISO }
        """
        booking = self.get_object()
        self._require_owner(booking, 'You can only extend your own bookings')

        serializer = ExtendBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking, hours, amount = BookingService.extend(booking, serializer.validated_data['new_end_time'])
        return Response({
            'message': 'Booking extended successfully',
            'additional_hours': hours,
            'additional_amount': amount,
            'booking': BookingDetailSerializer(booking).data,
        })

    @action(detail=True, methods=['post'])
    def confirm_payment(self, request, pk=None):
        """Record payment for a pending booking (location managers only)"""
        booking = self.get_object()
        if not manages_location(request.user, booking.location):
            raise PermissionDenied('Only location managers can confirm payments')

        serializer = ConfirmPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = BookingService.confirm_payment(booking, serializer.validated_data.get('transaction_id', ''))
        return Response(BookingDetailSerializer(booking).data)
