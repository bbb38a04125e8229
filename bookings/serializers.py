# ==================== BOOKINGS/SERIALIZERS.PY ====================
from rest_framework import serializers

from users.models import Vehicle
from users.serializers import UserSummarySerializer
from .models import Booking, BookingExtension, Penalty


class BookingCreateSerializer(serializers.Serializer):
    """Booking request; vehicle comes from a saved vehicle or inline details"""
    location = serializers.IntegerField()
    space_id = serializers.CharField(max_length=20)
    vehicle = serializers.IntegerField(required=False)
    plate_number = serializers.CharField(max_length=20, required=False)
    vehicle_type = serializers.ChoiceField(choices=Booking.VEHICLE_TYPE_CHOICES, required=False)
    vehicle_make = serializers.CharField(max_length=50, required=False, allow_blank=True)
    vehicle_model = serializers.CharField(max_length=50, required=False, allow_blank=True)
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField()
    payment_method = serializers.ChoiceField(choices=Booking.PAYMENT_METHOD_CHOICES)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)
    special_instructions = serializers.CharField(max_length=300, required=False, allow_blank=True)

    def validate(self, data):
        if data['end_time'] <= data['start_time']:
            raise serializers.ValidationError({'end_time': 'End time must be after start time'})

        vehicle_id = data.pop('vehicle', None)
        if vehicle_id is not None:
            user = self.context['request'].user
            try:
                vehicle = Vehicle.objects.get(id=vehicle_id, owner=user)
            except Vehicle.DoesNotExist:
                raise serializers.ValidationError({'vehicle': 'Vehicle not found'})
            data['vehicle_info'] = {
                'plate_number': vehicle.plate_number,
                'vehicle_type': vehicle.vehicle_type,
                'make': vehicle.make,
                'model': vehicle.model,
            }
        elif data.get('plate_number') and data.get('vehicle_type'):
            data['vehicle_info'] = {
                'plate_number': data['plate_number'].upper(),
                'vehicle_type': data['vehicle_type'],
                'make': data.get('vehicle_make', ''),
                'model': data.get('vehicle_model', ''),
            }
        else:
            raise serializers.ValidationError('Provide a saved vehicle or plate_number and vehicle_type')
        return data


class PenaltySerializer(serializers.ModelSerializer):
    class Meta:
        model = Penalty
        fields = ['id', 'penalty_type', 'amount', 'description', 'issued_at', 'is_paid']


class BookingExtensionSerializer(serializers.ModelSerializer):
    class Meta:
        model = BookingExtension
        fields = ['id', 'original_end_time', 'new_end_time', 'additional_amount', 'requested_at', 'status']


class BookingListSerializer(serializers.ModelSerializer):
    location_name = serializers.CharField(source='location.name', read_only=True)
    space_id = serializers.CharField(source='space.space_id', read_only=True)

    class Meta:
        model = Booking
        fields = ['id', 'location', 'location_name', 'space_id', 'plate_number', 'vehicle_type',
                  'start_time', 'end_time', 'status', 'payment_status', 'payment_method',
                  'total_amount', 'created_at']
        read_only_fields = fields


class BookingDetailSerializer(BookingListSerializer):
    location_address = serializers.CharField(source='location.address', read_only=True)
    user = UserSummarySerializer(read_only=True)
    duration_hours = serializers.IntegerField(read_only=True)
    actual_duration_hours = serializers.IntegerField(read_only=True, allow_null=True)
    total_penalties = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    final_amount = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    penalties = PenaltySerializer(many=True, read_only=True)
    extensions = BookingExtensionSerializer(many=True, read_only=True)

    class Meta(BookingListSerializer.Meta):
        fields = BookingListSerializer.Meta.fields + [
            'user', 'location_address', 'vehicle_make', 'vehicle_model',
            'actual_entry_time', 'actual_exit_time', 'duration_hours', 'actual_duration_hours',
            'payment_transaction_id', 'qr_code', 'notes', 'special_instructions',
            'cancelled_at', 'cancellation_reason', 'refund_amount', 'refund_status',
            'total_penalties', 'final_amount', 'penalties', 'extensions', 'updated_at',
        ]
        read_only_fields = fields


class CheckInSerializer(serializers.Serializer):
    qr_code = serializers.CharField(required=False, allow_blank=True)


class CancelBookingSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True)


class ExtendBookingSerializer(serializers.Serializer):
    new_end_time = serializers.DateTimeField()


class ConfirmPaymentSerializer(serializers.Serializer):
    transaction_id = serializers.CharField(max_length=100, required=False, allow_blank=True)


class AvailableSlotsQuerySerializer(serializers.Serializer):
    location = serializers.IntegerField()
    space_id = serializers.CharField(max_length=20)
    date = serializers.DateField()
