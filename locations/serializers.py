# ==================== LOCATIONS/SERIALIZERS.PY ====================
from rest_framework import serializers

from .models import ParkingLocation, ParkingSpace, ParkingLocationImage, MAX_LOCATION_IMAGES
from .services import LocationService


class ParkingLocationImageSerializer(serializers.ModelSerializer):
    class Meta:
        model = ParkingLocationImage
        fields = ['id', 'image', 'uploaded_at']


class ParkingSpaceSerializer(serializers.ModelSerializer):
    class Meta:
        model = ParkingSpace
        fields = ['id', 'space_id', 'space_type', 'status', 'level', 'section',
                  'sensor_id', 'sensor_active', 'last_updated']
        read_only_fields = ['id', 'last_updated']


class ParkingSpaceInputSerializer(serializers.Serializer):
    """Explicit space layout supplied when creating a location"""
    space_id = serializers.CharField(max_length=20)
    space_type = serializers.ChoiceField(choices=ParkingSpace.TYPE_CHOICES, default='regular')
    status = serializers.ChoiceField(choices=ParkingSpace.STATUS_CHOICES, default='available')
    level = serializers.CharField(max_length=20, required=False, allow_blank=True)
    section = serializers.CharField(max_length=20, required=False, allow_blank=True)


class ParkingLocationListSerializer(serializers.ModelSerializer):
    """Simplified serializer for listing parking locations"""
    distance = serializers.SerializerMethodField()
    occupancy_percentage = serializers.IntegerField(read_only=True)
    discounted_rate = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    is_currently_open = serializers.SerializerMethodField()
    images = ParkingLocationImageSerializer(many=True, read_only=True)

    class Meta:
        model = ParkingLocation
        fields = ['id', 'name', 'address', 'latitude', 'longitude', 'total_spaces', 'available_spaces',
                  'hourly_rate', 'discounted_rate', 'discount', 'operating_start', 'operating_end',
                  'amenities', 'current_status', 'occupancy_percentage', 'is_currently_open',
                  'total_bookings', 'images', 'distance']

    def get_distance(self, obj):
        """Distance in meters, set by the nearby search"""
        return getattr(obj, 'distance', None)

    def get_is_currently_open(self, obj):
        return obj.is_currently_open()


class ParkingLocationDetailSerializer(ParkingLocationListSerializer):
    """Full location with live space status"""
    spaces = serializers.SerializerMethodField()
    active_bookings_count = serializers.SerializerMethodField()
    available_space_types = serializers.DictField(read_only=True)

    class Meta(ParkingLocationListSerializer.Meta):
        fields = ParkingLocationListSerializer.Meta.fields + [
            'description', 'contact_number', 'base_rate', 'parking_owner', 'is_active',
            'total_revenue', 'average_occupancy', 'available_space_types', 'spaces',
            'active_bookings_count', 'created_at', 'updated_at',
        ]

    def _booked_space_ids(self, obj):
        if not hasattr(self, '_booked_cache'):
            self._booked_cache = {}
        if obj.pk not in self._booked_cache:
            self._booked_cache[obj.pk] = set(
                LocationService.active_bookings_now(obj).values_list('space_id', flat=True)
            )
        return self._booked_cache[obj.pk]

    def get_spaces(self, obj):
        booked = self._booked_space_ids(obj)
        spaces = []
        for space in obj.spaces.all():
            data = ParkingSpaceSerializer(space).data
            data['has_active_booking'] = space.pk in booked
            data['actual_status'] = 'occupied' if space.pk in booked else space.status
            spaces.append(data)
        return spaces

    def get_active_bookings_count(self, obj):
        return len(self._booked_space_ids(obj))


class ParkingLocationCreateUpdateSerializer(serializers.ModelSerializer):
    """For creating/updating parking locations"""
    spaces = ParkingSpaceInputSerializer(many=True, write_only=True, required=False)
    images = serializers.ListField(
        child=serializers.ImageField(),
        write_only=True,
        required=False,
        max_length=MAX_LOCATION_IMAGES,
    )

    class Meta:
        model = ParkingLocation
        fields = ['id', 'name', 'address', 'description', 'contact_number', 'latitude', 'longitude',
                  'total_spaces', 'hourly_rate', 'base_rate', 'discount', 'operating_start',
                  'operating_end', 'amenities', 'parking_owner', 'current_status', 'spaces', 'images']
        read_only_fields = ['id']

    def validate(self, attrs):
        start = attrs.get('operating_start', getattr(self.instance, 'operating_start', None))
        end = attrs.get('operating_end', getattr(self.instance, 'operating_end', None))
        if start and end and start >= end:
            raise serializers.ValidationError({'operating_end': 'Closing time must be after opening time'})

        spaces = attrs.get('spaces')
        if spaces:
            ids = [space['space_id'] for space in spaces]
            if len(ids) != len(set(ids)):
                raise serializers.ValidationError({'spaces': 'Space ids must be unique'})
            if len(spaces) != attrs.get('total_spaces', len(spaces)):
                raise serializers.ValidationError({'spaces': 'Number of spaces must equal total_spaces'})

        if self.instance is not None and attrs.get('total_spaces', self.instance.total_spaces) \
                != self.instance.total_spaces:
            raise serializers.ValidationError({'total_spaces': 'Total spaces cannot be changed after creation'})
        return attrs

    def create(self, validated_data):
        images = validated_data.pop('images', [])
        spaces = validated_data.pop('spaces', None)
        location = LocationService.create_location(validated_data, spaces=spaces,
                                                   owner=self.context['request'].user)
        for image in images:
            ParkingLocationImage.objects.create(location=location, image=image)
        return location

    def update(self, instance, validated_data):
        validated_data.pop('spaces', None)
        images = validated_data.pop('images', [])
        instance = super().update(instance, validated_data)
        remaining = MAX_LOCATION_IMAGES - instance.images.count()
        for image in images[:max(0, remaining)]:
            ParkingLocationImage.objects.create(location=instance, image=image)
        return instance

    def to_representation(self, instance):
        return ParkingLocationDetailSerializer(instance, context=self.context).data


class SpaceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ParkingSpace.STATUS_CHOICES)
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True)
