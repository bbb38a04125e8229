# ==================== USERS/SERIALIZERS.PY ====================
from rest_framework import serializers
from locations.models import ParkingLocation
from .models import CustomUser, Vehicle


class UserRegistrationSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)
    password_confirm = serializers.CharField(write_only=True)

    class Meta:
        model = CustomUser
        fields = ['username', 'email', 'first_name', 'last_name', 'phone_number', 'password', 'password_confirm']
        extra_kwargs = {
            'first_name': {'required': True, 'allow_blank': False, 'max_length': 50},
            'last_name': {'required': True, 'allow_blank': False, 'max_length': 50},
        }

    def validate_email(self, value):
        value = value.strip().lower()
        if CustomUser.objects.filter(email=value).exists():
            raise serializers.ValidationError("A user with that email already exists.")
        return value

    def validate(self, data):
        if data['password'] != data['password_confirm']:
            raise serializers.ValidationError({"password": "Passwords do not match"})
        return data

    def create(self, validated_data):
        validated_data.pop('password_confirm')
        password = validated_data.pop('password')
        user = CustomUser.objects.create_user(password=password, **validated_data)
        return user


class UserProfileSerializer(serializers.ModelSerializer):
    assigned_locations = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = CustomUser
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone_number', 'role',
                  'date_of_birth', 'gender', 'address', 'city', 'emergency_contact_name',
                  'emergency_contact_phone', 'emergency_contact_relationship', 'assigned_locations',
                  'is_verified', 'created_at']
        read_only_fields = ['username', 'email', 'role', 'is_verified', 'created_at']


class UserSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomUser
        fields = ['id', 'first_name', 'last_name', 'email', 'phone_number']


class VehicleSerializer(serializers.ModelSerializer):
    class Meta:
        model = Vehicle
        fields = ['id', 'plate_number', 'vehicle_type', 'make', 'model', 'is_default', 'created_at']
        read_only_fields = ['created_at']

    def validate_plate_number(self, value):
        value = value.strip().upper()
        user = self.context['request'].user
        existing = Vehicle.objects.filter(owner=user, plate_number=value)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError("You have already registered this vehicle")
        return value


class UserAdminSerializer(serializers.ModelSerializer):
    """Super admin view of an account: role, activation and location assignments"""
    assigned_locations = serializers.PrimaryKeyRelatedField(
        many=True, required=False, queryset=ParkingLocation.objects.filter(is_active=True)
    )

    class Meta:
        model = CustomUser
        fields = ['id', 'username', 'email', 'first_name', 'last_name', 'phone_number', 'role',
                  'is_active', 'is_verified', 'assigned_locations', 'last_login', 'created_at']
        read_only_fields = ['username', 'email', 'first_name', 'last_name', 'phone_number',
                            'last_login', 'created_at']

    def validate(self, data):
        request = self.context['request']
        if self.instance is not None and self.instance.pk == request.user.pk:
            if data.get('role', self.instance.role) != self.instance.role or data.get('is_active') is False:
                raise serializers.ValidationError(
                    'Super admin cannot modify their own role or deactivate their account')

        role = data.get('role', getattr(self.instance, 'role', None))
        if data.get('assigned_locations') and role != 'parking_admin':
            raise serializers.ValidationError(
                {'assigned_locations': 'Only parking admins can be assigned locations'})
        return data

    def update(self, instance, validated_data):
        user = super().update(instance, validated_data)
        # Location assignments only mean something for parking admins
        if user.role != 'parking_admin':
            user.assigned_locations.clear()
        return user


class FavoriteLocationSerializer(serializers.Serializer):
    location_id = serializers.IntegerField(min_value=1)
