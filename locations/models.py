# ==================== LOCATIONS/MODELS.PY ====================
import math

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator, RegexValidator
from django.db import models
from django.utils import timezone
from django.conf import settings

from utils.exceptions import SpaceNotFound

AMENITY_CHOICES = (
    ('cctv', 'CCTV'),
    ('security_guard', 'Security Guard'),
    ('covered', 'Covered'),
    ('ev_charging', 'EV Charging'),
    ('car_wash', 'Car Wash'),
    ('valet', 'Valet'),
    ('bike_parking', 'Bike Parking'),
)

MAX_LOCATION_IMAGES = 3


def validate_amenities(value):
    allowed = {choice for choice, _ in AMENITY_CHOICES}
    if not isinstance(value, list):
        raise ValidationError('Amenities must be a list')
    unknown = [item for item in value if item not in allowed]
    if unknown:
        raise ValidationError(f"Unknown amenities: {', '.join(map(str, unknown))}")


class ParkingLocation(models.Model):
    STATUS_CHOICES = (
        ('open', 'Open'),
        ('closed', 'Closed'),
        ('maintenance', 'Maintenance'),
        ('full', 'Full'),
    )

    name = models.CharField(max_length=100)
    address = models.CharField(max_length=200)
    description = models.TextField(max_length=500, blank=True)
    contact_number = models.CharField(
        max_length=30, blank=True,
        validators=[RegexValidator(r'^[+]?[\d\s\-\(\)]+$', 'Please provide a valid contact number')],
    )

    # Coordinates
    latitude = models.FloatField(validators=[MinValueValidator(-90), MaxValueValidator(90)])
    longitude = models.FloatField(validators=[MinValueValidator(-180), MaxValueValidator(180)])

    # Capacity
    total_spaces = models.IntegerField(validators=[MinValueValidator(1), MaxValueValidator(10000)])
    available_spaces = models.IntegerField(validators=[MinValueValidator(0)])

    # Pricing
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    base_rate = models.DecimalField(max_digits=10, decimal_places=2, default=0, validators=[MinValueValidator(0)])
    discount = models.DecimalField(
        max_digits=5, decimal_places=2, default=0,
        validators=[MinValueValidator(0), MaxValueValidator(50)],
    )

    # Availability
    operating_start = models.TimeField()
    operating_end = models.TimeField()
    amenities = models.JSONField(default=list, blank=True, validators=[validate_amenities])

    parking_owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True,
        related_name='owned_locations',
    )
    is_active = models.BooleanField(default=True, db_index=True)
    current_status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='open', db_index=True)

    # Stats
    total_bookings = models.IntegerField(default=0)
    total_revenue = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    average_occupancy = models.FloatField(default=0, validators=[MinValueValidator(0), MaxValueValidator(100)])
    stats_updated_at = models.DateTimeField(default=timezone.now)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['latitude', 'longitude']),
            models.Index(fields=['available_spaces']),
        ]

    def __str__(self):
        return f"{self.name} - {self.address}"

    def clean(self):
        if self.available_spaces is not None and self.total_spaces is not None \
                and self.available_spaces > self.total_spaces:
            raise ValidationError({'available_spaces': 'Available spaces cannot exceed total spaces'})

    @property
    def occupancy_percentage(self):
        if not self.total_spaces:
            return 0
        occupied = self.total_spaces - self.available_spaces
        return round(occupied / self.total_spaces * 100)

    @property
    def discounted_rate(self):
        if not self.base_rate:
            return self.hourly_rate or 0
        base = float(self.base_rate)
        return math.ceil(base - base * float(self.discount or 0) / 100)

    @property
    def available_space_types(self):
        counts = {}
        for space in self.spaces.all():
            if space.status == 'available':
                counts[space.space_type] = counts.get(space.space_type, 0) + 1
        return counts

    def is_currently_open(self, now=None):
        """Check if location is active, open, and inside operating hours"""
        if not self.is_active or self.current_status != 'open':
            return False
        current = timezone.localtime(now or timezone.now()).time().replace(second=0, microsecond=0)
        return self.operating_start <= current <= self.operating_end

    def update_space_status(self, space_id, new_status):
        """Change one space's status and keep available_spaces in step"""
        try:
            space = self.spaces.get(space_id=space_id)
        except ParkingSpace.DoesNotExist:
            raise SpaceNotFound(f"Space {space_id} not found")

        old_status = space.status
        space.status = new_status
        space.save(update_fields=['status', 'last_updated'])

        if old_status == 'available' and new_status != 'available':
            self.available_spaces = max(0, self.available_spaces - 1)
        elif old_status != 'available' and new_status == 'available':
            self.available_spaces = min(self.total_spaces, self.available_spaces + 1)
        self.save(update_fields=['available_spaces', 'updated_at'])
        return space


class ParkingSpace(models.Model):
    TYPE_CHOICES = (
        ('regular', 'Regular'),
        ('handicapped', 'Handicapped'),
        ('ev-charging', 'EV Charging'),
        ('reserved', 'Reserved'),
    )
    STATUS_CHOICES = (
        ('available', 'Available'),
        ('occupied', 'Occupied'),
        ('maintenance', 'Maintenance'),
        ('reserved', 'Reserved'),
    )

    location = models.ForeignKey(ParkingLocation, on_delete=models.CASCADE, related_name='spaces')
    space_id = models.CharField(max_length=20)
    space_type = models.CharField(max_length=20, choices=TYPE_CHOICES, default='regular')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='available', db_index=True)
    level = models.CharField(max_length=20, blank=True)
    section = models.CharField(max_length=20, blank=True)

    # Sensor integration
    sensor_id = models.CharField(max_length=50, blank=True)
    sensor_active = models.BooleanField(default=False)

    last_updated = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('location', 'space_id')
        ordering = ['space_id']

    def __str__(self):
        return f"{self.space_id} @ {self.location.name}"


class ParkingLocationImage(models.Model):
    """Images for a parking location (at most three)"""
    location = models.ForeignKey(ParkingLocation, on_delete=models.CASCADE, related_name='images')
    image = models.ImageField(upload_to='parking_locations/')
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['uploaded_at']

    def __str__(self):
        return f"Image for {self.location.name}"

    def clean(self):
        existing = ParkingLocationImage.objects.filter(location_id=self.location_id).exclude(pk=self.pk)
        if existing.count() >= MAX_LOCATION_IMAGES:
            raise ValidationError(f'Maximum {MAX_LOCATION_IMAGES} images allowed')


def generate_spaces(total_spaces):
    """Default space layout: 20 spaces per section/level, a share of special types"""
    spaces = []
    for i in range(1, total_spaces + 1):
        level = math.ceil(i / 20)
        section = chr(65 + (i - 1) // 20)

        space_type = 'regular'
        if i <= math.floor(total_spaces * 0.05):
            space_type = 'handicapped'
        elif i <= math.floor(total_spaces * 0.15):
            space_type = 'ev-charging'
        elif i <= math.floor(total_spaces * 0.2):
            space_type = 'reserved'

        spaces.append({
            'space_id': f"{section}{i:03d}",
            'space_type': space_type,
            'status': 'available',
            'level': str(level),
            'section': section,
        })
    return spaces
