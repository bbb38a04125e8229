# ==================== BOOKINGS/MODELS.PY ====================
import base64
import math
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from locations.models import ParkingLocation, ParkingSpace

BLOCKING_STATUSES = ['confirmed', 'active']
OVERSTAY_MULTIPLIER = Decimal('1.5')


def billable_hours(start, end):
    """Whole hours between two datetimes, any started hour counts"""
    return max(0, math.ceil((end - start).total_seconds() / 3600))


class Booking(models.Model):
    STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('active', 'Active - Vehicle Parked'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('expired', 'Expired'),
        ('no_show', 'No Show'),
    )
    PAYMENT_STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
        ('partial_refund', 'Partial Refund'),
    )
    PAYMENT_METHOD_CHOICES = (
        ('paypal', 'PayPal'),
        ('esewa', 'eSewa'),
        ('cash', 'Cash'),
        ('card', 'Card'),
    )
    VEHICLE_TYPE_CHOICES = (
        ('car', 'Car'),
        ('motorcycle', 'Motorcycle'),
        ('bus', 'Bus'),
        ('truck', 'Truck'),
    )
    REFUND_STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('processed', 'Processed'),
        ('failed', 'Failed'),
        ('not_applicable', 'Not Applicable'),
    )

    # Relations
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='bookings')
    location = models.ForeignKey(ParkingLocation, on_delete=models.CASCADE, related_name='bookings')
    space = models.ForeignKey(ParkingSpace, on_delete=models.CASCADE, related_name='bookings')

    # Vehicle snapshot
    plate_number = models.CharField(max_length=20)
    vehicle_type = models.CharField(max_length=20, choices=VEHICLE_TYPE_CHOICES)
    vehicle_make = models.CharField(max_length=50, blank=True)
    vehicle_model = models.CharField(max_length=50, blank=True)

    # Timing
    start_time = models.DateTimeField(db_index=True)
    end_time = models.DateTimeField(db_index=True)
    actual_entry_time = models.DateTimeField(null=True, blank=True)
    actual_exit_time = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)

    # Payment
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    payment_transaction_id = models.CharField(max_length=100, blank=True)

    qr_code = models.CharField(max_length=255, unique=True, null=True, blank=True)
    notes = models.TextField(max_length=500, blank=True)
    special_instructions = models.TextField(max_length=300, blank=True)

    # Cancellation
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+',
    )
    cancellation_reason = models.CharField(max_length=200, blank=True)
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    refund_status = models.CharField(max_length=20, choices=REFUND_STATUS_CHOICES, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status']),
            models.Index(fields=['location', 'status']),
            models.Index(fields=['space', 'start_time', 'end_time']),
        ]

    def __str__(self):
        return f"Booking {self.id} - {self.user.username} at {self.location.name} ({self.space.space_id})"

    def save(self, *args, **kwargs):
        self.plate_number = self.plate_number.upper()
        if not self.qr_code:
            self.qr_code = self.generate_qr_code()
        super().save(*args, **kwargs)

    def generate_qr_code(self):
        """Opaque check-in token encoded as base64"""
        raw = f"{uuid.uuid4().hex}-{self.user_id}-{self.location_id}-{int(timezone.now().timestamp() * 1000)}"
        return base64.b64encode(raw.encode()).decode()

    @property
    def duration_hours(self):
        return billable_hours(self.start_time, self.end_time)

    @property
    def actual_duration_hours(self):
        if self.actual_entry_time and self.actual_exit_time:
            return billable_hours(self.actual_entry_time, self.actual_exit_time)
        return None

    @property
    def total_penalties(self):
        return sum((penalty.amount for penalty in self.penalties.all()), Decimal('0'))

    @property
    def final_amount(self):
        return self.total_amount + self.total_penalties

    def is_currently_active(self, now=None):
        now = now or timezone.now()
        return self.status == 'active' and self.start_time <= now <= self.end_time

    def calculate_overstay_penalty(self, hourly_rate, exit_time=None):
        """1.5x the hourly rate for every started hour past end_time"""
        exit_time = exit_time or self.actual_exit_time or timezone.now()
        if exit_time <= self.end_time:
            return Decimal('0')
        hours = billable_hours(self.end_time, exit_time)
        return (Decimal(hours) * Decimal(hourly_rate) * OVERSTAY_MULTIPLIER).quantize(Decimal('0.01'))

    @classmethod
    def find_conflicting(cls, space, start_time, end_time, exclude_id=None):
        """Confirmed or active bookings of the space overlapping [start_time, end_time)"""
        conflicts = cls.objects.filter(
            space=space,
            status__in=BLOCKING_STATUSES,
            start_time__lt=end_time,
            end_time__gt=start_time,
        )
        if exclude_id is not None:
            conflicts = conflicts.exclude(pk=exclude_id)
        return conflicts.order_by('start_time')


class BookingExtension(models.Model):
    STATUS_CHOICES = (
        ('pending', 'Pending'),
        ('approved', 'Approved'),
        ('rejected', 'Rejected'),
    )

    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='extensions')
    original_end_time = models.DateTimeField()
    new_end_time = models.DateTimeField()
    additional_amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    requested_at = models.DateTimeField(default=timezone.now)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')

    class Meta:
        ordering = ['requested_at']

    def __str__(self):
        return f"Extension for Booking {self.booking_id} until {self.new_end_time}"


class Penalty(models.Model):
    TYPE_CHOICES = (
        ('overstay', 'Overstay'),
        ('wrong_space', 'Wrong Space'),
        ('no_show', 'No Show'),
        ('other', 'Other'),
    )

    booking = models.ForeignKey(Booking, on_delete=models.CASCADE, related_name='penalties')
    penalty_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    description = models.CharField(max_length=200, blank=True)
    issued_at = models.DateTimeField(default=timezone.now)
    is_paid = models.BooleanField(default=False)

    class Meta:
        ordering = ['issued_at']
        verbose_name_plural = 'penalties'

    def __str__(self):
        return f"{self.get_penalty_type_display()} penalty {self.amount} on Booking {self.booking_id}"
