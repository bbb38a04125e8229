# ==================== BOOKINGS/TASKS.PY (CELERY TASKS) ====================
import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from locations.models import ParkingLocation
from locations.services import LocationService
from realtime.broadcaster import RealTimeService
from .models import Booking, Penalty
from .services import BookingService

logger = logging.getLogger(__name__)


@shared_task
def expire_pending_bookings():
    """Unpaid bookings expire once they start or outlive PENDING_BOOKING_TTL minutes"""
    now = timezone.now()
    stale_before = now - timedelta(minutes=settings.PENDING_BOOKING_TTL)
    expired = 0
    candidates = list(Booking.objects.filter(status='pending').filter(
        Q(start_time__lte=now) | Q(created_at__lte=stale_before)
    ).order_by('pk').values_list('pk', flat=True))

    for booking_id in candidates:
        # Conditional so a payment confirmed after the read is not overwritten
        updated = Booking.objects.filter(pk=booking_id, status='pending').update(
            status='expired', updated_at=timezone.now())
        if not updated:
            continue
        booking = Booking.objects.select_related('location', 'space').get(pk=booking_id)
        RealTimeService.broadcast_booking_update(booking, action='expired')
        RealTimeService.notify_user(
            booking.user_id, 'booking_expired', 'Booking Expired',
            f"Your unpaid booking at {booking.location.name} has expired",
            booking_id=booking.id,
        )
        expired += 1

    logger.info(f"Expired {expired} pending bookings")
    return expired


@shared_task
def mark_no_show_bookings():
    """Confirmed bookings that ended without a check-in become no_show

    The reserved space is released and one hour's rate is recorded as a penalty.
    """
    now = timezone.now()
    marked = 0
    candidates = Booking.objects.filter(
        status='confirmed', end_time__lt=now, actual_entry_time__isnull=True,
    ).values_list('pk', flat=True)

    for booking_id in candidates:
        with transaction.atomic():
            booking = Booking.objects.select_for_update().select_related('space').get(pk=booking_id)
            if booking.status != 'confirmed':
                continue
            location = ParkingLocation.objects.select_for_update().get(pk=booking.location_id)

            booking.status = 'no_show'
            booking.save(update_fields=['status', 'updated_at'])
            Penalty.objects.create(
                booking=booking,
                penalty_type='no_show',
                amount=location.hourly_rate,
                description='No show: booking ended without check-in',
                issued_at=now,
            )
            BookingService.release_space(location, booking)
        marked += 1

    logger.info(f"Marked {marked} bookings as no-show")
    return marked


@shared_task
def refresh_location_occupancy():
    """Fold current occupancy into each active location's running average"""
    refreshed = 0
    for location in ParkingLocation.objects.filter(is_active=True):
        LocationService.refresh_occupancy(location)
        refreshed += 1

    logger.info(f"Refreshed occupancy for {refreshed} locations")
    return refreshed
