# ==================== BOOKINGS/SERVICES.PY ====================
import logging
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from locations.models import ParkingLocation
from realtime.broadcaster import RealTimeService
from utils.exceptions import (
    BookingConflict,
    InvalidBookingState,
    LocationNotFound,
    LocationUnavailable,
    SpaceNotFound,
    SpaceUnavailable,
)
from .models import Booking, BookingExtension, Penalty, BLOCKING_STATUSES, billable_hours

logger = logging.getLogger(__name__)

FULL_REFUND_HOURS = 24
PARTIAL_REFUND_HOURS = 2


class BookingService:
    """Booking lifecycle: validation, conflicts, pricing and state changes"""

    @staticmethod
    def _lock_location(location_id):
        return ParkingLocation.objects.select_for_update().filter(pk=location_id, is_active=True).first()

    @staticmethod
    def validate_booking_request(location, space_id, start_time, end_time, now=None):
        """Check the location, space and time window; returns the ParkingSpace"""
        now = now or timezone.now()
        if location is None or not location.is_active:
            raise LocationNotFound()
        if not location.is_currently_open(now):
            raise LocationUnavailable('Parking location is currently closed')

        space = location.spaces.filter(space_id=space_id).first()
        if space is None:
            raise SpaceNotFound(f"Space {space_id} not found")
        if space.status != 'available':
            raise SpaceUnavailable(f"Parking space is {space.status}")

        if start_time <= now:
            raise ValidationError({'start_time': 'Start time must be in the future'})
        if end_time <= start_time:
            raise ValidationError({'end_time': 'End time must be after start time'})
        return space

    @staticmethod
    def check_conflicts(space, start_time, end_time, exclude_id=None, message=None):
        conflicts = list(Booking.find_conflicting(space, start_time, end_time, exclude_id))
        if conflicts:
            logger.warning(f"Booking conflict on space {space.id}: {[b.id for b in conflicts]}")
            raise BookingConflict(conflicting=conflicts,
                                  detail=message or 'Time slot conflicts with existing booking')

    @staticmethod
    def release_space(location, booking):
        """Free the booking's reserved space unless another confirmed booking still holds it"""
        space = booking.space
        if space.status != 'reserved':
            return False
        if Booking.objects.filter(space=space, status='confirmed').exclude(pk=booking.pk).exists():
            logger.debug(f"Space {space.space_id} stays reserved for another confirmed booking")
            return False
        location.update_space_status(space.space_id, 'available')
        return True

    @staticmethod
    def calculate_amount(start_time, end_time, hourly_rate):
        return Decimal(billable_hours(start_time, end_time)) * Decimal(hourly_rate)

    @staticmethod
    def calculate_refund(booking, now=None):
        """Refund amount and percentage for cancelling now

        100% more than 24h before start, 50% more than 2h before, otherwise
        nothing. Only completed payments are refunded.
        """
        now = now or timezone.now()
        hours_until_start = (booking.start_time - now).total_seconds() / 3600

        percentage = 0
        if hours_until_start > FULL_REFUND_HOURS:
            percentage = 100
        elif hours_until_start > PARTIAL_REFUND_HOURS:
            percentage = 50

        if booking.payment_status != 'completed':
            return Decimal('0'), percentage
        amount = (booking.total_amount * percentage / Decimal(100)).quantize(Decimal('0.01'))
        return amount, percentage

    @staticmethod
    def create_booking(user, location_id, space_id, start_time, end_time, payment_method,
                       vehicle, notes='', special_instructions='', now=None):
        """Create a booking; cash bookings are confirmed and reserve the space at once

        `vehicle` is a dict with plate_number, vehicle_type and optional make/model.
        """
        with transaction.atomic():
            location = BookingService._lock_location(location_id)
            space = BookingService.validate_booking_request(location, space_id, start_time, end_time, now)
            BookingService.check_conflicts(space, start_time, end_time)

            is_cash = payment_method == 'cash'
            booking = Booking.objects.create(
                user=user,
                location=location,
                space=space,
                plate_number=vehicle['plate_number'],
                vehicle_type=vehicle['vehicle_type'],
                vehicle_make=vehicle.get('make', ''),
                vehicle_model=vehicle.get('model', ''),
                start_time=start_time,
                end_time=end_time,
                total_amount=BookingService.calculate_amount(start_time, end_time, location.hourly_rate),
                payment_method=payment_method,
                status='confirmed' if is_cash else 'pending',
                payment_status='completed' if is_cash else 'pending',
                notes=notes,
                special_instructions=special_instructions,
            )

            if is_cash:
                location.update_space_status(space.space_id, 'reserved')
            ParkingLocation.objects.filter(pk=location.pk).update(total_bookings=F('total_bookings') + 1)

        logger.info(f"Booking {booking.id} created by user {user.id} for space {space.space_id} "
                    f"at location {location.id} ({booking.status})")
        RealTimeService.notify_user(
            user.id, 'booking_created', 'Booking Created',
            f"Your booking at {location.name} for space {space.space_id} was created",
            booking_id=booking.id, status=booking.status,
        )
        return booking

    @staticmethod
    def confirm_payment(booking, transaction_id=''):
        """Mark a pending booking as paid and reserve its space"""
        with transaction.atomic():
            location = ParkingLocation.objects.select_for_update().get(pk=booking.location_id)
            booking = Booking.objects.select_for_update().get(pk=booking.pk)
            if booking.status != 'pending':
                raise InvalidBookingState('Only pending bookings can be confirmed')
            BookingService.check_conflicts(booking.space, booking.start_time, booking.end_time,
                                           exclude_id=booking.pk)

            booking.status = 'confirmed'
            booking.payment_status = 'completed'
            booking.payment_transaction_id = transaction_id
            booking.save(update_fields=['status', 'payment_status', 'payment_transaction_id', 'updated_at'])
            if booking.space.status == 'available':
                location.update_space_status(booking.space.space_id, 'reserved')

        logger.info(f"Payment confirmed for booking {booking.id}")
        return booking

    @staticmethod
    def check_in(booking, qr_code=None, now=None):
        now = now or timezone.now()
        if qr_code and qr_code != booking.qr_code:
            raise InvalidBookingState('Invalid QR code')

        with transaction.atomic():
            location = ParkingLocation.objects.select_for_update().get(pk=booking.location_id)
            booking = Booking.objects.select_for_update().get(pk=booking.pk)
            if booking.status != 'confirmed':
                raise InvalidBookingState('Only confirmed bookings can be checked in')
            if now < booking.start_time:
                raise InvalidBookingState('Cannot check in before booking start time')
            if now > booking.end_time:
                raise InvalidBookingState('Booking has expired')

            booking.status = 'active'
            booking.actual_entry_time = now
            booking.save(update_fields=['status', 'actual_entry_time', 'updated_at'])
            location.update_space_status(booking.space.space_id, 'occupied')

        logger.info(f"Booking {booking.id} checked in at {now.isoformat()}")
        RealTimeService.notify_user(
            booking.user_id, 'booking_checkin', 'Successfully Checked In',
            f"You have checked in to space {booking.space.space_id} at {location.name}",
            booking_id=booking.id,
        )
        return booking

    @staticmethod
    def check_out(booking, now=None):
        now = now or timezone.now()
        with transaction.atomic():
            location = ParkingLocation.objects.select_for_update().get(pk=booking.location_id)
            booking = Booking.objects.select_for_update().get(pk=booking.pk)
            if booking.status != 'active':
                raise InvalidBookingState('Only active bookings can be checked out')
            if not booking.actual_entry_time:
                raise InvalidBookingState('Booking was never checked in')

            booking.status = 'completed'
            booking.actual_exit_time = now
            booking.save(update_fields=['status', 'actual_exit_time', 'updated_at'])

            penalty = booking.calculate_overstay_penalty(location.hourly_rate, now)
            if penalty > 0:
                Penalty.objects.create(
                    booking=booking,
                    penalty_type='overstay',
                    amount=penalty,
                    description=f"Overstay penalty: {billable_hours(booking.end_time, now)} hours",
                    issued_at=now,
                )

            location.update_space_status(booking.space.space_id, 'available')
            location.total_revenue = F('total_revenue') + booking.final_amount
            location.save(update_fields=['total_revenue', 'updated_at'])
            location.refresh_from_db(fields=['total_revenue'])

        logger.info(f"Booking {booking.id} checked out, penalties {booking.total_penalties}")
        RealTimeService.notify_user(
            booking.user_id, 'booking_checkout', 'Successfully Checked Out',
            f"You have checked out from {location.name}",
            booking_id=booking.id, penalties=booking.total_penalties,
        )
        return booking

    @staticmethod
    def cancel(booking, cancelled_by, reason='', now=None):
        now = now or timezone.now()
        with transaction.atomic():
            location = ParkingLocation.objects.select_for_update().get(pk=booking.location_id)
            booking = Booking.objects.select_for_update().get(pk=booking.pk)
            if booking.status in ['completed', 'cancelled']:
                raise InvalidBookingState(f"Cannot cancel {booking.status} booking")
            if booking.status == 'active':
                raise InvalidBookingState('Cannot cancel active booking. Please check out first.')

            refund_amount, percentage = BookingService.calculate_refund(booking, now)
            held_space = booking.status == 'confirmed'

            booking.status = 'cancelled'
            booking.cancelled_at = now
            booking.cancelled_by = cancelled_by
            booking.cancellation_reason = reason or 'User requested cancellation'
            booking.refund_amount = refund_amount
            booking.refund_status = 'pending' if refund_amount > 0 else 'not_applicable'
            if refund_amount > 0:
                booking.payment_status = 'refunded' if percentage == 100 else 'partial_refund'
            booking.save()

            if held_space:
                BookingService.release_space(location, booking)

        logger.info(f"Booking {booking.id} cancelled by user {getattr(cancelled_by, 'id', None)}, "
                    f"refund {refund_amount} ({percentage}%)")
        message = f"Your booking at {location.name} has been cancelled"
        if refund_amount > 0:
            message += f" with {percentage}% refund (Rs. {refund_amount})"
        RealTimeService.notify_user(
            booking.user_id, 'booking_cancelled', 'Booking Cancelled', message,
            booking_id=booking.id, refund_amount=refund_amount, refund_percentage=percentage,
        )
        return booking, percentage

    @staticmethod
    def extend(booking, new_end_time):
        with transaction.atomic():
            location = ParkingLocation.objects.select_for_update().get(pk=booking.location_id)
            booking = Booking.objects.select_for_update().get(pk=booking.pk)
            if booking.status not in BLOCKING_STATUSES:
                raise InvalidBookingState('Only confirmed or active bookings can be extended')
            if new_end_time <= booking.end_time:
                raise ValidationError({'new_end_time': 'New end time must be after current end time'})

            BookingService.check_conflicts(booking.space, booking.end_time, new_end_time,
                                           exclude_id=booking.pk,
                                           message='Extension conflicts with another booking')

            additional_hours = billable_hours(booking.end_time, new_end_time)
            additional_amount = Decimal(additional_hours) * location.hourly_rate
            BookingExtension.objects.create(
                booking=booking,
                original_end_time=booking.end_time,
                new_end_time=new_end_time,
                additional_amount=additional_amount,
                status='approved',
            )

            booking.end_time = new_end_time
            booking.total_amount = booking.total_amount + additional_amount
            booking.save(update_fields=['end_time', 'total_amount', 'updated_at'])

        logger.info(f"Booking {booking.id} extended by {additional_hours}h for {additional_amount}")
        RealTimeService.notify_user(
            booking.user_id, 'booking_extended', 'Booking Extended',
            f"Your booking at {location.name} has been extended by {additional_hours} hours "
            f"for Rs. {additional_amount}",
            booking_id=booking.id, additional_amount=additional_amount,
        )
        return booking, additional_hours, additional_amount

    @staticmethod
    def available_slots(location_id, space_id, date):
        """One-hour slots inside operating hours free of confirmed/active bookings"""
        location = ParkingLocation.objects.filter(pk=location_id, is_active=True).first()
        if location is None:
            raise LocationNotFound()
        space = location.spaces.filter(space_id=space_id).first()
        if space is None:
            raise SpaceNotFound(f"Space {space_id} not found")

        day_start = timezone.make_aware(datetime.combine(date, time.min))
        day_end = day_start + timedelta(days=1)
        existing = list(Booking.find_conflicting(space, day_start, day_end))

        slots = []
        for hour in range(location.operating_start.hour, location.operating_end.hour):
            slot_start = timezone.make_aware(datetime.combine(date, time(hour)))
            slot_end = slot_start + timedelta(hours=1)
            if any(b.start_time < slot_end and b.end_time > slot_start for b in existing):
                continue
            slots.append({
                'start_time': slot_start.isoformat(),
                'end_time': slot_end.isoformat(),
                'available': True,
                'price': location.hourly_rate,
            })

        return {
            'date': date.isoformat(),
            'location': {
                'id': location.id,
                'name': location.name,
                'operating_hours': {
                    'start': location.operating_start.strftime('%H:%M'),
                    'end': location.operating_end.strftime('%H:%M'),
                },
            },
            'space_id': space_id,
            'available_slots': slots,
            'total_slots': len(slots),
            'existing_bookings': len(existing),
        }
