"""Booking lifecycle rules exercised through BookingService."""

from datetime import date, datetime, time, timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from bookings.models import Booking, billable_hours
from bookings.services import BookingService
from locations.models import ParkingLocation
from utils.exceptions import (
    BookingConflict,
    InvalidBookingState,
    LocationNotFound,
    LocationUnavailable,
    SpaceNotFound,
    SpaceUnavailable,
)
from utils.tests.factories import make_booking, make_location, make_user, next_hour

VEHICLE = {'plate_number': 'ba 3 kha 4321', 'vehicle_type': 'car', 'make': 'Suzuki', 'model': 'Swift'}


class BookingCreationTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.location = make_location(total_spaces=10, hourly_rate='100.00')
        self.start = next_hour()

    def _create(self, space_id='A003', start=None, hours=2, payment_method='cash', **kwargs):
        start = start or self.start
        return BookingService.create_booking(
            user=self.user,
            location_id=self.location.id,
            space_id=space_id,
            start_time=start,
            end_time=start + timedelta(hours=hours),
            payment_method=payment_method,
            vehicle=VEHICLE,
            **kwargs,
        )

    def test_cash_booking_is_confirmed_and_reserves_space(self):
        booking = self._create()

        self.assertEqual(booking.status, 'confirmed')
        self.assertEqual(booking.payment_status, 'completed')
        self.assertEqual(booking.total_amount, Decimal('200.00'))
        self.assertEqual(booking.plate_number, 'BA 3 KHA 4321')
        self.assertTrue(booking.qr_code)

        self.location.refresh_from_db()
        self.assertEqual(self.location.available_spaces, 9)
        self.assertEqual(self.location.total_bookings, 1)
        self.assertEqual(self.location.spaces.get(space_id='A003').status, 'reserved')

    def test_online_payment_stays_pending(self):
        booking = self._create(payment_method='esewa')

        self.assertEqual(booking.status, 'pending')
        self.assertEqual(booking.payment_status, 'pending')
        self.location.refresh_from_db()
        self.assertEqual(self.location.available_spaces, 10)

    def test_partial_hours_are_billed_as_whole_hours(self):
        booking = BookingService.create_booking(
            self.user, self.location.id, 'A003', self.start, self.start + timedelta(minutes=61),
            'card', VEHICLE,
        )
        self.assertEqual(booking.total_amount, Decimal('200.00'))

    def test_overlapping_confirmed_booking_conflicts(self):
        existing = make_booking(make_user(), self.location, space_id='A005', start=self.start, hours=2)

        with self.assertRaises(BookingConflict) as ctx:
            self._create(space_id='A005', start=self.start + timedelta(hours=1))
        self.assertEqual(ctx.exception.detail['conflicting_bookings'][0]['id'], existing.id)

    def test_back_to_back_bookings_do_not_conflict(self):
        make_booking(make_user(), self.location, space_id='A005', start=self.start, hours=2)
        booking = self._create(space_id='A005', start=self.start + timedelta(hours=2), payment_method='card')
        self.assertEqual(booking.status, 'pending')

    def test_pending_and_cancelled_bookings_do_not_block(self):
        make_booking(make_user(), self.location, space_id='A005', start=self.start, status='pending',
                     payment_status='pending', payment_method='card')
        make_booking(make_user(), self.location, space_id='A005', start=self.start, status='cancelled')
        booking = self._create(space_id='A005', payment_method='card')
        self.assertEqual(booking.status, 'pending')

    def test_rejects_unknown_or_closed_location(self):
        with self.assertRaises(LocationNotFound):
            BookingService.create_booking(self.user, 999999, 'A001', self.start,
                                          self.start + timedelta(hours=1), 'cash', VEHICLE)

        ParkingLocation.objects.filter(pk=self.location.pk).update(current_status='maintenance')
        with self.assertRaises(LocationUnavailable):
            self._create()

    def test_rejects_unknown_or_busy_space(self):
        with self.assertRaises(SpaceNotFound):
            self._create(space_id='Z999')

        self.location.update_space_status('A006', 'maintenance')
        with self.assertRaises(SpaceUnavailable):
            self._create(space_id='A006')

    def test_rejects_past_start_and_empty_window(self):
        with self.assertRaises(ValidationError):
            self._create(start=timezone.now() - timedelta(hours=1))
        with self.assertRaises(ValidationError):
            self._create(hours=0)

    def test_confirm_payment(self):
        booking = self._create(payment_method='card')
        booking = BookingService.confirm_payment(booking, transaction_id='TXN-42')

        self.assertEqual(booking.status, 'confirmed')
        self.assertEqual(booking.payment_status, 'completed')
        self.assertEqual(booking.payment_transaction_id, 'TXN-42')
        self.assertEqual(self.location.spaces.get(space_id='A003').status, 'reserved')

        with self.assertRaises(InvalidBookingState):
            BookingService.confirm_payment(booking)

    def test_cancel_keeps_space_reserved_for_other_confirmed_booking(self):
        first = self._create(space_id='A001', payment_method='card')
        second = self._create(space_id='A001', start=self.start + timedelta(hours=5), payment_method='card')
        BookingService.confirm_payment(first)
        second = BookingService.confirm_payment(second)

        BookingService.cancel(second, self.user)

        first.refresh_from_db()
        self.location.refresh_from_db()
        self.assertEqual(first.status, 'confirmed')
        self.assertEqual(self.location.spaces.get(space_id='A001').status, 'reserved')
        self.assertEqual(self.location.available_spaces, 9)

        BookingService.cancel(first, self.user)
        self.location.refresh_from_db()
        self.assertEqual(self.location.spaces.get(space_id='A001').status, 'available')
        self.assertEqual(self.location.available_spaces, 10)

    def test_confirm_payment_conflicts_with_slot_taken_meanwhile(self):
        pending = self._create(payment_method='card')
        make_booking(make_user(), self.location, space_id='A003', start=self.start)

        with self.assertRaises(BookingConflict):
            BookingService.confirm_payment(pending)


class BookingLifecycleTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.location = make_location(total_spaces=10, hourly_rate='100.00')
        self.start = next_hour()
        self.booking = BookingService.create_booking(
            self.user, self.location.id, 'A003', self.start, self.start + timedelta(hours=2), 'cash', VEHICLE,
        )

    def _space_status(self):
        return self.location.spaces.get(space_id='A003').status

    def test_check_in_and_out_on_time(self):
        booking = BookingService.check_in(self.booking, qr_code=self.booking.qr_code,
                                          now=self.start + timedelta(minutes=5))
        self.assertEqual(booking.status, 'active')
        self.assertEqual(self._space_status(), 'occupied')

        booking = BookingService.check_out(booking, now=self.start + timedelta(hours=1, minutes=50))
        self.assertEqual(booking.status, 'completed')
        self.assertEqual(booking.total_penalties, 0)
        self.assertEqual(booking.actual_duration_hours, 2)
        self.assertEqual(self._space_status(), 'available')

        self.location.refresh_from_db()
        self.assertEqual(self.location.available_spaces, 10)
        self.assertEqual(self.location.total_revenue, Decimal('200.00'))

    def test_overstay_penalty(self):
        booking = BookingService.check_in(self.booking, now=self.start + timedelta(minutes=5))
        booking = BookingService.check_out(booking, now=self.start + timedelta(hours=3, minutes=30))

        # 90 minutes late bills two started hours at 1.5x
        penalty = booking.penalties.get()
        self.assertEqual(penalty.penalty_type, 'overstay')
        self.assertEqual(penalty.amount, Decimal('300.00'))
        self.assertEqual(booking.final_amount, Decimal('500.00'))

    def test_check_in_rules(self):
        with self.assertRaises(InvalidBookingState):
            BookingService.check_in(self.booking, qr_code='not-the-code', now=self.start)
        with self.assertRaises(InvalidBookingState):
            BookingService.check_in(self.booking, now=self.start - timedelta(minutes=1))
        with self.assertRaises(InvalidBookingState):
            BookingService.check_in(self.booking, now=self.start + timedelta(hours=3))

    def test_check_out_requires_active_booking(self):
        with self.assertRaises(InvalidBookingState):
            BookingService.check_out(self.booking)

    def test_cancel_more_than_a_day_ahead_refunds_everything(self):
        booking, percentage = BookingService.cancel(self.booking, self.user, reason='Plans changed')

        self.assertEqual(percentage, 100)
        self.assertEqual(booking.status, 'cancelled')
        self.assertEqual(booking.refund_amount, Decimal('200.00'))
        self.assertEqual(booking.refund_status, 'pending')
        self.assertEqual(booking.payment_status, 'refunded')
        self.assertEqual(booking.cancellation_reason, 'Plans changed')
        self.assertEqual(self._space_status(), 'available')

    def test_cancel_refund_tiers(self):
        half, percentage = BookingService.calculate_refund(self.booking, now=self.start - timedelta(hours=5))
        self.assertEqual((half, percentage), (Decimal('100.00'), 50))

        none, percentage = BookingService.calculate_refund(self.booking, now=self.start - timedelta(hours=1))
        self.assertEqual((none, percentage), (Decimal('0'), 0))

    def test_cancel_late_gives_no_refund(self):
        booking, percentage = BookingService.cancel(self.booking, self.user,
                                                    now=self.start - timedelta(minutes=30))
        self.assertEqual(percentage, 0)
        self.assertEqual(booking.refund_status, 'not_applicable')
        self.assertEqual(booking.payment_status, 'completed')

    def test_unpaid_booking_refunds_nothing(self):
        pending = BookingService.create_booking(
            self.user, self.location.id, 'A004', self.start, self.start + timedelta(hours=1), 'card', VEHICLE,
        )
        booking, percentage = BookingService.cancel(pending, self.user)
        self.assertEqual(percentage, 100)
        self.assertEqual(booking.refund_amount, 0)
        self.assertEqual(booking.refund_status, 'not_applicable')

    def test_cannot_cancel_active_or_cancelled(self):
        active = BookingService.check_in(self.booking, now=self.start + timedelta(minutes=5))
        with self.assertRaises(InvalidBookingState):
            BookingService.cancel(active, self.user)

        other = make_booking(self.user, self.location, space_id='A007', status='cancelled')
        with self.assertRaises(InvalidBookingState):
            BookingService.cancel(other, self.user)

    def test_extend(self):
        booking, hours, amount = BookingService.extend(self.booking, self.booking.end_time + timedelta(minutes=90))

        self.assertEqual(hours, 2)
        self.assertEqual(amount, Decimal('200.00'))
        self.assertEqual(booking.total_amount, Decimal('400.00'))
        self.assertEqual(booking.extensions.get().status, 'approved')

    def test_extend_rules(self):
        with self.assertRaises(ValidationError):
            BookingService.extend(self.booking, self.booking.end_time)

        make_booking(make_user(), self.location, space_id='A003', start=self.booking.end_time + timedelta(hours=1))
        with self.assertRaises(BookingConflict):
            BookingService.extend(self.booking, self.booking.end_time + timedelta(hours=2))

        cancelled, _ = BookingService.cancel(self.booking, self.user)
        with self.assertRaises(InvalidBookingState):
            BookingService.extend(cancelled, cancelled.end_time + timedelta(hours=1))


class AvailableSlotsTests(TestCase):
    def test_hourly_slots_skip_booked_hours(self):
        location = make_location(operating_start=time(8, 0), operating_end=time(20, 0))
        location.refresh_from_db()
        day = date.today() + timedelta(days=3)
        ten = timezone.make_aware(datetime.combine(day, time(10, 0)))
        make_booking(make_user(), location, space_id='A003', start=ten, hours=2)
        make_booking(make_user(), location, space_id='A003', start=ten + timedelta(hours=4), status='cancelled')

        result = BookingService.available_slots(location.id, 'A003', day)

        self.assertEqual(result['total_slots'], 10)
        self.assertEqual(result['existing_bookings'], 1)
        self.assertEqual(result['location']['operating_hours'], {'start': '08:00', 'end': '20:00'})
        starts = [slot['start_time'] for slot in result['available_slots']]
        self.assertNotIn(ten.isoformat(), starts)
        self.assertIn((ten + timedelta(hours=2)).isoformat(), starts)

    def test_unknown_space(self):
        location = make_location()
        with self.assertRaises(SpaceNotFound):
            BookingService.available_slots(location.id, 'Z1', date.today())


class BookingModelTests(TestCase):
    def test_billable_hours(self):
        start = timezone.now()
        self.assertEqual(billable_hours(start, start + timedelta(minutes=1)), 1)
        self.assertEqual(billable_hours(start, start + timedelta(hours=2)), 2)
        self.assertEqual(billable_hours(start, start - timedelta(hours=1)), 0)

    def test_find_conflicting_is_half_open(self):
        location = make_location()
        booking = make_booking(make_user(), location, space_id='A003', hours=2)
        space = booking.space

        self.assertEqual(list(Booking.find_conflicting(space, booking.start_time - timedelta(hours=1),
                                                       booking.start_time)), [])
        self.assertEqual(list(Booking.find_conflicting(space, booking.end_time - timedelta(minutes=1),
                                                       booking.end_time + timedelta(hours=1))), [booking])
        self.assertEqual(list(Booking.find_conflicting(space, booking.start_time, booking.end_time,
                                                       exclude_id=booking.id)), [])

    def test_qr_codes_are_unique(self):
        location = make_location()
        first = make_booking(make_user(), location, space_id='A003')
        second = make_booking(make_user(), location, space_id='A004')
        self.assertNotEqual(first.qr_code, second.qr_code)
