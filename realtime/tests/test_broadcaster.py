"""Room naming, payload shapes and commit-time publishing."""

from decimal import Decimal
from unittest import mock

from django.test import TestCase

from locations.services import LocationService
from realtime.broadcaster import RealTimeService, booking_payload
from realtime.server import location_room, user_bookings_room
from utils.tests.factories import make_booking, make_location, make_user


class RoomNameTests(TestCase):
    def test_room_names(self):
        self.assertEqual(location_room(7), 'location:7')
        self.assertEqual(user_bookings_room(3), 'user:bookings:3')


@mock.patch('realtime.broadcaster.sio')
class RealTimeServiceTests(TestCase):
    def setUp(self):
        self.location = make_location(total_spaces=4)

    def test_nothing_is_sent_before_commit(self, sio):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            RealTimeService.notify_user(1, 'booking_created', 'Title', 'Body')
        sio.emit.assert_not_called()
        self.assertEqual(len(callbacks), 1)

    def test_notify_user(self, sio):
        with self.captureOnCommitCallbacks(execute=True):
            RealTimeService.notify_user(5, 'booking_cancelled', 'Booking Cancelled', 'Refund issued',
                                        booking_id=9, refund_amount=Decimal('150.50'))

        event, payload = sio.emit.call_args.args
        self.assertEqual(event, 'notification')
        self.assertEqual(sio.emit.call_args.kwargs['room'], 'user:bookings:5')
        self.assertEqual(payload['type'], 'booking_cancelled')
        self.assertEqual(payload['data'], {'booking_id': 9, 'refund_amount': 150.5})

    def test_space_change_broadcasts_committed_location_state(self, sio):
        with self.captureOnCommitCallbacks(execute=True):
            LocationService.update_space_status(self.location, 'A002', 'occupied')

        [call] = [c for c in sio.emit.call_args_list if c.args[0] == 'location:update']
        payload = call.args[1]
        self.assertEqual(call.kwargs['room'], f"location:{self.location.id}")
        self.assertEqual(payload['available_spaces'], 3)
        self.assertEqual(payload['occupancy_percentage'], 25)
        self.assertEqual(payload['space_id'], 'A002')
        self.assertEqual(payload['space_status'], 'occupied')

    def test_unrelated_space_saves_are_quiet(self, sio):
        space = self.location.spaces.get(space_id='A001')
        with self.captureOnCommitCallbacks(execute=True):
            space.sensor_active = True
            space.save(update_fields=['sensor_active'])
        sio.emit.assert_not_called()

    def test_booking_update_goes_to_user_and_location_rooms(self, sio):
        user = make_user()
        with self.captureOnCommitCallbacks(execute=True):
            booking = make_booking(user, self.location, space_id='A003')

        rooms = {(c.args[0], c.kwargs['room']) for c in sio.emit.call_args_list}
        self.assertEqual(rooms, {
            ('booking:update', f"user:bookings:{user.id}"),
            ('location:booking:update', f"location:{self.location.id}"),
        })
        payload = sio.emit.call_args_list[0].args[1]
        self.assertEqual(payload['booking_id'], booking.id)
        self.assertEqual(payload['action'], 'created')
        self.assertEqual(payload['total_amount'], 200.0)

    def test_emit_failures_are_logged_not_raised(self, sio):
        sio.emit.side_effect = RuntimeError('redis down')
        with self.assertLogs('realtime.broadcaster', level='ERROR'):
            with self.captureOnCommitCallbacks(execute=True):
                RealTimeService.notify_user(1, 'x', 'Title', 'Body')


class BookingPayloadTests(TestCase):
    def test_payload_is_json_ready(self):
        booking = make_booking(make_user(), make_location(), space_id='A003', status='cancelled')
        payload = booking_payload(booking)

        self.assertEqual(payload['action'], 'cancelled')
        self.assertEqual(payload['space_id'], 'A003')
        self.assertEqual(payload['start_time'], booking.start_time.isoformat())
        self.assertIsNone(payload['actual_entry_time'])
        self.assertIsInstance(payload['total_amount'], float)
