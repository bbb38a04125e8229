# ==================== REALTIME/BROADCASTER.PY ====================
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from .server import sio, location_room, user_bookings_room

logger = logging.getLogger(__name__)


def _jsonable(value):
    if isinstance(value, Decimal):
        return float(value)
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return value


def location_status_payload(location):
    return {
        'location_id': location.id,
        'name': location.name,
        'total_spaces': location.total_spaces,
        'available_spaces': location.available_spaces,
        'occupancy_percentage': location.occupancy_percentage,
        'current_status': location.current_status,
        'is_open': location.is_currently_open(),
        'timestamp': timezone.now().isoformat(),
    }


def booking_payload(booking, action=None):
    return {
        'booking_id': booking.id,
        'user_id': booking.user_id,
        'location_id': booking.location_id,
        'space_id': booking.space.space_id,
        'status': booking.status,
        'payment_status': booking.payment_status,
        'action': action or booking.status,
        'start_time': _jsonable(booking.start_time),
        'end_time': _jsonable(booking.end_time),
        'actual_entry_time': _jsonable(booking.actual_entry_time),
        'actual_exit_time': _jsonable(booking.actual_exit_time),
        'total_amount': _jsonable(booking.total_amount),
        'timestamp': timezone.now().isoformat(),
    }


class RealTimeService:
    """Publish domain changes to Socket.IO rooms once the transaction commits"""

    @staticmethod
    def emit(event, data, room):
        # Emission failures are logged, never raised
        try:
            sio.emit(event, data, room=room)
            logger.debug(f"Emitted {event} to {room}")
        except Exception as e:
            logger.error(f"Failed to emit {event} to {room}: {e}")

    @staticmethod
    def publish(event, data, room):
        transaction.on_commit(lambda: RealTimeService.emit(event, data, room))

    @staticmethod
    def broadcast_location_update(location_id, extra=None):
        """location:update with the committed availability of the location"""
        def send():
            from locations.models import ParkingLocation

            location = ParkingLocation.objects.filter(pk=location_id).first()
            if location is None:
                return
            payload = location_status_payload(location)
            payload.update({key: _jsonable(value) for key, value in (extra or {}).items()})
            RealTimeService.emit('location:update', payload, location_room(location_id))

        transaction.on_commit(send)

    @staticmethod
    def broadcast_booking_update(booking, action=None):
        payload = booking_payload(booking, action)
        RealTimeService.publish('booking:update', payload, user_bookings_room(booking.user_id))
        RealTimeService.publish('location:booking:update', payload, location_room(booking.location_id))

    @staticmethod
    def notify_user(user_id, notification_type, title, message, **data):
        payload = {
            'type': notification_type,
            'title': title,
            'message': message,
            'data': {key: _jsonable(value) for key, value in data.items()},
            'timestamp': timezone.now().isoformat(),
        }
        RealTimeService.publish('notification', payload, user_bookings_room(user_id))
