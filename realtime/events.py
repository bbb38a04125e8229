# ==================== REALTIME/EVENTS.PY ====================
import logging

from django.db import close_old_connections
from django.utils import timezone
from rest_framework.exceptions import APIException, AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication
from socketio.exceptions import ConnectionRefusedError

from .broadcaster import location_status_payload
from .server import sio, location_room, user_bookings_room

logger = logging.getLogger(__name__)

ADMIN_ROLES = ['super_admin', 'parking_admin']


def authenticate_token(token):
    """Resolve a JWT access token to an active user or refuse the connection"""
    if not token:
        raise ConnectionRefusedError('Authentication token required')

    authenticator = JWTAuthentication()
    try:
        user = authenticator.get_user(authenticator.get_validated_token(token))
    except AuthenticationFailed:
        raise ConnectionRefusedError('Authentication failed')
    return user


@sio.event
def connect(sid, environ, auth=None):
    try:
        user = authenticate_token((auth or {}).get('token'))
    finally:
        close_old_connections()

    sio.save_session(sid, {'user_id': user.id, 'role': user.role, 'username': user.username})
    sio.emit('connection:success', {
        'message': 'Connected to real-time service',
        'user_id': user.id,
        'timestamp': timezone.now().isoformat(),
    }, to=sid)
    logger.info(f"Socket {sid} connected for user {user.id}")


@sio.event
def disconnect(sid, *args):
    logger.info(f"Socket {sid} disconnected")


@sio.on('subscribe:location')
def subscribe_location(sid, location_id):
    if not location_id:
        return
    location = find_active_location(sid, location_id)
    if location is None:
        return
    sio.enter_room(sid, location_room(location.id))
    send_location_status(sid, location, 'location:status')
    logger.debug(f"Socket {sid} subscribed to location {location.id}")


@sio.on('unsubscribe:location')
def unsubscribe_location(sid, location_id):
    if not location_id:
        return
    sio.leave_room(sid, location_room(location_id))
    logger.debug(f"Socket {sid} unsubscribed from location {location_id}")


@sio.on('subscribe:bookings')
def subscribe_bookings(sid, *args):
    session = sio.get_session(sid)
    sio.enter_room(sid, user_bookings_room(session['user_id']))
    logger.debug(f"Socket {sid} subscribed to bookings of user {session['user_id']}")


@sio.on('request:parking:status')
def request_parking_status(sid, location_id):
    location = find_active_location(sid, location_id)
    if location is not None:
        send_location_status(sid, location, 'parking:status')


def find_active_location(sid, location_id):
    """Active location for a client-supplied id; emits `error` to sid when there is none"""
    from locations.models import ParkingLocation

    try:
        location = ParkingLocation.objects.filter(pk=location_id, is_active=True).first()
    except (TypeError, ValueError):
        location = None

    if location is None:
        sio.emit('error', {'message': 'Location not found'}, to=sid)
    return location


def send_location_status(sid, location, event):
    from bookings.models import Booking

    payload = location_status_payload(location)
    payload['active_bookings'] = Booking.objects.filter(location=location, status='active').count()
    sio.emit(event, payload, to=sid)
    close_old_connections()


@sio.on('booking:update')
def booking_update(sid, data):
    """Admin actions on a booking: confirm (check in), complete (check out), cancel"""
    from bookings.models import Booking
    from bookings.services import BookingService
    from users.models import CustomUser
    from utils.permissions import manages_location

    session = sio.get_session(sid)
    if session.get('role') not in ADMIN_ROLES:
        sio.emit('error', {'message': 'Unauthorized operation'}, to=sid)
        return

    if not isinstance(data, dict):
        sio.emit('error', {'message': 'Invalid booking update payload'}, to=sid)
        return

    try:
        booking = Booking.objects.select_related('location').filter(pk=data.get('bookingId')).first()
    except (TypeError, ValueError):
        booking = None
    if booking is None:
        sio.emit('error', {'message': 'Booking not found'}, to=sid)
        return

    admin = CustomUser.objects.get(pk=session['user_id'])
    if not manages_location(admin, booking.location):
        sio.emit('error', {'message': 'Unauthorized operation'}, to=sid)
        return

    action = data.get('action')
    try:
        if action == 'confirm':
            booking = BookingService.check_in(booking)
        elif action == 'complete':
            booking = BookingService.check_out(booking)
        elif action == 'cancel':
            booking, _ = BookingService.cancel(booking, admin, reason=data.get('reason', 'Cancelled by admin'))
        else:
            sio.emit('error', {'message': 'Invalid action'}, to=sid)
            return
    except APIException as e:
        sio.emit('error', {'message': str(e.detail)}, to=sid)
        return
    finally:
        close_old_connections()

    logger.info(f"Admin {admin.id} applied {action} to booking {booking.id} over socket")
    sio.emit('booking:update:success', {
        'booking_id': booking.id,
        'action': action,
        'status': booking.status,
        'timestamp': timezone.now().isoformat(),
    }, to=sid)
