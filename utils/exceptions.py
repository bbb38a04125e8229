# ==================== UTILS/EXCEPTIONS.PY ====================
import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class LocationUnavailable(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Parking location is not available for booking.'
    default_code = 'location_unavailable'


class LocationNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Parking location not found or inactive.'
    default_code = 'location_not_found'


class SpaceNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Parking space not found.'
    default_code = 'space_not_found'


class SpaceUnavailable(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Parking space is not available.'
    default_code = 'space_unavailable'


class BookingConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Booking conflicts with existing bookings.'
    default_code = 'booking_conflict'

    def __init__(self, conflicting=None, detail=None, code=None):
        if conflicting is not None:
            detail = {
                'error': str(detail or self.default_detail),
                'conflicting_bookings': [
                    {
                        'id': booking.id,
                        'start_time': booking.start_time.isoformat(),
                        'end_time': booking.end_time.isoformat(),
                    }
                    for booking in conflicting
                ],
            }
        super().__init__(detail, code)


class InvalidBookingState(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Booking cannot be changed in its current state.'
    default_code = 'invalid_booking_state'


class InvalidCoordinates(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid latitude, longitude, or radius.'
    default_code = 'invalid_coordinates'


def api_exception_handler(exc, context):
    """DRF exception handler that also maps model validation errors to 400"""
    if isinstance(exc, DjangoValidationError):
        exc = ValidationError(exc.message_dict if hasattr(exc, 'error_dict') else exc.messages)

    response = exception_handler(exc, context)
    if response is None:
        view = context.get('view')
        logger.error(f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}",
                     exc_info=exc)
    return response
