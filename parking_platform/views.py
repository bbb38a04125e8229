# ==================== PARKING_PLATFORM/VIEWS.PY ====================
import logging

from django.db import connection, DatabaseError
from django.utils import timezone
from rest_framework import permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([permissions.AllowAny])
def health_check(request):
    """Liveness plus a database round trip"""
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
        database = 'ok'
    except DatabaseError as e:
        logger.error(f"Health check database failure: {e}")
        database = 'unavailable'

    healthy = database == 'ok'
    return Response({
        'status': 'ok' if healthy else 'degraded',
        'database': database,
        'timestamp': timezone.now().isoformat(),
    }, status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE)
