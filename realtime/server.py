# ==================== REALTIME/SERVER.PY ====================
import socketio
from django.conf import settings


def get_client_manager():
    """Redis pub/sub manager when a message queue is configured

    Needed whenever events are emitted from more than one process, e.g. Celery
    workers publishing to clients connected to the web process.
    """
    url = getattr(settings, 'SOCKETIO_MESSAGE_QUEUE', '')
    if url:
        return socketio.RedisManager(url)
    return None


sio = socketio.Server(
    async_mode='threading',
    cors_allowed_origins=settings.CORS_ALLOWED_ORIGINS,
    client_manager=get_client_manager(),
    logger=False,
    engineio_logger=False,
)


def location_room(location_id):
    return f"location:{location_id}"


def user_bookings_room(user_id):
    return f"user:bookings:{user_id}"
