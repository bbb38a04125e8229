"""
WSGI config for parking_platform project.

The Socket.IO server answers /socket.io/ and hands every other request to
Django. Run with a threaded worker, e.g.
    gunicorn parking_platform.wsgi:application --worker-class gthread --threads 50
"""
import os

import socketio
from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'parking_platform.settings')

django_application = get_wsgi_application()

from realtime.server import sio  # noqa: E402

application = socketio.WSGIApp(sio, django_application)
