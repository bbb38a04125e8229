# ==================== BOOKINGS/SIGNALS.PY (Django Signals) ====================
import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from realtime.broadcaster import RealTimeService
from .models import Booking

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Booking)
def booking_saved(sender, instance, created, **kwargs):
    """Signal handler publishing booking changes to the user and location rooms"""
    if created:
        logger.info(f"New booking created: {instance.id}")
    RealTimeService.broadcast_booking_update(instance, action='created' if created else instance.status)
