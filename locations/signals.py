# ==================== LOCATIONS/SIGNALS.PY (Django Signals) ====================
from django.db.models.signals import post_save
from django.dispatch import receiver

from realtime.broadcaster import RealTimeService
from .models import ParkingSpace


@receiver(post_save, sender=ParkingSpace)
def space_status_changed(sender, instance, created, **kwargs):
    """Publish location availability whenever a space changes status"""
    if created:
        return
    update_fields = kwargs.get('update_fields')
    if update_fields is not None and 'status' not in update_fields:
        return
    RealTimeService.broadcast_location_update(instance.location_id, extra={
        'space_id': instance.space_id,
        'space_status': instance.status,
    })
