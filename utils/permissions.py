# ==================== UTILS/PERMISSIONS.PY ====================
from rest_framework import permissions


def is_super_admin(user):
    return bool(user and user.is_authenticated and (user.role == 'super_admin' or user.is_superuser))


def manages_location(user, location):
    """Super admins manage every location, parking admins only assigned ones"""
    if is_super_admin(user):
        return True
    if user.is_authenticated and user.role == 'parking_admin':
        return user.assigned_locations.filter(pk=location.pk).exists()
    return False


class IsSuperAdmin(permissions.BasePermission):
    """Permission to check if user is a super admin"""

    def has_permission(self, request, view):
        return is_super_admin(request.user)


class IsLocationManager(permissions.BasePermission):
    """Super admin or the parking admin assigned to the location"""

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated
                    and request.user.role in ['super_admin', 'parking_admin'])

    def has_object_permission(self, request, view, obj):
        return manages_location(request.user, obj)


class CanViewBooking(permissions.BasePermission):
    """Booking owner, assigned parking admin, or super admin"""

    def has_object_permission(self, request, view, obj):
        user = request.user
        if obj.user_id == user.id:
            return True
        if user.role in ['super_admin', 'parking_admin']:
            return manages_location(user, obj.location)
        return False
