# ==================== USERS/ADMIN.PY ====================
from django.contrib import admin
from .models import CustomUser, Vehicle


@admin.register(CustomUser)
class CustomUserAdmin(admin.ModelAdmin):
    list_display = ['username', 'email', 'phone_number', 'role', 'is_verified', 'created_at']
    list_filter = ['role', 'is_verified', 'created_at']
    search_fields = ['username', 'email', 'phone_number']
    readonly_fields = ['created_at', 'updated_at']
    filter_horizontal = ['assigned_locations', 'favorite_locations']


@admin.register(Vehicle)
class VehicleAdmin(admin.ModelAdmin):
    list_display = ['plate_number', 'owner', 'vehicle_type', 'is_default', 'created_at']
    list_filter = ['vehicle_type', 'is_default']
    search_fields = ['plate_number', 'owner__username']
    readonly_fields = ['created_at', 'updated_at']
