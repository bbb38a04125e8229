# ==================== LOCATIONS/ADMIN.PY ====================
from django.contrib import admin
from .models import ParkingLocation, ParkingSpace, ParkingLocationImage


class ParkingLocationImageInline(admin.TabularInline):
    model = ParkingLocationImage
    extra = 1
    max_num = 3


class ParkingSpaceInline(admin.TabularInline):
    model = ParkingSpace
    extra = 0
    fields = ['space_id', 'space_type', 'status', 'level', 'section', 'sensor_id', 'sensor_active']


@admin.register(ParkingLocation)
class ParkingLocationAdmin(admin.ModelAdmin):
    list_display = ['name', 'parking_owner', 'current_status', 'available_spaces', 'total_spaces',
                    'hourly_rate', 'is_active', 'created_at']
    list_filter = ['current_status', 'is_active', 'created_at']
    search_fields = ['name', 'address', 'parking_owner__username']
    readonly_fields = ['created_at', 'updated_at', 'total_bookings', 'total_revenue',
                       'average_occupancy', 'stats_updated_at']
    inlines = [ParkingSpaceInline, ParkingLocationImageInline]
    fieldsets = (
        ('Basic Info', {'fields': ('parking_owner', 'name', 'description', 'address', 'contact_number')}),
        ('Location', {'fields': ('latitude', 'longitude')}),
        ('Capacity', {'fields': ('total_spaces', 'available_spaces', 'current_status', 'is_active')}),
        ('Pricing', {'fields': ('hourly_rate', 'base_rate', 'discount')}),
        ('Availability', {'fields': ('operating_start', 'operating_end', 'amenities')}),
        ('Stats', {'fields': ('total_bookings', 'total_revenue', 'average_occupancy', 'stats_updated_at')}),
        ('Timestamps', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )


@admin.register(ParkingSpace)
class ParkingSpaceAdmin(admin.ModelAdmin):
    list_display = ['space_id', 'location', 'space_type', 'status', 'level', 'sensor_active', 'last_updated']
    list_filter = ['space_type', 'status', 'sensor_active']
    search_fields = ['space_id', 'location__name', 'sensor_id']
