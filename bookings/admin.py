# ==================== BOOKINGS/ADMIN.PY ====================
from django.contrib import admin
from .models import Booking, BookingExtension, Penalty


class BookingExtensionInline(admin.TabularInline):
    model = BookingExtension
    extra = 0
    readonly_fields = ['requested_at']


class PenaltyInline(admin.TabularInline):
    model = Penalty
    extra = 0


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'location', 'space', 'status', 'payment_status', 'start_time',
                    'total_amount', 'created_at']
    list_filter = ['status', 'payment_status', 'payment_method', 'created_at']
    search_fields = ['user__username', 'location__name', 'plate_number']
    readonly_fields = ['qr_code', 'created_at', 'updated_at']
    inlines = [BookingExtensionInline, PenaltyInline]


@admin.register(Penalty)
class PenaltyAdmin(admin.ModelAdmin):
    list_display = ['booking', 'penalty_type', 'amount', 'is_paid', 'issued_at']
    list_filter = ['penalty_type', 'is_paid']
    search_fields = ['booking__user__username', 'booking__plate_number']
