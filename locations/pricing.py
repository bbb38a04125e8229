# ==================== LOCATIONS/PRICING.PY ====================
import logging
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

VEHICLE_RATE_MULTIPLIERS = {
    'motorcycle': 0.6,
    'car': 1.0,
    'bus': 1.2,
    'truck': 1.5,
}

DEMAND_MULTIPLIERS = {'low': 0.8, 'medium': 1.0, 'high': 1.3, 'surge': 1.8}
TIME_MULTIPLIERS = {'off_peak': 0.9, 'regular': 1.0, 'peak': 1.2, 'prime': 1.5}
DAY_MULTIPLIERS = {'weekday': 1.0, 'weekend': 1.1, 'holiday': 1.3}
DURATION_DISCOUNTS = {'hour': 1.0, 'half_day': 0.95, 'full_day': 0.85, 'weekly': 0.7}

MIN_PRICE_RATIO = 0.8
MAX_PRICE_RATIO = 2.5


class PricingService:
    """Demand and time based price quotes for a parking location"""

    @staticmethod
    def get_base_rate(location, vehicle_type='car'):
        return float(location.hourly_rate) * VEHICLE_RATE_MULTIPLIERS.get(vehicle_type, 1.0)

    @staticmethod
    def get_utilization(location, start_time):
        """Share of spaces booked during the hour that contains start_time"""
        from bookings.models import Booking

        if not location.total_spaces:
            return 0
        hour_start = start_time.replace(minute=0, second=0, microsecond=0)
        hour_end = hour_start + timedelta(hours=1)
        booked = Booking.objects.filter(
            location=location,
            status__in=['pending', 'confirmed', 'active'],
            start_time__lt=hour_end,
            end_time__gt=hour_start,
        ).count()
        return booked / location.total_spaces

    @staticmethod
    def get_demand_level(utilization):
        if utilization >= 0.9:
            return 'surge'
        if utilization >= 0.7:
            return 'high'
        if utilization >= 0.4:
            return 'medium'
        return 'low'

    @staticmethod
    def get_time_factor(start_time):
        hour = timezone.localtime(start_time).hour if timezone.is_aware(start_time) else start_time.hour

        # Rush hours
        if 7 <= hour <= 9 or 17 <= hour <= 19:
            return TIME_MULTIPLIERS['prime']
        if 11 <= hour <= 14 or 20 <= hour <= 22:
            return TIME_MULTIPLIERS['peak']
        if hour >= 23 or hour <= 6:
            return TIME_MULTIPLIERS['off_peak']
        return TIME_MULTIPLIERS['regular']

    @staticmethod
    def is_holiday(day):
        return day.isoformat() in getattr(settings, 'PRICING_HOLIDAYS', [])

    @staticmethod
    def get_day_factor(start_time):
        local = timezone.localtime(start_time) if timezone.is_aware(start_time) else start_time
        if local.weekday() >= 5:
            return DAY_MULTIPLIERS['weekend']
        if PricingService.is_holiday(local.date()):
            return DAY_MULTIPLIERS['holiday']
        return DAY_MULTIPLIERS['weekday']

    @staticmethod
    def get_duration_factor(duration_minutes):
        hours = duration_minutes / 60
        if hours >= 168:
            return DURATION_DISCOUNTS['weekly']
        if hours >= 24:
            return DURATION_DISCOUNTS['full_day']
        if hours >= 12:
            return DURATION_DISCOUNTS['half_day']
        return DURATION_DISCOUNTS['hour']

    @staticmethod
    def apply_constraints(price, base_rate, duration_minutes):
        base_total = base_rate * duration_minutes / 60
        return max(base_total * MIN_PRICE_RATIO, min(base_total * MAX_PRICE_RATIO, price))

    @staticmethod
    def calculate_price(location, start_time, duration_minutes, vehicle_type='car'):
        """Quote a booking of duration_minutes starting at start_time

        Returns the adjusted hourly rate, the clamped total, every factor
        applied and a breakdown of base, demand adjustment and duration
        discount.
        """
        if duration_minutes <= 0:
            raise ValueError('Duration must be greater than zero')

        hours = duration_minutes / 60
        base_rate = PricingService.get_base_rate(location, vehicle_type)
        utilization = PricingService.get_utilization(location, start_time)
        demand_level = PricingService.get_demand_level(utilization)

        factors = {
            'demand': DEMAND_MULTIPLIERS[demand_level],
            'time': PricingService.get_time_factor(start_time),
            'day': PricingService.get_day_factor(start_time),
            'duration': PricingService.get_duration_factor(duration_minutes),
        }

        adjusted_rate = base_rate * factors['demand'] * factors['time'] * factors['day']
        total = PricingService.apply_constraints(
            adjusted_rate * hours * factors['duration'], base_rate, duration_minutes)

        logger.debug(f"Price quote for location {location.id}: {total:.2f} ({demand_level} demand)")
        return {
            'location_id': location.id,
            'vehicle_type': vehicle_type,
            'base_rate': round(base_rate, 2),
            'adjusted_rate': round(adjusted_rate, 2),
            'total_price': round(total, 2),
            'duration': duration_minutes,
            'factors': factors,
            'breakdown': {
                'base': round(base_rate * hours, 2),
                'demand_adjustment': round((adjusted_rate - base_rate) * hours, 2),
                'duration_discount': round(adjusted_rate * hours * (1 - factors['duration']), 2),
            },
            'demand_level': demand_level,
            'utilization': round(utilization, 2),
            'calculated_at': timezone.now().isoformat(),
        }
