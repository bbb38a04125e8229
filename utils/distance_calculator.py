# ==================== UTILS/DISTANCE_CALCULATOR.PY ====================
import math

from geopy.point import Point

EARTH_RADIUS_KM = 6371
EARTH_RADIUS_MILES = 3959


class DistanceCalculator:
    """Great-circle distances, radius checks and ETA between two points"""

    @staticmethod
    def haversine(lat1, lng1, lat2, lng2, unit='km'):
        """Haversine distance between two coordinates in km (or miles)"""
        radius = EARTH_RADIUS_KM if unit == 'km' else EARTH_RADIUS_MILES

        d_lat = math.radians(lat2 - lat1)
        d_lng = math.radians(lng2 - lng1)
        a = (
            math.sin(d_lat / 2) ** 2
            + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
        )
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
        return radius * c

    @staticmethod
    def get_distance_km(lat1, lng1, lat2, lng2):
        """Get distance in kilometers"""
        return DistanceCalculator.haversine(lat1, lng1, lat2, lng2)

    @staticmethod
    def get_distance_m(lat1, lng1, lat2, lng2):
        """Get distance in whole meters"""
        return round(DistanceCalculator.haversine(lat1, lng1, lat2, lng2) * 1000)

    @staticmethod
    def is_within_radius(lat1, lng1, lat2, lng2, radius, unit='km'):
        return DistanceCalculator.haversine(lat1, lng1, lat2, lng2, unit) <= radius

    @staticmethod
    def bounding_box(lat, lng, radius_km):
        """Lat/lng box enclosing the circle of radius_km around (lat, lng)

        Returns (min_lat, max_lat, min_lng, max_lng). Used to narrow the
        queryset before the exact Haversine pass, so it may only ever be
        larger than the circle, never smaller.
        """
        angular = radius_km / EARTH_RADIUS_KM
        lat_rad = math.radians(lat)
        min_lat = lat_rad - angular
        max_lat = lat_rad + angular

        # Circle touches a pole: every longitude is in range
        if min_lat <= -math.pi / 2 or max_lat >= math.pi / 2:
            return (max(-90.0, math.degrees(min_lat)), min(90.0, math.degrees(max_lat)),
                    -180.0, 180.0)

        d_lng = math.asin(min(1.0, math.sin(angular) / math.cos(lat_rad)))
        min_lng = math.degrees(math.radians(lng) - d_lng)
        max_lng = math.degrees(math.radians(lng) + d_lng)

        # Crosses the antimeridian
        if min_lng < -180.0 or max_lng > 180.0:
            min_lng, max_lng = -180.0, 180.0

        return math.degrees(min_lat), math.degrees(max_lat), min_lng, max_lng

    @staticmethod
    def calculate_eta(distance_km, avg_speed_kmh=40):
        """Calculate estimated time of arrival in minutes"""
        if distance_km == 0:
            return 0
        hours = distance_km / avg_speed_kmh
        return int(hours * 60)

    @staticmethod
    def format_coordinates(lat, lng, precision=6):
        return f"{float(lat):.{precision}f}, {float(lng):.{precision}f}"

    @staticmethod
    def validate_coordinates(lat, lng):
        """Parse and range-check a latitude/longitude pair

        Raises ValueError (or TypeError for None) for anything that is not a
        usable coordinate.
        """
        longitude = float(lng)
        if not -180 <= longitude <= 180:
            raise ValueError('Longitude must be between -180 and 180')
        # geopy rejects latitudes outside [-90, 90], NaN included
        point = Point(float(lat), longitude)
        return point.latitude, point.longitude
