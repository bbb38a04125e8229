"""Unit tests for the great-circle helpers."""

from django.test import SimpleTestCase

from utils.distance_calculator import DistanceCalculator


class HaversineTests(SimpleTestCase):
    def test_same_point_is_zero(self):
        self.assertEqual(DistanceCalculator.haversine(27.7172, 85.3240, 27.7172, 85.3240), 0)

    def test_one_degree_of_latitude(self):
        distance = DistanceCalculator.haversine(0, 0, 1, 0)
        self.assertAlmostEqual(distance, 111.195, places=2)

    def test_kathmandu_to_pokhara(self):
        distance = DistanceCalculator.get_distance_km(27.7172, 85.3240, 28.2096, 83.9856)
        self.assertGreater(distance, 140)
        self.assertLess(distance, 150)

    def test_symmetry(self):
        forward = DistanceCalculator.haversine(27.70, 85.30, 27.75, 85.35)
        backward = DistanceCalculator.haversine(27.75, 85.35, 27.70, 85.30)
        self.assertAlmostEqual(forward, backward)

    def test_meters_are_rounded(self):
        meters = DistanceCalculator.get_distance_m(0, 0, 0.01, 0)
        self.assertIsInstance(meters, int)
        self.assertEqual(meters, 1112)

    def test_miles(self):
        km = DistanceCalculator.haversine(0, 0, 1, 0)
        miles = DistanceCalculator.haversine(0, 0, 1, 0, unit='miles')
        self.assertAlmostEqual(km / miles, 6371 / 3959)

    def test_is_within_radius(self):
        self.assertTrue(DistanceCalculator.is_within_radius(0, 0, 0.01, 0, 2))
        self.assertFalse(DistanceCalculator.is_within_radius(0, 0, 0.05, 0, 2))


class BoundingBoxTests(SimpleTestCase):
    def test_box_contains_points_on_circle(self):
        lat, lng, radius = 27.7172, 85.3240, 5
        min_lat, max_lat, min_lng, max_lng = DistanceCalculator.bounding_box(lat, lng, radius)
        self.assertLess(min_lat, lat)
        self.assertGreater(max_lat, lat)
        self.assertLess(min_lng, lng)
        self.assertGreater(max_lng, lng)

        # Due east and due north at exactly the radius stay inside the box
        self.assertLessEqual(DistanceCalculator.haversine(lat, lng, max_lat, lng), radius + 1e-6)
        self.assertLessEqual(min_lng, lng - 0.05)
        self.assertGreaterEqual(max_lng, lng + 0.05)

    def test_pole_uses_full_longitude_range(self):
        min_lat, max_lat, min_lng, max_lng = DistanceCalculator.bounding_box(89.99, 10, 50)
        self.assertEqual((min_lng, max_lng), (-180.0, 180.0))
        self.assertEqual(max_lat, 90.0)

    def test_antimeridian_uses_full_longitude_range(self):
        _, _, min_lng, max_lng = DistanceCalculator.bounding_box(0, 179.99, 10)
        self.assertEqual((min_lng, max_lng), (-180.0, 180.0))


class CoordinateHelperTests(SimpleTestCase):
    def test_validate_coordinates_parses_strings(self):
        self.assertEqual(DistanceCalculator.validate_coordinates('27.5', '85.25'), (27.5, 85.25))

    def test_validate_coordinates_rejects_out_of_range(self):
        with self.assertRaises(ValueError):
            DistanceCalculator.validate_coordinates(91, 0)
        with self.assertRaises(ValueError):
            DistanceCalculator.validate_coordinates(0, 181)
        with self.assertRaises(ValueError):
            DistanceCalculator.validate_coordinates('abc', 0)

    def test_eta(self):
        self.assertEqual(DistanceCalculator.calculate_eta(0), 0)
        self.assertEqual(DistanceCalculator.calculate_eta(20), 30)

    def test_format_coordinates(self):
        self.assertEqual(DistanceCalculator.format_coordinates(27.7, 85.3, precision=2), '27.70, 85.30')
