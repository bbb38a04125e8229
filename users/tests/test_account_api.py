"""Booking statistics and favourite locations of the signed-in user."""

from datetime import timedelta
from decimal import Decimal

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from locations.services import LocationService
from utils.tests.factories import make_booking, make_location, make_user, next_hour


class ProfileStatsTests(APITestCase):
    def setUp(self):
        self.user = make_user()
        self.client.force_authenticate(self.user)
        self.url = reverse('profile-stats')

    def test_new_user_has_empty_stats(self):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_bookings'], 0)
        self.assertEqual(response.data['total_spent'], 0)
        self.assertEqual(response.data['average_booking_value'], 0)
        self.assertEqual(response.data['favorite_location'], '')

    def test_stats_summarise_bookings(self):
        usual = make_location(name='Alpha Lot')
        other = make_location(name='Zeta Lot')
        start = next_hour()
        make_booking(self.user, usual, space_id='A001', start=start, status='completed')
        make_booking(self.user, usual, space_id='A002', start=start)
        make_booking(self.user, usual, space_id='A003', start=start, status='pending', payment_status='pending',
                     payment_method='card')
        make_booking(self.user, other, space_id='A001', start=start + timedelta(days=1), status='cancelled',
                     payment_status='refunded')
        make_booking(make_user(), other, space_id='A002', start=start, status='completed')

        response = self.client.get(self.url)

        self.assertEqual(response.data['total_bookings'], 4)
        self.assertEqual(response.data['completed_bookings'], 1)
        self.assertEqual(response.data['active_bookings'], 1)
        self.assertEqual(response.data['cancelled_bookings'], 1)
        self.assertEqual(response.data['total_spent'], Decimal('400.00'))
        self.assertEqual(response.data['average_booking_value'], 100)
        self.assertEqual(response.data['total_hours_parked'], 2)
        self.assertEqual(response.data['favorite_location'], 'Alpha Lot')

    def test_requires_authentication(self):
        self.client.force_authenticate(None)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class FavoriteLocationTests(APITestCase):
    def setUp(self):
        self.user = make_user()
        self.location = make_location()
        self.client.force_authenticate(self.user)
        self.list_url = reverse('favorite-list')

    def test_add_list_and_remove(self):
        response = self.client.post(self.list_url, {'location_id': self.location.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        listed = self.client.get(self.list_url)
        self.assertEqual([row['id'] for row in listed.data], [self.location.id])

        response = self.client.delete(reverse('favorite-detail', args=[self.location.id]))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(self.user.favorite_locations.exists())

    def test_duplicate_favorite_rejected(self):
        self.user.favorite_locations.add(self.location)
        response = self.client.post(self.list_url, {'location_id': self.location.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.user.favorite_locations.count(), 1)

    def test_unknown_or_inactive_location(self):
        closed = make_location(name='Closed Lot')
        LocationService.deactivate(closed)

        for location_id in [closed.id, 999999]:
            response = self.client.post(self.list_url, {'location_id': location_id}, format='json')
            self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.post(self.list_url, {'location_id': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_remove_missing_favorite(self):
        response = self.client.delete(reverse('favorite-detail', args=[self.location.id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_favorites_are_per_user(self):
        make_user().favorite_locations.add(self.location)
        response = self.client.get(self.list_url)
        self.assertEqual(response.data, [])

    def test_requires_authentication(self):
        self.client.force_authenticate(None)
        response = self.client.get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
