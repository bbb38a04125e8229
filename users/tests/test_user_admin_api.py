"""Super admin management of accounts, roles and location assignments."""

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from locations.services import LocationService
from utils.permissions import manages_location
from utils.tests.factories import make_location, make_user


class UserAdminTests(APITestCase):
    def setUp(self):
        self.super_admin = make_user(role='super_admin')
        self.customer = make_user(first_name='Ramesh')
        self.location = make_location()
        self.client.force_authenticate(self.super_admin)

    def _detail(self, user):
        return reverse('admin-user-detail', args=[user.id])

    def test_only_super_admins(self):
        for role in ['customer', 'parking_admin']:
            self.client.force_authenticate(make_user(role=role))
            response = self.client.get(reverse('admin-user-list'))
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN, role)

    def test_list_filters_and_search(self):
        make_user(role='parking_admin')

        by_role = self.client.get(reverse('admin-user-list'), {'role': 'parking_admin'})
        self.assertEqual(by_role.status_code, status.HTTP_200_OK)
        self.assertEqual(by_role.data['count'], 1)

        by_name = self.client.get(reverse('admin-user-list'), {'search': 'ramesh'})
        self.assertEqual([row['id'] for row in by_name.data['results']], [self.customer.id])

    def test_promote_to_parking_admin_with_locations(self):
        response = self.client.patch(self._detail(self.customer), {
            'role': 'parking_admin',
            'assigned_locations': [self.location.id],
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.role, 'parking_admin')
        self.assertTrue(manages_location(self.customer, self.location))

    def test_demotion_clears_assignments(self):
        self.customer.role = 'parking_admin'
        self.customer.save()
        self.customer.assigned_locations.add(self.location)

        response = self.client.patch(self._detail(self.customer), {'role': 'customer'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(self.customer.assigned_locations.exists())

    def test_assignments_need_parking_admin_role(self):
        response = self.client.patch(self._detail(self.customer),
                                     {'assigned_locations': [self.location.id]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_inactive_location_cannot_be_assigned(self):
        LocationService.deactivate(self.location)
        response = self.client.patch(self._detail(self.customer), {
            'role': 'parking_admin',
            'assigned_locations': [self.location.id],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_deactivate_user(self):
        response = self.client.patch(self._detail(self.customer), {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.customer.refresh_from_db()
        self.assertFalse(self.customer.is_active)

    def test_super_admin_cannot_demote_or_deactivate_self(self):
        for payload in [{'role': 'customer'}, {'is_active': False}]:
            response = self.client.patch(self._detail(self.super_admin), payload, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, payload)

        self.super_admin.refresh_from_db()
        self.assertEqual(self.super_admin.role, 'super_admin')
        self.assertTrue(self.super_admin.is_active)

    def test_identity_fields_are_read_only(self):
        self.client.patch(self._detail(self.customer), {'email': 'new@example.com'}, format='json')
        self.customer.refresh_from_db()
        self.assertNotEqual(self.customer.email, 'new@example.com')

    def test_role_counts(self):
        make_user(role='parking_admin')
        response = self.client.get(reverse('admin-user-roles'))
        self.assertEqual(response.data, {'customer': 1, 'parking_admin': 1, 'super_admin': 1})
