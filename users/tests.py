from django.contrib.auth import authenticate
from django.test import TestCase
from rest_framework.test import APITestCase

from assessments.tests.helpers import ExamFixtures


class EmailBackendTests(ExamFixtures, TestCase):
    def setUp(self):
        self.user = self.make_user(self.make_tenant())

    def test_login_with_email_in_any_case(self):
        self.assertEqual(authenticate(username=self.user.email.upper(), password="s3cret-pass"), self.user)

    def test_login_with_username(self):
        self.assertEqual(authenticate(username=self.user.username, password="s3cret-pass"), self.user)

    def test_wrong_password_or_unknown_account(self):
        self.assertIsNone(authenticate(username=self.user.email, password="nope"))
        self.assertIsNone(authenticate(username="ghost@example.org", password="s3cret-pass"))

    def test_inactive_users_cannot_log_in(self):
        self.user.is_active = False
        self.user.save()
        self.assertIsNone(authenticate(username=self.user.email, password="s3cret-pass"))


class LoginAPITests(ExamFixtures, APITestCase):
    def test_login_returns_tokens_and_profile(self):
        tenant = self.make_tenant()
        user = self.make_user(tenant, role='grader')

        response = self.client.post('/api/auth/login/', {'email': user.email, 'password': 's3cret-pass'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['role'], 'grader')
        self.assertEqual(response.data['user']['tenant'], tenant.pk)

    def test_profile_cannot_change_role_or_tenant(self):
        user = self.make_user(self.make_tenant())
        self.client.force_authenticate(user)

        response = self.client.patch('/api/profile/', {'first_name': 'Ada', 'role': 'admin', 'tenant': None}, format='json')

        self.assertEqual(response.status_code, 200)
        user.refresh_from_db()
        self.assertEqual((user.first_name, user.role), ('Ada', 'candidate'))
        self.assertIsNotNone(user.tenant_id)
