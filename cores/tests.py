from django.core.cache import cache
from django.test import TestCase
from rest_framework.test import APITestCase

from assessments.tests.helpers import ExamFixtures
from .models import AuditLog, PlatformSetting


class PlatformSettingTests(TestCase):
    def setUp(self):
        cache.clear()

    def tearDown(self):
        cache.clear()

    def test_load_returns_singleton(self):
        first = PlatformSetting.load()
        PlatformSetting(site_name="Other").save()

        self.assertEqual(PlatformSetting.objects.count(), 1)
        self.assertEqual(PlatformSetting.load().site_name, "Other")
        self.assertEqual(first.pk, 1)

    def test_delete_is_ignored(self):
        PlatformSetting.load().delete()
        self.assertTrue(PlatformSetting.objects.filter(pk=1).exists())


class SettingsAPITests(ExamFixtures, APITestCase):
    def setUp(self):
        cache.clear()
        self.admin = self.make_user(self.make_tenant(), role='admin', is_staff=True)
        self.client.force_authenticate(self.admin)

    def tearDown(self):
        cache.clear()

    def test_update_is_audited(self):
        response = self.client.put('/api/admin/settings/', {'max_upload_mb': 25, 'strict_proctoring': True}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(PlatformSetting.load().max_upload_mb, 25)
        log = AuditLog.objects.get(action='SETTINGS')
        self.assertEqual(log.actor, self.admin)
        self.assertIn('max_upload_mb', log.details)

        listed = self.client.get('/api/admin/audit-logs/', {'action': 'SETTINGS'})
        self.assertEqual(listed.data[0]['actor_email'], self.admin.email)

    def test_timer_fractions_must_be_ordered(self):
        response = self.client.put('/api/admin/settings/', {'timer_warning_fraction': 0.05, 'timer_critical_fraction': 0.2}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_non_staff_cannot_read_settings(self):
        self.client.force_authenticate(self.make_user(self.make_tenant()))
        self.assertEqual(self.client.get('/api/admin/settings/').status_code, 403)
