from django.db import models
from django.core.cache import cache
from django.conf import settings


class Tenant(models.Model):
    """The organization that owns courses, exams and users."""
    name = models.CharField(max_length=150)
    slug = models.SlugField(max_length=80, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class PlatformSetting(models.Model):
    # --- General & Branding ---
    site_name = models.CharField(max_length=100, default="Exam Platform")
    support_email = models.EmailField(default="support@example.org")

    # --- Exam Defaults ---
    default_exam_duration = models.IntegerField(default=60, help_text="Default duration in minutes")
    # Stored for the exam client; not enforced server-side
    strict_proctoring = models.BooleanField(default=False)

    # --- Countdown ---
    timer_warning_fraction = models.FloatField(default=0.25, help_text="Share of the duration left when the timer turns amber")
    timer_critical_fraction = models.FloatField(default=0.10, help_text="Share of the duration left when the timer turns red")

    # --- Uploads ---
    max_upload_mb = models.PositiveIntegerField(default=10)

    def save(self, *args, **kwargs):
        self.pk = 1  # Singleton pattern
        super().save(*args, **kwargs)
        cache.set('platform_settings', self)

    def delete(self, *args, **kwargs):
        pass

    @classmethod
    def load(cls):
        obj = cache.get('platform_settings')
        if obj is None:
            obj, created = cls.objects.get_or_create(pk=1)
            cache.set('platform_settings', obj)
        return obj

    def __str__(self):
        return "Platform Settings"


class AuditLog(models.Model):
    ACTION_CHOICES = [
        ('CREATE', 'Create'),
        ('UPDATE', 'Update'),
        ('DELETE', 'Delete'),
        ('LOGIN', 'Login'),
        ('SUBMIT', 'Exam Submitted'),
        ('AUTO_SUBMIT', 'Exam Auto-Submitted'),
        ('GRADE', 'Grade Submitted'),
        ('SETTINGS', 'Settings Changed'),
    ]

    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='audit_logs')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    target_model = models.CharField(max_length=50, help_text="e.g., ExamSession, ManualGrade")
    target_object_id = models.CharField(max_length=100, blank=True, null=True)
    details = models.TextField(blank=True, help_text="Description of changes")
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']

    def __str__(self):
        return f"{self.actor} - {self.action} - {self.timestamp}"
