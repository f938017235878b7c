# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    class Role(models.TextChoices):
        CANDIDATE = "candidate", "Candidate"
        EXAMINER = "examiner", "Examiner"
        ADMIN = "admin", "Admin"
        GRADER = "grader", "Grader"

    # Enforce unique email for authentication
    email = models.EmailField(unique=True)

    role = models.CharField(max_length=20, choices=Role.choices, default=Role.CANDIDATE)
    # Organization scope; exams of other tenants are invisible to this user
    tenant = models.ForeignKey('cores.Tenant', on_delete=models.PROTECT, null=True, blank=True, related_name='users')

    # Set email as the main field for authentication
    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username', 'first_name', 'last_name']

    @property
    def can_grade(self):
        return self.is_staff or self.role in (self.Role.EXAMINER, self.Role.GRADER, self.Role.ADMIN)

    def __str__(self):
        return self.email
