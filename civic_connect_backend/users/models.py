import uuid

from django.db import models
from django.conf import settings
from django.contrib.auth.models import AbstractUser

from reports.choices import Department


class Role(models.TextChoices):
    USER = 'user', 'User'
    ADMIN = 'admin', 'Admin'
    SUPERADMIN = 'superadmin', 'Super Admin'


class User(AbstractUser):
    """Authentication identity. Sign-up stores the email as the username."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)

    def __str__(self):
        return self.email or self.username


class Profile(models.Model):
    """Application-level record layered over the auth identity.

    The primary key *is* the user's id, so a profile can never drift from
    the identity it describes.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='profile'
    )
    email = models.EmailField()
    full_name = models.CharField(max_length=150, null=True, blank=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.USER)
    department = models.CharField(max_length=32, choices=Department.choices, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.full_name or self.email} ({self.role})"

    @property
    def id(self):
        return self.user_id
