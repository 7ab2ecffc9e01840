import logging

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Profile, Role

logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def on_user_saved(sender, instance, created, **kwargs):
    if created:
        role = Role.SUPERADMIN if instance.is_superuser else Role.USER
        Profile.objects.get_or_create(
            user=instance,
            defaults={'email': instance.email, 'role': role},
        )
        logger.debug('Created profile for user=%s role=%s', instance.pk, role)
        return

    # Keep the profile email in step with the identity
    Profile.objects.filter(user=instance).exclude(email=instance.email).update(email=instance.email)
