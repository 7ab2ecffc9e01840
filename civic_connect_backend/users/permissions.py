import logging

from django.contrib.auth.mixins import LoginRequiredMixin, UserPassesTestMixin
from rest_framework import permissions

from .capabilities import has_capability, role_of

logger = logging.getLogger(__name__)


def require_capability(capability):
    """Build a DRF permission class granting access to roles holding ``capability``."""

    class CapabilityPermission(permissions.BasePermission):
        message = f"Your role does not allow '{capability}'."

        def has_permission(self, request, view):
            role = role_of(getattr(request, 'user', None))
            allowed = has_capability(role, capability)
            if not allowed:
                logger.debug(
                    'CapabilityPermission: denied %s to role=%s path=%s',
                    capability, role, getattr(request, 'path', None),
                )
            return allowed

    CapabilityPermission.__name__ = f"Requires_{capability.replace('-', '_')}"
    return CapabilityPermission


class CapabilityRequiredMixin(LoginRequiredMixin, UserPassesTestMixin):
    """Page-view counterpart of :func:`require_capability`.

    Anonymous visitors are sent to the sign-in page; signed-in users
    without the capability get a 403.
    """
    required_capability = None

    def test_func(self):
        return has_capability(role_of(self.request.user), self.required_capability)
