from rest_framework import permissions
import logging

logger = logging.getLogger(__name__)


class IsOwnerWhilePending(permissions.BasePermission):
    """
    Owners may edit their own report until an admin picks it up.
    Reads are governed by the viewset's scoped queryset.
    """
    message = 'Only the owner can edit a report, and only while it is pending.'

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True

        user = getattr(request, 'user', None)
        if obj.user_id != getattr(user, 'pk', None):
            logger.debug('IsOwnerWhilePending: user=%s is not owner of report=%s', getattr(user, 'pk', None), obj.pk)
            return False

        if not obj.is_editable_by_owner:
            logger.debug('IsOwnerWhilePending: report=%s is %s, owner edits closed', obj.pk, obj.status)
            return False
        return True
