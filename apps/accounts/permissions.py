"""
Permission classes for Supabase-authenticated profiles.
"""

from rest_framework import permissions

from .models import Profile
from .services import UserPermissionService


class IsProfileUser(permissions.BasePermission):
    """
    Permission that checks if the request carries a Supabase-authenticated profile.
    """

    message = 'Authentication required'

    def has_permission(self, request, view):
        return isinstance(request.user, Profile)


class IsAdminRole(IsProfileUser):
    """
    Permission that checks if the profile is an active super admin or barangay admin.
    """

    message = 'Admin access required'

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False

        return UserPermissionService.can_list_users(request.user)
