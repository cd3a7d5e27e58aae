# apps/core/permissions.py
"""
Centralized permission classes for the entire application.
Enforces the role-gated navigation table on the server side.
"""
from rest_framework import permissions

from apps.users.roles import ROLE_ADMIN, can_mutate, can_view


def _is_signed_in(request):
    return bool(request.user and request.user.is_authenticated)


class IsAdmin(permissions.BasePermission):
    """
    Permission class for admin-only access.
    Grants access to the identity registered in the Admin document.
    """
    message = {'message': 'Only administrators can perform this action.'}

    def has_permission(self, request, view):
        return _is_signed_in(request) and request.user.role == ROLE_ADMIN


class ScreenPermission(permissions.BasePermission):
    """
    Permission class bound to a navigation screen:
    - Reads: role must be allowed on `view.screen` (or one of `view.read_screens`)
    - Writes: role must be allowed on `view.screen` and the permission level
      must be write/all

    Actions listed in `view.read_actions` count as reads even when they are POSTs.
    """
    message = {'message': 'You do not have access to this screen.'}
    read_only_message = {'message': 'Your permission level only allows viewing records.'}

    def _is_read(self, request, view):
        return (
            request.method in permissions.SAFE_METHODS
            or getattr(view, 'action', None) in getattr(view, 'read_actions', ())
        )

    def has_permission(self, request, view):
        if not _is_signed_in(request):
            return False

        role = request.user.role
        screen = getattr(view, 'screen', None)

        if self._is_read(request, view):
            screens = (screen,) + tuple(getattr(view, 'read_screens', ()))
            return any(can_view(name, role) for name in screens if name)

        if not can_view(screen, role):
            return False
        if not can_mutate(request.user.permission):
            self.message = self.read_only_message
            return False
        return True
