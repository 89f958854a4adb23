"""
Role and module-capability permission classes.

Administrators name their own roles, so admin-equivalence is decided on
a normalised role string. Everyone else is gated per dashboard module
by the ``{name, view, edit, delete}`` entries stored on the user.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from rest_framework.permissions import BasePermission, SAFE_METHODS

ADMIN_EQUIVALENT_ROLES = {
    'admin',
    'administrator',
    'lab supervisor',
    'lab-supervisor',
    'supervisor',
}

MODULES = [
    'Dashboard',
    'Appointments',
    'Test Catalog',
    'Samples',
    'Result Entry',
    'Report Designer',
    'Inventory',
    'Suppliers',
    'Profiling',
    'Staff Attendance',
    'Finance',
    'User Management',
    'Settings',
]


def normalize_role(role: Any) -> str:
    return re.sub(r'[\s_-]+', ' ', str(role or '').strip().lower())


_ADMIN_NORMALISED = {normalize_role(r) for r in ADMIN_EQUIVALENT_ROLES}


def is_admin_role(role: Any) -> bool:
    return normalize_role(role) in _ADMIN_NORMALISED


@dataclass(frozen=True)
class Capabilities:
    view: bool = False
    edit: bool = False
    delete: bool = False

    def as_dict(self) -> dict[str, bool]:
        return {'view': self.view, 'edit': self.edit, 'delete': self.delete}


FULL_ACCESS = Capabilities(True, True, True)
VIEW_ONLY = Capabilities(view=True)
NO_ACCESS = Capabilities()


def module_capabilities(role: Any, permissions: Any, module: str) -> Capabilities:
    """Resolve what ``role`` may do in ``module``.

    Admin-equivalent roles get everything. A user without a permission
    list predates the permission model and is not restricted. With a
    list, the entry named like ``module`` (trimmed, case-insensitive)
    decides; a module missing from the list is view-only.
    """
    if is_admin_role(role):
        return FULL_ACCESS
    if normalize_role(role) == 'patient':
        return NO_ACCESS
    if not isinstance(permissions, list):
        return FULL_ACCESS
    wanted = module.strip().lower()
    for entry in permissions:
        if not isinstance(entry, dict):
            continue
        if str(entry.get('name') or '').strip().lower() == wanted:
            return Capabilities(
                view=bool(entry.get('view')),
                edit=bool(entry.get('edit')),
                delete=bool(entry.get('delete')),
            )
    return VIEW_ONLY


def capability_map(user) -> dict[str, dict[str, bool]]:
    role = getattr(user, 'role', None)
    perms = getattr(user, 'permissions', None)
    return {m: module_capabilities(role, perms, m).as_dict() for m in MODULES}


def _authenticated(request) -> bool:
    user = getattr(request, 'user', None)
    return bool(user and user.is_authenticated)


class IsAdminRole(BasePermission):
    """Allow access only to users with an admin-equivalent role."""
    message = 'Admin access required'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _authenticated(request) and is_admin_role(getattr(request.user, 'role', None))


class IsAdminOrReadOnly(IsAdminRole):
    """Reads are open to anyone; writes need an admin-equivalent role."""

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return True
        return super().has_permission(request, view)


class IsPatientRole(BasePermission):
    """Allow access only to users with the patient role."""
    message = 'Patient access required'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _authenticated(request) and getattr(request.user, 'role', None) == 'patient'


def method_action(method: str) -> str:
    if method in SAFE_METHODS:
        return 'view'
    if method == 'DELETE':
        return 'delete'
    return 'edit'


class HasModuleCapability(BasePermission):
    """Require the HTTP method's capability (view, edit or delete) on ``module``.

    Subclass per module with :func:`module_capability`. With ``public_read``
    safe methods are open to anonymous callers.
    """
    module = ''
    public_read = False
    message = 'Permission denied'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if self.public_read and request.method in SAFE_METHODS:
            return True
        if not _authenticated(request):
            return False
        action = method_action(request.method)
        caps = module_capabilities(request.user.role, request.user.permissions, self.module)
        if getattr(caps, action):
            return True
        self.message = f'You do not have {action} permission for {self.module}'
        return False


def module_capability(module: str, public_read: bool = False) -> type[HasModuleCapability]:
    name = 'Has' + re.sub(r'\W+', '', module.title()) + 'Capability'
    return type(name, (HasModuleCapability,), {'module': module, 'public_read': public_read})
