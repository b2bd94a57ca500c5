"""Permissions for the reviewer/admin surface.

Permission naming: `<resource>.<action>`.  The effective set is embedded
in the JWT, so checks are token-only.
"""

from __future__ import annotations

ALL_PERMISSIONS: set[str] = {
    "applications.read",      # list applications, statistics, history
    "applications.review",    # move submitted applications through review
    "applications.annotate",  # add reviewer notes to the history
}

ROLE_DEFAULTS: dict[str, set[str]] = {
    "admin": ALL_PERMISSIONS.copy(),
    "reviewer": {"applications.read", "applications.review", "applications.annotate"},
    "auditor": {"applications.read"},
}


def resolve_permissions(role: str) -> list[str]:
    """Permissions a token for ``role`` carries (empty for unknown roles)."""
    return sorted(ROLE_DEFAULTS.get(role, set()))


def has_permission(user_perms: list[str], required: str) -> bool:
    """`*` grants everything; `<resource>.*` grants every action on a resource."""
    if "*" in user_perms or required in user_perms:
        return True
    resource = required.split(".", 1)[0]
    return f"{resource}.*" in user_perms
