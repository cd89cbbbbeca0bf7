"""Permission registry: the closed set of permissions and their UI groups.

Permissions follow the `domain:action` convention. The registry is static;
users hold an explicit set of these identifiers. Roles only survive as the
seed for migrating legacy users that have no permissions yet.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

# ── Identifiers ──────────────────────────────────────────────


class Products:
    VIEW = "products:view"
    CREATE = "products:create"
    EDIT = "products:edit"
    DELETE = "products:delete"
    RESEARCH = "products:research"
    DATASHEET = "products:datasheet"
    FINISH = "products:finish"


class Marketing:
    VIEW = "marketing:view"
    CREATE_CAMPAIGNS = "marketing:create_campaigns"
    EDIT_CAMPAIGNS = "marketing:edit_campaigns"
    DELETE_CAMPAIGNS = "marketing:delete_campaigns"


class Blogs:
    VIEW = "blogs:view"
    CREATE = "blogs:create"
    EDIT = "blogs:edit"
    DELETE = "blogs:delete"
    PUBLISH = "blogs:publish"


class Users:
    VIEW = "users:view"
    CREATE = "users:create"
    EDIT = "users:edit"
    DELETE = "users:delete"
    MANAGE_PERMISSIONS = "users:manage_permissions"


class System:
    VIEW_ANALYTICS = "system:view_analytics"
    MANAGE_SETTINGS = "system:manage_settings"
    BACKUP_RESTORE = "system:backup_restore"


# ── Permission groups (for UI rendering) ─────────────────────


@dataclass(frozen=True)
class PermissionInfo:
    key: str
    label: str
    description: str


@dataclass(frozen=True)
class PermissionGroup:
    title: str
    description: str
    icon: str
    permissions: tuple[PermissionInfo, ...]

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(p.key for p in self.permissions)


PERMISSION_GROUPS: tuple[PermissionGroup, ...] = (
    PermissionGroup(
        title="Product Management",
        description="Product research and datasheet permissions",
        icon="package",
        permissions=(
            PermissionInfo(Products.VIEW, "View products", "See the product list"),
            PermissionInfo(Products.CREATE, "Create products", "Add new products"),
            PermissionInfo(Products.EDIT, "Edit products", "Change existing products"),
            PermissionInfo(Products.DELETE, "Delete products", "Remove products"),
            PermissionInfo(Products.RESEARCH, "Run research", "Generate product research"),
            PermissionInfo(Products.DATASHEET, "Generate datasheets", "Create and edit datasheets"),
            PermissionInfo(Products.FINISH, "Finish products", "Mark products as finished"),
        ),
    ),
    PermissionGroup(
        title="Marketing & Campaigns",
        description="Marketing strategy permissions",
        icon="trending-up",
        permissions=(
            PermissionInfo(Marketing.VIEW, "View marketing", "See campaigns and strategies"),
            PermissionInfo(Marketing.CREATE_CAMPAIGNS, "Create campaigns", "Design new campaigns"),
            PermissionInfo(Marketing.EDIT_CAMPAIGNS, "Edit campaigns", "Change existing campaigns"),
            PermissionInfo(Marketing.DELETE_CAMPAIGNS, "Delete campaigns", "Remove campaigns"),
        ),
    ),
    PermissionGroup(
        title="Content Management",
        description="Blog content permissions",
        icon="edit",
        permissions=(
            PermissionInfo(Blogs.VIEW, "View blogs", "See blog content"),
            PermissionInfo(Blogs.CREATE, "Create blogs", "Write new articles"),
            PermissionInfo(Blogs.EDIT, "Edit blogs", "Change existing articles"),
            PermissionInfo(Blogs.DELETE, "Delete blogs", "Remove articles"),
            PermissionInfo(Blogs.PUBLISH, "Publish blogs", "Publish and schedule articles"),
        ),
    ),
    PermissionGroup(
        title="User Administration",
        description="User management permissions",
        icon="users",
        permissions=(
            PermissionInfo(Users.VIEW, "View users", "See the user list"),
            PermissionInfo(Users.CREATE, "Create users", "Register new users"),
            PermissionInfo(Users.EDIT, "Edit users", "Change user details"),
            PermissionInfo(Users.DELETE, "Delete users", "Remove users"),
            PermissionInfo(
                Users.MANAGE_PERMISSIONS, "Manage permissions", "Assign and change user permissions"
            ),
        ),
    ),
    PermissionGroup(
        title="System Settings",
        description="Advanced system administration permissions",
        icon="settings",
        permissions=(
            PermissionInfo(System.VIEW_ANALYTICS, "View analytics", "Access reports and metrics"),
            PermissionInfo(System.MANAGE_SETTINGS, "Manage settings", "Change system settings"),
            PermissionInfo(System.BACKUP_RESTORE, "Backup and restore", "Run backups and restores"),
        ),
    ),
)

ALL_PERMISSIONS: frozenset[str] = frozenset(k for g in PERMISSION_GROUPS for k in g.keys)

# ── Legacy role → permissions (migration only) ───────────────

ROLE_DEFAULT_PERMISSIONS: dict[str, frozenset[str]] = {
    "ADMIN": ALL_PERMISSIONS,
    "VIEWER": frozenset({Products.VIEW, Marketing.VIEW, Blogs.VIEW, Users.VIEW}),
}


def list_all_permissions() -> frozenset[str]:
    """Return every permission identifier in the registry."""
    return ALL_PERMISSIONS


def is_valid_permission(candidate: str) -> bool:
    return candidate in ALL_PERMISSIONS


def invalid_permissions(candidates: Iterable[str]) -> list[str]:
    """Return the candidates that are not in the registry, in input order."""
    return [c for c in candidates if not is_valid_permission(c)]


def permissions_for_role(role: str) -> frozenset[str]:
    """Permission set a legacy role maps to. Unknown roles map to nothing."""
    return ROLE_DEFAULT_PERMISSIONS.get(role, frozenset())


def has_permission(user_permissions: Iterable[str], permission: str) -> bool:
    return permission in set(user_permissions)


def has_any_permission(user_permissions: Iterable[str], required: Iterable[str]) -> bool:
    """True iff the two sets intersect."""
    return not set(user_permissions).isdisjoint(required)


def has_all_permissions(user_permissions: Iterable[str], required: Iterable[str]) -> bool:
    """True iff every required permission is held."""
    return set(required) <= set(user_permissions)
