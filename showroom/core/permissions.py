"""Role -> permission table and role ordering used to gate back-office actions."""

import logging
from collections.abc import Iterable, Mapping
from enum import Enum
from types import MappingProxyType

from showroom.core.exceptions import UnknownRoleError

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """User roles, listed from least to most privileged."""

    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class Permission(str, Enum):
    """Atomic named capabilities checked by route guards."""

    VIEW_CARS = "view_cars"
    VIEW_CAR_DETAILS = "view_car_details"
    CREATE_CAR = "create_car"
    UPDATE_CAR = "update_car"
    DELETE_CAR = "delete_car"
    MANAGE_INVENTORY = "manage_inventory"
    VIEW_ADMIN_DASHBOARD = "view_admin_dashboard"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    DELETE_USER = "delete_user"
    MANAGE_USERS = "manage_users"
    MANAGE_ROLES = "manage_roles"
    VIEW_SYSTEM_SETTINGS = "view_system_settings"


PermissionTable = Mapping[str, tuple[str, ...]]

_USER_PERMISSIONS = (
    Permission.VIEW_CARS.value,
    Permission.VIEW_CAR_DETAILS.value,
)
_ADMIN_PERMISSIONS = _USER_PERMISSIONS + (
    Permission.CREATE_CAR.value,
    Permission.UPDATE_CAR.value,
    Permission.DELETE_CAR.value,
    Permission.MANAGE_INVENTORY.value,
    Permission.VIEW_ADMIN_DASHBOARD.value,
)
_SUPER_ADMIN_PERMISSIONS = _ADMIN_PERMISSIONS + (
    Permission.CREATE_USER.value,
    Permission.UPDATE_USER.value,
    Permission.DELETE_USER.value,
    Permission.MANAGE_USERS.value,
    Permission.MANAGE_ROLES.value,
    Permission.VIEW_SYSTEM_SETTINGS.value,
)

# Higher roles must stay supersets of lower ones when this table is edited.
DEFAULT_PERMISSIONS: PermissionTable = MappingProxyType(
    {
        Role.USER.value: _USER_PERMISSIONS,
        Role.ADMIN.value: _ADMIN_PERMISSIONS,
        Role.SUPER_ADMIN.value: _SUPER_ADMIN_PERMISSIONS,
    }
)

DEFAULT_ROLE_PRECEDENCE: Mapping[str, int] = MappingProxyType(
    {
        Role.USER.value: 0,
        Role.ADMIN.value: 1,
        Role.SUPER_ADMIN.value: 2,
    }
)


def _key(value: "Enum | str") -> str:
    return value.value if isinstance(value, Enum) else str(value)


class PermissionModel:
    """
    Pure set-membership queries over an immutable role -> permissions table.

    Unknown roles are programming errors. With strict=True (development) they
    raise UnknownRoleError; with strict=False (production) they are logged and
    treated as holding no permissions and the lowest possible rank.
    """

    def __init__(
        self,
        table: PermissionTable = DEFAULT_PERMISSIONS,
        precedence: Mapping[str, int] = DEFAULT_ROLE_PRECEDENCE,
        strict: bool = True,
    ) -> None:
        if set(table) != set(precedence):
            raise ValueError("Permission table and role precedence must cover the same roles")
        self._table = MappingProxyType({role: tuple(perms) for role, perms in table.items()})
        self._sets = MappingProxyType({role: frozenset(perms) for role, perms in table.items()})
        self._precedence = MappingProxyType(dict(precedence))
        self.strict = strict

    @property
    def roles(self) -> tuple[str, ...]:
        """Known roles ordered from lowest to highest precedence."""
        return tuple(sorted(self._precedence, key=self._precedence.__getitem__))

    def is_valid_role(self, role: "Role | str | None") -> bool:
        return role is not None and _key(role) in self._table

    def _check_role(self, role: "Role | str") -> str | None:
        key = _key(role)
        if key in self._table:
            return key
        if self.strict:
            raise UnknownRoleError(f"Unknown role {key!r}")
        logger.warning("Unknown role treated as having no permissions", extra={"role": key})
        return None

    def get_permissions(self, role: "Role | str") -> list[str]:
        """Copy of the role's permissions in table order."""
        key = self._check_role(role)
        return list(self._table[key]) if key is not None else []

    def has_permission(self, role: "Role | str", permission: "Permission | str") -> bool:
        key = self._check_role(role)
        return key is not None and _key(permission) in self._sets[key]

    def has_any(self, role: "Role | str", permissions: Iterable["Permission | str"]) -> bool:
        key = self._check_role(role)
        if key is None:
            return False
        return any(_key(p) in self._sets[key] for p in permissions)

    def has_all(self, role: "Role | str", permissions: Iterable["Permission | str"]) -> bool:
        key = self._check_role(role)
        if key is None:
            return False
        return all(_key(p) in self._sets[key] for p in permissions)

    def role_precedence(self, role: "Role | str") -> int:
        """Integer rank; unknown roles rank below every known role in non-strict mode."""
        key = self._check_role(role)
        return self._precedence[key] if key is not None else -1

    def has_higher_or_equal_role(self, role: "Role | str", required: "Role | str") -> bool:
        return self.role_precedence(role) >= self.role_precedence(required)
