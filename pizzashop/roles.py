# pizzashop/roles.py
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet


class Role(str, Enum):
    customer = "customer"
    staff = "staff"
    admin = "admin"


class Capability(str, Enum):
    view_all_orders = "view_all_orders"
    manage_order_status = "manage_order_status"
    delete_orders = "delete_orders"
    manage_catalog = "manage_catalog"
    manage_users = "manage_users"


_STAFF = frozenset({Capability.view_all_orders, Capability.manage_order_status})

ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.customer: frozenset(),
    Role.staff: _STAFF,
    Role.admin: _STAFF
    | {Capability.delete_orders, Capability.manage_catalog, Capability.manage_users},
}

_missing = set(Role) - set(ROLE_CAPABILITIES)
if _missing:
    raise RuntimeError(f"Roles without a capability set: {sorted(r.value for r in _missing)}")


def has_capability(role: Role | str, cap: Capability) -> bool:
    try:
        r = Role(role)
    except ValueError:
        return False
    return cap in ROLE_CAPABILITIES[r]
