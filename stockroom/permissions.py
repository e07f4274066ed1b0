# Overview: Role -> capability policy. The only place role names are checked.

from __future__ import annotations

from .errors import PermissionDenied


# Each capability is defined as: (code, description)
CAPABILITY_DEFINITIONS = [
    ("VIEW_PRODUCTS", "View products and quantities on hand"),
    ("MANAGE_PRODUCTS", "Create, edit and delete products"),
    ("DEDUCT_STOCK", "Deduct stock from a single product"),
    ("CREATE_SALE", "Ring up multi-item sales"),
    ("VIEW_SALES", "View the sales log"),
    ("VIEW_REPORTS", "View daily and weekly sales reports"),
    ("MANAGE_USERS", "List accounts, reset passwords, assign roles"),
]

CAPABILITY_CODES = frozenset(code for code, _ in CAPABILITY_DEFINITIONS)

ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    "admin": CAPABILITY_CODES,
    "staff": frozenset({
        "VIEW_PRODUCTS",
        "MANAGE_PRODUCTS",
        "DEDUCT_STOCK",
        "CREATE_SALE",
        "VIEW_SALES",
        "VIEW_REPORTS",
    }),
    "supplier": frozenset({
        "VIEW_PRODUCTS",
    }),
}


def capabilities_for(role: str | None) -> frozenset[str]:
    return ROLE_CAPABILITIES.get(role or "", frozenset())


def is_allowed(role: str | None, capability: str) -> bool:
    """Fail closed: unknown roles and unknown capabilities are denied."""
    if capability not in CAPABILITY_CODES:
        return False
    return capability in capabilities_for(role)


def require_capability(role: str | None, capability: str) -> None:
    if not is_allowed(role, capability):
        raise PermissionDenied(
            "Permission denied",
            details={"required_permission": capability},
        )
