ROLE_ADMIN = "ADMIN"
ROLE_WORKER = "WORKER"
ROLES = (ROLE_ADMIN, ROLE_WORKER)

DEFAULT_PERMISSIONS = [
    ("PRODUCT_VIEW", "View products and categories"),
    ("PRODUCT_MANAGE", "Create, edit and delete products and categories"),
    ("SUPPLIER_VIEW", "View suppliers"),
    ("SUPPLIER_MANAGE", "Manage suppliers"),
    ("STOCK_VIEW", "View stock levels, movements and alerts"),
    ("STOCK_MANAGE", "Adjust stock levels"),
    ("POS_SALE_VIEW", "View sales"),
    ("POS_SALE_MANAGE", "Operate the point of sale"),
    ("REPORT_VIEW", "View reports and the dashboard"),
    ("USER_MANAGE", "Manage user accounts"),
    ("SETTINGS_VIEW", "View store settings"),
]

ROLE_PERMISSIONS = {
    ROLE_ADMIN: frozenset(code for code, _ in DEFAULT_PERMISSIONS),
    ROLE_WORKER: frozenset(
        {
            "PRODUCT_VIEW",
            "SUPPLIER_VIEW",
            "STOCK_VIEW",
            "POS_SALE_VIEW",
            "POS_SALE_MANAGE",
            "SETTINGS_VIEW",
        }
    ),
}


def normalize_role(role: str | None) -> str:
    return (role or "").strip().upper()


def permissions_for_role(role: str | None) -> frozenset[str]:
    return ROLE_PERMISSIONS.get(normalize_role(role), frozenset())


def has_permission(role: str | None, permission_key: str) -> bool:
    return permission_key in permissions_for_role(role)


def is_admin(role: str | None) -> bool:
    return normalize_role(role) == ROLE_ADMIN
