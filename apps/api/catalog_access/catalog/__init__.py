from catalog_access.catalog.models import (
    BuiltinRole,
    Dashboard,
    DashboardAcl,
    Folder,
    Permission,
    Role,
    TeamMember,
    TeamRole,
    UserRole,
)

__all__ = [
    "BuiltinRole",
    "Dashboard",
    "DashboardAcl",
    "Folder",
    "Permission",
    "Role",
    "TeamMember",
    "TeamRole",
    "UserRole",
]
