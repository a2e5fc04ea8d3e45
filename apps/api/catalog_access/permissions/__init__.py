from catalog_access.permissions.clause import Clause, ClauseBuilder
from catalog_access.permissions.dialect import Dialect, SqlAlchemyDialect, dialect_from_url
from catalog_access.permissions.errors import ClauseInvariantError, PermissionFilterError
from catalog_access.permissions.filter import (
    DENY_ALL,
    AccessControlDashboardPermissionFilter,
    FlatFolderMembership,
    PermissionFilter,
    RecursiveFolderMembership,
)
from catalog_access.permissions.legacy import DashboardPermissionFilter
from catalog_access.permissions.recursive import RecursiveQueries
from catalog_access.permissions.roles import RoleResolver, user_roles_filter
from catalog_access.permissions.types import OrgRole, PermissionLevel, QueryType, SignedInUser
from catalog_access.permissions.wildcards import Wildcards, actions_to_check

__all__ = [
    "Clause",
    "ClauseBuilder",
    "Dialect",
    "SqlAlchemyDialect",
    "dialect_from_url",
    "ClauseInvariantError",
    "PermissionFilterError",
    "DENY_ALL",
    "AccessControlDashboardPermissionFilter",
    "FlatFolderMembership",
    "RecursiveFolderMembership",
    "PermissionFilter",
    "DashboardPermissionFilter",
    "RecursiveQueries",
    "RoleResolver",
    "user_roles_filter",
    "OrgRole",
    "PermissionLevel",
    "QueryType",
    "SignedInUser",
    "Wildcards",
    "actions_to_check",
]
