from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from catalog_access.core.config import get_settings
from catalog_access.metrics import (
    observe_invariant_failure,
    observe_permission_filter_compiled,
    observe_recursive_queries,
)
from catalog_access.permissions.clause import Clause, ClauseBuilder, placeholders
from catalog_access.permissions.errors import ClauseInvariantError
from catalog_access.permissions.recursive import RecursiveQueries
from catalog_access.permissions.roles import RoleResolver, user_roles_filter
from catalog_access.permissions.types import (
    SCOPE_DASHBOARDS_PREFIX,
    SCOPE_FOLDERS_PREFIX,
    PermissionLevel,
    QueryType,
    SignedInUser,
    get_org_roles,
    required_actions,
)
from catalog_access.permissions.wildcards import Wildcards, actions_to_check


logger = logging.getLogger("catalog_access.permissions")

DENY_ALL = Clause("(1 = 0)")


class PermissionFilter(Protocol):
    def predicate(self) -> tuple[str, list[Any]]:
        ...

    def preamble(self) -> tuple[str, list[Any]]:
        ...


class FolderMembership(Protocol):
    """Turns a folder uid selector into the set a row's folder must belong to."""

    def membership(self, selector: Clause) -> Clause:
        ...


class FlatFolderMembership:
    def membership(self, selector: Clause) -> Clause:
        return selector


class RecursiveFolderMembership:
    """Extends the selected folders with all of their descendants."""

    def __init__(self, queries: RecursiveQueries) -> None:
        self._queries = queries

    def membership(self, selector: Clause) -> Clause:
        name = self._queries.add(selector)
        return Clause(f"(SELECT uid FROM {name})")


def scope_selector(prefix: str, roles_filter: Clause, actions: Sequence[str]) -> Clause:
    """Select the uids under ``prefix`` on which the user's roles hold every action."""

    builder = ClauseBuilder()
    builder.write(f"(SELECT substr(scope, {len(prefix) + 1}) FROM permission WHERE scope LIKE '{prefix}%'")
    builder.write(" AND role_id IN (SELECT id FROM role ").append(roles_filter).write(")")
    if len(actions) == 1:
        builder.write(" AND action = ?", actions[0])
    else:
        builder.write(
            f" AND action IN ({placeholders(len(actions))}) GROUP BY scope HAVING COUNT(DISTINCT action) = ?",
            *actions,
            len(actions),
        )
    builder.write(")")
    return builder.build()


class AccessControlDashboardPermissionFilter:
    """Compile a user's scoped permissions into a catalog search predicate.

    The predicate matches dashboards the user holds the dashboard actions on,
    directly or through their folder, and folders the user holds the folder
    actions on. Actions granted through a wildcard scope need no per-row check.
    With nested folders enabled, folder grants cascade to every descendant
    folder through recursive queries exposed by :meth:`preamble`.
    """

    def __init__(
        self,
        user: SignedInUser | None,
        permission_level: PermissionLevel,
        query_type: QueryType = QueryType.MIXED,
        *,
        nested_folders: bool | None = None,
        role_resolver: RoleResolver = user_roles_filter,
    ) -> None:
        settings = get_settings()
        self.user = user
        self.permission_level = PermissionLevel(permission_level)
        self.query_type = QueryType(query_type)
        self.nested_folders = settings.nested_folders_enabled if nested_folders is None else nested_folders
        self._strict = settings.app_debug
        self._role_resolver = role_resolver

        actions = required_actions(self.query_type, self.permission_level)
        self.dashboard_actions = list(actions.dashboard)
        self.folder_actions = list(actions.folder)

        self._recursive = RecursiveQueries()
        self._where = self._compile()

    def predicate(self) -> tuple[str, list[Any]]:
        return self._where.as_tuple()

    def preamble(self) -> tuple[str, list[Any]]:
        return self._recursive.preamble().as_tuple()

    def _compile(self) -> Clause:
        try:
            where = self._build_clauses()
        except ClauseInvariantError as exc:
            if self._strict:
                raise
            logger.exception("permission_filter.invariant_violation", extra=self._log_fields(error=str(exc)))
            observe_invariant_failure()
            observe_permission_filter_compiled(self.query_type.value, "invariant_failure")
            self._recursive = RecursiveQueries()
            return DENY_ALL

        if where is DENY_ALL:
            logger.info("permission_filter.deny_all", extra=self._log_fields(mode="deny_all"))
            observe_permission_filter_compiled(self.query_type.value, "deny_all")
            return where

        observe_permission_filter_compiled(self.query_type.value, "scoped")
        observe_recursive_queries(len(self._recursive))
        logger.debug(
            "permission_filter.compiled",
            extra=self._log_fields(
                mode="scoped",
                recursive_queries=len(self._recursive),
                param_count=len(where.params) + len(self._recursive.preamble().params),
            ),
        )
        return where

    def _build_clauses(self) -> Clause:
        user = self.user
        permissions = user.org_permissions() if user is not None else None
        if user is None or permissions is None:
            return DENY_ALL

        roles_filter = self._role_resolver(user.org_id, user.user_id, user.teams, get_org_roles(user))
        membership: FolderMembership
        if self.nested_folders:
            membership = RecursiveFolderMembership(self._recursive)
        else:
            membership = FlatFolderMembership()

        branches: list[Clause] = []
        if self.dashboard_actions:
            branches.append(self._dashboard_branch(permissions, roles_filter, membership))
        if self.folder_actions:
            branches.append(self._folder_branch(permissions, roles_filter, membership))
        return Clause.join(" OR ", branches).wrap("(", ")")

    def _dashboard_branch(
        self,
        permissions: Mapping[str, Sequence[str]],
        roles_filter: Clause,
        membership: FolderMembership,
    ) -> Clause:
        to_check = actions_to_check(
            self.dashboard_actions,
            permissions,
            Wildcards.from_prefix(SCOPE_DASHBOARDS_PREFIX),
            Wildcards.from_prefix(SCOPE_FOLDERS_PREFIX),
        )
        if not to_check:
            return Clause("NOT dashboard.is_folder")

        builder = ClauseBuilder()
        builder.write("((dashboard.uid IN ")
        builder.append(scope_selector(SCOPE_DASHBOARDS_PREFIX, roles_filter, to_check))
        builder.write(" AND NOT dashboard.is_folder)")
        builder.write(" OR (dashboard.folder_id IN (SELECT id FROM dashboard AS d WHERE d.uid IN ")
        builder.append(membership.membership(scope_selector(SCOPE_FOLDERS_PREFIX, roles_filter, to_check)))
        builder.write(") AND NOT dashboard.is_folder))")
        return builder.build()

    def _folder_branch(
        self,
        permissions: Mapping[str, Sequence[str]],
        roles_filter: Clause,
        membership: FolderMembership,
    ) -> Clause:
        to_check = actions_to_check(self.folder_actions, permissions, Wildcards.from_prefix(SCOPE_FOLDERS_PREFIX))
        if not to_check:
            return Clause("dashboard.is_folder")

        builder = ClauseBuilder()
        builder.write("(dashboard.uid IN ")
        builder.append(membership.membership(scope_selector(SCOPE_FOLDERS_PREFIX, roles_filter, to_check)))
        builder.write(" AND dashboard.is_folder)")
        return builder.build()

    def _log_fields(self, **fields: Any) -> dict[str, Any]:
        return {
            "query_type": self.query_type.value or "mixed",
            "permission_level": int(self.permission_level),
            "org_id": self.user.org_id if self.user is not None else None,
            "user_id": self.user.user_id if self.user is not None else None,
            "nested_folders": self.nested_folders,
            **fields,
        }
