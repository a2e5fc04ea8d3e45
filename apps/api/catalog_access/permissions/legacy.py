from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from catalog_access.metrics import observe_permission_filter_compiled
from catalog_access.permissions.clause import Clause, placeholders
from catalog_access.permissions.dialect import Dialect
from catalog_access.permissions.types import OrgRole, PermissionLevel


# dashboard_acl rows holding the built-in grants that apply when an item has no ACL of its own
DEFAULT_ACL_ORG_ID = -1


@dataclass(slots=True)
class DashboardPermissionFilter:
    """Filter catalog rows by ``dashboard_acl`` entries only.

    Used when fine-grained access control is not available. A row is visible
    when an ACL entry on the row or its folder grants the level to the user,
    one of the user's teams or one of the user's roles. Rows without any ACL
    entry on themselves or their folder fall back to the default grants.
    """

    org_role: OrgRole
    dialect: Dialect
    user_id: int
    org_id: int
    permission_level: PermissionLevel
    _clause: Clause = field(init=False, repr=False)

    def __post_init__(self) -> None:
        # roles read from dashboard_acl.role or builtin_role.role arrive as plain strings
        self.org_role = OrgRole(self.org_role)
        self.permission_level = PermissionLevel(self.permission_level)
        self._clause = self._build()
        observe_permission_filter_compiled("legacy", "admin_bypass" if self._clause.is_empty else "acl")

    def _build(self) -> Clause:
        if self.org_role is OrgRole.ADMIN:
            return Clause()

        ok_roles = [str(role) for role in self.org_role.includes()]
        roles_in = placeholders(len(ok_roles))
        false_str = self.dialect.boolean_str(False)

        text = f"""(
		dashboard.id IN (
			SELECT distinct DashboardId from (
				SELECT d.id AS DashboardId
					FROM dashboard AS d
					LEFT JOIN dashboard_acl AS da ON
						da.dashboard_id = d.id OR
						da.dashboard_id = d.folder_id
					WHERE
						d.org_id = ? AND
						da.permission >= ? AND
						(
							da.user_id = ? OR
							da.team_id IN (SELECT team_id from team_member AS tm WHERE tm.user_id = ?) OR
							da.role IN ({roles_in})
						)
				UNION
				SELECT d.id AS DashboardId
					FROM dashboard AS d
					LEFT JOIN dashboard AS folder on folder.id = d.folder_id
					LEFT JOIN dashboard_acl AS da ON
						(
							da.org_id = {DEFAULT_ACL_ORG_ID} AND (
							  (folder.id IS NOT NULL AND folder.has_acl = {false_str}) OR
							  (folder.id IS NULL AND d.has_acl = {false_str})
							)
						)
					WHERE
						d.org_id = ? AND
						da.permission >= ? AND
						(
							da.user_id = ? OR
							da.role IN ({roles_in})
						)
			) AS a
		)
	)
	"""
        level = int(self.permission_level)
        params: list[Any] = [self.org_id, level, self.user_id, self.user_id, *ok_roles]
        params += [self.org_id, level, self.user_id, *ok_roles]
        return Clause(text, tuple(params))

    def predicate(self) -> tuple[str, list[Any]]:
        return self._clause.as_tuple()

    def preamble(self) -> tuple[str, list[Any]]:
        return "", []
