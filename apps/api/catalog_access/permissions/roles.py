from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from catalog_access.permissions.clause import Clause, ClauseBuilder, placeholders
from catalog_access.permissions.types import GLOBAL_ORG_ID


class RoleResolver(Protocol):
    def __call__(self, org_id: int, user_id: int, team_ids: Sequence[int], roles: Sequence[str]) -> Clause:
        ...


def user_roles_filter(org_id: int, user_id: int, team_ids: Sequence[int], roles: Sequence[str]) -> Clause:
    """Join clause restricting ``role`` rows to the ones assigned to a user.

    Roles come from direct user assignments, team assignments and built-in
    org roles; assignments in the global org apply to every org.
    """

    selects: list[Clause] = []

    # anonymous and API key identities carry user id 0 and never get user roles
    if user_id > 0:
        selects.append(
            Clause(
                "SELECT ur.role_id FROM user_role AS ur WHERE ur.user_id = ? AND (ur.org_id = ? OR ur.org_id = ?)",
                (user_id, org_id, GLOBAL_ORG_ID),
            )
        )

    if team_ids:
        selects.append(
            Clause(
                f"SELECT tr.role_id FROM team_role AS tr WHERE tr.team_id IN ({placeholders(len(team_ids))}) AND tr.org_id = ?",
                (*team_ids, org_id),
            )
        )

    if roles:
        selects.append(
            Clause(
                f"SELECT br.role_id FROM builtin_role AS br WHERE br.role IN ({placeholders(len(roles))})"
                " AND (br.org_id = ? OR br.org_id = ?)",
                (*roles, org_id, GLOBAL_ORG_ID),
            )
        )

    if not selects:
        selects.append(Clause("SELECT NULL AS role_id WHERE 1 = 0"))

    builder = ClauseBuilder()
    builder.write("INNER JOIN (")
    builder.append(Clause.join(" UNION ", selects))
    builder.write(") AS all_role ON role.id = all_role.role_id")
    return builder.build()
