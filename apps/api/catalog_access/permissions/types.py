from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum


ACTION_DASHBOARDS_READ = "dashboards:read"
ACTION_DASHBOARDS_WRITE = "dashboards:write"
ACTION_DASHBOARDS_CREATE = "dashboards:create"
ACTION_FOLDERS_READ = "folders:read"
ACTION_ALERT_RULES_READ = "alert.rules:read"
ACTION_ALERT_RULES_CREATE = "alert.rules:create"

SCOPE_DASHBOARDS_PREFIX = "dashboards:uid:"
SCOPE_FOLDERS_PREFIX = "folders:uid:"

GLOBAL_ORG_ID = 0
SERVER_ADMIN_ROLE = "Server Admin"


class PermissionLevel(IntEnum):
    VIEW = 1
    EDIT = 2
    ADMIN = 4


class QueryType(StrEnum):
    DASHBOARD = "dash-db"
    FOLDER = "dash-folder"
    ALERT_FOLDER = "dash-folder-alerting"
    MIXED = ""


class OrgRole(StrEnum):
    NONE = "None"
    VIEWER = "Viewer"
    EDITOR = "Editor"
    ADMIN = "Admin"

    def includes(self) -> list[OrgRole]:
        """Roles whose grants also apply to this role, starting with itself."""

        if self is OrgRole.NONE:
            return [OrgRole.NONE]
        ladder = [OrgRole.VIEWER, OrgRole.EDITOR, OrgRole.ADMIN]
        return list(reversed(ladder[: ladder.index(self) + 1]))


@dataclass(frozen=True, slots=True)
class ActionSets:
    dashboard: tuple[str, ...] = ()
    folder: tuple[str, ...] = ()


# (read actions, additional actions required for edit) per query type
QUERY_TYPE_ACTIONS: dict[QueryType, tuple[ActionSets, ActionSets]] = {
    QueryType.DASHBOARD: (
        ActionSets(dashboard=(ACTION_DASHBOARDS_READ,)),
        ActionSets(dashboard=(ACTION_DASHBOARDS_WRITE,)),
    ),
    QueryType.FOLDER: (
        ActionSets(folder=(ACTION_FOLDERS_READ,)),
        ActionSets(folder=(ACTION_DASHBOARDS_CREATE,)),
    ),
    QueryType.ALERT_FOLDER: (
        ActionSets(folder=(ACTION_FOLDERS_READ, ACTION_ALERT_RULES_READ)),
        ActionSets(folder=(ACTION_ALERT_RULES_CREATE,)),
    ),
    QueryType.MIXED: (
        ActionSets(dashboard=(ACTION_DASHBOARDS_READ,), folder=(ACTION_FOLDERS_READ,)),
        ActionSets(dashboard=(ACTION_DASHBOARDS_WRITE,), folder=(ACTION_DASHBOARDS_CREATE,)),
    ),
}


def required_actions(query_type: QueryType, permission_level: PermissionLevel) -> ActionSets:
    read, edit = QUERY_TYPE_ACTIONS[query_type]
    if permission_level <= PermissionLevel.VIEW:
        return read
    return ActionSets(dashboard=read.dashboard + edit.dashboard, folder=read.folder + edit.folder)


@dataclass(slots=True)
class SignedInUser:
    """Identity and permission index of the user a filter is compiled for.

    ``permissions`` maps org id to a mapping of action to granted scopes.
    """

    org_id: int
    user_id: int
    org_role: OrgRole = OrgRole.NONE
    teams: list[int] = field(default_factory=list)
    is_server_admin: bool = False
    permissions: dict[int, dict[str, list[str]]] = field(default_factory=dict)

    def org_permissions(self) -> dict[str, list[str]] | None:
        return self.permissions.get(self.org_id)


def get_org_roles(user: SignedInUser) -> list[str]:
    roles = [str(user.org_role)]
    if user.is_server_admin:
        roles.append(SERVER_ADMIN_ROLE)
    return roles
