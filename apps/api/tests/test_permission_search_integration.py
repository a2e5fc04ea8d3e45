from __future__ import annotations

from collections.abc import Generator
from itertools import count

import pytest
from sqlalchemy.orm import Session

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
from catalog_access.core.config import get_settings
from catalog_access.core.database import Base, build_session_factory
from catalog_access.permissions.dialect import SqlAlchemyDialect
from catalog_access.permissions.filter import AccessControlDashboardPermissionFilter
from catalog_access.permissions.legacy import DEFAULT_ACL_ORG_ID, DashboardPermissionFilter
from catalog_access.permissions.types import (
    ACTION_ALERT_RULES_READ,
    ACTION_DASHBOARDS_READ,
    ACTION_DASHBOARDS_WRITE,
    ACTION_FOLDERS_READ,
    OrgRole,
    PermissionLevel,
    QueryType,
    SignedInUser,
)
from catalog_access.search import build_search_statement, search_dashboards


ORG_ID = 1
_role_uids = count(1)


@pytest.fixture(autouse=True)
def setup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.delenv("APP_DEBUG", raising=False)
    monkeypatch.delenv("NESTED_FOLDERS_ENABLED", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    SessionLocal = build_session_factory("sqlite+pysqlite:///:memory:")
    engine = SessionLocal.kw["bind"]
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _add_folder(session: Session, uid: str, parent: Dashboard | None = None, *, has_acl: bool = False) -> Dashboard:
    row = Dashboard(
        uid=uid,
        org_id=ORG_ID,
        folder_id=parent.id if parent is not None else 0,
        is_folder=True,
        has_acl=has_acl,
        title=f"folder {uid}",
    )
    session.add(row)
    session.add(Folder(uid=uid, org_id=ORG_ID, parent_uid=parent.uid if parent is not None else None, title=row.title))
    session.flush()
    return row


def _add_dashboard(session: Session, uid: str, folder: Dashboard | None = None, *, has_acl: bool = False) -> Dashboard:
    row = Dashboard(
        uid=uid,
        org_id=ORG_ID,
        folder_id=folder.id if folder is not None else 0,
        is_folder=False,
        has_acl=has_acl,
        title=f"dashboard {uid}",
    )
    session.add(row)
    session.flush()
    return row


def _grant(session: Session, user: SignedInUser, grants: list[tuple[str, str]]) -> None:
    """Store grants in a role assigned to the user and mirror them in the user's permission index."""

    role = Role(org_id=ORG_ID, uid=f"managed-{next(_role_uids)}", name=f"managed:users:{user.user_id}")
    session.add(role)
    session.flush()
    session.add(UserRole(org_id=ORG_ID, user_id=user.user_id, role_id=role.id))
    index = user.permissions.setdefault(ORG_ID, {})
    for action, scope in grants:
        session.add(Permission(role_id=role.id, action=action, scope=scope))
        index.setdefault(action, []).append(scope)
    session.commit()


def _user(user_id: int = 10, **kwargs: object) -> SignedInUser:
    user = SignedInUser(org_id=ORG_ID, user_id=user_id, org_role=OrgRole.VIEWER, **kwargs)  # type: ignore[arg-type]
    user.permissions = {ORG_ID: {}}
    return user


def _uids(session: Session, permission_filter: object) -> set[str]:
    return {hit.uid for hit in search_dashboards(session, permission_filter, ORG_ID)}  # type: ignore[arg-type]


@pytest.fixture()
def hierarchy(db_session: Session) -> dict[str, Dashboard]:
    # a <- b <- c, plus an unrelated top level folder
    a = _add_folder(db_session, "a")
    b = _add_folder(db_session, "b", a)
    c = _add_folder(db_session, "c", b)
    other = _add_folder(db_session, "other")
    rows = {"a": a, "b": b, "c": c, "other": other}
    rows["dash-a"] = _add_dashboard(db_session, "dash-a", a)
    rows["dash-c"] = _add_dashboard(db_session, "dash-c", c)
    rows["dash-other"] = _add_dashboard(db_session, "dash-other", other)
    rows["dash-root"] = _add_dashboard(db_session, "dash-root")
    db_session.commit()
    return rows


def test_folder_closure_from_top_includes_all_descendants(db_session: Session, hierarchy: dict[str, Dashboard]) -> None:
    user = _user()
    _grant(db_session, user, [(ACTION_FOLDERS_READ, "folders:uid:a")])

    nested = AccessControlDashboardPermissionFilter(user, PermissionLevel.VIEW, QueryType.FOLDER, nested_folders=True)
    flat = AccessControlDashboardPermissionFilter(user, PermissionLevel.VIEW, QueryType.FOLDER, nested_folders=False)

    assert _uids(db_session, nested) == {"a", "b", "c"}
    assert _uids(db_session, flat) == {"a"}


def test_folder_closure_from_middle_excludes_ancestors(db_session: Session, hierarchy: dict[str, Dashboard]) -> None:
    user = _user()
    _grant(db_session, user, [(ACTION_FOLDERS_READ, "folders:uid:b")])

    nested = AccessControlDashboardPermissionFilter(user, PermissionLevel.VIEW, QueryType.FOLDER, nested_folders=True)

    assert _uids(db_session, nested) == {"b", "c"}


def test_nested_toggle_keeps_single_level_results(db_session: Session) -> None:
    for uid in ("x", "y", "z"):
        _add_folder(db_session, uid)
    db_session.commit()
    user = _user()
    _grant(db_session, user, [(ACTION_FOLDERS_READ, "folders:uid:x"), (ACTION_FOLDERS_READ, "folders:uid:z")])

    results = {
        nested: _uids(
            db_session,
            AccessControlDashboardPermissionFilter(user, PermissionLevel.VIEW, QueryType.FOLDER, nested_folders=nested),
        )
        for nested in (False, True)
    }

    assert results[False] == results[True] == {"x", "z"}


def test_dashboards_inherit_folder_grants(db_session: Session, hierarchy: dict[str, Dashboard]) -> None:
    user = _user()
    _grant(db_session, user, [(ACTION_DASHBOARDS_READ, "folders:uid:a"), (ACTION_DASHBOARDS_READ, "dashboards:uid:dash-root")])

    flat = AccessControlDashboardPermissionFilter(user, PermissionLevel.VIEW, QueryType.DASHBOARD, nested_folders=False)
    nested = AccessControlDashboardPermissionFilter(user, PermissionLevel.VIEW, QueryType.DASHBOARD, nested_folders=True)

    assert _uids(db_session, flat) == {"dash-a", "dash-root"}
    assert _uids(db_session, nested) == {"dash-a", "dash-c", "dash-root"}


def test_mixed_nested_query_uses_both_closures(db_session: Session, hierarchy: dict[str, Dashboard]) -> None:
    user = _user()
    _grant(
        db_session,
        user,
        [(ACTION_DASHBOARDS_READ, "folders:uid:b"), (ACTION_FOLDERS_READ, "folders:uid:other")],
    )

    permission_filter = AccessControlDashboardPermissionFilter(
        user, PermissionLevel.VIEW, QueryType.MIXED, nested_folders=True
    )

    assert len(permission_filter.preamble()[1]) > 0
    assert _uids(db_session, permission_filter) == {"dash-c", "other"}


def test_multiple_actions_must_all_be_granted_on_the_same_item(db_session: Session) -> None:
    for uid in ("read-only", "write-only", "read-write"):
        _add_dashboard(db_session, uid)
    db_session.commit()
    user = _user()
    _grant(
        db_session,
        user,
        [
            (ACTION_DASHBOARDS_READ, "dashboards:uid:read-only"),
            (ACTION_DASHBOARDS_WRITE, "dashboards:uid:write-only"),
            (ACTION_DASHBOARDS_READ, "dashboards:uid:read-write"),
        ],
    )
    _grant(db_session, user, [(ACTION_DASHBOARDS_WRITE, "dashboards:uid:read-write")])

    edit = AccessControlDashboardPermissionFilter(user, PermissionLevel.EDIT, QueryType.DASHBOARD)
    view = AccessControlDashboardPermissionFilter(user, PermissionLevel.VIEW, QueryType.DASHBOARD)

    assert _uids(db_session, edit) == {"read-write"}
    assert _uids(db_session, view) == {"read-only", "read-write"}


def test_alerting_folders_need_every_read_action(db_session: Session, hierarchy: dict[str, Dashboard]) -> None:
    user = _user()
    _grant(
        db_session,
        user,
        [
            (ACTION_FOLDERS_READ, "folders:uid:a"),
            (ACTION_FOLDERS_READ, "folders:uid:other"),
            (ACTION_ALERT_RULES_READ, "folders:uid:other"),
        ],
    )

    permission_filter = AccessControlDashboardPermissionFilter(
        user, PermissionLevel.VIEW, QueryType.ALERT_FOLDER, nested_folders=False
    )

    assert _uids(db_session, permission_filter) == {"other"}


def test_wildcard_grant_lists_every_dashboard(db_session: Session, hierarchy: dict[str, Dashboard]) -> None:
    user = _user()
    user.permissions[ORG_ID][ACTION_DASHBOARDS_READ] = ["dashboards:*"]

    permission_filter = AccessControlDashboardPermissionFilter(user, PermissionLevel.VIEW, QueryType.DASHBOARD)

    assert _uids(db_session, permission_filter) == {"dash-a", "dash-c", "dash-other", "dash-root"}


def test_team_and_builtin_roles_grant_access(db_session: Session, hierarchy: dict[str, Dashboard]) -> None:
    team_role = Role(org_id=ORG_ID, uid="team-role", name="team")
    viewer_role = Role(org_id=0, uid="basic-viewer", name="basic:viewer")
    db_session.add_all([team_role, viewer_role])
    db_session.flush()
    db_session.add(TeamRole(org_id=ORG_ID, team_id=4, role_id=team_role.id))
    db_session.add(BuiltinRole(org_id=0, role="Viewer", role_id=viewer_role.id))
    db_session.add(Permission(role_id=team_role.id, action=ACTION_DASHBOARDS_READ, scope="dashboards:uid:dash-other"))
    db_session.add(Permission(role_id=viewer_role.id, action=ACTION_DASHBOARDS_READ, scope="dashboards:uid:dash-root"))
    db_session.commit()

    member = _user(teams=[4])
    outsider = _user(user_id=11)
    outsider.org_role = OrgRole.NONE

    assert _uids(
        db_session, AccessControlDashboardPermissionFilter(member, PermissionLevel.VIEW, QueryType.DASHBOARD)
    ) == {"dash-other", "dash-root"}
    assert _uids(
        db_session, AccessControlDashboardPermissionFilter(outsider, PermissionLevel.VIEW, QueryType.DASHBOARD)
    ) == set()


def test_missing_permission_index_lists_nothing(db_session: Session, hierarchy: dict[str, Dashboard]) -> None:
    user = SignedInUser(org_id=ORG_ID, user_id=10)

    assert _uids(db_session, AccessControlDashboardPermissionFilter(user, PermissionLevel.VIEW)) == set()


def test_search_statement_binds_preamble_params_first(hierarchy: dict[str, Dashboard]) -> None:
    user = _user()
    user.permissions[ORG_ID][ACTION_FOLDERS_READ] = ["folders:uid:a"]
    permission_filter = AccessControlDashboardPermissionFilter(
        user, PermissionLevel.VIEW, QueryType.FOLDER, nested_folders=True
    )

    stmt = build_search_statement(permission_filter, ORG_ID, limit=5)
    compiled = stmt.compile()
    preamble_params = permission_filter.preamble()[1]

    assert str(stmt).startswith("WITH RECURSIVE RecQry0 AS (")
    assert [compiled.params[f"p{index}"] for index in range(len(preamble_params))] == preamble_params
    assert compiled.params[f"p{len(preamble_params)}"] == ORG_ID
    assert compiled.params[f"p{len(preamble_params) + 1}"] == 5


def _seed_default_acl(session: Session) -> None:
    session.add(DashboardAcl(org_id=DEFAULT_ACL_ORG_ID, dashboard_id=-1, role="Viewer", permission=int(PermissionLevel.VIEW)))
    session.add(DashboardAcl(org_id=DEFAULT_ACL_ORG_ID, dashboard_id=-1, role="Editor", permission=int(PermissionLevel.EDIT)))


def _legacy(role: OrgRole, user_id: int, level: PermissionLevel, session: Session) -> DashboardPermissionFilter:
    return DashboardPermissionFilter(
        org_role=role,
        dialect=SqlAlchemyDialect(session.get_bind().dialect),
        user_id=user_id,
        org_id=ORG_ID,
        permission_level=level,
    )


def test_legacy_filter_defaults_and_explicit_acl(db_session: Session) -> None:
    _seed_default_acl(db_session)
    _add_dashboard(db_session, "open")
    private = _add_dashboard(db_session, "private", has_acl=True)
    team_only = _add_dashboard(db_session, "team-only", has_acl=True)
    locked_folder = _add_folder(db_session, "locked", has_acl=True)
    _add_dashboard(db_session, "in-locked", locked_folder)
    db_session.add(DashboardAcl(org_id=ORG_ID, dashboard_id=private.id, user_id=2, permission=int(PermissionLevel.VIEW)))
    db_session.add(DashboardAcl(org_id=ORG_ID, dashboard_id=team_only.id, team_id=5, permission=int(PermissionLevel.VIEW)))
    db_session.add(
        DashboardAcl(org_id=ORG_ID, dashboard_id=locked_folder.id, user_id=2, permission=int(PermissionLevel.EDIT))
    )
    db_session.add(TeamMember(org_id=ORG_ID, team_id=5, user_id=1))
    db_session.commit()

    viewer_one = _legacy(OrgRole.VIEWER, 1, PermissionLevel.VIEW, db_session)
    viewer_two = _legacy(OrgRole.VIEWER, 2, PermissionLevel.VIEW, db_session)
    viewer_edit = _legacy(OrgRole.VIEWER, 1, PermissionLevel.EDIT, db_session)
    editor_edit = _legacy(OrgRole.EDITOR, 3, PermissionLevel.EDIT, db_session)
    admin = _legacy(OrgRole.ADMIN, 4, PermissionLevel.ADMIN, db_session)

    assert _uids(db_session, viewer_one) == {"open", "team-only"}
    assert _uids(db_session, viewer_two) == {"open", "private", "locked", "in-locked"}
    assert _uids(db_session, viewer_edit) == set()
    assert _uids(db_session, editor_edit) == {"open"}
    assert _uids(db_session, admin) == {"open", "private", "team-only", "locked", "in-locked"}
