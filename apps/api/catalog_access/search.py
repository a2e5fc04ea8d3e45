from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import TextClause

from catalog_access.permissions.clause import PLACEHOLDER, Clause, ClauseBuilder
from catalog_access.permissions.filter import PermissionFilter


@dataclass(slots=True)
class DashboardHit:
    id: int
    uid: str
    title: str
    is_folder: bool
    folder_id: int


def bind_positional(clause: Clause) -> TextClause:
    """Convert a ``?`` clause into a SQLAlchemy text statement with named binds."""

    parts = clause.text.split(PLACEHOLDER)
    names = [f"p{index}" for index in range(len(clause.params))]
    sql = parts[0] + "".join(f":{name}{part}" for name, part in zip(names, parts[1:]))
    return text(sql).bindparams(**dict(zip(names, clause.params)))


def build_search_statement(permission_filter: PermissionFilter, org_id: int, *, limit: int | None = None) -> TextClause:
    preamble = Clause(*permission_filter.preamble())
    where = Clause(*permission_filter.predicate())

    builder = ClauseBuilder()
    if not preamble.is_empty:
        builder.append(preamble).write(" ")
    builder.write(
        "SELECT dashboard.id, dashboard.uid, dashboard.title, dashboard.is_folder, dashboard.folder_id"
        " FROM dashboard WHERE dashboard.org_id = ?",
        org_id,
    )
    if not where.is_empty:
        builder.write(" AND ").append(where)
    builder.write(" ORDER BY dashboard.title, dashboard.id")
    if limit is not None:
        builder.write(" LIMIT ?", limit)
    return bind_positional(builder.build())


def search_dashboards(
    session: Session,
    permission_filter: PermissionFilter,
    org_id: int,
    *,
    limit: int | None = None,
) -> list[DashboardHit]:
    """Run a catalog listing restricted by ``permission_filter``."""

    rows = session.execute(build_search_statement(permission_filter, org_id, limit=limit)).all()
    return [
        DashboardHit(
            id=int(row.id),
            uid=str(row.uid),
            title=str(row.title),
            is_folder=bool(row.is_folder),
            folder_id=int(row.folder_id),
        )
        for row in rows
    ]
