from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from catalog_access.core.database import Base


class Dashboard(Base):
    """Catalog entry: a dashboard, or a folder when ``is_folder`` is set."""

    __tablename__ = "dashboard"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uid: Mapped[str] = mapped_column(String(40), nullable=False)
    org_id: Mapped[int] = mapped_column(Integer, nullable=False)
    folder_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_folder: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    has_acl: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    title: Mapped[str] = mapped_column(String(189), nullable=False)

    __table_args__ = (
        UniqueConstraint("org_id", "uid", name="uq_dashboard_org_id_uid"),
        Index("ix_dashboard_org_id_folder_id", "org_id", "folder_id"),
    )


class Folder(Base):
    """Folder hierarchy; ``parent_uid`` is empty for top level folders."""

    __tablename__ = "folder"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    uid: Mapped[str] = mapped_column(String(40), nullable=False)
    org_id: Mapped[int] = mapped_column(Integer, nullable=False)
    parent_uid: Mapped[str | None] = mapped_column(String(40), nullable=True)
    title: Mapped[str] = mapped_column(String(189), nullable=False)

    __table_args__ = (
        UniqueConstraint("org_id", "uid", name="uq_folder_org_id_uid"),
        Index("ix_folder_org_id_parent_uid", "org_id", "parent_uid"),
    )


class DashboardAcl(Base):
    __tablename__ = "dashboard_acl"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(Integer, nullable=False)
    dashboard_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    team_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    role: Mapped[str | None] = mapped_column(String(20), nullable=True)
    permission: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (Index("ix_dashboard_acl_dashboard_id", "dashboard_id"),)


class TeamMember(Base):
    __tablename__ = "team_member"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(Integer, nullable=False)
    team_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)


class Role(Base):
    __tablename__ = "role"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(Integer, nullable=False)
    uid: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(190), nullable=False)


class Permission(Base):
    __tablename__ = "permission"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role_id: Mapped[int] = mapped_column(Integer, ForeignKey("role.id", ondelete="CASCADE"), nullable=False)
    action: Mapped[str] = mapped_column(String(190), nullable=False)
    scope: Mapped[str] = mapped_column(String(190), nullable=False)

    __table_args__ = (Index("ix_permission_role_id_action", "role_id", "action"),)


class UserRole(Base):
    __tablename__ = "user_role"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    role_id: Mapped[int] = mapped_column(Integer, ForeignKey("role.id", ondelete="CASCADE"), nullable=False)


class TeamRole(Base):
    __tablename__ = "team_role"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(Integer, nullable=False)
    team_id: Mapped[int] = mapped_column(Integer, nullable=False)
    role_id: Mapped[int] = mapped_column(Integer, ForeignKey("role.id", ondelete="CASCADE"), nullable=False)


class BuiltinRole(Base):
    __tablename__ = "builtin_role"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[str] = mapped_column(String(190), nullable=False)
    role_id: Mapped[int] = mapped_column(Integer, ForeignKey("role.id", ondelete="CASCADE"), nullable=False)
