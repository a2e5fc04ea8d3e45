from __future__ import annotations

from typing import Protocol

from sqlalchemy.engine import Dialect as SqlDialect
from sqlalchemy.engine import make_url


class Dialect(Protocol):
    def boolean_str(self, value: bool) -> str:
        ...


class SqlAlchemyDialect:
    """Renders SQL literals for the engine behind a SQLAlchemy dialect."""

    def __init__(self, dialect: SqlDialect) -> None:
        self._dialect = dialect

    @property
    def name(self) -> str:
        return self._dialect.name

    def boolean_str(self, value: bool) -> str:
        if self._dialect.supports_native_boolean:
            return "true" if value else "false"
        return "1" if value else "0"


def dialect_from_url(database_url: str) -> SqlAlchemyDialect:
    dialect_cls = make_url(database_url).get_dialect()
    return SqlAlchemyDialect(dialect_cls())
