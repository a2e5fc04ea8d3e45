from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from catalog_access.permissions.errors import ClauseInvariantError


PLACEHOLDER = "?"


def placeholders(count: int) -> str:
    """Render ``count`` comma separated positional placeholders."""

    return ", ".join(PLACEHOLDER for _ in range(count))


def _check_pairing(text: str, params: tuple[Any, ...]) -> None:
    expected = text.count(PLACEHOLDER)
    if expected != len(params):
        raise ClauseInvariantError(
            f"clause has {expected} placeholders but {len(params)} params",
            placeholders=expected,
            params=len(params),
        )


@dataclass(frozen=True, slots=True)
class Clause:
    """SQL fragment text paired with its positional parameters.

    The Nth ``?`` in ``text`` binds the Nth entry of ``params``. The pairing is
    checked on construction, so every clause that exists is well formed.
    """

    text: str = ""
    params: tuple[Any, ...] = ()

    def __post_init__(self) -> None:
        params = tuple(self.params)
        object.__setattr__(self, "params", params)
        _check_pairing(self.text, params)

    def __add__(self, other: Clause) -> Clause:
        if not isinstance(other, Clause):
            return NotImplemented
        return Clause(self.text + other.text, self.params + other.params)

    @property
    def is_empty(self) -> bool:
        return not self.text

    def wrap(self, prefix: str, suffix: str) -> Clause:
        return Clause(prefix + self.text + suffix, self.params)

    @classmethod
    def join(cls, separator: str, clauses: Iterable[Clause]) -> Clause:
        items = list(clauses)
        return cls(
            separator.join(item.text for item in items),
            tuple(param for item in items for param in item.params),
        )

    def as_tuple(self) -> tuple[str, list[Any]]:
        return self.text, list(self.params)


class ClauseBuilder:
    """Accumulates text and params for one fragment.

    Builders are not reused: each branch of a filter starts from a new one.
    """

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._params: list[Any] = []

    def write(self, text: str, *params: Any) -> ClauseBuilder:
        _check_pairing(text, params)
        self._parts.append(text)
        self._params.extend(params)
        return self

    def append(self, clause: Clause) -> ClauseBuilder:
        self._parts.append(clause.text)
        self._params.extend(clause.params)
        return self

    def build(self) -> Clause:
        return Clause("".join(self._parts), tuple(self._params))
