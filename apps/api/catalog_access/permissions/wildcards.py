from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence


class Wildcards(tuple[str, ...]):
    """Scope patterns that grant access to every instance under a prefix."""

    @classmethod
    def from_prefix(cls, prefix: str) -> Wildcards:
        # "dashboards:uid:" -> ("*", "dashboards:*", "dashboards:uid:*")
        patterns = ["*"]
        current = ""
        for part in prefix.split(":"):
            if not part:
                continue
            current += part + ":"
            patterns.append(current + "*")
        return cls(patterns)

    def contains(self, scope: str) -> bool:
        return scope in self


def actions_to_check(
    actions: Iterable[str],
    permissions: Mapping[str, Sequence[str]],
    *wildcards: Wildcards,
) -> list[str]:
    """Return the actions that still need a per-row scope check.

    An action drops out when any of its granted scopes is one of the supplied
    wildcards. Input order is preserved.
    """

    to_check: list[str] = []
    for action in actions:
        granted = permissions.get(action, ())
        if any(w.contains(scope) for scope in granted for w in wildcards):
            continue
        to_check.append(action)
    return to_check
