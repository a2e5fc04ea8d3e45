from __future__ import annotations

import copy

from catalog_access.permissions.clause import Clause
from catalog_access.permissions.errors import ClauseInvariantError


# one closure for the folder branch and one for dashboards inheriting from folders
MAX_RECURSIVE_QUERIES = 2


class RecursiveQueries:
    """Recursive folder closures created during a single filter compilation."""

    def __init__(self, max_queries: int = MAX_RECURSIVE_QUERIES) -> None:
        self._max_queries = max_queries
        self._queries: list[Clause] = []

    def __len__(self) -> int:
        return len(self._queries)

    def add(self, seed: Clause) -> str:
        """Define a closure over ``folder`` seeded by the uids ``seed`` selects.

        Returns the name the closure is referenced by.
        """

        if len(self._queries) >= self._max_queries:
            raise ClauseInvariantError(f"at most {self._max_queries} recursive queries per filter")

        name = f"RecQry{len(self._queries)}"
        definition = Clause(
            f"{name} AS ("
            f"SELECT uid, parent_uid, org_id FROM folder WHERE uid IN {seed.text}"
            f" UNION ALL SELECT f.uid, f.parent_uid, f.org_id FROM folder f"
            f" INNER JOIN {name} r ON f.parent_uid = r.uid AND f.org_id = r.org_id"
            ")",
            copy.deepcopy(seed.params),
        )
        self._queries.append(definition)
        return name

    def preamble(self) -> Clause:
        if not self._queries:
            return Clause()
        return Clause.join(",", self._queries).wrap("WITH RECURSIVE ", "")
