from __future__ import annotations

from prometheus_client import Counter, generate_latest


permission_filter_compiled_total = Counter(
    "permission_filter_compiled_total",
    "Total compiled catalog permission filters by query type and mode",
    ["query_type", "mode"],
)

permission_filter_recursive_queries_total = Counter(
    "permission_filter_recursive_queries_total",
    "Total recursive folder closures emitted by permission filters",
)

permission_filter_invariant_failures_total = Counter(
    "permission_filter_invariant_failures_total",
    "Total permission filter compilations that failed a clause invariant",
)


def observe_permission_filter_compiled(query_type: str, mode: str) -> None:
    permission_filter_compiled_total.labels(query_type=query_type or "mixed", mode=mode).inc()


def observe_recursive_queries(count: int = 1) -> None:
    if count > 0:
        permission_filter_recursive_queries_total.inc(count)


def observe_invariant_failure() -> None:
    permission_filter_invariant_failures_total.inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()
