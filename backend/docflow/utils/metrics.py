"""Prometheus metrics for versioning and change review."""

from prometheus_client import Counter, Histogram

versions_created_total = Counter(
    "docflow_versions_created_total",
    "Total document versions appended",
    ["author_type"],
)

changes_total = Counter(
    "docflow_changes_total",
    "Pending change transitions by outcome",
    ["outcome"],
)

generation_failures_total = Counter(
    "docflow_generation_failures_total",
    "Total text-generation failures",
    ["reason"],
)

diff_entries = Histogram(
    "docflow_diff_entries",
    "Number of diff entries per proposed change",
    buckets=[0, 1, 5, 10, 25, 50, 100, 250, 1000],
)


class PrometheusDocflowMetrics:
    """Prometheus-based docflow metrics implementation."""

    def inc_version(self, author_type: str) -> None:
        """Increment the appended-version counter."""
        versions_created_total.labels(author_type=author_type).inc()

    def inc_change(self, outcome: str) -> None:
        """Increment the change transition counter."""
        changes_total.labels(outcome=outcome).inc()

    def inc_generation_failure(self, reason: str) -> None:
        """Increment the generation failure counter."""
        generation_failures_total.labels(reason=reason).inc()

    def observe_diff(self, entry_count: int) -> None:
        """Record the size of a computed diff."""
        diff_entries.observe(entry_count)


metrics = PrometheusDocflowMetrics()
