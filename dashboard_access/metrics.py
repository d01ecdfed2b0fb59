from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


dashboard_resolutions_total = Counter(
    "dashboard_resolutions_total",
    "Total dashboard resolutions by outcome",
    ["outcome"],
)

dashboard_resolution_duration_seconds = Histogram(
    "dashboard_resolution_duration_seconds",
    "Dashboard resolution duration in seconds",
)

dashboard_isolation_faults_total = Counter(
    "dashboard_isolation_faults_total",
    "Total isolation faults by kind",
    ["fault"],
)

dashboard_sections_hidden_total = Counter(
    "dashboard_sections_hidden_total",
    "Total hidden sections by reason",
    ["reason"],
)

dashboard_snapshots_generated_total = Counter(
    "dashboard_snapshots_generated_total",
    "Total generated dashboard snapshots",
)

dashboard_snapshot_verifications_total = Counter(
    "dashboard_snapshot_verifications_total",
    "Total snapshot checksum verifications by result",
    ["result"],
)

dashboard_snapshot_evaluations_total = Counter(
    "dashboard_snapshot_evaluations_total",
    "Total snapshot-based evaluations by outcome",
    ["outcome"],
)


def observe_resolution(outcome: str, duration: float) -> None:
    dashboard_resolutions_total.labels(outcome=outcome).inc()
    dashboard_resolution_duration_seconds.observe(duration)


def observe_isolation_fault(fault: str) -> None:
    dashboard_isolation_faults_total.labels(fault=fault).inc()


def observe_hidden_sections(reason: str, count: int = 1) -> None:
    if count > 0:
        dashboard_sections_hidden_total.labels(reason=reason).inc(count)


def observe_snapshot_generated() -> None:
    dashboard_snapshots_generated_total.inc()


def observe_snapshot_verification(valid: bool) -> None:
    dashboard_snapshot_verifications_total.labels(result="valid" if valid else "mismatch").inc()


def observe_snapshot_evaluation(outcome: str) -> None:
    dashboard_snapshot_evaluations_total.labels(outcome=outcome).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
