"""Checksummed, optionally expiring snapshots of a dashboard resolution.

The checksum is a SHA-256 digest of a canonical JSON rendering of the
resolution. It detects accidental corruption and naive edits, but it is not
a signature: anyone holding a snapshot can recompute a matching checksum for
arbitrary content. Treat it as an integrity check, not an authenticity check.

The snapshot id and ``expires_at`` are not covered by the checksum either, so
a snapshot whose expiry was pushed back still verifies. Callers that must
enforce expiry against a hostile holder need to protect ``expires_at`` with
their own signature.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from opentelemetry import trace

from dashboard_access import audit
from dashboard_access.metrics import (
    observe_snapshot_evaluation,
    observe_snapshot_generated,
    observe_snapshot_verification,
)
from dashboard_access.models import (
    DashboardContext,
    DashboardDeclaration,
    DashboardSnapshot,
    HiddenReason,
    HiddenReasonCode,
    ResolvedDashboard,
    ResolvedSection,
    format_instant,
    normalize_instant,
    utcnow,
)


logger = logging.getLogger("dashboard_access.snapshot")
tracer = trace.get_tracer("dashboard_access.snapshot")


def canonical_json(value: Any) -> str:
    """Serialize ``value`` with sorted keys at every depth and no whitespace."""

    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_checksum(payload: Mapping[str, Any]) -> str:
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


def _checksum_payload(
    *,
    dashboard_id: str,
    subject_id: str,
    tenant_id: str,
    resolved_sections: list[ResolvedSection],
    hidden_sections: list[str],
    reasons: list[HiddenReason],
    evaluation_time: datetime,
) -> dict[str, Any]:
    return {
        "dashboardId": dashboard_id,
        "subjectId": subject_id,
        "tenantId": tenant_id,
        "resolvedSections": [section.to_wire() for section in resolved_sections],
        "hiddenSections": list(hidden_sections),
        "reasons": [reason.to_wire() for reason in reasons],
        "evaluationTime": format_instant(evaluation_time),
    }


def _snapshot_checksum(snapshot: DashboardSnapshot, evaluation_time: datetime) -> str:
    return compute_checksum(
        _checksum_payload(
            dashboard_id=snapshot.dashboard_id,
            subject_id=snapshot.subject_id,
            tenant_id=snapshot.tenant_id,
            resolved_sections=snapshot.resolved_sections,
            hidden_sections=snapshot.hidden_sections,
            reasons=snapshot.reasons,
            evaluation_time=evaluation_time,
        )
    )


def generate_dashboard_snapshot(
    declaration: DashboardDeclaration,
    resolved_dashboard: ResolvedDashboard,
    context: DashboardContext,
    expires_in_ms: int | None = None,
) -> DashboardSnapshot:
    """Freeze ``resolved_dashboard`` into a checksummed snapshot.

    ``expires_in_ms`` is measured from ``context.evaluation_time``; a falsy
    value produces a snapshot that never expires. A negative value is not
    rejected and yields a snapshot that is already expired.
    """

    with tracer.start_as_current_span("dashboard.snapshot.generate") as span:
        span.set_attribute("dashboard.id", declaration.dashboard_id)

        checksum = compute_checksum(
            _checksum_payload(
                dashboard_id=declaration.dashboard_id,
                subject_id=context.subject_id,
                tenant_id=context.tenant_id,
                resolved_sections=resolved_dashboard.visible_sections,
                hidden_sections=resolved_dashboard.hidden_sections,
                reasons=resolved_dashboard.reasons,
                evaluation_time=context.evaluation_time,
            )
        )

        expires_at: datetime | None = None
        if expires_in_ms:
            expires_at = context.evaluation_time + timedelta(milliseconds=expires_in_ms)

        snapshot = DashboardSnapshot(
            snapshot_id=str(uuid.uuid4()),
            dashboard_id=declaration.dashboard_id,
            subject_id=context.subject_id,
            tenant_id=context.tenant_id,
            resolved_sections=list(resolved_dashboard.visible_sections),
            hidden_sections=list(resolved_dashboard.hidden_sections),
            reasons=list(resolved_dashboard.reasons),
            checksum=checksum,
            evaluation_time=context.evaluation_time,
            expires_at=expires_at,
        )

        span.set_attribute("dashboard.snapshot_id", snapshot.snapshot_id)
        observe_snapshot_generated()
        logger.info(
            "dashboard_snapshot_generated",
            extra={
                "dashboard_id": snapshot.dashboard_id,
                "subject_id": snapshot.subject_id,
                "tenant_id": snapshot.tenant_id,
                "snapshot_id": snapshot.snapshot_id,
            },
        )
        return snapshot


def verify_dashboard_snapshot(snapshot: DashboardSnapshot) -> bool:
    """Recompute the checksum from the snapshot's own evaluation time."""

    return _verify(snapshot, snapshot.evaluation_time)


def verify_snapshot_integrity(snapshot: DashboardSnapshot, evaluation_time: datetime) -> bool:
    """Recompute the checksum as of an explicitly supplied evaluation time."""

    return _verify(snapshot, evaluation_time)


def _verify(snapshot: DashboardSnapshot, evaluation_time: datetime) -> bool:
    with tracer.start_as_current_span("dashboard.snapshot.verify") as span:
        span.set_attribute("dashboard.id", snapshot.dashboard_id)
        span.set_attribute("dashboard.snapshot_id", snapshot.snapshot_id)

        valid = _snapshot_checksum(snapshot, evaluation_time) == snapshot.checksum
        span.set_attribute("dashboard.snapshot_valid", valid)
        observe_snapshot_verification(valid)
        if not valid:
            _emit_checksum_mismatch(snapshot)
        return valid


def evaluate_from_snapshot(
    snapshot: DashboardSnapshot,
    evaluation_time: datetime | None = None,
) -> ResolvedDashboard:
    """Reproduce a resolution from ``snapshot`` without the live engine.

    The checksum is not re-verified here; call :func:`verify_dashboard_snapshot`
    first when tamper detection matters.
    """

    now = normalize_instant(evaluation_time) if evaluation_time is not None else utcnow()

    with tracer.start_as_current_span("dashboard.snapshot.evaluate") as span:
        span.set_attribute("dashboard.id", snapshot.dashboard_id)
        span.set_attribute("dashboard.snapshot_id", snapshot.snapshot_id)

        if snapshot.expires_at is not None and now > snapshot.expires_at:
            span.set_attribute("dashboard.outcome", "expired")
            observe_snapshot_evaluation("expired")
            logger.info(
                "dashboard_snapshot_expired",
                extra={
                    "dashboard_id": snapshot.dashboard_id,
                    "snapshot_id": snapshot.snapshot_id,
                    "outcome": "expired",
                },
            )
            return ResolvedDashboard(
                dashboard_id=snapshot.dashboard_id,
                visible_sections=[],
                hidden_sections=list(snapshot.hidden_sections),
                reasons=[
                    HiddenReason(
                        section_id=snapshot.dashboard_id,
                        reason=HiddenReasonCode.MISSING_FEATURE,
                        details=f"Snapshot expired at {format_instant(snapshot.expires_at)}",
                    )
                ],
            )

        span.set_attribute("dashboard.outcome", "served")
        observe_snapshot_evaluation("served")
        return ResolvedDashboard(
            dashboard_id=snapshot.dashboard_id,
            visible_sections=list(snapshot.resolved_sections),
            hidden_sections=list(snapshot.hidden_sections),
            reasons=list(snapshot.reasons),
        )


def snapshot_to_json(snapshot: DashboardSnapshot) -> str:
    return snapshot.model_dump_json(by_alias=True, exclude_none=True)


def snapshot_from_json(payload: str | bytes) -> DashboardSnapshot:
    return DashboardSnapshot.model_validate_json(payload)


def _emit_checksum_mismatch(snapshot: DashboardSnapshot) -> None:
    logger.warning(
        "dashboard_snapshot_checksum_mismatch",
        extra={
            "dashboard_id": snapshot.dashboard_id,
            "subject_id": snapshot.subject_id,
            "tenant_id": snapshot.tenant_id,
            "snapshot_id": snapshot.snapshot_id,
        },
    )
    audit.record(
        actor_subject_id=snapshot.subject_id,
        entity_type="dashboard.snapshot",
        entity_id=snapshot.snapshot_id,
        action="dashboard.snapshot.mismatch",
        details={
            "dashboard_id": snapshot.dashboard_id,
            "tenant_id": snapshot.tenant_id,
            "checksum": snapshot.checksum,
        },
    )
