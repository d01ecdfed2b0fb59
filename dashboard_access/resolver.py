from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Sequence

from opentelemetry import trace

from dashboard_access import audit
from dashboard_access.checks import AccessCheck, check_capabilities, check_entitlements, check_features
from dashboard_access.errors import IsolationError, IsolationFault
from dashboard_access.metrics import observe_hidden_sections, observe_isolation_fault, observe_resolution
from dashboard_access.models import (
    DashboardContext,
    DashboardDeclaration,
    DashboardSection,
    EntitlementSnapshot,
    FeatureSnapshot,
    HiddenReason,
    HiddenReasonCode,
    PermissionResult,
    ResolvedDashboard,
    ResolvedSection,
)


logger = logging.getLogger("dashboard_access.resolver")
tracer = trace.get_tracer("dashboard_access.resolver")

_AXIS_NOUNS = {
    HiddenReasonCode.MISSING_CAPABILITY: "capabilities",
    HiddenReasonCode.MISSING_ENTITLEMENT: "entitlements",
    HiddenReasonCode.MISSING_FEATURE: "features",
}


def resolve_sections(
    sections: Sequence[DashboardSection],
    permissions: PermissionResult,
    entitlements: EntitlementSnapshot,
    features: FeatureSnapshot,
    reasons: list[HiddenReason],
    hidden_sections: list[str],
) -> list[ResolvedSection]:
    """Prune a section tree, recording one reason per denied node.

    Checks run capability, then entitlement, then feature; only the first
    failing axis is reported. Children of a denied node are never visited.
    ``reasons`` and ``hidden_sections`` are shared across the whole walk.
    """

    visible: list[ResolvedSection] = []

    for section in sections:
        denial = _first_denial(section, permissions, entitlements, features)
        if denial is not None:
            code, check = denial
            hidden_sections.append(section.section_id)
            reasons.append(
                HiddenReason(
                    section_id=section.section_id,
                    reason=code,
                    details=f"Missing {_AXIS_NOUNS[code]}: {', '.join(check.missing)}",
                )
            )
            continue

        children: list[ResolvedSection] | None = None
        if section.children:
            resolved_children = resolve_sections(
                section.children,
                permissions,
                entitlements,
                features,
                reasons,
                hidden_sections,
            )
            if resolved_children:
                children = resolved_children

        visible.append(
            ResolvedSection(
                section_id=section.section_id,
                label=section.label,
                icon=section.icon,
                children=children,
            )
        )

    return visible


def resolve_dashboard(
    declaration: DashboardDeclaration,
    context: DashboardContext,
    permission_result: PermissionResult,
    entitlement_snapshot: EntitlementSnapshot,
    feature_snapshot: FeatureSnapshot,
) -> ResolvedDashboard:
    """Resolve which parts of ``declaration`` are visible for ``context``.

    Isolation gates (subject, tenant, partner, entitlement snapshot tenant)
    raise :class:`IsolationError` before any section is looked at. Dashboard
    level capability, entitlement and feature gates deny the whole dashboard
    but still return a result explaining why.
    """

    started = time.perf_counter()
    with tracer.start_as_current_span("dashboard.resolve") as span:
        span.set_attribute("dashboard.id", declaration.dashboard_id)
        span.set_attribute("dashboard.tenant_id", context.tenant_id)
        try:
            _enforce_isolation(declaration, context, entitlement_snapshot)
        except IsolationError as exc:
            span.set_attribute("dashboard.outcome", "isolation_fault")
            span.set_attribute("dashboard.fault", exc.fault.value)
            _emit_isolation_fault(exc, context)
            observe_resolution("isolation_fault", time.perf_counter() - started)
            raise

        denied = _dashboard_level_denial(declaration, permission_result, entitlement_snapshot, feature_snapshot)
        if denied is not None:
            span.set_attribute("dashboard.outcome", "denied")
            _emit_dashboard_denied(denied, context)
            observe_resolution("denied", time.perf_counter() - started)
            return denied

        reasons: list[HiddenReason] = []
        hidden_sections: list[str] = []
        visible_sections = resolve_sections(
            declaration.sections,
            permission_result,
            entitlement_snapshot,
            feature_snapshot,
            reasons,
            hidden_sections,
        )
        resolved = ResolvedDashboard(
            dashboard_id=declaration.dashboard_id,
            visible_sections=visible_sections,
            hidden_sections=hidden_sections,
            reasons=reasons,
        )

        span.set_attribute("dashboard.outcome", "resolved")
        span.set_attribute("dashboard.hidden_count", len(hidden_sections))
        duration = time.perf_counter() - started
        _emit_resolved(resolved, context, duration)
        observe_resolution("resolved", duration)
        return resolved


def _first_denial(
    requirements: DashboardSection | DashboardDeclaration,
    permissions: PermissionResult,
    entitlements: EntitlementSnapshot,
    features: FeatureSnapshot,
) -> tuple[HiddenReasonCode, AccessCheck] | None:
    capability_check = check_capabilities(requirements.required_capabilities, permissions.capabilities)
    if not capability_check.allowed:
        return HiddenReasonCode.MISSING_CAPABILITY, capability_check

    entitlement_check = check_entitlements(requirements.required_entitlements, entitlements.active_entitlements)
    if not entitlement_check.allowed:
        return HiddenReasonCode.MISSING_ENTITLEMENT, entitlement_check

    feature_check = check_features(requirements.required_features, features.enabled_features)
    if not feature_check.allowed:
        return HiddenReasonCode.MISSING_FEATURE, feature_check

    return None


def _enforce_isolation(
    declaration: DashboardDeclaration,
    context: DashboardContext,
    entitlement_snapshot: EntitlementSnapshot,
) -> None:
    dashboard_id = declaration.dashboard_id

    if context.subject_type not in declaration.allowed_subjects:
        raise IsolationError(
            IsolationFault.SUBJECT_NOT_ALLOWED,
            f"Subject type '{context.subject_type.value}' is not allowed for dashboard '{dashboard_id}'",
            dashboard_id=dashboard_id,
        )

    if declaration.allowed_tenants and context.tenant_id not in declaration.allowed_tenants:
        raise IsolationError(
            IsolationFault.TENANT_NOT_ALLOWED,
            f"Tenant '{context.tenant_id}' is not allowed for dashboard '{dashboard_id}'",
            dashboard_id=dashboard_id,
        )

    # A context without a partner id is not restricted by the partner allow-list.
    if declaration.allowed_partners and context.partner_id and context.partner_id not in declaration.allowed_partners:
        raise IsolationError(
            IsolationFault.PARTNER_NOT_ALLOWED,
            f"Partner '{context.partner_id}' is not allowed for dashboard '{dashboard_id}'",
            dashboard_id=dashboard_id,
        )

    if entitlement_snapshot.tenant_id != context.tenant_id:
        raise IsolationError(
            IsolationFault.TENANT_NOT_ALLOWED,
            f"Entitlement snapshot tenant '{entitlement_snapshot.tenant_id}' "
            f"does not match context tenant '{context.tenant_id}'",
            dashboard_id=dashboard_id,
            snapshot_mismatch=True,
        )


def _dashboard_level_denial(
    declaration: DashboardDeclaration,
    permissions: PermissionResult,
    entitlements: EntitlementSnapshot,
    features: FeatureSnapshot,
) -> ResolvedDashboard | None:
    denial = _first_denial(declaration, permissions, entitlements, features)
    if denial is None:
        return None

    code, check = denial
    # Only top-level section ids are listed; nested children are implied.
    return ResolvedDashboard(
        dashboard_id=declaration.dashboard_id,
        visible_sections=[],
        hidden_sections=[section.section_id for section in declaration.sections],
        reasons=[
            HiddenReason(
                section_id=declaration.dashboard_id,
                reason=code,
                details=f"Dashboard requires {_AXIS_NOUNS[code]}: {', '.join(check.missing)}",
            )
        ],
    )


def _emit_isolation_fault(exc: IsolationError, context: DashboardContext) -> None:
    observe_isolation_fault(exc.fault.value)
    logger.warning(
        "dashboard_isolation_fault",
        extra={
            "dashboard_id": exc.dashboard_id,
            "subject_id": context.subject_id,
            "tenant_id": context.tenant_id,
            "fault": exc.fault.value,
            "error": str(exc),
        },
    )
    audit.record(
        actor_subject_id=context.subject_id,
        entity_type="dashboard",
        entity_id=exc.dashboard_id,
        action="dashboard.isolation_fault",
        details={
            "fault": exc.fault.value,
            "snapshot_mismatch": exc.snapshot_mismatch,
            "subject_type": context.subject_type.value,
            "tenant_id": context.tenant_id,
            "partner_id": context.partner_id,
            "message": str(exc),
        },
    )


def _emit_dashboard_denied(resolved: ResolvedDashboard, context: DashboardContext) -> None:
    reason = resolved.reasons[0]
    observe_hidden_sections(reason.reason.value, len(resolved.hidden_sections))
    logger.info(
        "dashboard_denied",
        extra={
            "dashboard_id": resolved.dashboard_id,
            "subject_id": context.subject_id,
            "tenant_id": context.tenant_id,
            "reason": reason.reason.value,
            "hidden_count": len(resolved.hidden_sections),
        },
    )
    audit.record(
        actor_subject_id=context.subject_id,
        entity_type="dashboard",
        entity_id=resolved.dashboard_id,
        action="dashboard.denied",
        details={
            "tenant_id": context.tenant_id,
            "reason": reason.reason.value,
            "details": reason.details,
            "hidden_sections": list(resolved.hidden_sections),
        },
    )


def _emit_resolved(resolved: ResolvedDashboard, context: DashboardContext, duration: float) -> None:
    for reason_code, count in Counter(reason.reason.value for reason in resolved.reasons).items():
        observe_hidden_sections(reason_code, count)

    logger.debug(
        "dashboard_resolved",
        extra={
            "dashboard_id": resolved.dashboard_id,
            "subject_id": context.subject_id,
            "tenant_id": context.tenant_id,
            "visible_count": len(resolved.visible_sections),
            "hidden_count": len(resolved.hidden_sections),
            "duration_ms": round(duration * 1000, 3),
        },
    )
