from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from dashboard_access.models import (
    DashboardContext,
    DashboardDeclaration,
    DashboardSection,
    DashboardSnapshot,
    EntitlementSnapshot,
    FeatureSnapshot,
    HiddenReasonCode,
    PermissionResult,
    ResolvedDashboard,
    SubjectType,
    format_instant,
    normalize_instant,
)


def test_section_accepts_wire_and_python_names() -> None:
    from_wire = DashboardSection.model_validate(
        {
            "sectionId": "overview",
            "label": "Overview",
            "icon": "home",
            "requiredCapabilities": ["dashboard:view"],
            "requiredEntitlements": ["premium"],
            "requiredFeatures": ["beta"],
            "children": [{"sectionId": "kpis", "label": "KPIs"}],
        }
    )
    from_python = DashboardSection(
        section_id="overview",
        label="Overview",
        icon="home",
        required_capabilities=["dashboard:view"],
        required_entitlements=["premium"],
        required_features=["beta"],
        children=[DashboardSection(section_id="kpis", label="KPIs")],
    )

    assert from_wire == from_python
    assert from_wire.children is not None
    assert from_wire.children[0].section_id == "kpis"


def test_section_rejects_empty_id() -> None:
    with pytest.raises(ValidationError):
        DashboardSection.model_validate({"sectionId": "", "label": "Empty"})


def test_declaration_requires_sections_and_subjects() -> None:
    with pytest.raises(ValidationError):
        DashboardDeclaration.model_validate({"dashboardId": "d", "label": "D"})


def test_declaration_round_trips_through_wire_form() -> None:
    wire = {
        "dashboardId": "ops",
        "label": "Operations",
        "allowedSubjects": ["staff"],
        "allowedTenants": ["tenant-1"],
        "requiredFeatures": ["ops-v2"],
        "sections": [{"sectionId": "queue", "label": "Queue"}],
    }

    assert DashboardDeclaration.model_validate(wire).to_wire() == wire


def test_context_rejects_unknown_subject_type() -> None:
    with pytest.raises(ValidationError):
        DashboardContext.model_validate(
            {
                "subjectId": "u",
                "subjectType": "guest",
                "tenantId": "t",
                "roles": [],
                "evaluationTime": "2025-01-19T12:00:00Z",
            }
        )


@pytest.mark.parametrize("subject_type", [member.value for member in SubjectType])
def test_context_accepts_every_subject_type(subject_type: str) -> None:
    context = DashboardContext.model_validate(
        {
            "subjectId": "u",
            "subjectType": subject_type,
            "tenantId": "t",
            "roles": [],
            "evaluationTime": "2025-01-19T12:00:00Z",
        }
    )

    assert context.subject_type == subject_type


def test_context_requires_evaluation_time() -> None:
    with pytest.raises(ValidationError):
        DashboardContext.model_validate({"subjectId": "u", "subjectType": "staff", "tenantId": "t", "roles": []})


def test_context_roles_default_to_empty() -> None:
    context = DashboardContext(
        subject_id="u",
        subject_type=SubjectType.STAFF,
        tenant_id="t",
        evaluation_time=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )

    assert context.roles == []
    assert context.partner_id is None


def test_context_is_immutable() -> None:
    context = DashboardContext(
        subject_id="u",
        subject_type=SubjectType.STAFF,
        tenant_id="t",
        evaluation_time=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )

    with pytest.raises(ValidationError):
        context.tenant_id = "other"  # type: ignore[misc]


def test_naive_evaluation_time_is_treated_as_utc() -> None:
    context = DashboardContext(
        subject_id="u",
        subject_type=SubjectType.USER,
        tenant_id="t",
        evaluation_time=datetime(2025, 1, 19, 12, 0),
    )

    assert context.evaluation_time == datetime(2025, 1, 19, 12, 0, tzinfo=timezone.utc)
    assert context.evaluation_time.tzinfo == timezone.utc


def test_offset_evaluation_time_is_converted_to_utc() -> None:
    context = DashboardContext(
        subject_id="u",
        subject_type=SubjectType.USER,
        tenant_id="t",
        evaluation_time="2025-01-19T14:00:00+02:00",  # type: ignore[arg-type]
    )

    assert context.to_wire()["evaluationTime"] == "2025-01-19T12:00:00.000Z"


def test_normalize_instant_truncates_to_milliseconds() -> None:
    value = datetime(2025, 1, 19, 12, 0, 0, 999_999, tzinfo=timezone.utc)

    assert normalize_instant(value).microsecond == 999_000


def test_format_instant_matches_iso_millisecond_form() -> None:
    assert format_instant(datetime(2025, 1, 19, 12, 0, tzinfo=timezone.utc)) == "2025-01-19T12:00:00.000Z"
    assert format_instant(datetime(2024, 6, 15, 10, 0, 0, 7_000, tzinfo=timezone.utc)) == "2024-06-15T10:00:00.007Z"
    plus_five = timezone(timedelta(hours=5))
    assert format_instant(datetime(2025, 1, 1, 3, 0, tzinfo=plus_five)) == "2024-12-31T22:00:00.000Z"


def test_snapshot_inputs_validate() -> None:
    assert PermissionResult.model_validate({"subjectId": "u", "capabilities": ["a"]}).capabilities == ["a"]
    assert EntitlementSnapshot.model_validate(
        {"tenantId": "t", "activeEntitlements": ["basic"], "expiredEntitlements": ["trial"]}
    ).expired_entitlements == ["trial"]
    assert FeatureSnapshot.model_validate({"enabledFeatures": [], "disabledFeatures": ["x"]}).enabled_features == []


def test_resolved_dashboard_validates_reason_codes() -> None:
    resolved = ResolvedDashboard.model_validate(
        {
            "dashboardId": "d",
            "visibleSections": [{"sectionId": "a", "label": "A"}],
            "hiddenSections": ["b"],
            "reasons": [{"sectionId": "b", "reason": "missing_capability", "details": "Missing capabilities: x"}],
        }
    )

    assert resolved.reasons[0].reason is HiddenReasonCode.MISSING_CAPABILITY

    with pytest.raises(ValidationError):
        ResolvedDashboard.model_validate(
            {
                "dashboardId": "d",
                "visibleSections": [],
                "hiddenSections": ["b"],
                "reasons": [{"sectionId": "b", "reason": "expired", "details": ""}],
            }
        )


def test_snapshot_requires_checksum_and_evaluation_time() -> None:
    base = {
        "snapshotId": "snap-1",
        "dashboardId": "d",
        "subjectId": "u",
        "tenantId": "t",
        "resolvedSections": [],
        "hiddenSections": [],
        "reasons": [],
        "checksum": "abc",
        "evaluationTime": "2025-01-19T12:00:00.000Z",
    }

    assert DashboardSnapshot.model_validate(base).expires_at is None

    with pytest.raises(ValidationError):
        DashboardSnapshot.model_validate({**base, "checksum": ""})

    without_time = dict(base)
    del without_time["evaluationTime"]
    with pytest.raises(ValidationError):
        DashboardSnapshot.model_validate(without_time)
