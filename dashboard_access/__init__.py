__version__ = "0.1.0"

from dashboard_access.checks import AccessCheck, check_capabilities, check_entitlements, check_features
from dashboard_access.errors import DashboardAccessError, IsolationError, IsolationFault
from dashboard_access.models import (
    DashboardContext,
    DashboardDeclaration,
    DashboardSection,
    DashboardSnapshot,
    EntitlementSnapshot,
    FeatureSnapshot,
    HiddenReason,
    HiddenReasonCode,
    PermissionResult,
    ResolvedDashboard,
    ResolvedSection,
    SubjectType,
    format_instant,
)
from dashboard_access.resolver import resolve_dashboard, resolve_sections
from dashboard_access.snapshot import (
    canonical_json,
    compute_checksum,
    evaluate_from_snapshot,
    generate_dashboard_snapshot,
    snapshot_from_json,
    snapshot_to_json,
    verify_dashboard_snapshot,
    verify_snapshot_integrity,
)

__all__ = [
    "AccessCheck",
    "check_capabilities",
    "check_entitlements",
    "check_features",
    "DashboardAccessError",
    "IsolationError",
    "IsolationFault",
    "DashboardContext",
    "DashboardDeclaration",
    "DashboardSection",
    "DashboardSnapshot",
    "EntitlementSnapshot",
    "FeatureSnapshot",
    "HiddenReason",
    "HiddenReasonCode",
    "PermissionResult",
    "ResolvedDashboard",
    "ResolvedSection",
    "SubjectType",
    "format_instant",
    "resolve_dashboard",
    "resolve_sections",
    "canonical_json",
    "compute_checksum",
    "evaluate_from_snapshot",
    "generate_dashboard_snapshot",
    "snapshot_from_json",
    "snapshot_to_json",
    "verify_dashboard_snapshot",
    "verify_snapshot_integrity",
]
