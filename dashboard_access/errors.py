from __future__ import annotations

from enum import StrEnum


class DashboardAccessError(Exception):
    """Base error for dashboard resolution failures."""


class IsolationFault(StrEnum):
    SUBJECT_NOT_ALLOWED = "subject_not_allowed"
    TENANT_NOT_ALLOWED = "tenant_not_allowed"
    PARTNER_NOT_ALLOWED = "partner_not_allowed"


class IsolationError(DashboardAccessError):
    """Raised when a request crosses a subject, tenant or partner boundary.

    Isolation faults abort resolution entirely; no partial result exists.
    Callers branch on ``fault`` rather than on exception subclasses.
    """

    def __init__(
        self,
        fault: IsolationFault,
        message: str,
        *,
        dashboard_id: str,
        snapshot_mismatch: bool = False,
    ) -> None:
        self.fault = fault
        self.dashboard_id = dashboard_id
        self.snapshot_mismatch = snapshot_mismatch
        super().__init__(message)

    @property
    def is_subject_fault(self) -> bool:
        return self.fault is IsolationFault.SUBJECT_NOT_ALLOWED

    @property
    def is_tenant_fault(self) -> bool:
        return self.fault is IsolationFault.TENANT_NOT_ALLOWED

    @property
    def is_partner_fault(self) -> bool:
        return self.fault is IsolationFault.PARTNER_NOT_ALLOWED
