from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_instant(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime truncated to milliseconds.

    Naive datetimes are taken to already be in UTC.
    """

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def format_instant(value: datetime) -> str:
    """Render an instant as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""

    value = normalize_instant(value)
    return f"{value.strftime('%Y-%m-%dT%H:%M:%S')}.{value.microsecond // 1000:03d}Z"


class SubjectType(StrEnum):
    SUPER_ADMIN = "super_admin"
    PARTNER_ADMIN = "partner_admin"
    TENANT_ADMIN = "tenant_admin"
    STAFF = "staff"
    USER = "user"


class HiddenReasonCode(StrEnum):
    MISSING_CAPABILITY = "missing_capability"
    MISSING_ENTITLEMENT = "missing_entitlement"
    MISSING_FEATURE = "missing_feature"
    TENANT_NOT_ALLOWED = "tenant_not_allowed"
    PARTNER_NOT_ALLOWED = "partner_not_allowed"
    SUBJECT_NOT_ALLOWED = "subject_not_allowed"


class DashboardModel(BaseModel):
    """Base for all wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class DashboardSection(DashboardModel):
    section_id: str = Field(min_length=1)
    label: str = Field(min_length=1)
    icon: str | None = None
    required_capabilities: list[str] | None = None
    required_entitlements: list[str] | None = None
    required_features: list[str] | None = None
    children: list[DashboardSection] | None = None


class DashboardDeclaration(DashboardModel):
    dashboard_id: str = Field(min_length=1)
    label: str = Field(min_length=1)
    allowed_subjects: list[str]
    allowed_tenants: list[str] | None = None
    allowed_partners: list[str] | None = None
    required_capabilities: list[str] | None = None
    required_entitlements: list[str] | None = None
    required_features: list[str] | None = None
    sections: list[DashboardSection]


class DashboardContext(DashboardModel):
    subject_id: str = Field(min_length=1)
    subject_type: SubjectType
    tenant_id: str = Field(min_length=1)
    partner_id: str | None = None
    roles: list[str] = Field(default_factory=list)
    evaluation_time: datetime

    @field_validator("evaluation_time")
    @classmethod
    def _normalize_evaluation_time(cls, value: datetime) -> datetime:
        return normalize_instant(value)

    @field_serializer("evaluation_time")
    def _serialize_evaluation_time(self, value: datetime) -> str:
        return format_instant(value)


class PermissionResult(DashboardModel):
    subject_id: str
    capabilities: list[str]
    denied_capabilities: list[str] | None = None


class EntitlementSnapshot(DashboardModel):
    tenant_id: str
    active_entitlements: list[str]
    expired_entitlements: list[str] | None = None


class FeatureSnapshot(DashboardModel):
    enabled_features: list[str]
    disabled_features: list[str] | None = None


class ResolvedSection(DashboardModel):
    section_id: str = Field(min_length=1)
    label: str = Field(min_length=1)
    icon: str | None = None
    children: list[ResolvedSection] | None = None


class HiddenReason(DashboardModel):
    section_id: str
    reason: HiddenReasonCode
    details: str


class ResolvedDashboard(DashboardModel):
    dashboard_id: str
    visible_sections: list[ResolvedSection]
    hidden_sections: list[str]
    reasons: list[HiddenReason]


class DashboardSnapshot(DashboardModel):
    snapshot_id: str = Field(min_length=1)
    dashboard_id: str = Field(min_length=1)
    subject_id: str = Field(min_length=1)
    tenant_id: str = Field(min_length=1)
    resolved_sections: list[ResolvedSection]
    hidden_sections: list[str]
    reasons: list[HiddenReason]
    checksum: str = Field(min_length=1)
    evaluation_time: datetime
    expires_at: datetime | None = None

    @field_validator("evaluation_time", "expires_at")
    @classmethod
    def _normalize_instants(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return normalize_instant(value)

    @field_serializer("evaluation_time", "expires_at")
    def _serialize_instants(self, value: datetime | None) -> str | None:
        if value is None:
            return None
        return format_instant(value)
