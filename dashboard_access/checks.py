from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class AccessCheck:
    allowed: bool
    missing: list[str] = field(default_factory=list)


def _check_required(required: Sequence[str] | None, available: Iterable[str]) -> AccessCheck:
    if not required:
        return AccessCheck(allowed=True)

    grants = set(available)
    missing = [item for item in required if item not in grants]
    return AccessCheck(allowed=not missing, missing=missing)


def check_capabilities(required: Sequence[str] | None, available: Iterable[str]) -> AccessCheck:
    """Check required capabilities against the subject's granted capabilities."""

    return _check_required(required, available)


def check_entitlements(required: Sequence[str] | None, active: Iterable[str]) -> AccessCheck:
    """Check required entitlements against the tenant's active entitlements."""

    return _check_required(required, active)


def check_features(required: Sequence[str] | None, enabled: Iterable[str]) -> AccessCheck:
    """Check required feature flags against the globally enabled features."""

    return _check_required(required, enabled)
