from __future__ import annotations

import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any

from dashboard_access.config import get_settings
from dashboard_access.context import get_correlation_id

# Oldest entries are dropped once ``Settings.audit_max_entries`` is reached.
audit_entries: deque[dict[str, Any]] = deque()


def record(
    actor_subject_id: str,
    entity_type: str,
    entity_id: str,
    action: str,
    details: dict[str, Any] | None,
    correlation_id: str | None = None,
) -> None:
    settings = get_settings()
    if not settings.audit_enabled:
        return

    resolved_correlation_id = correlation_id or get_correlation_id()
    audit_entries.append(
        {
            "id": str(uuid.uuid4()),
            "actor_subject_id": actor_subject_id,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "action": action,
            "details": details,
            "correlation_id": resolved_correlation_id,
            "occurred_at": datetime.now(timezone.utc).isoformat(),
        }
    )
    while len(audit_entries) > settings.audit_max_entries:
        audit_entries.popleft()


def list_entries(
    *,
    action: str | None = None,
    entity_id: str | None = None,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Return retained audit entries, newest first, optionally filtered."""

    entries = [
        entry
        for entry in reversed(audit_entries)
        if (action is None or entry["action"] == action) and (entity_id is None or entry["entity_id"] == entity_id)
    ]
    if limit is not None:
        entries = entries[:limit]
    return entries
