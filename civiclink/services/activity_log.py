"""
Activity Log - append-only audit trail per complaint.

DESIGN PRINCIPLES:
- Entries are appended, never mutated or deleted
- Logging is fire-and-forget: a failed append is reported on the
  effects logger and NEVER fails the primary operation
- The log is audit-only; complaint documents remain the source of truth
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from civiclink.core.logging_config import EFFECTS_LOGGER_NAME
from civiclink.models.complaint import ActivityLogEntry, ActivityType
from civiclink.storage.base import ComplaintStore

logger = logging.getLogger(__name__)
effects_logger = logging.getLogger(EFFECTS_LOGGER_NAME)

SYSTEM_ACTOR = "system"


def run_effect(name: str, effect: Callable[..., Any], *args, **kwargs) -> bool:
    """
    Run a best-effort side effect.

    Returns True on success. Any exception is logged on the effects
    channel with its traceback and swallowed.
    """
    try:
        effect(*args, **kwargs)
        return True
    except Exception as e:
        effects_logger.error(f"Side effect '{name}' failed: {e}", exc_info=True)
        return False


class ActivityLogger:
    """Writes ActivityLogEntry records to the complaint's activity sub-collection."""

    def __init__(self, store: ComplaintStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def log(
        self,
        complaint_id: str,
        activity_type: ActivityType,
        actor_id: str,
        actor_role: str,
        meta: Optional[Dict[str, Any]] = None,
        note: Optional[str] = None,
    ) -> bool:
        entry = ActivityLogEntry(
            complaint_id=complaint_id,
            type=activity_type,
            actor_id=actor_id or "unknown",
            actor_role=actor_role,
            meta=meta or {},
            note=note,
            timestamp=self.clock(),
        )
        ok = run_effect(
            f"activity:{entry.type}:{complaint_id}",
            self.store.append_activity,
            complaint_id,
            entry.to_document(),
        )
        if ok:
            logger.debug(f"Activity '{entry.type}' logged for complaint {complaint_id}")
        return ok
