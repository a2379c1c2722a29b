"""
Escalation Engine - SLA breach sweeper.

DESIGN PRINCIPLES:
- A complaint open for longer than the SLA (48h) is escalated ONCE
- All field changes of one sweep are committed as a single batch
- Audit entries are written afterwards, one per complaint, best-effort
- Re-running a sweep is idempotent (escalationTriggered guards it)
- Storage failures while querying or committing propagate to the trigger
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, NamedTuple, Optional

from civiclink.config.firebase import get_complaint_store
from civiclink.core.settings import settings
from civiclink.models.complaint import OPEN_STATUSES, ActivityType, Priority
from civiclink.services.activity_log import SYSTEM_ACTOR, ActivityLogger
from civiclink.storage.base import ComplaintStore, QueryFilter

logger = logging.getLogger(__name__)

ESCALATION_REASON = "48h SLA Breach"


def escalated_priority(current: Optional[str]) -> str:
    """Raise to high; a critical complaint stays critical."""
    if current == Priority.CRITICAL.value:
        return current
    return Priority.HIGH.value


class SweepResult(NamedTuple):
    escalated_ids: List[str]
    ran_at: datetime

    @property
    def count(self) -> int:
        return len(self.escalated_ids)


class EscalationSweeper:
    """
    Flags open complaints that breached the SLA.

    Escalation sets:
    - isOverdue, escalationTriggered, isEscalated = True
    - escalatedAt, updatedAt = sweep time
    - priority = high (critical is kept)
    """

    def __init__(
        self,
        store: ComplaintStore,
        activity: Optional[ActivityLogger] = None,
        sla_hours: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.activity = activity or ActivityLogger(store, clock=self.clock)
        self.sla_hours = sla_hours if sla_hours is not None else settings.ESCALATION_SLA_HOURS

    def find_breaches(self, now: datetime) -> List[dict]:
        """Open, not yet escalated complaints created at or before now - SLA."""
        cutoff = now - timedelta(hours=self.sla_hours)
        return self.store.query([
            QueryFilter("status", "in", [status.value for status in OPEN_STATUSES]),
            QueryFilter("createdAt", "<=", cutoff),
            QueryFilter("escalationTriggered", "==", False),
        ])

    def run(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Run one escalation sweep.

        Args:
            now: Sweep time (defaults to the clock)

        Returns:
            SweepResult with the ids escalated in this sweep
        """
        now = now or self.clock()
        logger.info(f"🔍 Running SLA escalation check at {now.isoformat()}...")

        breaches = self.find_breaches(now)
        if not breaches:
            logger.info("✅ No new SLA breaches found.")
            return SweepResult([], now)

        updates = {
            complaint["id"]: {
                "isOverdue": True,
                "escalationTriggered": True,
                "isEscalated": True,
                "escalatedAt": now,
                "priority": escalated_priority(complaint.get("priority")),
                "updatedAt": now,
            }
            for complaint in breaches
        }
        self.store.batch_update(updates)
        logger.warning(f"⚠️ Escalated {len(updates)} complaints due to SLA breach.")

        for complaint_id in updates:
            self.activity.log(
                complaint_id,
                ActivityType.ESCALATED,
                SYSTEM_ACTOR,
                "system",
                meta={"reason": ESCALATION_REASON},
            )

        return SweepResult(list(updates), now)


# Global sweeper instance (singleton)
_sweeper: Optional[EscalationSweeper] = None


def get_escalation_sweeper() -> EscalationSweeper:
    global _sweeper
    if _sweeper is None:
        _sweeper = EscalationSweeper(get_complaint_store())
    return _sweeper
