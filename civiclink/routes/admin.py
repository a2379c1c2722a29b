"""
Admin endpoints - operational triggers.

SCOPE OF ADMIN:
✅ Run the SLA escalation sweep on demand (cron / dashboard button)

❌ NOT resolve or reject complaints (see /complaints/{id}/...)
❌ NOT delete complaints
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from civiclink.models.user import RoleProfile
from civiclink.routes.complaints import get_caller
from civiclink.services.escalation_engine import EscalationSweeper, get_escalation_sweeper

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/escalations/run")
def run_escalations(
    caller: RoleProfile = Depends(get_caller),
    sweeper: EscalationSweeper = Depends(get_escalation_sweeper),
) -> Dict[str, Any]:
    """
    Run one escalation sweep.

    Open complaints past the SLA are flagged, raised to high priority and
    logged. Re-running is harmless.
    """
    if not caller.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")

    logger.info(f"POST /admin/escalations/run - triggered by {caller.uid}")
    result = sweeper.run()
    return {
        "escalated": result.count,
        "complaintIds": result.escalated_ids,
        "ranAt": result.ran_at.isoformat(),
    }
