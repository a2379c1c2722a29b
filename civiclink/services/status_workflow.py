"""
Status Workflow Engine - complaint lifecycle state machine.

DESIGN PRINCIPLES:
- Every status change goes through TRANSITIONS (no ad-hoc writes)
- Guards are role-based: admins move work forward, owners reopen
- Resolution is only reachable through the dedicated resolve operation
- Invalid transitions are rejected programmatically, with no mutation

submitted, reopened              -> in_progress  (admin)
submitted, in_progress, reopened -> rejected     (admin, reason required)
submitted, in_progress, reopened -> resolved     (admin, resolve operation only)
resolved                         -> reopened     (original owner)
"""

import logging
from typing import Dict, List, NamedTuple, Optional, Tuple

from civiclink.core.exceptions import NotAuthorized, StateConflict, ValidationFailed
from civiclink.models.complaint import ComplaintStatus
from civiclink.models.user import RoleProfile

logger = logging.getLogger(__name__)

ACTOR_ADMIN = "admin"
ACTOR_OWNER = "owner"


class TransitionRule(NamedTuple):
    allowed_from: Tuple[ComplaintStatus, ...]
    actor: str
    requires_reason: bool = False
    dedicated_only: bool = False


# target status -> rule
TRANSITIONS: Dict[ComplaintStatus, TransitionRule] = {
    ComplaintStatus.IN_PROGRESS: TransitionRule(
        allowed_from=(ComplaintStatus.SUBMITTED, ComplaintStatus.REOPENED),
        actor=ACTOR_ADMIN,
    ),
    ComplaintStatus.REJECTED: TransitionRule(
        allowed_from=(ComplaintStatus.SUBMITTED, ComplaintStatus.IN_PROGRESS, ComplaintStatus.REOPENED),
        actor=ACTOR_ADMIN,
        requires_reason=True,
    ),
    ComplaintStatus.RESOLVED: TransitionRule(
        allowed_from=(ComplaintStatus.SUBMITTED, ComplaintStatus.IN_PROGRESS, ComplaintStatus.REOPENED),
        actor=ACTOR_ADMIN,
        dedicated_only=True,
    ),
    ComplaintStatus.REOPENED: TransitionRule(
        allowed_from=(ComplaintStatus.RESOLVED,),
        actor=ACTOR_OWNER,
    ),
}


class ComplaintStateMachine:
    """
    Strict state machine for complaint status transitions.

    Rules:
    - Only transitions listed in TRANSITIONS are legal
    - Same-status writes are not transitions and are rejected
    - `resolved` cannot be reached through the generic update
    """

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> List[str]:
        """List the statuses reachable from `current_status` (any actor)."""
        return [
            target.value
            for target, rule in TRANSITIONS.items()
            if current_status in rule.allowed_from
        ]

    @classmethod
    def is_valid_transition(cls, from_status: str, to_status: str) -> bool:
        try:
            target = ComplaintStatus(to_status)
        except ValueError:
            return False
        rule = TRANSITIONS.get(target)
        return rule is not None and from_status in rule.allowed_from

    @classmethod
    def check_transition(
        cls,
        current_status: str,
        new_status: str,
        caller: RoleProfile,
        owner_id: Optional[str],
        reason: Optional[str] = None,
        dedicated: bool = False,
    ) -> TransitionRule:
        """
        Validate a transition for `caller`.

        Raises:
            StateConflict: unknown target, dedicated-only target via generic
                path, or `current_status` not an allowed source
            NotAuthorized: caller is not the required actor
            ValidationFailed: a required reason is missing
        """
        try:
            target = ComplaintStatus(new_status)
        except ValueError:
            raise StateConflict(f"Unknown status: {new_status}")

        rule = TRANSITIONS.get(target)
        if rule is None:
            raise StateConflict(f"Status '{target.value}' cannot be set directly")

        if rule.dedicated_only and not dedicated:
            raise StateConflict(
                f"Status '{target.value}' can only be set through the resolve operation"
            )

        if rule.actor == ACTOR_ADMIN and not caller.is_admin:
            raise NotAuthorized(f"Only admins can move a complaint to '{target.value}'")
        if rule.actor == ACTOR_OWNER and caller.uid != owner_id:
            raise NotAuthorized(f"Only the complaint owner can move it to '{target.value}'")

        if rule.requires_reason and not (reason and reason.strip()):
            raise ValidationFailed(f"A reason is required to move a complaint to '{target.value}'")

        if current_status not in rule.allowed_from:
            allowed = cls.get_allowed_transitions(current_status)
            raise StateConflict(
                f"Invalid status transition: {current_status} → {target.value}. "
                f"Allowed transitions from {current_status}: {allowed}"
            )

        logger.debug(f"Transition {current_status} → {target.value} allowed for {caller.uid}")
        return rule
