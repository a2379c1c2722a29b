"""
Citizen notifications - best-effort WhatsApp messages on status changes.

DESIGN PRINCIPLES:
- Notifications NEVER block or fail a complaint operation
- Messages are keyed by template + locale and rendered from JSON bundles
- The default sender is SIMULATED (logs the message); a real transport can
  implement NotificationSender without touching the core

WHAT THIS SERVICE DOES NOT:
❌ Retry failed sends
❌ Broadcast to anyone but the complaint owner
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from civiclink.core.settings import settings
from civiclink.models.user import RoleProfile
from civiclink.services.activity_log import run_effect
from civiclink.utils.i18n import translate

logger = logging.getLogger(__name__)

TEMPLATE_RESOLVED = "complaint_resolved"
TEMPLATE_REJECTED = "complaint_rejected"
TEMPLATE_REOPENED = "complaint_reopened"


class NotificationSender(ABC):
    """Delivers a rendered template to a phone number."""

    @abstractmethod
    def send(self, phone_number: str, template_key: str, locale: str, params: Dict[str, Any]) -> None:
        raise NotImplementedError


class WhatsAppSimulatorSender(NotificationSender):
    """
    SIMULATED WhatsApp delivery. No messages leave the process.

    Sent messages are kept in `outbox` for inspection (dashboard, tests).
    """

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = settings.NOTIFICATIONS_ENABLED if enabled is None else enabled
        self.outbox = []

    def send(self, phone_number: str, template_key: str, locale: str, params: Dict[str, Any]) -> None:
        if not self.enabled:
            logger.info(f"ℹ️ WhatsApp notifications disabled. Skipping '{template_key}' to {phone_number}")
            return

        to = phone_number if phone_number.startswith("whatsapp:") else f"whatsapp:{phone_number}"
        body = translate(template_key, locale, **params)
        self.outbox.append({"to": to, "template": template_key, "locale": locale, "body": body})
        logger.info(f"✅ [SIMULATED] WhatsApp '{template_key}' sent to {to}")


class ComplaintNotifier:
    """Looks up the complaint owner and sends a template, best-effort."""

    def __init__(self, sender: NotificationSender, role_lookup):
        self.sender = sender
        self.role_lookup = role_lookup

    def notify_owner(self, complaint: Dict[str, Any], template_key: str, **params) -> bool:
        return run_effect(
            f"notify:{template_key}:{complaint.get('id')}",
            self._notify_owner,
            complaint,
            template_key,
            params,
        )

    def _notify_owner(self, complaint: Dict[str, Any], template_key: str, params: Dict[str, Any]) -> None:
        owner: RoleProfile = self.role_lookup.get_role_profile(complaint.get("userId"))
        if not owner.phone_number:
            logger.info(f"No phone number for user {owner.uid}; skipping '{template_key}'")
            return

        locale = owner.locale or settings.DEFAULT_LOCALE
        self.sender.send(
            owner.phone_number,
            template_key,
            locale,
            {"complaint_id": complaint.get("id"), "title": complaint.get("title", ""), **params},
        )
