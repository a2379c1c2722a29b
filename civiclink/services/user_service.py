"""
User Service - caller identity and role lookup.

Token verification happens outside this core; here an opaque user id is
turned into a RoleProfile, once, at the request boundary.
"""

import logging
from typing import Optional

from civiclink.config.firebase import get_complaint_store
from civiclink.core.exceptions import ValidationFailed
from civiclink.models.user import RoleProfile, role_profile_from_document
from civiclink.storage.base import ComplaintStore

logger = logging.getLogger(__name__)


class UserService:
    """
    Service for reading `users/{uid}` role documents.
    """

    def __init__(self, store: ComplaintStore):
        self.store = store

    def get_role_profile(self, uid: Optional[str]) -> RoleProfile:
        """
        Get the caller's role profile.

        A user without a profile document is treated as a citizen.

        Raises:
            ValidationFailed: if no user id is given
        """
        if not uid or not uid.strip():
            raise ValidationFailed("User ID is required")

        data = self.store.get_user(uid)
        if data is None:
            logger.info(f"No profile for user {uid}; defaulting to citizen")
        return role_profile_from_document(uid, data)


# Global service instance (singleton)
_user_service: Optional[UserService] = None


def get_user_service() -> UserService:
    global _user_service
    if _user_service is None:
        _user_service = UserService(get_complaint_store())
    return _user_service
