"""
Firestore-backed complaint store.

Uses the firebase_admin client: `firestore.Increment` for counters,
`db.batch()` for the escalation sweep and the `complaintActivity`
sub-collection for the audit log. Query failures are wrapped as
PersistenceFailure so routes can answer with a generic 500.
"""

import logging
from typing import Any, Dict, List, Optional

from firebase_admin import firestore

from civiclink.core.exceptions import PersistenceFailure
from civiclink.storage.base import (
    ACTIVITY_SUBCOLLECTION,
    COMPLAINTS_COLLECTION,
    USERS_COLLECTION,
    ComplaintStore,
    QueryFilter,
)
from civiclink.utils.firestore_helpers import apply_filters

logger = logging.getLogger(__name__)


class FirestoreComplaintStore(ComplaintStore):

    def __init__(self, db):
        self.db = db

    def _complaints(self):
        return self.db.collection(COMPLAINTS_COLLECTION)

    def get(self, complaint_id: str) -> Optional[Dict[str, Any]]:
        try:
            doc = self._complaints().document(complaint_id).get()
        except Exception as e:
            logger.error(f"Failed to read complaint {complaint_id}: {e}", exc_info=True)
            raise PersistenceFailure(str(e))
        if not doc.exists:
            return None
        data = doc.to_dict()
        data["id"] = doc.id
        return data

    def add(self, data: Dict[str, Any]) -> str:
        try:
            doc_ref = self._complaints().document()
            doc_ref.set(data)
        except Exception as e:
            logger.error(f"Failed to save complaint to Firestore: {e}", exc_info=True)
            raise PersistenceFailure(str(e))
        return doc_ref.id

    def update(self, complaint_id: str, fields: Dict[str, Any]) -> None:
        try:
            self._complaints().document(complaint_id).update(fields)
        except Exception as e:
            logger.error(f"Failed to update complaint {complaint_id}: {e}", exc_info=True)
            raise PersistenceFailure(str(e))

    def increment(self, complaint_id: str, field: str, amount: int = 1) -> None:
        try:
            self._complaints().document(complaint_id).update({field: firestore.Increment(amount)})
        except Exception as e:
            logger.error(f"Failed to increment {field} on {complaint_id}: {e}", exc_info=True)
            raise PersistenceFailure(str(e))

    def query(self, filters: List[QueryFilter], limit: Optional[int] = None) -> List[Dict[str, Any]]:
        query = apply_filters(self._complaints(), filters)
        if limit:
            query = query.limit(limit)

        try:
            results = []
            for doc in query.stream():
                data = doc.to_dict()
                data["id"] = doc.id
                results.append(data)
            return results
        except Exception as e:
            logger.error(f"Complaint query failed ({filters}): {e}", exc_info=True)
            raise PersistenceFailure(str(e))

    def batch_update(self, updates: Dict[str, Dict[str, Any]]) -> None:
        if not updates:
            return
        batch = self.db.batch()
        for complaint_id, fields in updates.items():
            batch.update(self._complaints().document(complaint_id), fields)
        try:
            batch.commit()
        except Exception as e:
            logger.error(f"Batch update of {len(updates)} complaints failed: {e}", exc_info=True)
            raise PersistenceFailure(str(e))

    def append_activity(self, complaint_id: str, entry: Dict[str, Any]) -> str:
        activity_ref = (
            self._complaints()
            .document(complaint_id)
            .collection(ACTIVITY_SUBCOLLECTION)
            .document()
        )
        activity_ref.set(entry)
        return activity_ref.id

    def list_activity(self, complaint_id: str) -> List[Dict[str, Any]]:
        activity_ref = self._complaints().document(complaint_id).collection(ACTIVITY_SUBCOLLECTION)
        try:
            docs = activity_ref.order_by("timestamp", direction=firestore.Query.ASCENDING).stream()
            entries = []
            for doc in docs:
                data = doc.to_dict()
                data["id"] = doc.id
                entries.append(data)
            return entries
        except Exception as e:
            logger.error(f"Failed to read timeline for {complaint_id}: {e}", exc_info=True)
            raise PersistenceFailure(str(e))

    def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        try:
            doc = self.db.collection(USERS_COLLECTION).document(uid).get()
        except Exception as e:
            logger.error(f"Failed to read user {uid}: {e}", exc_info=True)
            raise PersistenceFailure(str(e))
        return doc.to_dict() if doc.exists else None
