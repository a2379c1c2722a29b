"""
In-memory complaint store.

Used when USE_MOCK_DB=true and by the test-suite. Mirrors the Firestore
semantics the core relies on: documents missing a filtered field never
match, counters and batches are applied under a lock, reads return copies.
"""

import copy
import threading
import uuid
from typing import Any, Dict, List, Optional

from civiclink.core.exceptions import PersistenceFailure
from civiclink.storage.base import ComplaintStore, QueryFilter, SUPPORTED_OPERATORS

_MISSING = object()


def _lookup(data: Dict[str, Any], field_path: str):
    current = data
    for part in field_path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _matches(data: Dict[str, Any], clause: QueryFilter) -> bool:
    value = _lookup(data, clause.field)
    if value is _MISSING:
        return False
    try:
        if clause.op == "==":
            return value == clause.value
        if clause.op == "in":
            return value in clause.value
        if value is None:
            return False
        if clause.op == "<=":
            return value <= clause.value
        if clause.op == ">=":
            return value >= clause.value
        if clause.op == "<":
            return value < clause.value
        if clause.op == ">":
            return value > clause.value
    except TypeError:
        return False
    return False


class InMemoryComplaintStore(ComplaintStore):

    def __init__(self, users: Optional[Dict[str, Dict[str, Any]]] = None):
        self._lock = threading.Lock()
        self._complaints: Dict[str, Dict[str, Any]] = {}
        self._activity: Dict[str, List[Dict[str, Any]]] = {}
        self._users: Dict[str, Dict[str, Any]] = dict(users or {})

    # -- users -------------------------------------------------------------

    def put_user(self, uid: str, data: Dict[str, Any]) -> None:
        with self._lock:
            self._users[uid] = copy.deepcopy(data)

    def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            data = self._users.get(uid)
            return copy.deepcopy(data) if data is not None else None

    # -- complaints --------------------------------------------------------

    def put(self, complaint_id: str, data: Dict[str, Any]) -> None:
        """Insert a complaint under a fixed id (seeding, tests)."""
        with self._lock:
            stored = copy.deepcopy(data)
            stored.pop("id", None)
            self._complaints[complaint_id] = stored

    def get(self, complaint_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            data = self._complaints.get(complaint_id)
            if data is None:
                return None
            result = copy.deepcopy(data)
        result["id"] = complaint_id
        return result

    def add(self, data: Dict[str, Any]) -> str:
        complaint_id = uuid.uuid4().hex[:20]
        self.put(complaint_id, data)
        return complaint_id

    def update(self, complaint_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            if complaint_id not in self._complaints:
                raise PersistenceFailure(f"No document to update: {complaint_id}")
            self._complaints[complaint_id].update(copy.deepcopy(fields))

    def increment(self, complaint_id: str, field: str, amount: int = 1) -> None:
        with self._lock:
            if complaint_id not in self._complaints:
                raise PersistenceFailure(f"No document to update: {complaint_id}")
            doc = self._complaints[complaint_id]
            doc[field] = (doc.get(field) or 0) + amount

    def query(self, filters: List[QueryFilter], limit: Optional[int] = None) -> List[Dict[str, Any]]:
        for clause in filters:
            if clause.op not in SUPPORTED_OPERATORS:
                raise ValueError(f"Unsupported operator: {clause.op}")

        results = []
        with self._lock:
            for complaint_id, data in self._complaints.items():
                if all(_matches(data, clause) for clause in filters):
                    doc = copy.deepcopy(data)
                    doc["id"] = complaint_id
                    results.append(doc)
                    if limit and len(results) >= limit:
                        break
        return results

    def batch_update(self, updates: Dict[str, Dict[str, Any]]) -> None:
        with self._lock:
            missing = [cid for cid in updates if cid not in self._complaints]
            if missing:
                raise PersistenceFailure(f"No document to update: {missing[0]}")
            for complaint_id, fields in updates.items():
                self._complaints[complaint_id].update(copy.deepcopy(fields))

    # -- activity ----------------------------------------------------------

    def append_activity(self, complaint_id: str, entry: Dict[str, Any]) -> str:
        entry_id = uuid.uuid4().hex[:20]
        stored = copy.deepcopy(entry)
        stored["id"] = entry_id
        with self._lock:
            self._activity.setdefault(complaint_id, []).append(stored)
        return entry_id

    def list_activity(self, complaint_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            entries = copy.deepcopy(self._activity.get(complaint_id, []))
        # stable: entries with equal timestamps keep append order
        return sorted(entries, key=lambda e: e["timestamp"])
