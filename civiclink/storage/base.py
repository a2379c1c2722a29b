"""
Complaint store contract.

The core needs a document store with equality, range and membership
filters, atomic counters, atomic multi-document batch writes and an
append-only activity sub-collection per complaint. Ordering is NOT part of
the contract: callers sort in memory.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple, Optional

COMPLAINTS_COLLECTION = "complaints"
ACTIVITY_SUBCOLLECTION = "complaintActivity"
USERS_COLLECTION = "users"

SUPPORTED_OPERATORS = ("==", "in", "<=", ">=", "<", ">")


class QueryFilter(NamedTuple):
    """A single `where` clause; `field` may be a dotted path (location.lat)."""

    field: str
    op: str
    value: Any


class ComplaintStore(ABC):
    """
    Abstract complaint store.

    Documents are plain dicts with camelCase keys. Methods returning
    documents include the document id under "id".
    """

    @abstractmethod
    def get(self, complaint_id: str) -> Optional[Dict[str, Any]]:
        """Return the complaint document or None."""
        raise NotImplementedError

    @abstractmethod
    def add(self, data: Dict[str, Any]) -> str:
        """Insert a new complaint and return its generated id."""
        raise NotImplementedError

    @abstractmethod
    def update(self, complaint_id: str, fields: Dict[str, Any]) -> None:
        """Merge top-level fields into an existing complaint."""
        raise NotImplementedError

    @abstractmethod
    def increment(self, complaint_id: str, field: str, amount: int = 1) -> None:
        """Atomically add `amount` to a numeric field."""
        raise NotImplementedError

    @abstractmethod
    def query(self, filters: List[QueryFilter], limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Return complaints matching every filter, in store order."""
        raise NotImplementedError

    @abstractmethod
    def batch_update(self, updates: Dict[str, Dict[str, Any]]) -> None:
        """Apply all updates atomically (all or nothing)."""
        raise NotImplementedError

    @abstractmethod
    def append_activity(self, complaint_id: str, entry: Dict[str, Any]) -> str:
        """Append an entry to the complaint's activity log."""
        raise NotImplementedError

    @abstractmethod
    def list_activity(self, complaint_id: str) -> List[Dict[str, Any]]:
        """Return activity entries ordered by timestamp ascending."""
        raise NotImplementedError

    @abstractmethod
    def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        """Return the `users/{uid}` document or None."""
        raise NotImplementedError
