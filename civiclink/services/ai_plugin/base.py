"""
AI Classification Provider Base Interface.

Defines the contract for complaint classifiers.
Unlike a report interpreter, a provider signals failure by RAISING:
the registry catches the error and cycles to the next provider.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from pydantic import BaseModel, Field

CATEGORIES = ["Roads", "Electricity", "Water", "Waste", "Public Safety", "General"]
PRIORITIES = ["low", "medium", "high", "critical"]


class ClassificationResult(BaseModel):
    """
    Standardized classification structure.

    All providers must return this structure.
    """

    category: str = "General"
    priority: str = "medium"
    summary: str = ""
    meta: Dict[str, Any] = Field(default_factory=dict)


class ClassificationProvider(ABC):
    """
    Abstract base class for AI classification providers.
    """

    name: str = "unknown"

    @abstractmethod
    def is_enabled(self) -> bool:
        """
        Check if this provider is configured and ready.
        """
        pass

    @abstractmethod
    def classify(self, title: str, description: str) -> ClassificationResult:
        """
        Classify a complaint.

        This method MUST:
        - Return a ClassificationResult on success
        - Raise on any failure (network, parsing, quota)
        - Respect its own timeout

        Args:
            title: Complaint title
            description: Complaint description

        Returns:
            ClassificationResult
        """
        pass


def normalize_result(raw: Dict[str, Any], provider: str) -> ClassificationResult:
    """Clamp free-form provider output to the known categories/priorities."""
    category = str(raw.get("category") or "General").strip()
    match = next((c for c in CATEGORIES if c.lower() == category.lower()), "General")

    priority = str(raw.get("priority") or "medium").strip().lower()
    if priority not in PRIORITIES:
        priority = "medium"

    return ClassificationResult(
        category=match,
        priority=priority,
        summary=str(raw.get("summary") or "").strip(),
        meta={"provider": provider},
    )
