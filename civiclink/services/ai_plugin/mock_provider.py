"""
Keyword Rules Provider - offline classifier.

Rule-based keyword matching without external AI calls.
Used after Gemini in the registry; never needs network access.
"""

import logging

from civiclink.services.ai_plugin.base import ClassificationProvider, ClassificationResult

logger = logging.getLogger(__name__)

CATEGORY_KEYWORDS = [
    ("Roads", ["road", "pothole", "traffic", "footpath", "street", "accident"]),
    ("Water", ["water", "leak", "pipeline", "drainage", "sewage", "tap"]),
    ("Electricity", ["electricity", "power", "streetlight", "light", "outage", "transformer"]),
    ("Waste", ["garbage", "waste", "trash", "dump", "litter"]),
    ("Public Safety", ["safety", "crime", "theft", "fire", "danger"]),
]

HIGH_PRIORITY_WORDS = ["urgent", "dangerous", "severe", "accident", "fire", "blocking"]
LOW_PRIORITY_WORDS = ["minor", "small", "cosmetic"]


class KeywordRulesProvider(ClassificationProvider):
    """
    Deterministic keyword classifier.
    """

    name = "KeywordRules"

    def is_enabled(self) -> bool:
        return True

    def classify(self, title: str, description: str) -> ClassificationResult:
        text = f"{title} {description}".lower()

        category = "General"
        for candidate, words in CATEGORY_KEYWORDS:
            if any(word in text for word in words):
                category = candidate
                break

        priority = "medium"
        if any(word in text for word in HIGH_PRIORITY_WORDS):
            priority = "high"
        elif any(word in text for word in LOW_PRIORITY_WORDS):
            priority = "low"

        summary = (description or title).split(".")[0].strip()
        if len(summary) > 100:
            summary = summary[:97] + "..."

        return ClassificationResult(
            category=category,
            priority=priority,
            summary=summary,
            meta={"provider": self.name},
        )
