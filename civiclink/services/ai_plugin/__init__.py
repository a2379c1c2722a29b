"""
AI Plug-in Architecture for complaint classification.

Provides optional AI enhancement that can be enabled/disabled.
Fails gracefully and never blocks complaint creation.
"""

from civiclink.services.ai_plugin.base import ClassificationProvider, ClassificationResult
from civiclink.services.ai_plugin.gemini_provider import GeminiClassificationProvider
from civiclink.services.ai_plugin.mock_provider import KeywordRulesProvider
from civiclink.services.ai_plugin.registry import AIProviderRegistry, fallback_result, get_ai_registry

__all__ = [
    "AIProviderRegistry",
    "ClassificationProvider",
    "ClassificationResult",
    "GeminiClassificationProvider",
    "KeywordRulesProvider",
    "fallback_result",
    "get_ai_registry",
]
