"""
AI Provider Registry.

Cycles through classification providers in priority order:
a provider that raises hands over to the next one; when every provider
has failed (or none is configured) a fixed fallback result is returned.
"""

import logging
from typing import List, Optional

from civiclink.core.settings import settings
from civiclink.services.ai_plugin.base import ClassificationProvider, ClassificationResult
from civiclink.services.ai_plugin.gemini_provider import GeminiClassificationProvider
from civiclink.services.ai_plugin.mock_provider import KeywordRulesProvider

logger = logging.getLogger(__name__)


def fallback_result(title: str) -> ClassificationResult:
    """Deterministic result used when no provider succeeds."""
    return ClassificationResult(
        category="General",
        priority="medium",
        summary=f"(AI Unavailable) {title}",
        meta={"provider": "Fallback"},
    )


class AIProviderRegistry:
    """
    Registry for classification providers with fallback logic.
    """

    def __init__(self, providers: Optional[List[ClassificationProvider]] = None):
        if providers is None:
            providers = self._default_providers()
        self.providers = providers

    def _default_providers(self) -> List[ClassificationProvider]:
        """Providers in priority order: Gemini (if keyed), then keyword rules."""
        if not settings.AI_ENABLED:
            logger.info("⚠️ AI is disabled globally (AI_ENABLED=false), using fallback result only")
            return []

        providers: List[ClassificationProvider] = []
        gemini = GeminiClassificationProvider()
        if gemini.is_enabled():
            providers.append(gemini)
            logger.info("✅ Gemini classification provider registered")
        providers.append(KeywordRulesProvider())
        return providers

    def classify(self, title: str, description: str) -> ClassificationResult:
        """
        Classify using the first provider that succeeds.

        Always returns a ClassificationResult; never raises.
        """
        if not self.providers:
            logger.warning("No AI providers configured.")
            return fallback_result(title)

        for provider in self.providers:
            try:
                logger.info(f"Attempting AI analysis with {provider.name}...")
                result = provider.classify(title, description)
                logger.info(f"✅ {provider.name} Success")
                return result
            except Exception as e:
                logger.warning(f"⚠️ {provider.name} Failed: {e}. Cycling to next provider...")
                continue

        logger.error("❌ All AI Providers failed.")
        return fallback_result(title)


# Global registry instance (singleton)
_registry: Optional[AIProviderRegistry] = None


def get_ai_registry() -> AIProviderRegistry:
    global _registry
    if _registry is None:
        _registry = AIProviderRegistry()
    return _registry
