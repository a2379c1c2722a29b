"""
Gemini AI Provider - complaint classification over the Gemini REST API.

Requires GEMINI_API_KEY in environment variables.
Raises on any failure so the registry can cycle to the next provider.
"""

import json
import logging
import re
from typing import Dict, Optional

import requests

from civiclink.core.settings import settings
from civiclink.services.ai_plugin.base import (
    CATEGORIES,
    ClassificationProvider,
    ClassificationResult,
    normalize_result,
)

logger = logging.getLogger(__name__)

JSON_BLOCK = re.compile(r"\{[\s\S]*\}")


class GeminiClassificationProvider(ClassificationProvider):
    """
    Google Gemini provider for complaint classification.
    """

    name = "Gemini"
    API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.model = model or settings.GEMINI_MODEL
        self.timeout = timeout or settings.AI_TIMEOUT_SECONDS

    def is_enabled(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def classify(self, title: str, description: str) -> ClassificationResult:
        if not self.is_enabled():
            raise RuntimeError("Gemini API key not configured")

        text = self._call_gemini_api(self._build_prompt(title, description))
        return normalize_result(self._parse_response(text), self.name)

    def _build_prompt(self, title: str, description: str) -> str:
        return f"""Analyze this citizen complaint.
Title: {title}
Description: {description}

Provide JSON only: {{"category": "...", "priority": "...", "summary": "..."}}
Categories: {", ".join(CATEGORIES)}
Priorities: low, medium, high, critical
The summary must be one neutral sentence."""

    def _call_gemini_api(self, prompt: str) -> str:
        response = requests.post(
            self.API_URL.format(model=self.model),
            params={"key": self.api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
            timeout=self.timeout,
        )
        if response.status_code != 200:
            raise RuntimeError(f"Gemini API returned status {response.status_code}: {response.text[:200]}")

        data = response.json()
        return data.get("candidates", [{}])[0].get("content", {}).get("parts", [{}])[0].get("text", "")

    def _parse_response(self, text: str) -> Dict:
        match = JSON_BLOCK.search(text or "")
        if not match:
            raise ValueError("Gemini response contained no JSON object")
        return json.loads(match.group(0))
