"""Lightweight JSON-based message catalog for citizen notifications."""

import json
import logging
import os
from functools import lru_cache
from typing import Dict, Optional

from civiclink.core.settings import settings

logger = logging.getLogger(__name__)

FALLBACK_LOCALE = "en"


def _locales_dir() -> str:
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "locales"))


@lru_cache(maxsize=8)
def _load(lang: str) -> Dict[str, str]:
    path = os.path.join(_locales_dir(), f"{lang}.json")
    if not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        try:
            return json.load(handle)
        except json.JSONDecodeError as e:
            logger.warning(f"Locale bundle {path} is not valid JSON: {e}")
            return {}


def translate(key: str, lang: Optional[str] = None, **params) -> str:
    """
    Render message `key` in `lang`, falling back to English, then to the key.

    Missing template parameters leave the template unformatted.
    """
    locale = (lang or settings.DEFAULT_LOCALE or FALLBACK_LOCALE).lower()
    template = _load(locale).get(key)
    if template is None and locale != FALLBACK_LOCALE:
        template = _load(FALLBACK_LOCALE).get(key)
    if template is None:
        return key
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        return template
