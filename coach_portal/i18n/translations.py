"""Dotted-key lookup into the per-language string tables, with English fallback."""

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)

LANGUAGES_DIR = Path(__file__).resolve().parent / "languages"
FALLBACK_LANGUAGE = "en"
SUPPORTED_LANGUAGES = ("en", "de", "es")

_PLACEHOLDER = re.compile(r"\{(\w+)\}")

Translator = Callable[..., str]


@lru_cache(maxsize=None)
def load_table(language: str) -> dict:
    path = LANGUAGES_DIR / f"{language}.json"
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def _resolve(table: dict, key: str) -> Optional[str]:
    value = table
    for part in key.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value if isinstance(value, str) else None


def _substitute(text: str, replacements: Optional[dict]) -> str:
    if not replacements:
        return text
    return _PLACEHOLDER.sub(
        lambda m: str(replacements[m.group(1)]) if m.group(1) in replacements else m.group(0),
        text,
    )


def normalize_language(language: Optional[str]) -> str:
    if language and language.lower()[:2] in SUPPORTED_LANGUAGES:
        return language.lower()[:2]
    return FALLBACK_LANGUAGE


def get_translation(language: str, key: str, replacements: Optional[dict] = None) -> str:
    """Translate `key` for `language`.

    Falls back to English when the key is missing (or not a string) in the
    requested language, and to the key itself when English lacks it too.
    """
    language = normalize_language(language)
    value = _resolve(load_table(language), key)
    if value is None and language != FALLBACK_LANGUAGE:
        value = _resolve(load_table(FALLBACK_LANGUAGE), key)
    if value is None:
        logger.warning(f"Translation key not found: {key} for language: {language}")
        return key
    return _substitute(value, replacements)


def create_translation_function(language: str) -> Translator:
    language = normalize_language(language)

    def t(key: str, replacements: Optional[dict] = None) -> str:
        return get_translation(language, key, replacements)

    return t
