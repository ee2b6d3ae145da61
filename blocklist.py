"""
blocklist.py — Blocked-term matcher for comment classification.
Terms and comment text are both NFKD-decomposed and case-folded before
substring matching, so stylised Unicode letters match their plain forms.
"""

import json
import logging
import unicodedata
from pathlib import Path
from typing import Iterable

import yaml

logger = logging.getLogger(__name__)


def normalize_text(text: str) -> str:
    return unicodedata.normalize("NFKD", text).casefold()


class BlocklistMatcher:
    """Classify text as spam when it contains any blocked term."""

    def __init__(self, terms: Iterable[str] = ()):
        normalized = set()
        for term in terms:
            if not isinstance(term, str):
                continue
            value = normalize_text(term)
            if value.strip():
                normalized.add(value)
        self.terms: frozenset[str] = frozenset(normalized)

    def __len__(self) -> int:
        return len(self.terms)

    def is_spam(self, text: str | None) -> bool:
        if not text or not self.terms:
            return False
        haystack = normalize_text(text)
        return any(term in haystack for term in self.terms)

    @classmethod
    def from_file(cls, path: str | Path) -> "BlocklistMatcher":
        """
        Load terms from a JSON or YAML list.
        A missing or unreadable file yields an empty matcher (never spam).
        """
        terms = load_terms(path)
        matcher = cls(terms)
        logger.info("Loaded %d blocked words from %s.", len(matcher), path)
        return matcher


def load_terms(path: str | Path) -> list[str]:
    source = Path(path)
    try:
        with open(source, "r", encoding="utf-8") as f:
            if source.suffix.lower() == ".json":
                loaded = json.load(f)
            else:
                loaded = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        logger.error("Error loading blocklist %s: %s", source, e)
        logger.warning("Proceeding with empty blocked words list.")
        return []

    if not isinstance(loaded, list):
        logger.warning("Blocklist %s is not a list; proceeding with empty blocked words list.", source)
        return []
    return [item for item in loaded if isinstance(item, str)]
