"""Phrase matching against plain text and existing anchors."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import List, Optional

from bs4 import BeautifulSoup

from .config import EngineConfig, load_config
from .text import normalize_phrase
from .types import PhraseOccurrence

# A letter, digit, underscore or hyphen touching the match means it is part of a longer word.
_BEFORE = r"(?<![\w-])"
_AFTER = r"(?![\w-])"

TRACKING_ATTR = "data-interlink-id"


@lru_cache(maxsize=2048)
def phrase_pattern(phrase: str) -> re.Pattern[str]:
    """Compile a case-insensitive, boundary-safe matcher for ``phrase``."""

    words = [re.escape(word) for word in phrase.split()]
    return re.compile(_BEFORE + r"\s+".join(words) + _AFTER, flags=re.IGNORECASE)


def is_matchable_phrase(phrase: str, config: EngineConfig | None = None) -> bool:
    """Reject phrases too short to link without hitting common words."""

    engine_config = config or load_config(None)
    cleaned = normalize_phrase(phrase)
    if len(cleaned) < int(engine_config.get("min_anchor_length", 4)):
        return False
    if len(cleaned.split()) < int(engine_config.get("min_anchor_words", 2)):
        return len(cleaned) >= int(engine_config.get("min_single_word_length", 8))
    return True


def find_phrase_occurrences(
    text: str,
    phrase: str,
    config: EngineConfig | None = None,
) -> List[PhraseOccurrence]:
    """Return every bounded occurrence of ``phrase`` in ``text``, in order."""

    if not text or not phrase or not is_matchable_phrase(phrase, config):
        return []
    return [
        PhraseOccurrence(offset=match.start(), length=match.end() - match.start())
        for match in phrase_pattern(normalize_phrase(phrase)).finditer(text)
    ]


def normalize_href(href: str) -> str:
    """Strip query string, fragment and trailing slash from an internal href."""

    path = href.split("#", 1)[0].split("?", 1)[0].strip()
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def is_phrase_already_linked(
    html: str,
    phrase: str,
    target_url: str,
    target_id: Optional[str] = None,
) -> bool:
    """Return True when ``html`` already links the phrase or the target."""

    if not html:
        return False

    soup = BeautifulSoup(html, "lxml")
    pattern = phrase_pattern(normalize_phrase(phrase)) if phrase.strip() else None
    wanted_url = normalize_href(target_url).lower()

    for anchor in soup.find_all("a"):
        if pattern is not None and pattern.search(anchor.get_text(" ")):
            return True
        href = anchor.get("href")
        if href and normalize_href(str(href)).lower() == wanted_url:
            return True

    if target_id and soup.find(attrs={TRACKING_ATTR: target_id}) is not None:
        return True
    return False
