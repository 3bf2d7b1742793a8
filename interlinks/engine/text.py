"""Shared text utilities for the interlinking engine."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Tuple

from bs4 import BeautifulSoup

_TOKEN_RE = re.compile(r"[\w']+(?:-[\w']+)*")
_WHITESPACE_RE = re.compile(r"\s+")

# Elements whose text is never prose.
_NON_TEXT_TAGS = ["script", "style", "template", "noscript"]

STOP_WORDS = frozenset(
    """
    a an the and or but in on at to for of with by from up about into through during before after
    above below between out off over under again further then once here there when where why how
    all both each few more most other some such no nor not only own same so than too very can will
    just do should now he she it we they me him her us them my your his its our their this that
    these those am is are was were be been being have has had having does did doing would could
    might must shall need used also get got getting make makes made go goes going went gone take
    takes took say says said see seen saw know known knew think thought come came want give gave
    tell told work call try ask put keep let begin seem help show hear play run move live believe
    bring happen write provide sit stand lose pay meet include continue set learn change lead
    understand watch follow stop create speak read allow add spend grow open walk win offer
    remember love consider appear buy wait serve die send expect build stay fall cut reach kill
    remain whose which what whom if as i you
    """.split()
)


def tokenize(text: str) -> List[str]:
    """Return lower-cased word tokens from the provided text."""

    return [token.lower() for token in _TOKEN_RE.findall(text)]


def count_words(text: str) -> int:
    return len(_TOKEN_RE.findall(text))


def content_words(text: str) -> set[str]:
    """Return the set of non-stop-word tokens of ``text``."""

    return {token for token in tokenize(text) if token not in STOP_WORDS and len(token) > 2}


def jaccard(set_a: Iterable[str], set_b: Iterable[str]) -> float:
    """Return Jaccard similarity for two iterables."""

    set_a = set(set_a)
    set_b = set(set_b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def normalize_phrase(phrase: str) -> str:
    """Return a lowercase, single-space version of ``phrase`` for lookups."""

    return _WHITESPACE_RE.sub(" ", phrase.strip().lower())


def strip_html(html: str) -> str:
    """Return the readable text of ``html`` with whitespace collapsed."""

    if not html:
        return ""
    soup = BeautifulSoup(html, "lxml")
    for node in soup(_NON_TEXT_TAGS):
        node.decompose()
    return _WHITESPACE_RE.sub(" ", soup.get_text(" ")).strip()


def extract_keywords(text: str, max_keywords: int = 15) -> List[str]:
    """Extract the most prominent terms of ``text``.

    Single words must appear at least twice; bigrams of two content words
    qualify on a single occurrence. Terms are ranked by frequency weighted by
    how early they first appear.
    """

    words = [word for word in tokenize(text) if not word.isdigit()]
    total = len(words)
    if total == 0:
        return []

    stats: Dict[str, Tuple[int, int]] = {}

    def _bump(term: str, position: int) -> None:
        count, first = stats.get(term, (0, position))
        stats[term] = (count + 1, first)

    for position, word in enumerate(words):
        if word in STOP_WORDS or len(word) < 3:
            continue
        _bump(word, position)

    for position in range(total - 1):
        first_word, second_word = words[position], words[position + 1]
        if first_word in STOP_WORDS or second_word in STOP_WORDS:
            continue
        if len(first_word) < 3 or len(second_word) < 3:
            continue
        _bump(f"{first_word} {second_word}", position)

    ranked: List[Tuple[float, str]] = []
    for term, (count, first) in stats.items():
        if count < 2 and " " not in term:
            continue
        prominence = 1 - first / total
        ranked.append((count * prominence, term))

    ranked.sort(key=lambda item: item[0], reverse=True)
    return [term for _, term in ranked[:max_keywords]]
