"""Relevance scoring between a source item and a candidate target."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Dict, Optional

from .config import EngineConfig, load_config
from .text import content_words, jaccard
from .types import PUBLISHED, ContentIndexEntry

SignalDict = Dict[str, float]


def _clamp(value: float, minimum: float = 0.0, maximum: float = 1.0) -> float:
    return max(min(value, maximum), minimum)


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _keyword_overlap(source: ContentIndexEntry, target: ContentIndexEntry) -> float:
    source_keywords = set(source.keywords)
    target_keywords = set(target.keywords)
    if not source_keywords or not target_keywords:
        return 0.0
    shared = len(source_keywords & target_keywords)
    return _clamp(shared / min(len(source_keywords), len(target_keywords)))


def _taxonomy_overlap(source: ContentIndexEntry, target: ContentIndexEntry, config: EngineConfig) -> float:
    shared = len(set(source.taxonomy) & set(target.taxonomy))
    if not shared:
        return 0.0
    full = config.weight("taxonomy_overlap") or 1.0
    return _clamp(shared * float(config.get("taxonomy_points_per_match", 5)) / full)


def _body_similarity(source: ContentIndexEntry, target: ContentIndexEntry, config: EngineConfig) -> float:
    prefix = int(config.get("similarity_prefix", 3000))
    similarity = jaccard(content_words(source.text[:prefix]), content_words(target.text[:prefix]))
    saturation = float(config.get("similarity_saturation", 0.5)) or 1.0
    return _clamp(similarity / saturation)


def _recency(target: ContentIndexEntry, config: EngineConfig, now: datetime) -> float:
    if target.published_at is None:
        return 0.0
    age_days = (now - _as_aware(target.published_at)).days
    for max_days, factor in config.get("recency_bands", []):
        if age_days <= max_days:
            return float(factor)
    return float(config.get("recency_floor", 0.1))


def _popularity(target: ContentIndexEntry, config: EngineConfig) -> float:
    ceiling = float(config.get("popularity_log_ceiling", 4.0)) or 1.0
    return _clamp(math.log10(max(target.view_count, 0) + 1) / ceiling)


def _quality(target: ContentIndexEntry, config: EngineConfig) -> float:
    for min_words, factor in config.get("quality_tiers", []):
        if target.word_count >= min_words:
            return float(factor)
    return 0.0


def relevance_signals(
    source: ContentIndexEntry,
    target: ContentIndexEntry,
    config: EngineConfig | None = None,
    *,
    now: Optional[datetime] = None,
) -> SignalDict:
    """Return every relevance signal for the pair, each normalised to [0, 1]."""

    engine_config = config or load_config(None)
    reference = _as_aware(now) if now is not None else datetime.now(timezone.utc)

    return {
        "keyword_overlap": _keyword_overlap(source, target),
        "taxonomy_overlap": _taxonomy_overlap(source, target, engine_config),
        "body_similarity": _body_similarity(source, target, engine_config),
        "published": 1.0 if target.status == PUBLISHED else 0.0,
        "recency": _recency(target, engine_config, reference),
        "popularity": _popularity(target, engine_config),
        "quality": _quality(target, engine_config),
    }


def calculate_relevance(
    source: ContentIndexEntry,
    target: ContentIndexEntry,
    config: EngineConfig | None = None,
    *,
    now: Optional[datetime] = None,
) -> int:
    """Return a bounded 0-100 relevance score for linking source to target."""

    engine_config = config or load_config(None)
    signals = relevance_signals(source, target, engine_config, now=now)
    total = sum(engine_config.weight(name) * value for name, value in signals.items())
    return int(round(_clamp(total, 0.0, 100.0)))
