"""Configuration helpers for the interlinking engine."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml


@dataclass(frozen=True)
class EngineConfig:
    """Typed wrapper around the engine configuration dictionary."""

    raw: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    def weight(self, signal: str) -> float:
        weights = self.raw.get("weights", {})
        return float(weights.get(signal, 0.0))

    @property
    def min_relevance(self) -> int:
        return int(self.raw.get("min_relevance", 35))

    @property
    def max_auto_links(self) -> int:
        return int(self.raw.get("max_auto_links", 8))

    @property
    def skip_tags(self) -> frozenset[str]:
        return frozenset(tag.lower() for tag in self.raw.get("skip_tags", []))


DEFAULTS: Dict[str, Any] = {
    "min_anchor_length": 4,
    "min_anchor_words": 2,
    "min_single_word_length": 8,
    "min_content_words": 50,
    "min_relevance": 35,
    "max_auto_links": 8,
    "candidate_headroom": 2,
    "max_body_keywords": 15,
    "plain_text_limit": 20000,
    "similarity_prefix": 3000,
    "similarity_saturation": 0.5,
    "taxonomy_points_per_match": 5,
    "popularity_log_ceiling": 4.0,
    "inbound_window": 50,
    "weights": {
        "keyword_overlap": 25,
        "taxonomy_overlap": 15,
        "body_similarity": 20,
        "published": 10,
        "recency": 10,
        "popularity": 10,
        "quality": 10,
    },
    "recency_bands": [[30, 1.0], [90, 0.7], [365, 0.4]],
    "recency_floor": 0.1,
    "quality_tiers": [[1500, 1.0], [800, 0.6], [300, 0.3]],
    "skip_tags": [
        "a",
        "code",
        "pre",
        "script",
        "style",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "button",
        "textarea",
        "select",
        "option",
        "label",
        "kbd",
        "samp",
        "var",
    ],
    "static_routes": ["/", "/blog", "/about", "/contact", "/tags", "/search", "/login", "/register", "/profile"],
    "static_route_prefixes": ["/tags/"],
    "ignored_link_prefixes": ["/api/", "/static/", "/media/"],
}


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load configuration from YAML, merging with defaults."""

    data: Dict[str, Any] = copy.deepcopy(DEFAULTS)

    if path is not None and Path(path).exists():
        with Path(path).open("r", encoding="utf-8") as stream:
            user = yaml.safe_load(stream) or {}
        merge_into(data, user)

    return EngineConfig(data)


def merge_into(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Recursively merge override into base dict."""

    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_into(base[key], value)
        else:
            base[key] = value
