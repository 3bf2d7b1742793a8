"""Suppression rules consulted before any candidate is scored."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Set, Tuple

from .text import normalize_phrase

PHRASE = "PHRASE"
TARGET = "TARGET"
SOURCE = "SOURCE"
PAIR = "PAIR"


@dataclass(frozen=True)
class ExclusionSet:
    """Snapshot of every active suppression for one operation.

    ``rejected`` maps a source id to the targets an editor rejected or
    removed for it; those pairs are never suggested again.
    """

    phrases: frozenset[str] = frozenset()
    targets: frozenset[str] = frozenset()
    sources: frozenset[str] = frozenset()
    pairs: frozenset[Tuple[str, str]] = frozenset()
    rejected: Dict[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "ExclusionSet":
        return cls()

    @classmethod
    def from_rules(
        cls,
        rules: Iterable[object],
        rejected_pairs: Iterable[Tuple[str, str]] = (),
    ) -> "ExclusionSet":
        """Build the snapshot from rule rows and (source, target) rejections.

        Rules are any objects exposing ``rule_type``, ``phrase``,
        ``source_id`` and ``target_id`` attributes.
        """

        phrases: Set[str] = set()
        targets: Set[str] = set()
        sources: Set[str] = set()
        pairs: Set[Tuple[str, str]] = set()

        for rule in rules:
            rule_type = getattr(rule, "rule_type", "")
            source_id = str(getattr(rule, "source_id", "") or "")
            target_id = str(getattr(rule, "target_id", "") or "")
            if rule_type == PHRASE:
                phrase = normalize_phrase(getattr(rule, "phrase", "") or "")
                if phrase:
                    phrases.add(phrase)
            elif rule_type == TARGET and target_id:
                targets.add(target_id)
            elif rule_type == SOURCE and source_id:
                sources.add(source_id)
            elif rule_type == PAIR and source_id and target_id:
                pairs.add((source_id, target_id))

        rejected: Dict[str, Set[str]] = {}
        for source_id, target_id in rejected_pairs:
            rejected.setdefault(str(source_id), set()).add(str(target_id))

        return cls(
            phrases=frozenset(phrases),
            targets=frozenset(targets),
            sources=frozenset(sources),
            pairs=frozenset(pairs),
            rejected={key: frozenset(value) for key, value in rejected.items()},
        )

    def excludes_source(self, source_id: str) -> bool:
        return source_id in self.sources

    def excludes_phrase(self, phrase: str) -> bool:
        return normalize_phrase(phrase) in self.phrases

    def excludes_target(self, source_id: str, target_id: str) -> bool:
        return (
            target_id in self.targets
            or (source_id, target_id) in self.pairs
            or target_id in self.rejected.get(source_id, frozenset())
        )
