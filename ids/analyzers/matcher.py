"""Matcher -- filters the registry and ranks entities by relevance to an intent.

Scoring is lexical: the intent and each entity's searchable text are reduced
to stemmed terms, and relevance blends term coverage (how much of the intent
the entity mentions) with phrase overlap (whether intent terms appear next to
each other in the entity text, as in "story draft").
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Protocol

from ids.config import IdsConfig
from ids.registry.models import Entity, MalformedEntityError, Registry

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9]+")

STOP_WORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "in",
        "into", "is", "it", "its", "of", "on", "or", "that", "the", "this",
        "to", "via", "with", "against",
    }
)

# Checked in order; the first suffix that leaves a stem of 3+ chars is stripped
_SUFFIXES = ("ions", "ion", "ing", "ed", "es", "s", "e")


def stem(token: str) -> str:
    """Reduce a token to a crude stem ("validates", "validation" -> "validat")."""
    if token.endswith("ies") and len(token) > 4:
        return token[:-3] + "y"
    if token.endswith("ss"):
        return token
    for suffix in _SUFFIXES:
        if token.endswith(suffix) and len(token) - len(suffix) >= 3:
            return token[: -len(suffix)]
    return token


def tokenize(text: str) -> list[tuple[str, str]]:
    """Split text into ``(word, term)`` pairs, dropping stop words and numbers."""
    pairs = []
    for word in _TOKEN_RE.findall(text.lower()):
        if len(word) < 2 or word.isdigit() or word in STOP_WORDS:
            continue
        pairs.append((word, stem(word)))
    return pairs


def terms(text: str) -> list[str]:
    return [term for _, term in tokenize(text)]


def _bigrams(sequence: list[str]) -> set[tuple[str, str]]:
    return {(a, b) for a, b in zip(sequence, sequence[1:]) if a != b}


class Scorer(Protocol):
    """Similarity between an intent and an entity's searchable text, in [0, 1]."""

    def score(self, intent_text: str, entity_text: str) -> float: ...


class LexicalScorer:
    """Term coverage blended with adjacent-term (phrase) overlap.

    Each line of the entity text is its own phrase segment, so a phrase
    never matches across two fields.
    """

    def __init__(self, phrase_weight: float = 0.3):
        self.phrase_weight = phrase_weight

    def score(self, intent_text: str, entity_text: str) -> float:
        intent_seq = terms(intent_text)
        intent_terms = set(intent_seq)
        if not intent_terms:
            return 0.0

        entity_terms: set[str] = set()
        entity_pairs: set[tuple[str, str]] = set()
        for segment in entity_text.splitlines():
            seq = terms(segment)
            entity_terms.update(seq)
            entity_pairs |= _bigrams(seq)

        coverage = len(intent_terms & entity_terms) / len(intent_terms)

        intent_pairs = _bigrams(intent_seq)
        if intent_pairs:
            phrase = len(intent_pairs & entity_pairs) / len(intent_pairs)
        else:
            phrase = coverage

        w = self.phrase_weight
        return round((1 - w) * coverage + w * phrase, 4)


@dataclass
class Candidate:
    """One entity scored against the intent."""

    entity: Entity
    score: float
    matched_terms: list[str] = field(default_factory=list)  # Intent words the entity covers

    @property
    def sort_key(self) -> tuple[float, str]:
        return (-self.score, self.entity.id)


@dataclass
class MatchResult:
    """Ranked matches plus everything that was looked at to produce them."""

    matches: list[Candidate] = field(default_factory=list)  # At or above the relevance floor
    evaluated: list[Candidate] = field(default_factory=list)  # Every scored candidate
    considered: int = 0  # Entities left after filtering
    warnings: list[str] = field(default_factory=list)


class Matcher:
    """Applies filters, scores candidates, and discards those below the floor."""

    def __init__(self, registry: Registry, config: IdsConfig | None = None, scorer: Scorer | None = None):
        self.registry = registry
        self.config = config or IdsConfig()
        self.scorer = scorer or LexicalScorer(phrase_weight=self.config.phrase_weight)

    def match(
        self,
        intent: str,
        type_filter: str | None = None,
        category: str | None = None,
    ) -> MatchResult:
        result = MatchResult()
        candidates = self.registry.filter(type_filter, category)
        result.considered = len(candidates)

        intent_words = tokenize(intent)

        for entity in candidates:
            try:
                text = self.registry.searchable_text(entity)
            except MalformedEntityError as e:
                logger.warning("Skipping malformed entity: %s", e)
                result.warnings.append(f"Skipped malformed entity: {e}")
                continue

            score = self.scorer.score(intent, text)
            if not 0.0 <= score <= 1.0:
                score = max(0.0, min(1.0, score))

            entity_terms = set(terms(text))
            matched = list(dict.fromkeys(w for w, t in intent_words if t in entity_terms))
            result.evaluated.append(Candidate(entity=entity, score=score, matched_terms=matched))

        result.evaluated.sort(key=lambda c: c.sort_key)
        result.matches = [c for c in result.evaluated if c.score >= self.config.min_relevance]

        logger.debug(
            "Intent %r: %d considered, %d evaluated, %d above floor %.2f",
            intent,
            result.considered,
            len(result.evaluated),
            len(result.matches),
            self.config.min_relevance,
        )
        return result
