"""Incremental decision engine -- the public entry point of the core.

Wires Matcher -> DecisionPolicy for queries, and CreateReviewClassifier for
review runs, over one immutable Registry snapshot.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Protocol

from ids.analyzers.matcher import Matcher, Scorer
from ids.config import IdsConfig
from ids.engine.policy import DecisionPolicy, proposed_entity_id
from ids.engine.review import CreateReviewClassifier
from ids.models.decision import AnalysisResult, AnalysisSummary, Decision, ReviewReport
from ids.registry.models import JustificationRecord, Registry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class JustificationWriter(Protocol):
    def record_justification(self, record: JustificationRecord) -> None: ...


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IncrementalDecisionEngine:
    """REUSE > ADAPT > CREATE advisor over a registry snapshot.

    Args:
        registry: The snapshot every call reads. Never mutated.
        writer: Where CREATE justifications are appended (usually the
            RegistryLoader). None disables persistence.
        config: Policy constants; defaults to IdsConfig(). Recognized entity
            types come from the registry snapshot, not from this config.
        clock: Returns the current time; injected for deterministic tests.
        scorer: Replacement similarity function for the matcher.
    """

    def __init__(
        self,
        registry: Registry,
        writer: JustificationWriter | None = None,
        config: IdsConfig | None = None,
        clock: Clock = utc_now,
        scorer: Scorer | None = None,
    ):
        self.registry = registry
        self.writer = writer
        self.config = config or IdsConfig()
        self.clock = clock
        self.matcher = Matcher(registry, self.config, scorer=scorer)
        self.policy = DecisionPolicy(registry, self.config)
        self.classifier = CreateReviewClassifier(self.config)
        self._tracked = {r.entity_id for r in registry.justifications}
        self._recorded: set[str] = set()

    @classmethod
    def from_loader(cls, loader, config: IdsConfig | None = None, **kwargs) -> IncrementalDecisionEngine:
        """Load a snapshot and use the loader as the justification writer.

        When a config is given, its entity kinds replace the loader's so the
        snapshot and the type filter agree. Raises RegistryLoadError if the
        store cannot be loaded.
        """
        if config is not None:
            loader.kinds = dict(config.entity_kinds)
        return cls(loader.load(), writer=loader, config=config, **kwargs)

    def analyze(self, intent: str, context: dict[str, str] | None = None) -> AnalysisResult:
        """Recommend REUSE, ADAPT or CREATE for an intent.

        Args:
            intent: What functionality is needed. Must not be blank.
            context: Optional filters, ``{"type": ..., "category": ...}``.
        """
        if not intent or not intent.strip():
            raise ValueError("intent must be a non-empty string")

        context = context or {}
        type_filter = context.get("type") or None
        category = context.get("category") or None
        if type_filter and type_filter not in self.registry.kinds:
            raise ValueError(
                f"Unknown entity type '{type_filter}'. "
                f"Must be one of: {', '.join(sorted(self.registry.kinds))}"
            )

        now = self.clock()
        warnings: list[str] = []

        if self.registry.is_empty:
            warnings.append("Registry is empty; nothing to reuse or adapt.")

        match = self.matcher.match(intent, type_filter=type_filter, category=category)
        if not self.registry.is_empty and match.considered == 0:
            warnings.append(f"Filters excluded all entities ({_describe_filters(type_filter, category)}).")
        warnings.extend(match.warnings)

        outcome = self.policy.decide(intent, match, now.date())
        warnings.extend(outcome.warnings)

        result = AnalysisResult(
            intent=intent,
            filters={k: v for k, v in (("type", type_filter), ("category", category)) if v},
            summary=AnalysisSummary(
                total_entities=len(self.registry),
                matches_found=len(match.matches),
                decision=outcome.decision,
                confidence=outcome.confidence,
            ),
            rationale=outcome.rationale,
            warnings=warnings,
            recommendations=outcome.recommendations,
            justification=outcome.justification,
        )

        if result.decision == Decision.CREATE:
            self._persist(intent, type_filter, result, now)

        logger.info(
            "Analyzed %r: %s (%s), %d matches",
            intent,
            result.decision.value,
            result.summary.confidence.value,
            result.summary.matches_found,
        )
        return result

    def review_create_decisions(self) -> ReviewReport:
        """Classify every stored CREATE justification by lifecycle status."""
        return self.classifier.review(self.registry, self.clock().date())

    def _persist(self, intent: str, type_filter: str | None, result: AnalysisResult, now: datetime) -> None:
        if self.writer is None or result.justification is None:
            return
        entity_id = proposed_entity_id(intent, type_filter)
        # The first record owns the review date and reuse history
        if entity_id in self._recorded:
            return
        if entity_id in self._tracked:
            logger.info("CREATE justification for %s already recorded; not rewriting", entity_id)
            result.warnings.append(
                f"A CREATE justification for '{entity_id}' is already tracked; existing review kept."
            )
            return
        record = JustificationRecord(
            entity_id=entity_id,
            justification=result.justification,
            intent=intent,
            decided_at=now.isoformat(),
        )
        try:
            self.writer.record_justification(record)
            self._recorded.add(entity_id)
        except OSError as e:
            logger.error("Failed to record CREATE justification for %s: %s", record.entity_id, e)
            result.warnings.append(f"CREATE justification was not recorded: {e}")


def _describe_filters(type_filter: str | None, category: str | None) -> str:
    parts = []
    if type_filter:
        parts.append(f"type={type_filter}")
    if category:
        parts.append(f"category={category}")
    return ", ".join(parts)
