"""Decision policy -- turn ranked candidates into REUSE / ADAPT / CREATE.

Bands (all configurable on IdsConfig):

    score >= reuse_threshold            REUSE   (high at or above reuse_high_confidence)
    adapt_threshold <= score < reuse    ADAPT   (medium at or above adapt_medium_confidence)
    score < adapt_threshold             rejected; if nothing survives, CREATE
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta

from ids.analyzers.matcher import Candidate, MatchResult, tokenize
from ids.config import IdsConfig
from ids.models.decision import Confidence, Decision, Justification, Recommendation
from ids.registry.models import Registry

logger = logging.getLogger(__name__)


@dataclass
class PolicyOutcome:
    """Everything the policy decided for one query."""

    decision: Decision
    confidence: Confidence
    rationale: str
    recommendations: list[Recommendation] = field(default_factory=list)
    justification: Justification | None = None
    warnings: list[str] = field(default_factory=list)


class DecisionPolicy:
    """Applies the REUSE/ADAPT/CREATE bands to a MatchResult."""

    def __init__(self, registry: Registry, config: IdsConfig | None = None):
        self.registry = registry
        self.config = config or IdsConfig()

    def classify(self, score: float) -> tuple[Decision, Confidence] | None:
        """Band a relevance score; None means the candidate is rejected."""
        cfg = self.config
        if score >= cfg.reuse_threshold:
            if score >= cfg.reuse_high_confidence:
                return Decision.REUSE, Confidence.HIGH
            return Decision.REUSE, Confidence.MEDIUM
        if score >= cfg.adapt_threshold:
            if score >= cfg.adapt_medium_confidence:
                return Decision.ADAPT, Confidence.MEDIUM
            return Decision.ADAPT, Confidence.LOW
        return None

    def decide(self, intent: str, match: MatchResult, today: date) -> PolicyOutcome:
        recommendations: list[Recommendation] = []
        warnings: list[str] = []

        for candidate in match.matches:
            if len(recommendations) >= self.config.max_recommendations:
                break
            banded = self.classify(candidate.score)
            if banded is None:
                # Matches are ranked, so nothing further clears the adaptation band
                break
            recommendation = self._recommend(candidate, *banded)
            if recommendation.adaptation_impact is not None and self._is_high_impact(recommendation):
                warnings.append(
                    f"Adapting {recommendation.entity_id} affects "
                    f"{recommendation.adaptation_impact.total} of {len(self.registry)} entities"
                )
            recommendations.append(recommendation)

        if recommendations:
            top = recommendations[0]
            return PolicyOutcome(
                decision=top.decision,
                confidence=top.confidence,
                rationale=self._summary_rationale(top, len(recommendations)),
                recommendations=recommendations,
                warnings=warnings,
            )

        justification = self.build_justification(intent, match, today)
        if match.matches:
            confidence = Confidence.MEDIUM
            rationale = (
                f"{len(match.matches)} partial match(es) found, but none reaches the "
                f"adaptation threshold ({self.config.adapt_threshold:.0%}). "
                "Creating a new artifact is justified."
            )
        else:
            confidence = Confidence.HIGH
            rationale = (
                f"No registered artifact reaches the relevance floor "
                f"({self.config.min_relevance:.0%}) for this intent; "
                f"{len(match.evaluated)} evaluated. Creating a new artifact is justified."
            )
        return PolicyOutcome(
            decision=Decision.CREATE,
            confidence=confidence,
            rationale=rationale,
            justification=justification,
            warnings=warnings,
        )

    def build_justification(self, intent: str, match: MatchResult, today: date) -> Justification:
        """Audit record for a CREATE decision."""
        reasons = {}
        covered: set[str] = set()
        for candidate in match.evaluated:
            reasons[candidate.entity.id] = self._rejection_reason(candidate)
            covered.update(candidate.matched_terms)

        return Justification(
            evaluated_patterns=[c.entity.id for c in match.evaluated],
            rejection_reasons=reasons,
            new_capability=_new_capability(intent, covered),
            review_scheduled=today + timedelta(days=self.config.review_horizon_days),
        )

    def _recommend(self, candidate: Candidate, decision: Decision, confidence: Confidence) -> Recommendation:
        entity = candidate.entity
        impact = None
        if decision == Decision.ADAPT:
            impact = self.registry.consumer_impact(entity.id)

        rec = Recommendation(
            entity_id=entity.id,
            entity_path=entity.path,
            entity_type=entity.type,
            relevance_score=candidate.score,
            decision=decision,
            confidence=confidence,
            rationale="",
            adaptation_impact=impact,
        )
        rec.rationale = self._rationale(candidate, rec)
        return rec

    def _rationale(self, candidate: Candidate, rec: Recommendation) -> str:
        entity = candidate.entity
        matched = ", ".join(candidate.matched_terms) or "none"
        described = f" ({entity.description})" if entity.description else ""

        if rec.decision == Decision.REUSE:
            return (
                f"Reuse as-is: {entity.id}{described} covers the intent "
                f"at {candidate.score:.0%} relevance. Matched terms: {matched}."
            )

        impact = rec.adaptation_impact
        text = (
            f"Adapt: {entity.id}{described} partially covers the intent "
            f"at {candidate.score:.0%} relevance (adaptability {entity.adaptability:.0%}). "
            f"Matched terms: {matched}. "
            f"Changing it touches {impact.direct_count} direct and "
            f"{impact.indirect_count} indirect consumers."
        )
        if self._is_high_impact(rec):
            text += " High impact: consider extending rather than modifying it."
        return text

    def _is_high_impact(self, rec: Recommendation) -> bool:
        if rec.adaptation_impact is None or self.registry.is_empty:
            return False
        return rec.adaptation_impact.total / len(self.registry) > self.config.high_impact_ratio

    def _summary_rationale(self, top: Recommendation, count: int) -> str:
        if top.decision == Decision.REUSE:
            head = (
                f"{top.entity_id} scores {top.relevance_score:.0%}, at or above the reuse "
                f"threshold ({self.config.reuse_threshold:.0%}); reuse it instead of creating a duplicate."
            )
        else:
            head = (
                f"Closest match {top.entity_id} scores {top.relevance_score:.0%}, within the "
                f"adaptation band ({self.config.adapt_threshold:.0%}-{self.config.reuse_threshold:.0%}); "
                "adapting it is preferred over creating a new artifact."
            )
        if count > 1:
            head += f" {count - 1} alternative(s) listed."
        return head

    def _rejection_reason(self, candidate: Candidate) -> str:
        reason = (
            f"relevance {candidate.score:.0%} below adaptation threshold "
            f"{self.config.adapt_threshold:.0%}"
        )
        if candidate.matched_terms:
            return f"{reason}; only matched: {', '.join(candidate.matched_terms)}"
        return f"{reason}; no overlapping terms"


def _new_capability(intent: str, covered: set[str]) -> str:
    missing = [word for word, _ in tokenize(intent) if word not in covered]
    missing = list(dict.fromkeys(missing))
    if not missing:
        return f"{intent.strip()} (existing artifacts mention these terms but none combines them)"
    return f"{intent.strip()} (not covered by any registered artifact: {', '.join(missing)})"


def proposed_entity_id(intent: str, type_filter: str | None = None) -> str:
    """Slug for the artifact a CREATE decision proposes, e.g. ``deploy-kubernetes-cluster``."""
    slug = re.sub(r"[^a-z0-9]+", "-", intent.lower()).strip("-")[:60].rstrip("-")
    slug = slug or "artifact"
    return f"{type_filter}-{slug}" if type_filter else slug
