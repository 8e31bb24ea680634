"""Decision models — recommendations, analysis results, and CREATE review reports.

Field names produced by ``to_dict()`` are the stable machine-readable
contract consumed by the CLI ``--json`` output and other tooling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class Decision(Enum):
    """Terminal outcome of an analysis."""

    REUSE = "REUSE"
    ADAPT = "ADAPT"
    CREATE = "CREATE"


class Confidence(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReviewStatus(Enum):
    """Lifecycle bucket of a past CREATE decision."""

    PENDING_REVIEW = "pending-review"  # Too early to judge
    PROMOTION_CANDIDATE = "promotion-candidate"  # Reused enough to become a pattern
    DEPRECATION_REVIEW = "deprecation-review"  # Review date passed, never reused
    MONITORING = "monitoring"  # Some reuse, not enough yet


@dataclass(frozen=True)
class AdaptationImpact:
    """How many consumers an adaptation of an entity would touch."""

    direct_count: int = 0
    indirect_count: int = 0

    @property
    def total(self) -> int:
        return self.direct_count + self.indirect_count

    def to_dict(self) -> dict[str, int]:
        return {"directCount": self.direct_count, "indirectCount": self.indirect_count}


@dataclass
class Recommendation:
    """A scored suggestion to reuse or adapt one entity."""

    entity_id: str
    entity_path: str
    entity_type: str
    relevance_score: float  # 0.0 - 1.0
    decision: Decision
    confidence: Confidence
    rationale: str
    adaptation_impact: AdaptationImpact | None = None  # Set iff decision is ADAPT

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "entityId": self.entity_id,
            "entityPath": self.entity_path,
            "entityType": self.entity_type,
            "relevanceScore": self.relevance_score,
            "decision": self.decision.value,
            "confidence": self.confidence.value,
            "rationale": self.rationale,
        }
        if self.adaptation_impact is not None:
            data["adaptationImpact"] = self.adaptation_impact.to_dict()
        return data


@dataclass
class Justification:
    """Audit record explaining why CREATE was chosen over reuse or adaptation."""

    evaluated_patterns: list[str] = field(default_factory=list)
    rejection_reasons: dict[str, str] = field(default_factory=dict)
    new_capability: str = ""
    review_scheduled: date | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "evaluatedPatterns": list(self.evaluated_patterns),
            "rejectionReasons": dict(self.rejection_reasons),
            "newCapability": self.new_capability,
            "reviewScheduled": self.review_scheduled.isoformat() if self.review_scheduled else None,
        }


@dataclass
class AnalysisSummary:
    total_entities: int
    matches_found: int
    decision: Decision
    confidence: Confidence

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalEntities": self.total_entities,
            "matchesFound": self.matches_found,
            "decision": self.decision.value,
            "confidence": self.confidence.value,
        }


@dataclass
class AnalysisResult:
    """Full answer to one intent query."""

    intent: str
    summary: AnalysisSummary
    rationale: str
    filters: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    justification: Justification | None = None  # Set iff summary.decision is CREATE

    @property
    def decision(self) -> Decision:
        return self.summary.decision

    @property
    def top(self) -> Recommendation | None:
        return self.recommendations[0] if self.recommendations else None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "intent": self.intent,
            "filters": dict(self.filters),
            "summary": self.summary.to_dict(),
            "warnings": list(self.warnings),
            "rationale": self.rationale,
            "recommendations": [r.to_dict() for r in self.recommendations],
        }
        if self.justification is not None:
            data["justification"] = self.justification.to_dict()
        return data


@dataclass(frozen=True)
class ReviewEntry:
    entity_id: str
    reusage_count: int
    status: ReviewStatus
    review_scheduled: date | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "entityId": self.entity_id,
            "reusageCount": self.reusage_count,
            "status": self.status.value,
            "reviewScheduled": self.review_scheduled.isoformat() if self.review_scheduled else None,
        }


@dataclass
class ReviewReport:
    """Partition of every stored CREATE justification into lifecycle buckets."""

    total_reviewed: int = 0
    pending_review: list[ReviewEntry] = field(default_factory=list)
    promotion_candidates: list[ReviewEntry] = field(default_factory=list)
    deprecation_review: list[ReviewEntry] = field(default_factory=list)
    monitoring: list[ReviewEntry] = field(default_factory=list)

    def bucket(self, status: ReviewStatus) -> list[ReviewEntry]:
        return {
            ReviewStatus.PENDING_REVIEW: self.pending_review,
            ReviewStatus.PROMOTION_CANDIDATE: self.promotion_candidates,
            ReviewStatus.DEPRECATION_REVIEW: self.deprecation_review,
            ReviewStatus.MONITORING: self.monitoring,
        }[status]

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalReviewed": self.total_reviewed,
            "pendingReview": [e.to_dict() for e in self.pending_review],
            "promotionCandidates": [e.to_dict() for e in self.promotion_candidates],
            "deprecationReview": [e.to_dict() for e in self.deprecation_review],
            "monitoring": [e.to_dict() for e in self.monitoring],
        }
