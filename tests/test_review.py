"""Tests for the CREATE-review lifecycle classifier."""

from datetime import date

import pytest

from ids.config import IdsConfig
from ids.engine.review import CreateReviewClassifier
from ids.models.decision import Justification, ReviewStatus
from ids.registry.models import JustificationRecord, Registry

TODAY = date(2026, 3, 1)


def _record(entity_id: str, review: date, reused: int = 0) -> JustificationRecord:
    return JustificationRecord(
        entity_id=entity_id,
        justification=Justification(
            evaluated_patterns=["script-validate-01"],
            new_capability=f"{entity_id} capability",
            review_scheduled=review,
        ),
        reusage_count=reused,
    )


@pytest.mark.parametrize(
    "review, reused, status",
    [
        (date(2026, 3, 20), 0, ReviewStatus.PENDING_REVIEW),
        (date(2026, 2, 1), 0, ReviewStatus.DEPRECATION_REVIEW),
        (TODAY, 0, ReviewStatus.DEPRECATION_REVIEW),
        (date(2026, 4, 1), 5, ReviewStatus.PROMOTION_CANDIDATE),
        (date(2026, 2, 1), 3, ReviewStatus.PROMOTION_CANDIDATE),
        (date(2026, 2, 1), 1, ReviewStatus.MONITORING),
        (date(2026, 4, 1), 2, ReviewStatus.MONITORING),
    ],
)
def test_classify(review, reused, status):
    classifier = CreateReviewClassifier(IdsConfig(promotion_threshold=3))
    assert classifier.classify(_record("x", review, reused), TODAY) == status


def test_promotion_threshold_is_configurable():
    record = _record("x", date(2026, 4, 1), reused=2)
    assert CreateReviewClassifier(IdsConfig(promotion_threshold=2)).classify(record, TODAY) == (
        ReviewStatus.PROMOTION_CANDIDATE
    )
    assert CreateReviewClassifier(IdsConfig(promotion_threshold=5)).classify(record, TODAY) == (
        ReviewStatus.MONITORING
    )


def test_review_partitions_every_justification():
    registry = Registry.build(
        [],
        justifications=[
            _record("stale", date(2026, 2, 1)),
            _record("fresh", date(2026, 3, 20)),
            _record("popular", date(2026, 4, 1), reused=7),
            _record("some", date(2026, 2, 1), reused=1),
            _record("also-stale", date(2026, 1, 1)),
        ],
    )
    report = CreateReviewClassifier().review(registry, TODAY)

    assert report.total_reviewed == 5
    assert [e.entity_id for e in report.pending_review] == ["fresh"]
    assert [e.entity_id for e in report.promotion_candidates] == ["popular"]
    assert [e.entity_id for e in report.deprecation_review] == ["also-stale", "stale"]
    assert [e.entity_id for e in report.monitoring] == ["some"]

    buckets = [
        report.pending_review,
        report.promotion_candidates,
        report.deprecation_review,
        report.monitoring,
    ]
    assert sum(len(b) for b in buckets) == report.total_reviewed
    ids = [e.entity_id for b in buckets for e in b]
    assert len(ids) == len(set(ids))


def test_review_with_no_justifications():
    report = CreateReviewClassifier().review(Registry.build([]), TODAY)
    assert report.total_reviewed == 0
    assert report.to_dict() == {
        "totalReviewed": 0,
        "pendingReview": [],
        "promotionCandidates": [],
        "deprecationReview": [],
        "monitoring": [],
    }


def test_review_is_idempotent():
    registry = Registry.build(
        [],
        justifications=[_record("a", date(2026, 2, 1)), _record("b", date(2026, 4, 1), 1)],
    )
    classifier = CreateReviewClassifier()
    assert classifier.review(registry, TODAY) == classifier.review(registry, TODAY)


def test_review_entry_serialization():
    registry = Registry.build([], justifications=[_record("popular", date(2026, 4, 1), 4)])
    report = CreateReviewClassifier().review(registry, TODAY)
    assert report.to_dict()["promotionCandidates"] == [
        {
            "entityId": "popular",
            "reusageCount": 4,
            "status": "promotion-candidate",
            "reviewScheduled": "2026-04-01",
        }
    ]
