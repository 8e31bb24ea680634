"""Create-review classifier -- lifecycle status for every past CREATE decision.

A CREATE decision schedules a review. At review time each justification
lands in exactly one bucket:

    reused >= promotion_threshold           promotion-candidate (any time)
    before review date, never reused        pending-review
    review date passed, never reused        deprecation-review
    anything else                           monitoring
"""

from __future__ import annotations

import logging
from datetime import date

from ids.config import IdsConfig
from ids.models.decision import ReviewEntry, ReviewReport, ReviewStatus
from ids.registry.models import JustificationRecord, Registry

logger = logging.getLogger(__name__)


class CreateReviewClassifier:
    def __init__(self, config: IdsConfig | None = None):
        self.config = config or IdsConfig()

    def classify(self, record: JustificationRecord, today: date) -> ReviewStatus:
        reused = record.reusage_count
        scheduled = record.review_scheduled

        if reused >= self.config.promotion_threshold:
            return ReviewStatus.PROMOTION_CANDIDATE
        if reused == 0:
            if scheduled is not None and today < scheduled:
                return ReviewStatus.PENDING_REVIEW
            return ReviewStatus.DEPRECATION_REVIEW
        return ReviewStatus.MONITORING

    def review(self, registry: Registry, today: date) -> ReviewReport:
        """Bucket every justification in the snapshot. Reads only."""
        report = ReviewReport()
        for record in sorted(registry.justifications, key=lambda r: r.entity_id):
            status = self.classify(record, today)
            report.bucket(status).append(
                ReviewEntry(
                    entity_id=record.entity_id,
                    reusage_count=record.reusage_count,
                    status=status,
                    review_scheduled=record.review_scheduled,
                )
            )
            report.total_reviewed += 1

        logger.debug(
            "Reviewed %d CREATE decisions: %d pending, %d promotion, %d deprecation, %d monitoring",
            report.total_reviewed,
            len(report.pending_review),
            len(report.promotion_candidates),
            len(report.deprecation_review),
            len(report.monitoring),
        )
        return report
