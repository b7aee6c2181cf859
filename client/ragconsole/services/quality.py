"""
Search quality scoring and feedback-driven parameter proposals.
"""

import logging
from typing import Any

from ragconsole.models.chat import Feedback, QualityReport, RAGConfig, SearchResult

logger = logging.getLogger(__name__)

HIGH_QUALITY_SCORE = 0.8
MAX_TOP_K = 20
MIN_THRESHOLD = 0.3
TOP_K_STEP = 5
THRESHOLD_STEP = 0.1


class SearchQualityEvaluator:
    """Classifies retrieval batches; never mutates config itself."""

    @staticmethod
    def evaluate(results: list[SearchResult]) -> QualityReport:
        if not results:
            return QualityReport(average_score=0.0, high_quality_count=0, quality_rating="poor")

        scores = [result.score for result in results]
        average = sum(scores) / len(scores)
        high_quality = sum(1 for score in scores if score > HIGH_QUALITY_SCORE)

        if average > 0.8:
            rating = "excellent"
        elif average > 0.6:
            rating = "good"
        elif average > 0.4:
            rating = "fair"
        else:
            rating = "poor"

        return QualityReport(
            average_score=average,
            high_quality_count=high_quality,
            quality_rating=rating,
        )

    def optimize(
        self,
        results: list[SearchResult],
        feedback: Feedback,
        config: RAGConfig,
    ) -> dict[str, Any]:
        """
        Propose config updates from user feedback on a retrieval batch.

        Negative feedback, or a poor batch, widens retrieval: more passages
        and a lower score threshold, bounded at ``MAX_TOP_K`` and
        ``MIN_THRESHOLD``. Anything else proposes no change.

        Returns:
            A dict suitable for ``RAGConfig.merge``; empty for no change.
        """
        rating = self.evaluate(results).quality_rating

        if feedback == "positive" and rating == "excellent":
            return {}

        if feedback == "negative" or rating == "poor":
            proposal = {
                "top_k": min(config.top_k + TOP_K_STEP, MAX_TOP_K),
                "threshold": max(round(config.threshold - THRESHOLD_STEP, 2), MIN_THRESHOLD),
            }
            logger.info("Feedback %s on %s batch; proposing %s", feedback, rating, proposal)
            return proposal

        return {}
