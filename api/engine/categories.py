"""
Category Aggregator: latest-value totals per classification.

Operates on the filtered (not delta-adjusted) articles. Every metric is
looked up independently: for views, likes, impressions and social likes the
latest snapshot on or before ``end`` that actually carries that metric is
used, so different snapshots may supply different metrics of one article.
"""

from datetime import date
from typing import Optional, Sequence

import structlog

from api.engine.outliers import OutlierDetector
from api.engine.snapshots import (
    METRIC_EXTRACTORS,
    has_note_data,
    latest_snapshot,
    latest_value,
    note_likes,
    note_views,
    value_of,
)
from api.models.articles import Article, Classification, SecondaryClassification
from api.models.enums import MetricColumn
from api.models.rollup import (
    CategoryTotal,
    SecondaryCategoryCount,
    SecondaryCategoryLikeRate,
)

logger = structlog.get_logger()

CATEGORY_COLUMNS = (
    MetricColumn.NOTE_VIEWS,
    MetricColumn.NOTE_LIKES,
    MetricColumn.X_IMPRESSIONS,
    MetricColumn.X_LIKES,
)


class CategoryAggregator:
    """
    Primary-axis totals with above-average flags, plus secondary-axis
    article counts and like rates.
    """

    def __init__(self, outlier_detector: Optional[OutlierDetector] = None):
        self.outlier_detector = outlier_detector or OutlierDetector()
        self.logger = structlog.get_logger()

    def primary_totals(
        self,
        articles: Sequence[Article],
        classifications: Sequence[Classification],
        end: date,
    ) -> list[CategoryTotal]:
        """
        One totals row per classification, in classification order.

        Categories without member articles produce zero totals and are
        never flagged above-average (their zeros still count toward the
        column mean).
        """
        rows = []
        for classification in classifications:
            members = [a for a in articles if a.classification_id == classification.id]
            totals = {
                column.value: sum(
                    latest_value(
                        a.daily_snapshots,
                        end,
                        METRIC_EXTRACTORS[column],
                        skip_missing=True,
                    )
                    for a in members
                )
                for column in CATEGORY_COLUMNS
            }
            rows.append(
                CategoryTotal(
                    classification_id=classification.id,
                    name=classification.name,
                    article_count=len(members),
                    **totals,
                )
            )

        rows = self.outlier_detector.flag_above_average(rows, CATEGORY_COLUMNS)

        self.logger.info(
            "category_totals_computed",
            categories=len(rows),
            articles=len(articles),
            end=end.isoformat(),
        )
        return rows

    def secondary_counts(
        self,
        articles: Sequence[Article],
        secondary_classifications: Sequence[SecondaryClassification],
    ) -> list[SecondaryCategoryCount]:
        """Article count per secondary tag; tags with no articles are dropped."""
        rows = []
        for tag in secondary_classifications:
            count = sum(1 for a in articles if a.secondary_classification_id == tag.id)
            if count > 0:
                rows.append(
                    SecondaryCategoryCount(
                        secondary_classification_id=tag.id,
                        name=tag.name,
                        article_count=count,
                    )
                )
        return rows

    def secondary_like_rates(
        self,
        articles: Sequence[Article],
        secondary_classifications: Sequence[SecondaryClassification],
        end: date,
    ) -> list[SecondaryCategoryLikeRate]:
        """
        Likes per 100 views for each secondary tag.

        Each member contributes the views and likes of its latest snapshot on
        or before ``end`` that has publishing-platform data. Tags whose rate
        is 0 are dropped.
        """
        rows = []
        for tag in secondary_classifications:
            views = likes = 0.0
            for article in articles:
                if article.secondary_classification_id != tag.id:
                    continue
                snapshot = latest_snapshot(article.daily_snapshots, end, where=has_note_data)
                views += value_of(snapshot, note_views)
                likes += value_of(snapshot, note_likes)

            rate = likes / views * 100 if views > 0 else 0.0
            if rate > 0:
                rows.append(
                    SecondaryCategoryLikeRate(
                        secondary_classification_id=tag.id,
                        name=tag.name,
                        views=views,
                        likes=likes,
                        like_rate=rate,
                    )
                )
        return rows
