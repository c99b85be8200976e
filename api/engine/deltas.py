"""
Article Delta Calculator: per-article change over a date range.

The baseline is the latest snapshot strictly before ``start`` (the
pre-period state), the end value the latest snapshot on or before ``end``.
A missing snapshot on either side counts as 0.
"""

from datetime import date
from typing import Optional, Sequence

import structlog

from api.engine.snapshots import (
    latest_snapshot,
    lifetime_x_totals,
    note_comments,
    note_likes,
    note_views,
    snapshots_between,
    value_of,
    x_impressions,
    x_likes,
)
from api.models.articles import Article, DailySnapshot
from api.models.rollup import ArticleDelta

logger = structlog.get_logger()

# delta field -> extractor
DELTA_FIELDS = {
    "note_views_change": note_views,
    "note_likes_change": note_likes,
    "note_comments_change": note_comments,
    "x_impressions_change": x_impressions,
    "x_likes_change": x_likes,
}

ARTICLE_FIELDS = set(Article.model_fields) - {"daily_snapshots"}


class ArticleDeltaCalculator:
    """
    Computes period deltas for each article and marks the top performer.

    Example:
        >>> calc = ArticleDeltaCalculator()
        >>> rows = calc.compute(articles, date(2024, 5, 1), date(2024, 5, 31))
        >>> [r.note_views_change for r in rows]
    """

    def __init__(self):
        self.logger = structlog.get_logger()

    def compute(
        self,
        articles: Sequence[Article],
        start: date,
        end: date,
    ) -> list[ArticleDelta]:
        """
        Delta rows for the articles visible in ``[start, end]``.

        An article is kept when it was published by ``end`` and it either has
        a snapshot inside the range or a non-zero views/likes delta.

        Args:
            articles: Already-filtered articles
            start: Period start (baseline is strictly before this date)
            end: Period end (inclusive)

        Returns:
            Delta rows in input order, at most one flagged as top performer
        """
        rows = []
        for article in articles:
            row = self.compute_article(article, start, end)
            if self._is_visible(row, end):
                rows.append(row)

        rows = self.mark_top_performer(rows)

        self.logger.info(
            "deltas_computed",
            start=start.isoformat(),
            end=end.isoformat(),
            input_articles=len(articles),
            visible_articles=len(rows),
        )
        return rows

    def compute_article(self, article: Article, start: date, end: date) -> ArticleDelta:
        """Delta row for one article, regardless of visibility."""
        history = article.daily_snapshots
        end_snapshot = latest_snapshot(history, end)
        start_snapshot = latest_snapshot(history, start, inclusive=False)

        deltas = {
            field: self._delta(start_snapshot, end_snapshot, extractor)
            for field, extractor in DELTA_FIELDS.items()
        }

        data = article.model_dump(include=ARTICLE_FIELDS)
        data.update(deltas)
        return ArticleDelta(
            **data,
            daily_snapshots=snapshots_between(history, start, end),
            lifetime_x=lifetime_x_totals(history),
        )

    @staticmethod
    def _delta(
        start_snapshot: Optional[DailySnapshot],
        end_snapshot: Optional[DailySnapshot],
        extractor,
    ) -> float:
        return value_of(end_snapshot, extractor) - value_of(start_snapshot, extractor)

    @staticmethod
    def _is_visible(row: ArticleDelta, end: date) -> bool:
        if not row.published_on_or_before(end):
            return False
        # daily_snapshots is already restricted to the period
        return (
            bool(row.daily_snapshots)
            or row.note_views_change != 0
            or row.note_likes_change != 0
        )

    def mark_top_performer(self, rows: Sequence[ArticleDelta]) -> list[ArticleDelta]:
        """
        Flag the article with the strictly largest views delta.

        The first article wins ties; nothing is flagged unless the maximum is
        strictly positive.
        """
        top_index = None
        best = 0.0
        for i, row in enumerate(rows):
            if row.note_views_change > best:
                best = row.note_views_change
                top_index = i

        if top_index is not None:
            self.logger.debug(
                "top_performer_marked",
                article_id=rows[top_index].id,
                views_change=best,
            )

        return [
            row.model_copy(update={"is_top_performer": i == top_index})
            for i, row in enumerate(rows)
        ]
