"""
Article inventory: the data management table.

One row per article with the values of its most recent snapshot and the
lifetime social totals, sortable on any column. Unlike the dashboard views
the inventory is not restricted to a date range or a filter.
"""

from typing import Any, Sequence

import structlog

from api.engine.snapshots import (
    lifetime_x_totals,
    note_comments,
    note_likes,
    note_sales,
    note_views,
    value_of,
)
from api.models.articles import Article
from api.models.enums import InventorySortKey, SortDirection
from api.models.rollup import ArticleInventoryRow

logger = structlog.get_logger()

_LIFETIME_SORT_FIELDS = {
    InventorySortKey.X_TOTAL_IMPRESSIONS: "impressions",
    InventorySortKey.X_TOTAL_LIKES: "likes",
    InventorySortKey.X_TOTAL_REPLIES: "replies",
    InventorySortKey.X_TOTAL_RETWEETS: "retweets",
    InventorySortKey.X_TOTAL_QUOTES: "quotes",
    InventorySortKey.X_TOTAL_ENGAGEMENTS: "engagements",
}


def inventory_row(article: Article) -> ArticleInventoryRow:
    """Latest known values of one article."""
    latest = article.daily_snapshots[-1] if article.daily_snapshots else None
    return ArticleInventoryRow(
        id=article.id,
        title=article.title,
        url=article.url,
        publication_date=article.publication_day,
        classification_id=article.classification_id,
        secondary_classification_id=article.secondary_classification_id,
        is_active=article.is_active,
        latest_snapshot_date=latest.snapshot_date if latest else None,
        note_views=value_of(latest, note_views),
        note_comments=value_of(latest, note_comments),
        note_likes=value_of(latest, note_likes),
        note_sales=value_of(latest, note_sales),
        lifetime_x=lifetime_x_totals(article.daily_snapshots),
    )


def _sort_value(row: ArticleInventoryRow, article: Article, key: InventorySortKey) -> Any:
    if key == InventorySortKey.PUBLICATION_DATE:
        return article.publication_date
    if key in _LIFETIME_SORT_FIELDS:
        return getattr(row.lifetime_x, _LIFETIME_SORT_FIELDS[key])
    return getattr(row, key.value)


def build_inventory(
    articles: Sequence[Article],
    sort_key: InventorySortKey = InventorySortKey.PUBLICATION_DATE,
    direction: SortDirection = SortDirection.DESCENDING,
) -> list[ArticleInventoryRow]:
    """
    Build the sorted inventory.

    Ties keep input order. Articles without a publication date always sort
    after dated ones.

    Args:
        articles: Articles with their full snapshot history
        sort_key: Column to sort on
        direction: ascending or descending

    Returns:
        Inventory rows in sort order
    """
    pairs = [(inventory_row(article), article) for article in articles]
    keyed = [(_sort_value(row, article, sort_key), row) for row, article in pairs]

    present = [(value, row) for value, row in keyed if value is not None]
    missing = [row for value, row in keyed if value is None]
    present.sort(key=lambda item: item[0], reverse=direction == SortDirection.DESCENDING)

    logger.debug(
        "inventory_built",
        articles=len(pairs),
        sort_key=sort_key.value,
        direction=direction.value,
    )
    return [row for _, row in present] + missing
