"""
Two-axis classification filter applied before every derived view.
"""

from typing import Iterable, Sequence

import structlog

from api.models.articles import Article

logger = structlog.get_logger()


def filter_articles(
    articles: Sequence[Article],
    selected_classification_ids: Iterable[str] = (),
    selected_secondary_ids: Iterable[str] = (),
) -> list[Article]:
    """
    Keep the articles matching both classification axes.

    An empty selection on an axis passes every article on that axis, so
    clearing all checkboxes never filters everything away. On the secondary
    axis an article without a secondary tag never matches a non-empty
    selection.

    Args:
        articles: Candidate articles (order is preserved)
        selected_classification_ids: Selected primary classification ids
        selected_secondary_ids: Selected secondary classification ids

    Returns:
        The filtered articles
    """
    primary = set(selected_classification_ids)
    secondary = set(selected_secondary_ids)

    filtered = [
        article
        for article in articles
        if (not primary or article.classification_id in primary)
        and (
            not secondary
            or (
                bool(article.secondary_classification_id)
                and article.secondary_classification_id in secondary
            )
        )
    ]

    logger.debug(
        "articles_filtered",
        total=len(articles),
        kept=len(filtered),
        primary_selected=len(primary),
        secondary_selected=len(secondary),
    )
    return filtered
