"""
Data ingestion router - parse upstream exports into snapshot batches.

Stateless: the caller posts the export content together with the articles
it knows about and receives the snapshot batches plus the articles with the
new snapshots folded into their histories.
"""

from datetime import date
from typing import Optional, Sequence

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from api.adapters import IngestionError, get_adapter
from api.engine.snapshots import merge_snapshots
from api.models.articles import Article
from api.models.ingestion import ArticleSnapshotBatch, IngestionReport
from api.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class NoteStatsRequest(BaseModel):
    """Text pasted from the publishing platform's stats page."""

    model_config = ConfigDict(populate_by_name=True)

    text: str
    on_date: Optional[date] = Field(default=None, alias="onDate")
    articles: list[Article] = Field(default_factory=list)


class XAnalyticsRequest(BaseModel):
    """Post analytics CSV exported from X."""

    model_config = ConfigDict(populate_by_name=True)

    csv_text: str = Field(alias="csvText")
    articles: list[Article] = Field(default_factory=list)


def apply_batches(
    articles: Sequence[Article], batches: Sequence[ArticleSnapshotBatch]
) -> list[Article]:
    """
    Fold snapshot batches into the matching articles' histories.

    Same-date snapshots merge field by field with the batch winning.
    Articles without a batch are returned unchanged.
    """
    incoming: dict[str, list] = {}
    for batch in batches:
        if batch.article_id is not None:
            incoming.setdefault(batch.article_id, []).extend(batch.snapshots)

    return [
        article.model_copy(
            update={
                "daily_snapshots": merge_snapshots(
                    article.daily_snapshots, incoming[article.id]
                )
            }
        )
        if article.id in incoming
        else article
        for article in articles
    ]


def _response(
    articles: Sequence[Article],
    batches: list[ArticleSnapshotBatch],
    report: IngestionReport,
) -> dict:
    updated = apply_batches(articles, batches)
    return {
        "success": True,
        "data": {
            "batches": [b.model_dump(mode="json") for b in batches],
            "articles": [a.model_dump(mode="json") for a in updated],
            "report": report.model_dump(mode="json"),
        },
    }


@router.post("/note-stats")
async def ingest_note_stats(request: NoteStatsRequest):
    """
    Parse pasted stats text into note_data snapshots for one date.
    Rows are matched to known articles by exact title.
    """
    on_date = request.on_date or date.today()
    adapter = get_adapter("note_stats")

    try:
        batches, report = adapter.ingest(request.text, on_date, request.articles)
    except IngestionError as e:
        logger.warning("note_stats_ingestion_rejected", error=str(e))
        raise HTTPException(status_code=422, detail=str(e))

    logger.info(
        "note_stats_ingestion_completed",
        on_date=on_date.isoformat(),
        batches=len(batches),
        skipped=len(report.skipped),
    )
    return _response(request.articles, batches, report)


@router.post("/x-analytics")
async def ingest_x_analytics(request: XAnalyticsRequest):
    """
    Parse an X analytics CSV into confirmed snapshots per article.
    Posts are matched to articles whose URL they contain.
    """
    adapter = get_adapter("x_analytics")

    try:
        batches, report = adapter.ingest(request.csv_text, request.articles)
    except IngestionError as e:
        logger.warning("x_analytics_ingestion_rejected", error=str(e))
        raise HTTPException(status_code=422, detail=str(e))

    logger.info(
        "x_analytics_ingestion_completed",
        batches=len(batches),
        skipped=len(report.skipped),
    )
    return _response(request.articles, batches, report)
