"""
Publishing-platform stats page adapter.

Parses the text an author copies from the platform's statistics page:

    ...page chrome...
    記事\tビュー\tコメント\tスキ
    First article title
    1,234\t5\t67
    Second article title
    890\t0\t12

Rows begin after the header line containing ``記事\\tビュー``. Each article is
a title line followed by a tab-separated ``views\\tcomments\\tlikes`` line.
Pairs whose stats line does not hold exactly three integers are skipped and
reported by title.
"""

from datetime import date
from typing import Optional, Sequence

from api.adapters.base_adapter import BaseAdapter, IngestionError
from api.models.articles import Article, DailySnapshot, NoteData
from api.models.ingestion import ArticleSnapshotBatch, IngestionReport, NoteStatsRecord

HEADER_MARKER = "記事\tビュー"


class NoteStatsAdapter(BaseAdapter):
    """
    Adapter for text pasted from the publishing platform's stats page.

    Produces one ``note_data`` snapshot per listed article for the capture
    date. Articles are matched by exact title; unmatched titles yield batches
    without an article id.
    """

    def __init__(self):
        super().__init__(source_name="note_stats")

    def parse(self, text: str) -> tuple[list[NoteStatsRecord], list[str]]:
        """
        Parse pasted stats text into records.

        Args:
            text: Raw pasted text

        Returns:
            Tuple of (records, skipped titles)

        Raises:
            IngestionError: If the text is empty
        """
        if not text or not text.strip():
            raise IngestionError("Pasted stats text is empty")

        lines = text.strip().splitlines()
        start = 0
        for i, line in enumerate(lines):
            if HEADER_MARKER in line:
                start = i + 1
                break

        records = []
        skipped = []
        for i in range(start, len(lines), 2):
            title = lines[i].strip()
            stats = lines[i + 1].strip() if i + 1 < len(lines) else ""
            if not title or not stats:
                continue

            counts = [self._safe_count(part) for part in stats.split("\t")]
            if len(counts) != 3 or any(c is None for c in counts):
                self._record_issue("stats", "invalid_format", "Stats line is not views/comments/likes")
                skipped.append(title)
                continue

            views, comments, likes = counts
            records.append(NoteStatsRecord(title=title, views=views, comments=comments, likes=likes))

        self.logger.debug("note_stats_parsed", records=len(records), skipped=len(skipped))
        return records, skipped

    @staticmethod
    def to_snapshots(records: Sequence[NoteStatsRecord], on_date: date) -> dict[str, DailySnapshot]:
        """
        Convert records into snapshots dated ``on_date``, keyed by title.

        A title listed twice keeps its last row.
        """
        return {
            record.title: DailySnapshot(
                snapshot_date=on_date,
                note_data=NoteData(
                    views=record.views,
                    comments=record.comments,
                    likes=record.likes,
                ),
            )
            for record in records
        }

    def ingest(
        self,
        text: str,
        on_date: date,
        articles: Optional[Sequence[Article]] = None,
    ) -> tuple[list[ArticleSnapshotBatch], IngestionReport]:
        """
        Parse pasted text and match rows to known articles by title.

        Args:
            text: Raw pasted stats text
            on_date: Capture date for the produced snapshots
            articles: Known articles to match against (optional)

        Returns:
            Tuple of (snapshot batches, ingestion report)

        Raises:
            IngestionError: If the text is empty or holds no article rows
        """
        records, skipped = self.parse(text)
        if not records:
            raise IngestionError("No article rows found in pasted stats text")

        ids_by_title: dict[str, str] = {}
        for article in articles or []:
            ids_by_title.setdefault(article.title, article.id)

        snapshots = self.to_snapshots(records, on_date)
        batches = [
            ArticleSnapshotBatch(
                article_id=ids_by_title.get(title),
                title=title,
                snapshots=[snapshot],
            )
            for title, snapshot in snapshots.items()
        ]

        unmatched = 0
        for batch in batches:
            if batch.article_id is None:
                unmatched += 1
                self._record_issue("title", "unmatched", "Title matches no known article")

        self.logger.info(
            "note_stats_ingested",
            on_date=on_date.isoformat(),
            batches=len(batches),
            unmatched=unmatched,
            skipped=len(skipped),
        )
        report = self._build_report(
            total_records=len(records) + len(skipped),
            valid_records=len(records),
            skipped=skipped,
        )
        return batches, report
