"""
Social network analytics export adapter.

Turns the post-level analytics CSV exported from X into confirmed social
snapshots. A post counts toward an article when its text contains the
article URL; metrics of matching posts are summed per calendar day.

Required headers:
    ポスト本文 (post text), 日付 (date), インプレッション数 (impressions),
    いいね (likes), エンゲージメント (engagements)
"""

from io import StringIO
from typing import Sequence

import pandas as pd

from api.adapters.base_adapter import BaseAdapter, IngestionError
from api.models.articles import Article, DailySnapshot, XConfirmedData
from api.models.ingestion import ArticleSnapshotBatch, IngestionReport

COL_TEXT = "ポスト本文"
COL_DATE = "日付"
COL_IMPRESSIONS = "インプレッション数"
COL_LIKES = "いいね"
COL_ENGAGEMENTS = "エンゲージメント"

REQUIRED_HEADERS = (COL_TEXT, COL_DATE, COL_IMPRESSIONS, COL_LIKES, COL_ENGAGEMENTS)

# export column -> confirmed field
METRIC_COLUMNS = {
    COL_IMPRESSIONS: "impressions",
    COL_LIKES: "likes",
    COL_ENGAGEMENTS: "engagements",
}


class XAnalyticsAdapter(BaseAdapter):
    """
    Adapter for the X post analytics CSV export.

    Produces one batch per article with a URL and at least one day of
    non-zero activity. Unparseable counters count as 0; rows with an
    unparseable date are skipped.
    """

    def __init__(self):
        super().__init__(source_name="x_analytics")

    def read_csv(self, csv_text: str) -> pd.DataFrame:
        """
        Load the export into a DataFrame of strings and validate headers.

        Raises:
            IngestionError: If the text is empty, unreadable or lacks a
                required header
        """
        if not csv_text or not csv_text.strip():
            raise IngestionError("CSV is empty")
        try:
            df = pd.read_csv(
                StringIO(csv_text.lstrip("\ufeff")),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise IngestionError(f"CSV could not be parsed: {e}") from e

        df.columns = [str(c).strip() for c in df.columns]
        missing = [h for h in REQUIRED_HEADERS if h not in df.columns]
        if missing:
            raise IngestionError(f"CSV missing headers: {', '.join(missing)}")
        return df

    def _prepare(self, df: pd.DataFrame) -> pd.DataFrame:
        """Parse dates and counters; drop rows whose date cannot be parsed."""
        prepared = pd.DataFrame(
            {
                "text": df[COL_TEXT].map(self._safe_str),
                "day": df[COL_DATE].map(self._safe_date),
            }
        )
        for column, field in METRIC_COLUMNS.items():
            prepared[field] = df[column].map(lambda v: self._safe_count(v, default=0))

        invalid = prepared["day"].isna() & (prepared["text"] != "")
        for _ in range(int(invalid.sum())):
            self._record_issue(COL_DATE, "invalid_format", "Post date could not be parsed")
        if invalid.any():
            self.logger.warning("x_analytics_invalid_dates", rows=int(invalid.sum()))
        return prepared[prepared["day"].notna()]

    def daily_metrics(self, posts: pd.DataFrame, url: str) -> list[DailySnapshot]:
        """
        Sum metrics of the posts mentioning ``url`` per day.

        Days whose impressions, likes and engagements are all 0 are dropped.
        """
        if posts.empty:
            return []
        matching = posts[posts["text"].str.contains(url, regex=False)]
        if matching.empty:
            return []

        fields = list(METRIC_COLUMNS.values())
        per_day = matching.groupby("day", sort=True)[fields].sum()
        per_day = per_day[(per_day[fields] > 0).any(axis=1)]

        return [
            DailySnapshot(
                snapshot_date=day,
                x_confirmed_data=XConfirmedData(**{f: float(row[f]) for f in fields}),
            )
            for day, row in per_day.iterrows()
        ]

    def ingest(
        self, csv_text: str, articles: Sequence[Article]
    ) -> tuple[list[ArticleSnapshotBatch], IngestionReport]:
        """
        Transform the export into confirmed snapshots per article.

        Args:
            csv_text: Raw CSV content
            articles: Known articles; matched to posts by URL

        Returns:
            Tuple of (snapshot batches, ingestion report)

        Raises:
            IngestionError: If the CSV is unreadable or lacks required headers
        """
        df = self.read_csv(csv_text)
        self.logger.info("x_analytics_ingestion_started", posts=len(df), articles=len(articles))

        posts = self._prepare(df)
        batches = []
        skipped = []
        for article in articles:
            if not article.url:
                self.logger.warning("article_url_missing", article_id=article.id, title=article.title)
                self._record_issue("url", "missing", "Article has no URL to match posts against")
                skipped.append(article.id)
                continue

            snapshots = self.daily_metrics(posts, article.url)
            if snapshots:
                batches.append(
                    ArticleSnapshotBatch(article_id=article.id, title=article.title, snapshots=snapshots)
                )
                self.logger.debug(
                    "x_confirmed_snapshots_built",
                    article_id=article.id,
                    days=len(snapshots),
                )

        report = self._build_report(
            total_records=len(df),
            valid_records=len(posts),
            skipped=skipped,
        )
        return batches, report
