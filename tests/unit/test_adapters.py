"""
Unit tests for the upstream export adapters.
"""

from datetime import date

import pytest

from api.adapters import (
    ADAPTER_REGISTRY,
    IngestionError,
    NoteStatsAdapter,
    XAnalyticsAdapter,
    get_adapter,
    list_adapters,
)
from api.engine.snapshots import merge_snapshots
from tests.conftest import make_article, make_snapshot

NOTE_STATS_TEXT = "\n".join(
    [
        "ダッシュボード",
        "全期間",
        "記事\tビュー\tコメント\tスキ",
        "First article",
        "1,234\t5\t67",
        "Broken article",
        "12\tx\t3",
        "Second article",
        "890\t0\t12",
    ]
)

X_CSV = "\n".join(
    [
        "ポスト本文,日付,インプレッション数,いいね,エンゲージメント",
        '"New post https://note.com/u/n/a1",2024-05-01,100,5,10',
        '"Again https://note.com/u/n/a1",2024-05-01,50,1,2',
        '"Other https://note.com/u/n/a2",2024-05-02,0,0,0',
        '"Late https://note.com/u/n/a1",not-a-date,10,1,1',
        '"Next https://note.com/u/n/a1",2024-05-03,1,0,0',
        '"Unrelated post",2024-05-03,999,9,9',
    ]
)


# ============================================================================
# Registry
# ============================================================================


class TestAdapterRegistry:
    """Test adapter lookup."""

    def test_list_adapters(self):
        assert list_adapters() == ["note_stats", "x_analytics"]

    def test_get_adapter_returns_instance(self):
        assert isinstance(get_adapter("x_analytics"), XAnalyticsAdapter)

    def test_get_adapter_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown adapter source"):
            get_adapter("facebook")

    def test_registry_keys_match_source_names(self):
        for name, adapter_class in ADAPTER_REGISTRY.items():
            assert adapter_class().source_name == name


# ============================================================================
# Note stats
# ============================================================================


class TestNoteStatsAdapter:
    """Test parsing of pasted stats page text."""

    def test_parse_records_after_header(self):
        records, skipped = NoteStatsAdapter().parse(NOTE_STATS_TEXT)

        assert [r.title for r in records] == ["First article", "Second article"]
        assert records[0].views == 1234
        assert records[0].comments == 5
        assert records[0].likes == 67
        assert skipped == ["Broken article"]

    def test_parse_without_header_starts_at_top(self):
        records, _ = NoteStatsAdapter().parse("Only one\n10\t1\t2")
        assert records[0].title == "Only one"

    def test_parse_ignores_dangling_title(self):
        records, skipped = NoteStatsAdapter().parse("A\n1\t2\t3\nDangling")
        assert len(records) == 1
        assert skipped == []

    def test_parse_rejects_wrong_column_count(self):
        records, skipped = NoteStatsAdapter().parse("A\n1\t2")
        assert records == []
        assert skipped == ["A"]

    def test_parse_empty_text_raises(self):
        with pytest.raises(IngestionError, match="empty"):
            NoteStatsAdapter().parse("  \n ")

    def test_to_snapshots(self):
        records, _ = NoteStatsAdapter().parse(NOTE_STATS_TEXT)
        snapshots = NoteStatsAdapter.to_snapshots(records, date(2024, 5, 10))

        snapshot = snapshots["First article"]
        assert snapshot.snapshot_date == date(2024, 5, 10)
        assert snapshot.note_data.views == 1234
        assert snapshot.note_data.sales is None
        assert snapshot.x_confirmed_data is None

    def test_ingest_matches_titles(self):
        articles = [make_article("a1", title="First article")]
        batches, report = NoteStatsAdapter().ingest(NOTE_STATS_TEXT, date(2024, 5, 10), articles)

        by_title = {b.title: b for b in batches}
        assert by_title["First article"].article_id == "a1"
        assert by_title["Second article"].article_id is None
        assert report.total_records == 3
        assert report.valid_records == 2
        assert report.rejected_records == 1
        assert report.skipped == ["Broken article"]

    def test_ingest_reports_issues(self):
        _, report = NoteStatsAdapter().ingest(NOTE_STATS_TEXT, date(2024, 5, 10), [])
        issues = {(i.field, i.issue_type): i.count for i in report.quality_issues}
        assert issues == {("stats", "invalid_format"): 1, ("title", "unmatched"): 2}

    def test_ingest_without_rows_raises(self):
        with pytest.raises(IngestionError, match="No article rows"):
            NoteStatsAdapter().ingest("記事\tビュー\tコメント\tスキ", date(2024, 5, 10))


# ============================================================================
# X analytics CSV
# ============================================================================


class TestXAnalyticsAdapter:
    """Test post analytics CSV ingestion."""

    @pytest.fixture
    def articles(self):
        return [
            make_article("a1", url="https://note.com/u/n/a1"),
            make_article("a2", url="https://note.com/u/n/a2"),
            make_article("a3", url=""),
        ]

    def test_ingest_sums_posts_per_day(self, articles):
        batches, _ = XAnalyticsAdapter().ingest(X_CSV, articles)

        assert [b.article_id for b in batches] == ["a1"]
        snapshots = batches[0].snapshots
        assert [s.snapshot_date for s in snapshots] == [date(2024, 5, 1), date(2024, 5, 3)]
        assert snapshots[0].x_confirmed_data.impressions == 150
        assert snapshots[0].x_confirmed_data.likes == 6
        assert snapshots[0].x_confirmed_data.engagements == 12

    def test_ingest_drops_all_zero_days(self, articles):
        batches, _ = XAnalyticsAdapter().ingest(X_CSV, articles)
        assert "a2" not in [b.article_id for b in batches]

    def test_ingest_skips_articles_without_url(self, articles):
        _, report = XAnalyticsAdapter().ingest(X_CSV, articles)
        assert report.skipped == ["a3"]

    def test_ingest_skips_bad_dates(self, articles):
        _, report = XAnalyticsAdapter().ingest(X_CSV, articles)
        issues = {(i.field, i.issue_type): i.count for i in report.quality_issues}
        assert issues[("日付", "invalid_format")] == 1
        assert report.total_records == 6
        assert report.valid_records == 5

    def test_ingest_only_confirmed_group(self, articles):
        batches, _ = XAnalyticsAdapter().ingest(X_CSV, articles)
        snapshot = batches[0].snapshots[0]
        assert snapshot.note_data is None
        assert snapshot.x_preliminary_data is None

    def test_missing_headers_raise(self, articles):
        csv_text = "ポスト本文,日付,いいね\nhello,2024-05-01,1"
        with pytest.raises(IngestionError, match="インプレッション数"):
            XAnalyticsAdapter().ingest(csv_text, articles)

    def test_empty_csv_raises(self, articles):
        with pytest.raises(IngestionError, match="empty"):
            XAnalyticsAdapter().ingest("", articles)

    def test_header_only_csv_yields_nothing(self, articles):
        header = "ポスト本文,日付,インプレッション数,いいね,エンゲージメント\n"
        batches, report = XAnalyticsAdapter().ingest(header, articles)
        assert batches == []
        assert report.total_records == 0

    def test_confirmed_snapshots_merge_into_history(self, articles):
        history = [make_snapshot(date(2024, 5, 1), views=10, x_impressions=90)]
        batches, _ = XAnalyticsAdapter().ingest(X_CSV, articles)
        merged = merge_snapshots(history, batches[0].snapshots)

        assert merged[0].note_data.views == 10
        assert merged[0].x_preliminary_data.impressions == 90
        assert merged[0].x_confirmed_data.impressions == 150
