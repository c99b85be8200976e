"""
Golden Path (End-to-End) Tests for the rollup engine.

Each test runs DashboardRollupEngine over a fixed dataset and checks the
complete set of derived views against hand-computed values.
"""

from datetime import date, datetime

import pytest

from api.engine.rollup import DashboardRollupEngine
from api.models.articles import Classification
from api.models.enums import Channel, FunnelStageName, KpiResultType
from api.models.rollup import DashboardQuery
from tests.conftest import make_article, make_kpi, make_snapshot

MAY_1 = date(2024, 5, 1)
MAY_31 = date(2024, 5, 31)


def may_query(**selections) -> DashboardQuery:
    return DashboardQuery(start_date=MAY_1, end_date=MAY_31, **selections)


# ============================================================================
# Scenario 1: Negative deltas are summed, not clamped
# ============================================================================


def test_golden_attract_sums_raw_deltas():
    """
    Golden path: A grows 100 -> 150, B shrinks 200 -> 190.

    The attract stage is the sum of raw deltas: 50 + (-10) = 40.
    """
    articles = [
        make_article(
            "A",
            snapshots=[
                make_snapshot(date(2024, 4, 30), views=100),
                make_snapshot(date(2024, 5, 31), views=150),
            ],
        ),
        make_article(
            "B",
            snapshots=[
                make_snapshot(date(2024, 4, 30), views=200),
                make_snapshot(date(2024, 5, 31), views=190),
            ],
        ),
    ]

    rollup = DashboardRollupEngine().compute(articles, [], [], [], may_query())

    assert [a.note_views_change for a in rollup.articles] == [50, -10]
    assert rollup.funnel.stage_value(FunnelStageName.ATTRACT) == 40
    assert rollup.funnel.stage_value(FunnelStageName.ANNOUNCE) == 40
    assert [s.stage for s in rollup.funnel.stages] == [
        FunnelStageName.ANNOUNCE,
        FunnelStageName.ATTRACT,
    ]
    assert rollup.funnel.rates.attraction_rate == pytest.approx(100.0)
    assert rollup.funnel.rates.dominant_channel == Channel.NOTE
    assert [a.id for a in rollup.articles if a.is_top_performer] == ["A"]


# ============================================================================
# Scenario 2: Boolean KPI ignores its target
# ============================================================================


def test_golden_boolean_kpi_achieved_regardless_of_target():
    """
    Golden path: `note_data.views >= 1000` over 1200 views of growth is
    boolean true and achieved even with an unreachable target.
    """
    articles = [
        make_article(
            "A",
            snapshots=[
                make_snapshot(date(2024, 4, 1), views=0),
                make_snapshot(date(2024, 5, 20), views=1200),
            ],
        )
    ]
    kpis = [make_kpi("note_data.views >= 1000", target_value=1_000_000)]

    rollup = DashboardRollupEngine().compute(articles, [], [], kpis, may_query())

    result = rollup.kpi_results[0]
    assert result.result_type == KpiResultType.BOOLEAN
    assert result.boolean_value is True
    assert result.achieved is True


# ============================================================================
# Scenario 3: Empty category
# ============================================================================


def test_golden_empty_category_is_zero_and_never_flagged():
    """
    Golden path: a classification with no member articles yields zero
    totals and no above-average flag.
    """
    classifications = [
        Classification(id="busy", name="Busy"),
        Classification(id="empty", name="Empty"),
    ]
    articles = [
        make_article(
            "A",
            classification_id="busy",
            snapshots=[make_snapshot(date(2024, 5, 10), views=10, likes=2, x_impressions=50, x_likes=1)],
        )
    ]

    rollup = DashboardRollupEngine().compute(articles, classifications, [], [], may_query())

    empty = next(c for c in rollup.category_totals if c.classification_id == "empty")
    assert empty.article_count == 0
    assert (empty.note_views, empty.note_likes, empty.x_impressions, empty.x_likes) == (0, 0, 0, 0)
    assert not any(
        [
            empty.note_views_is_above_average,
            empty.note_likes_is_above_average,
            empty.x_impressions_is_above_average,
            empty.x_likes_is_above_average,
        ]
    )

    busy = next(c for c in rollup.category_totals if c.classification_id == "busy")
    assert busy.note_views_is_above_average is True


# ============================================================================
# Scenario 4: Full dashboard over the sample dataset
# ============================================================================


def test_golden_full_sample_rollup(sample_articles, classifications, secondary_classifications):
    """
    Golden path: every derived view over the three sample articles in May.

    Verifies daily totals, deltas, category totals, secondary counts and
    like rates, the funnel and KPI results in one pass.
    """
    kpis = [
        make_kpi("note_data.views", target_value=200, kpi_id="views"),
        make_kpi("note_data.likes / note_data.views * 100", target_value=10, kpi_id="like_rate"),
        make_kpi("x_confirmed_data.impressions > 0", kpi_id="social"),
        make_kpi("note_data.views +", kpi_id="broken"),
    ]

    rollup = DashboardRollupEngine().compute(
        sample_articles, classifications, secondary_classifications, kpis, may_query()
    )

    # Daily series
    assert len(rollup.daily_totals) == 31
    first, last = rollup.daily_totals[0], rollup.daily_totals[-1]
    assert (first.note_views, first.note_likes, first.x_impressions, first.x_likes) == (150, 12, 500, 5)
    # a3 is only counted once published on May 15
    assert last.note_views == 220 + 120 + 30
    # the latest snapshots of a1 and a2 carry no social data
    assert last.x_impressions == 0

    # Article deltas
    changes = {a.id: (a.note_views_change, a.note_likes_change) for a in rollup.articles}
    assert changes == {"a1": (120, 10), "a2": (70, 7), "a3": (30, 1)}
    assert [a.id for a in rollup.articles if a.is_top_performer] == ["a1"]

    # Category totals
    totals = {c.classification_id: c for c in rollup.category_totals}
    assert (totals["c-free"].note_views, totals["c-free"].x_impressions) == (220, 800)
    assert (totals["c-paid"].note_views, totals["c-paid"].x_impressions) == (120, 400)
    assert totals["c-free"].note_views_is_above_average is True
    assert totals["c-paid"].note_views_is_above_average is False

    # Secondary tags
    assert [c.secondary_classification_id for c in rollup.secondary_category_counts] == [
        "s-howto",
        "s-diary",
    ]
    rates = {r.secondary_classification_id: r.like_rate for r in rollup.secondary_category_like_rates}
    assert rates["s-howto"] == pytest.approx(20 / 220 * 100)
    assert rates["s-diary"] == pytest.approx(7.5)

    # Funnel
    assert [(s.stage, s.value) for s in rollup.funnel.stages] == [
        (FunnelStageName.ANNOUNCE, 1920),
        (FunnelStageName.ATTRACT, 220),
        (FunnelStageName.INDUCE, 18),
        (FunnelStageName.PROPOSE, 70),
        (FunnelStageName.SELL, 3),
    ]
    assert rollup.funnel.rates.sales_rate == pytest.approx(3 / 70 * 100)
    assert rollup.funnel.rates.dominant_channel == Channel.X

    # KPIs
    results = {r.kpi_id: r for r in rollup.kpi_results}
    assert results["views"].numeric_value == 220
    assert results["views"].achieved is True
    assert results["like_rate"].numeric_value == pytest.approx(18 / 220 * 100)
    assert results["like_rate"].achieved is False
    assert results["social"].result_type == KpiResultType.BOOLEAN
    assert results["social"].achieved is False
    assert results["broken"].is_error


def test_golden_filtered_rollup_restricts_every_view(
    sample_articles, classifications, secondary_classifications
):
    """
    Golden path: selecting the diary tag keeps only a2 in every view.
    """
    rollup = DashboardRollupEngine().compute(
        sample_articles,
        classifications,
        secondary_classifications,
        [make_kpi("note_data.views")],
        may_query(selected_secondary_ids=["s-diary"]),
    )

    assert [a.id for a in rollup.articles] == ["a2"]
    assert rollup.daily_totals[-1].note_views == 120
    assert rollup.funnel.stage_value(FunnelStageName.ATTRACT) == 70
    assert rollup.kpi_results[0].numeric_value == 70
    assert [c.secondary_classification_id for c in rollup.secondary_category_counts] == ["s-diary"]


def test_golden_naive_and_aware_publication_dates_mix():
    """
    Golden path: articles with timezone-aware and naive publication dates
    roll up together without comparison errors.
    """
    articles = [
        make_article(
            "aware",
            publication_date=datetime.fromisoformat("2024-05-02T09:00:00+09:00"),
            snapshots=[make_snapshot(date(2024, 5, 3), views=5)],
        ),
        make_article(
            "naive",
            publication_date=datetime(2024, 5, 2, 9, 0),
            snapshots=[make_snapshot(date(2024, 5, 3), views=7)],
        ),
    ]

    rollup = DashboardRollupEngine().compute(articles, [], [], [], may_query())

    assert rollup.daily_totals[0].note_views == 0
    assert rollup.daily_totals[2].note_views == 12
    assert [a.id for a in rollup.articles if a.is_top_performer] == ["naive"]
