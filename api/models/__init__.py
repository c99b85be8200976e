"""
Pydantic v2 data models for the article insights rollup engine.

Model Organization:
    - enums: Enumeration types (metric columns, funnel stages, KPI result tags)
    - articles: Article, DailySnapshot and metric groups, classification tags
    - ingestion: Parsed upstream exports and quality reports
    - kpis: KPI definitions, tagged evaluation results, draft validation
    - rollup: Derived dashboard rows (never persisted)

Usage:
    >>> from api.models import Article, DailySnapshot
    >>> article = Article(
    ...     id="a1",
    ...     title="First post",
    ...     daily_snapshots=[{"id": "2024-05-01", "note_data": {"views": 120}}],
    ... )
"""

# Enumerations
from .enums import (
    FUNNEL_STAGE_LABELS,
    Channel,
    FunnelStageName,
    InventorySortKey,
    KpiResultType,
    MetricColumn,
    SortDirection,
)

# Article models
from .articles import (
    Article,
    Classification,
    DailySnapshot,
    LifetimeXTotals,
    NoteData,
    SecondaryClassification,
    XConfirmedData,
    XPreliminaryData,
    normalize_snapshots,
)

# Ingestion models
from .ingestion import (
    ArticleSnapshotBatch,
    IngestionReport,
    NoteStatsRecord,
    QualityIssue,
)

# KPI models
from .kpis import Kpi, KpiEvaluation, KpiValidation

# Derived dashboard models
from .rollup import (
    ArticleDelta,
    ArticleInventoryRow,
    CategoryTotal,
    DailyTotalsRow,
    DashboardQuery,
    DashboardRollup,
    FunnelRates,
    FunnelResult,
    FunnelStage,
    SecondaryCategoryCount,
    SecondaryCategoryLikeRate,
)

__all__ = [
    # Enumerations
    "Channel",
    "FUNNEL_STAGE_LABELS",
    "FunnelStageName",
    "InventorySortKey",
    "KpiResultType",
    "MetricColumn",
    "SortDirection",
    # Articles
    "Article",
    "Classification",
    "DailySnapshot",
    "LifetimeXTotals",
    "NoteData",
    "SecondaryClassification",
    "XConfirmedData",
    "XPreliminaryData",
    "normalize_snapshots",
    # Ingestion
    "ArticleSnapshotBatch",
    "IngestionReport",
    "NoteStatsRecord",
    "QualityIssue",
    # KPIs
    "Kpi",
    "KpiEvaluation",
    "KpiValidation",
    # Derived
    "ArticleDelta",
    "ArticleInventoryRow",
    "CategoryTotal",
    "DailyTotalsRow",
    "DashboardQuery",
    "DashboardRollup",
    "FunnelRates",
    "FunnelResult",
    "FunnelStage",
    "SecondaryCategoryCount",
    "SecondaryCategoryLikeRate",
]
