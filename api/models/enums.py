"""
Enumeration types for the article insights rollup engine.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class MetricColumn(str, Enum):
    """
    Aggregate metric columns shared by the daily series and category totals.

    Social columns resolve confirmed data first, preliminary second.
    """

    NOTE_VIEWS = "note_views"
    NOTE_LIKES = "note_likes"
    X_IMPRESSIONS = "x_impressions"
    X_LIKES = "x_likes"


class FunnelStageName(str, Enum):
    """Acquisition funnel stages in audience-progression order."""

    ANNOUNCE = "announce"
    ATTRACT = "attract"
    INDUCE = "induce"
    PROPOSE = "propose"
    SELL = "sell"


# Dashboard labels as shown to authors on the publishing platform
FUNNEL_STAGE_LABELS: dict[FunnelStageName, str] = {
    FunnelStageName.ANNOUNCE: "告知",
    FunnelStageName.ATTRACT: "集客",
    FunnelStageName.INDUCE: "誘因",
    FunnelStageName.PROPOSE: "提案",
    FunnelStageName.SELL: "販売",
}


class Channel(str, Enum):
    """Upstream platforms an article is measured on."""

    NOTE = "note"
    X = "x"


class KpiResultType(str, Enum):
    """
    Tag of a KPI evaluation result.

    ERROR marks a failed evaluation and is never coerced into a number or
    boolean.
    """

    NUMBER = "number"
    BOOLEAN = "boolean"
    ERROR = "error"


class InventorySortKey(str, Enum):
    """Sortable columns of the article inventory view."""

    PUBLICATION_DATE = "publication_date"
    TITLE = "title"
    NOTE_VIEWS = "note_views"
    NOTE_COMMENTS = "note_comments"
    NOTE_LIKES = "note_likes"
    NOTE_SALES = "note_sales"
    X_TOTAL_IMPRESSIONS = "x_total_impressions"
    X_TOTAL_LIKES = "x_total_likes"
    X_TOTAL_REPLIES = "x_total_replies"
    X_TOTAL_RETWEETS = "x_total_retweets"
    X_TOTAL_QUOTES = "x_total_quotes"
    X_TOTAL_ENGAGEMENTS = "x_total_engagements"


class SortDirection(str, Enum):
    """Sort direction."""

    ASCENDING = "ascending"
    DESCENDING = "descending"
