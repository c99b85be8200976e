"""
Point-in-time snapshot access shared by every rollup component.

All "latest snapshot at or before a date" lookups go through
``latest_snapshot`` / ``latest_value`` so the forward-fill rule and the
confirmed-over-preliminary precedence are applied identically in the daily
series, the deltas, the category totals and the inventory.

Snapshot sequences are expected ascending by date (Article validation
guarantees this).
"""

from datetime import date, timedelta
from typing import Callable, Iterable, Optional, Sequence

from api.models.articles import DailySnapshot, LifetimeXTotals, normalize_snapshots
from api.models.enums import MetricColumn

SnapshotExtractor = Callable[[DailySnapshot], Optional[float]]


# =============================================================================
# Field extractors
# =============================================================================


def note_views(snapshot: DailySnapshot) -> Optional[float]:
    return snapshot.note_data.views if snapshot.note_data else None


def note_likes(snapshot: DailySnapshot) -> Optional[float]:
    return snapshot.note_data.likes if snapshot.note_data else None


def note_comments(snapshot: DailySnapshot) -> Optional[float]:
    return snapshot.note_data.comments if snapshot.note_data else None


def note_sales(snapshot: DailySnapshot) -> Optional[float]:
    return snapshot.note_data.sales if snapshot.note_data else None


def _social(snapshot: DailySnapshot, field: str) -> Optional[float]:
    """Confirmed value when present on this snapshot, else preliminary."""
    if snapshot.x_confirmed_data is not None:
        value = getattr(snapshot.x_confirmed_data, field, None)
        if value is not None:
            return value
    if snapshot.x_preliminary_data is not None:
        return getattr(snapshot.x_preliminary_data, field, None)
    return None


def x_impressions(snapshot: DailySnapshot) -> Optional[float]:
    return _social(snapshot, "impressions")


def x_likes(snapshot: DailySnapshot) -> Optional[float]:
    return _social(snapshot, "likes")


def has_note_data(snapshot: DailySnapshot) -> bool:
    return snapshot.note_data is not None


METRIC_EXTRACTORS: dict[MetricColumn, SnapshotExtractor] = {
    MetricColumn.NOTE_VIEWS: note_views,
    MetricColumn.NOTE_LIKES: note_likes,
    MetricColumn.X_IMPRESSIONS: x_impressions,
    MetricColumn.X_LIKES: x_likes,
}


# =============================================================================
# Point-in-time lookups
# =============================================================================


def latest_snapshot(
    snapshots: Sequence[DailySnapshot],
    cutoff: date,
    *,
    inclusive: bool = True,
    where: Optional[Callable[[DailySnapshot], bool]] = None,
) -> Optional[DailySnapshot]:
    """
    Find the most recent snapshot on or before ``cutoff``.

    Args:
        snapshots: Ascending snapshot history
        cutoff: Reference date
        inclusive: When False, only snapshots strictly before ``cutoff`` qualify
        where: Optional predicate a snapshot must also satisfy

    Returns:
        The matching snapshot, or None
    """
    for snapshot in reversed(snapshots):
        d = snapshot.snapshot_date
        if d > cutoff or (not inclusive and d == cutoff):
            continue
        if where is None or where(snapshot):
            return snapshot
    return None


def value_of(snapshot: Optional[DailySnapshot], extractor: SnapshotExtractor) -> float:
    """Extract a metric from a snapshot, 0 for a missing snapshot or field."""
    if snapshot is None:
        return 0.0
    value = extractor(snapshot)
    return float(value) if value is not None else 0.0


def latest_value(
    snapshots: Sequence[DailySnapshot],
    cutoff: date,
    extractor: SnapshotExtractor,
    *,
    inclusive: bool = True,
    skip_missing: bool = False,
) -> float:
    """
    Metric value as of ``cutoff``.

    With ``skip_missing`` the search walks back to the latest snapshot that
    actually carries the metric instead of stopping at the latest snapshot.
    """
    where = (lambda s: extractor(s) is not None) if skip_missing else None
    snapshot = latest_snapshot(snapshots, cutoff, inclusive=inclusive, where=where)
    return value_of(snapshot, extractor)


def snapshots_between(
    snapshots: Iterable[DailySnapshot], start: date, end: date
) -> list[DailySnapshot]:
    """Snapshots dated within ``[start, end]`` inclusive."""
    return [s for s in snapshots if start <= s.snapshot_date <= end]


def dates_in_range(start: date, end: date) -> list[date]:
    """Every calendar date in ``[start, end]``; empty when end < start."""
    days = (end - start).days
    return [start + timedelta(days=offset) for offset in range(days + 1)]


# =============================================================================
# Derived projections
# =============================================================================


def lifetime_x_totals(snapshots: Iterable[DailySnapshot]) -> LifetimeXTotals:
    """
    Sum social metrics over a whole history.

    Each snapshot contributes its confirmed group when it has one, otherwise
    its preliminary group; the two are never added together.
    """
    totals = LifetimeXTotals()
    for snapshot in snapshots:
        confirmed = snapshot.x_confirmed_data
        preliminary = snapshot.x_preliminary_data
        if confirmed is not None:
            totals.impressions += confirmed.impressions or 0.0
            totals.likes += confirmed.likes or 0.0
            totals.engagements += confirmed.engagements or 0.0
        elif preliminary is not None:
            totals.impressions += preliminary.impressions or 0.0
            totals.likes += preliminary.likes or 0.0
            totals.replies += preliminary.replies or 0.0
            totals.retweets += preliminary.retweets or 0.0
            totals.quotes += preliminary.quotes or 0.0
    return totals


def merge_snapshots(
    existing: Sequence[DailySnapshot], incoming: Sequence[DailySnapshot]
) -> list[DailySnapshot]:
    """
    Fold new snapshots into a history.

    Same-date records merge field by field, incoming winning; the result is
    ascending and unique per date.
    """
    return normalize_snapshots([*existing, *incoming])
