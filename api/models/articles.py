"""
Article and snapshot models.

An Article owns an ascending, date-unique sequence of DailySnapshot records.
Each snapshot carries up to three optional metric groups: cumulative
publishing-platform counters (note_data), a fast approximate social source
(x_preliminary_data) and a slower authoritative social source
(x_confirmed_data).
"""

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NoteData(BaseModel):
    """
    Cumulative publishing-platform counters at the snapshot date.

    Counters are non-decreasing in principle; nothing downstream relies on it.
    """

    model_config = ConfigDict(extra="ignore")

    views: Optional[float] = Field(default=None, description="Cumulative page views")
    comments: Optional[float] = Field(default=None, description="Cumulative comments")
    likes: Optional[float] = Field(default=None, description="Cumulative likes")
    sales: Optional[float] = Field(default=None, description="Paid sales recorded that day")


class XPreliminaryData(BaseModel):
    """Same-day-window social counters from the fast, approximate source."""

    model_config = ConfigDict(extra="ignore")

    impressions: Optional[float] = None
    likes: Optional[float] = None
    replies: Optional[float] = None
    retweets: Optional[float] = None
    quotes: Optional[float] = None


class XConfirmedData(BaseModel):
    """Same-day-window social counters from the authoritative analytics export."""

    model_config = ConfigDict(extra="ignore")

    impressions: Optional[float] = None
    likes: Optional[float] = None
    engagements: Optional[float] = None


def _merge_group(current: Optional[BaseModel], incoming: Optional[BaseModel]) -> Optional[BaseModel]:
    """Overlay the fields incoming actually carries onto current."""
    if incoming is None:
        return current
    if current is None:
        return incoming
    updates = incoming.model_dump(exclude_none=True)
    return current.model_copy(update=updates)


class DailySnapshot(BaseModel):
    """
    Metrics for one article on one calendar date.

    Attributes:
        snapshot_date: Calendar date (document key ``id`` in the upstream store)
        note_data: Publishing-platform counters, if captured that day
        x_preliminary_data: Preliminary social counters, if polled that day
        x_confirmed_data: Confirmed social counters, if imported for that day
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    snapshot_date: date = Field(alias="id", description="Snapshot date (YYYY-MM-DD)")
    note_data: Optional[NoteData] = None
    x_preliminary_data: Optional[XPreliminaryData] = None
    x_confirmed_data: Optional[XConfirmedData] = None

    def merged_with(self, incoming: "DailySnapshot") -> "DailySnapshot":
        """
        Merge a later write for the same date into this snapshot.

        Fields present on ``incoming`` overwrite ours; fields it leaves unset
        are kept.

        Raises:
            ValueError: If the snapshots belong to different dates
        """
        if incoming.snapshot_date != self.snapshot_date:
            raise ValueError(
                f"Cannot merge snapshot {incoming.snapshot_date} into {self.snapshot_date}"
            )
        return DailySnapshot(
            snapshot_date=self.snapshot_date,
            note_data=_merge_group(self.note_data, incoming.note_data),
            x_preliminary_data=_merge_group(self.x_preliminary_data, incoming.x_preliminary_data),
            x_confirmed_data=_merge_group(self.x_confirmed_data, incoming.x_confirmed_data),
        )


def normalize_snapshots(snapshots: list[DailySnapshot]) -> list[DailySnapshot]:
    """Sort snapshots by date, merging same-date records in arrival order."""
    by_date: dict[date, DailySnapshot] = {}
    for snapshot in snapshots:
        existing = by_date.get(snapshot.snapshot_date)
        by_date[snapshot.snapshot_date] = (
            snapshot if existing is None else existing.merged_with(snapshot)
        )
    return [by_date[d] for d in sorted(by_date)]


class Article(BaseModel):
    """
    A tracked article with its full snapshot history.

    Incoming pre-summed social totals (``totalXImpressions`` etc.) are
    ignored; lifetime totals are derived from the snapshots on read.

    Attributes:
        id: Article identifier
        title: Article title
        url: Public URL (used to match social posts)
        publication_date: When the article was published, if known
        classification_id: Primary classification tag id ("" when unclassified)
        secondary_classification_id: Secondary classification tag id
        is_active: Deactivation flag; articles are never hard-deleted
        daily_snapshots: Snapshot history, ascending and unique per date
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(description="Article identifier")
    title: str = Field(default="", description="Article title")
    url: str = Field(default="", description="Public article URL")
    publication_date: Optional[datetime] = Field(
        default=None, alias="publicationDate", description="Publication timestamp"
    )
    classification_id: str = Field(
        default="", alias="classificationId", description="Primary classification id"
    )
    secondary_classification_id: Optional[str] = Field(
        default=None,
        alias="secondaryClassificationId",
        description="Secondary classification id",
    )
    is_active: bool = Field(default=True, alias="isActive", description="Active flag")
    daily_snapshots: list[DailySnapshot] = Field(
        default_factory=list, description="Snapshot history ascending by date"
    )

    @field_validator("publication_date", mode="before")
    @classmethod
    def coerce_publication_date(cls, v):
        """Accept a bare calendar date as midnight of that day."""
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time.min)
        if v == "":
            return None
        return v

    @field_validator("publication_date")
    @classmethod
    def drop_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Keep the wall-clock time as written; dates compare by calendar day."""
        if v is not None and v.tzinfo is not None:
            return v.replace(tzinfo=None)
        return v

    @field_validator("classification_id", mode="before")
    @classmethod
    def coerce_classification_id(cls, v):
        """Missing primary classification means unclassified."""
        return v or ""

    @field_validator("is_active", mode="before")
    @classmethod
    def coerce_is_active(cls, v):
        """An absent flag means active."""
        return True if v is None else v

    @field_validator("daily_snapshots")
    @classmethod
    def order_snapshots(cls, v: list[DailySnapshot]) -> list[DailySnapshot]:
        """Keep snapshots ascending and unique per date."""
        return normalize_snapshots(v)

    @property
    def publication_day(self) -> Optional[date]:
        """Calendar day of publication, or None when unknown."""
        return self.publication_date.date() if self.publication_date else None

    def published_on_or_before(self, day: date) -> bool:
        """
        True when the article existed on ``day``.

        Articles with no publication date are treated as always published.
        """
        pub = self.publication_day
        return pub is None or pub <= day


class LifetimeXTotals(BaseModel):
    """
    Social totals summed across an article's whole snapshot history.

    Per snapshot the confirmed group is used when present, else the
    preliminary group.
    """

    impressions: float = 0.0
    likes: float = 0.0
    replies: float = 0.0
    retweets: float = 0.0
    quotes: float = 0.0
    engagements: float = 0.0


class Classification(BaseModel):
    """Primary classification tag."""

    id: str
    name: str


class SecondaryClassification(BaseModel):
    """Secondary classification tag, independent of the primary axis."""

    id: str
    name: str
