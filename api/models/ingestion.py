"""
Ingestion models: parsed upstream exports and their quality reports.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .articles import DailySnapshot


class QualityIssue(BaseModel):
    """
    Individual data quality issue identified during ingestion.

    Attributes:
        field: Field name where the issue was detected
        issue_type: Type of quality issue (e.g., "missing", "invalid_format")
        count: Number of records affected by this issue
        description: Human-readable description of the issue
    """

    field: str = Field(description="Field name where issue was detected")
    issue_type: str = Field(
        description="Type of quality issue (e.g., 'missing', 'invalid_format')"
    )
    count: int = Field(description="Number of records affected by this issue", ge=0)
    description: str = Field(description="Human-readable description of the issue")


class IngestionReport(BaseModel):
    """
    Outcome of one ingestion batch.

    Attributes:
        source: Adapter that produced the batch
        total_records: Records found in the input
        valid_records: Records turned into snapshots
        rejected_records: Records skipped as invalid
        skipped: Titles (or article ids) that were skipped
        quality_issues: Aggregated issues by field and type
    """

    source: str
    total_records: int = Field(default=0, ge=0)
    valid_records: int = Field(default=0, ge=0)
    rejected_records: int = Field(default=0, ge=0)
    skipped: list[str] = Field(default_factory=list)
    quality_issues: list[QualityIssue] = Field(default_factory=list)


class NoteStatsRecord(BaseModel):
    """One article row copied from the publishing platform's stats page."""

    title: str = Field(min_length=1)
    views: int = Field(ge=0)
    comments: int = Field(ge=0)
    likes: int = Field(ge=0)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        """Titles are matched exactly after trimming."""
        return v.strip()


class ArticleSnapshotBatch(BaseModel):
    """
    Snapshots to fold into one article's history.

    ``article_id`` is None when the source row matched no known article;
    the caller decides whether to create one.
    """

    article_id: Optional[str] = None
    title: str = ""
    snapshots: list[DailySnapshot] = Field(default_factory=list)
