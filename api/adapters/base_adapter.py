"""
Base adapter class for upstream export ingestion.

This module provides the abstract base class that all ingestion adapters
inherit from, ensuring consistent parsing, quality reporting and snapshot
generation.
"""

from abc import ABC, abstractmethod
from collections import Counter
from datetime import date, datetime, timezone
from typing import Optional

import pandas as pd
import structlog

from api.models.ingestion import ArticleSnapshotBatch, IngestionReport, QualityIssue

logger = structlog.get_logger()


class IngestionError(ValueError):
    """Input that cannot be ingested at all (empty, wrong shape, missing headers)."""


class BaseAdapter(ABC):
    """
    Abstract base class for upstream export adapters.

    All adapters implement ``ingest()`` to turn raw export content into
    per-article snapshot batches plus an ingestion report.

    Attributes:
        source_name: Identifier for the data source (e.g., "note_stats")
    """

    def __init__(self, source_name: str):
        """
        Initialize the adapter with a source name.

        Args:
            source_name: Identifier for this data source
        """
        self.source_name = source_name
        self.logger = logger.bind(adapter=source_name)
        self._issues: Counter = Counter()
        self._issue_descriptions: dict[tuple[str, str], str] = {}

    @abstractmethod
    def ingest(self, *args, **kwargs) -> tuple[list[ArticleSnapshotBatch], IngestionReport]:
        """
        Transform export content into snapshot batches with a report.

        Returns:
            Tuple of (snapshot batches, ingestion report)

        Raises:
            IngestionError: If the input is fundamentally invalid
        """

    def _safe_str(self, value, default: str = "") -> str:
        """Convert value to a stripped string, handling None and NaN."""
        if value is None:
            return default
        try:
            if pd.isna(value):
                return default
        except (TypeError, ValueError):
            pass
        return str(value).strip()

    def _safe_count(self, value, default: Optional[int] = None) -> Optional[int]:
        """
        Parse a non-negative integer counter.

        Thousands separators are accepted ("1,234"). Anything else that is
        not a plain integer returns ``default``.
        """
        text = self._safe_str(value).replace(",", "")
        if not text.isdigit():
            return default
        return int(text)

    def _safe_date(self, value, default: Optional[date] = None) -> Optional[date]:
        """
        Parse a calendar date; timezone-aware values are taken in UTC.

        Args:
            value: String, datetime or timestamp
            default: Returned when the value cannot be parsed

        Returns:
            Date or default
        """
        if self._is_missing(value):
            return default
        try:
            result = pd.to_datetime(value, errors="coerce")
        except (ValueError, TypeError):
            return default
        if pd.isna(result):
            return default
        if isinstance(result, pd.Timestamp):
            result = result.to_pydatetime()
        if isinstance(result, datetime):
            if result.tzinfo is not None:
                result = result.astimezone(timezone.utc)
            return result.date()
        return default

    def _is_missing(self, value) -> bool:
        """Check if a value is missing (None, NaN, empty string)."""
        if value is None:
            return True
        if isinstance(value, str):
            return not value.strip()
        try:
            return bool(pd.isna(value))
        except (TypeError, ValueError):
            return False

    def _record_issue(self, field: str, issue_type: str, description: str) -> None:
        """Count one occurrence of a quality issue."""
        self._issues[(field, issue_type)] += 1
        self._issue_descriptions.setdefault((field, issue_type), description)

    def _build_report(
        self,
        total_records: int,
        valid_records: int,
        skipped: list[str],
    ) -> IngestionReport:
        """
        Assemble the ingestion report and reset the issue counters.

        Args:
            total_records: Number of input records processed
            valid_records: Number of records that produced snapshots
            skipped: Titles or ids that were skipped

        Returns:
            IngestionReport for the batch
        """
        issues = [
            QualityIssue(
                field=field,
                issue_type=issue_type,
                count=count,
                description=self._issue_descriptions[(field, issue_type)],
            )
            for (field, issue_type), count in self._issues.items()
        ]
        self._issues.clear()
        self._issue_descriptions.clear()

        report = IngestionReport(
            source=self.source_name,
            total_records=total_records,
            valid_records=valid_records,
            rejected_records=max(total_records - valid_records, 0),
            skipped=skipped,
            quality_issues=issues,
        )
        self.logger.info(
            "ingestion_report_generated",
            total_records=total_records,
            valid_records=valid_records,
            rejected_records=report.rejected_records,
            issues=len(issues),
        )
        return report
