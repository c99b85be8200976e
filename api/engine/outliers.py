"""
Statistical outlier flags for the daily series and the category totals.

Two thresholds over the same column statistics:
    Spike:          value > mean + k * stddev   (population stddev, k = 2.0)
                    needs at least 2 data points
    Above-average:  value > mean * m            (m = 1.5)
                    needs at least 1 data point

Each metric column is evaluated on its own statistics. Flags are strict
comparisons, so a column of identical values never flags anything.
"""

from typing import Optional, Sequence, TypeVar

import numpy as np
import structlog
from pydantic import BaseModel

from api.models.enums import MetricColumn

logger = structlog.get_logger()

RowT = TypeVar("RowT", bound=BaseModel)


class OutlierDetector:
    """
    Mean/stddev threshold detector shared by the rollup views.

    Attributes:
        spike_stddev_multiplier: Stddev multiplier for spike detection
        above_average_multiplier: Mean multiplier for above-average detection

    Example:
        >>> detector = OutlierDetector()
        >>> detector.spike_flags([10, 10, 10, 10, 10, 10, 100])
        [False, False, False, False, False, False, True]
    """

    SPIKE_MIN_POINTS = 2
    ABOVE_AVERAGE_MIN_POINTS = 1

    def __init__(
        self,
        spike_stddev_multiplier: float = 2.0,
        above_average_multiplier: float = 1.5,
    ):
        if spike_stddev_multiplier <= 0 or above_average_multiplier <= 0:
            raise ValueError("Outlier multipliers must be positive")
        self.spike_stddev_multiplier = spike_stddev_multiplier
        self.above_average_multiplier = above_average_multiplier
        self.logger = structlog.get_logger()

    @staticmethod
    def _clean(values: Sequence[float]) -> np.ndarray:
        arr = np.asarray(values, dtype=float)
        return arr[~np.isnan(arr)]

    def spike_threshold(self, values: Sequence[float]) -> Optional[float]:
        """mean + k * population stddev, or None with fewer than 2 points."""
        arr = self._clean(values)
        if len(arr) < self.SPIKE_MIN_POINTS:
            return None
        mean = float(np.mean(arr))
        std = float(np.std(arr))
        return mean + self.spike_stddev_multiplier * std

    def above_average_threshold(self, values: Sequence[float]) -> Optional[float]:
        """mean * m, or None with no data points."""
        arr = self._clean(values)
        if len(arr) < self.ABOVE_AVERAGE_MIN_POINTS:
            return None
        return float(np.mean(arr)) * self.above_average_multiplier

    @staticmethod
    def _flags(values: Sequence[float], threshold: Optional[float]) -> list[bool]:
        if threshold is None:
            return [False] * len(values)
        arr = np.asarray(values, dtype=float)
        return [bool(flag) for flag in arr > threshold]

    def spike_flags(self, values: Sequence[float]) -> list[bool]:
        """Flag each value strictly above the spike threshold."""
        return self._flags(values, self.spike_threshold(values))

    def above_average_flags(self, values: Sequence[float]) -> list[bool]:
        """Flag each value strictly above the above-average threshold."""
        return self._flags(values, self.above_average_threshold(values))

    def flag_spikes(
        self, rows: Sequence[RowT], columns: Sequence[MetricColumn]
    ) -> list[RowT]:
        """
        Return copies of ``rows`` with ``<column>_is_spike`` set per column.

        Args:
            rows: Models exposing the metric columns as attributes
            columns: Columns to evaluate independently

        Returns:
            New row models; the inputs are not mutated
        """
        return self._apply(rows, columns, "is_spike", self.spike_flags)

    def flag_above_average(
        self, rows: Sequence[RowT], columns: Sequence[MetricColumn]
    ) -> list[RowT]:
        """Return copies of ``rows`` with ``<column>_is_above_average`` set."""
        return self._apply(rows, columns, "is_above_average", self.above_average_flags)

    def _apply(self, rows, columns, suffix, flagger) -> list:
        updates: list[dict[str, bool]] = [{} for _ in rows]
        flagged_counts = {}
        for column in columns:
            name = column.value
            flags = flagger([getattr(row, name) for row in rows])
            flagged_counts[name] = sum(flags)
            for update, flag in zip(updates, flags):
                update[f"{name}_{suffix}"] = flag

        self.logger.debug(
            "outliers_flagged",
            method=suffix,
            rows=len(rows),
            flagged=flagged_counts,
        )
        return [row.model_copy(update=update) for row, update in zip(rows, updates)]

    def get_column_stats(self, values: Sequence[float]) -> dict:
        """
        Summary statistics and both thresholds for one column.

        Useful for debugging and for explaining a flag in the UI.
        """
        arr = self._clean(values)
        if len(arr) == 0:
            return {
                "mean": 0.0,
                "std": 0.0,
                "count": 0,
                "spike_threshold": None,
                "above_average_threshold": None,
            }
        return {
            "mean": float(np.mean(arr)),
            "std": float(np.std(arr)),
            "count": int(len(arr)),
            "spike_threshold": self.spike_threshold(arr),
            "above_average_threshold": self.above_average_threshold(arr),
        }
