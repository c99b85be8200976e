"""
Article insights rollup engine.

This package contains the analytical components behind the dashboard:

- Snapshot access: point-in-time lookups with confirmed-over-preliminary precedence
- Filtering: two independent classification axes
- Time series: forward-filled daily totals with spike flags
- Deltas: per-article period change and the top performer
- Categories: latest-value totals, secondary counts and like rates
- Funnel: announce -> attract -> induce -> propose -> sell with conversion rates
- KPIs: recursive-descent expression parser and tagged evaluation
- Inventory: latest values per article for the data management table

All engine components are pure and synchronous: inputs are never mutated and
every derived row is a new model instance.
"""

__version__ = "1.0.0"

__all__ = [
    "ArticleDeltaCalculator",
    "CategoryAggregator",
    "DashboardRollupEngine",
    "FunnelCalculator",
    "OutlierDetector",
    "TimeSeriesReconstructor",
    "build_inventory",
    "filter_articles",
]

from api.engine.categories import CategoryAggregator
from api.engine.deltas import ArticleDeltaCalculator
from api.engine.filters import filter_articles
from api.engine.funnel import FunnelCalculator
from api.engine.inventory import build_inventory
from api.engine.outliers import OutlierDetector
from api.engine.rollup import DashboardRollupEngine
from api.engine.timeseries import TimeSeriesReconstructor
