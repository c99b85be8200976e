"""
KPI models: user-authored goal expressions and their evaluation results.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import KpiResultType


class Kpi(BaseModel):
    """
    A user-defined goal metric.

    Attributes:
        id: KPI identifier
        kpi_name: Display name
        expression: Arithmetic/boolean formula over metric paths
            (e.g. ``note_data.views >= 1000``)
        target_value: Numeric target for number-valued expressions
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(description="KPI identifier")
    kpi_name: str = Field(alias="kpiName", description="Display name")
    expression: str = Field(description="Formula over aggregate metric paths")
    target_value: float = Field(default=0.0, alias="targetValue", description="Numeric target")

    @field_validator("target_value", mode="before")
    @classmethod
    def coerce_missing_target(cls, v):
        """A missing target behaves like the form default of 0."""
        return 0.0 if v is None else v


class KpiEvaluation(BaseModel):
    """
    Tagged result of evaluating one KPI.

    Exactly one of ``numeric_value``, ``boolean_value`` or ``error`` is set,
    according to ``result_type``. ``achieved`` is None for errors.

    Attributes:
        kpi_id: Source KPI id
        kpi_name: Source KPI name
        expression: Evaluated expression
        target_value: Target the numeric result is compared against
        result_type: number | boolean | error
        numeric_value: Result when result_type is number
        boolean_value: Result when result_type is boolean
        achieved: Number >= target, or the boolean itself
        error: Failure message when result_type is error
    """

    kpi_id: str
    kpi_name: str
    expression: str
    target_value: float
    result_type: KpiResultType
    numeric_value: Optional[float] = None
    boolean_value: Optional[bool] = None
    achieved: Optional[bool] = None
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.result_type == KpiResultType.ERROR


class KpiValidation(BaseModel):
    """Outcome of checking a KPI draft before it is saved."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    referenced_paths: list[str] = Field(default_factory=list)
