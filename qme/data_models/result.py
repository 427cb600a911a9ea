"""Aggregated measure result model."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .filters import FilterSpec
from .measure import MeasureKey


class MeasureResult(BaseModel):
    """Measure-group totals for one key and filter set. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    measure_id: str
    sub_id: str | None = None
    nqf_id: str
    population_ids: dict[str, str] = Field(default_factory=dict)
    effective_date: int
    test_batch: str | None = None
    filters: FilterSpec | None = None

    population: int = 0
    denominator: int = 0
    numerator: int = 0
    antinumerator: int = 0
    exclusions: int = 0
    denexcep: int = 0
    considered: int = 0

    # Seconds between the caller's start timestamp and completion
    execution_time: int | None = None
    created_at: datetime | None = None

    @property
    def key(self) -> MeasureKey:
        return MeasureKey(
            measure_id=self.measure_id,
            sub_id=self.sub_id,
            effective_date=self.effective_date,
            test_batch=self.test_batch,
        )
