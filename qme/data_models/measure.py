"""Measure identity and definition models."""

from pydantic import BaseModel, ConfigDict, Field


class MeasureKey(BaseModel):
    """Identifies one evaluation: a measure, an effective date and a test batch."""

    model_config = ConfigDict(frozen=True)

    measure_id: str = Field(..., min_length=1)
    sub_id: str | None = None
    effective_date: int
    test_batch: str | None = None


class MeasureDefinition(BaseModel):
    """Read-only view of a measure definition, used to enrich results."""

    id: str = Field(..., min_length=1)
    sub_id: str | None = None
    nqf_id: str | None = None
    name: str | None = None
    population_ids: dict[str, str] = Field(default_factory=dict)

    @property
    def display_id(self) -> str:
        """NQF identifier, or the measure id when the measure has none."""
        return self.nqf_id or self.id
