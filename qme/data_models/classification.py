"""Cached per-patient classification domain model."""

from pydantic import BaseModel, Field

from .measure import MeasureKey

COUNTER_FIELDS = (
    "population",
    "denominator",
    "numerator",
    "antinumerator",
    "exclusions",
    "denexcep",
)


class ProviderPerformance(BaseModel):
    """A provider attributed to the patient within the measurement period."""

    provider_id: str | None = None
    start_date: int | None = None
    end_date: int | None = None


class ClassificationDoc(BaseModel):
    """Measure-group membership of one patient for one measure evaluation.

    Counters are 0 or 1 per document and are summed at aggregation time.
    ``manual_exclusion`` is None until the exclusion overlay sets it.
    """

    measure_id: str
    sub_id: str | None = None
    effective_date: int
    test_batch: str | None = None
    patient_id: str

    population: int = Field(default=0, ge=0, le=1)
    denominator: int = Field(default=0, ge=0, le=1)
    numerator: int = Field(default=0, ge=0, le=1)
    antinumerator: int = Field(default=0, ge=0, le=1)
    exclusions: int = Field(default=0, ge=0, le=1)
    denexcep: int = Field(default=0, ge=0, le=1)

    provider_performances: list[ProviderPerformance] = Field(default_factory=list)
    race_code: str | None = None
    ethnicity_code: str | None = None
    gender: str | None = None
    languages: list[str] = Field(default_factory=list)

    manual_exclusion: bool | None = None

    @property
    def key(self) -> MeasureKey:
        return MeasureKey(
            measure_id=self.measure_id,
            sub_id=self.sub_id,
            effective_date=self.effective_date,
            test_batch=self.test_batch,
        )

    @property
    def is_manually_excluded(self) -> bool:
        return self.manual_exclusion is True

    def for_key(self, key: MeasureKey) -> "ClassificationDoc":
        """Return a copy stamped with the identity fields of ``key``."""
        return self.model_copy(
            update={
                "measure_id": key.measure_id,
                "sub_id": key.sub_id,
                "effective_date": key.effective_date,
                "test_batch": key.test_batch,
            }
        )
