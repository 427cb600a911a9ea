"""Manual exclusion domain model."""

from datetime import datetime

from pydantic import BaseModel


class ExclusionRecord(BaseModel):
    """An administrative decision to exclude a patient from a measure."""

    measure_id: str
    sub_id: str | None = None
    patient_id: str
    rationale: str | None = None
    excluded_by: str | None = None
    created_at: datetime | None = None
