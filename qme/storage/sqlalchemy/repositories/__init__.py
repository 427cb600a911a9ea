"""SQLAlchemy repositories for the measure engine."""

from .manual_exclusion import ManualExclusionRepository
from .measure import MeasureRepository
from .patient_cache import CounterTotals, PatientCacheRepository, key_conditions
from .query_cache import QueryCacheRepository

__all__ = [
    "CounterTotals",
    "ManualExclusionRepository",
    "MeasureRepository",
    "PatientCacheRepository",
    "QueryCacheRepository",
    "key_conditions",
]
