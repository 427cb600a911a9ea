"""SQLAlchemy persistence layer for the measure engine."""

from .base import Base
from .engine import dispose_engine, get_engine, get_session_context, get_session_maker
from .repositories import (
    CounterTotals,
    ManualExclusionRepository,
    MeasureRepository,
    PatientCacheRepository,
    QueryCacheRepository,
    key_conditions,
)
from .tables import (
    ManualExclusionTable,
    MeasureTable,
    PatientCacheTable,
    PatientLanguageTable,
    ProviderPerformanceTable,
    QueryCacheTable,
)

__all__ = [
    # Engine
    "get_engine",
    "dispose_engine",
    "get_session_context",
    "get_session_maker",
    # Tables
    "Base",
    "ManualExclusionTable",
    "MeasureTable",
    "PatientCacheTable",
    "PatientLanguageTable",
    "ProviderPerformanceTable",
    "QueryCacheTable",
    # Repositories
    "CounterTotals",
    "ManualExclusionRepository",
    "MeasureRepository",
    "PatientCacheRepository",
    "QueryCacheRepository",
    "key_conditions",
]
