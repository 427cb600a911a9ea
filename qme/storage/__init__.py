"""Engine storage layer.

This module provides:
- `sqlalchemy`: persistence layer (tables, repositories, engine)
- `RepositoryFactory`: builds all repositories from one session

Note: Domain models are in `qme.data_models`.
"""

from .factory import RepositoryFactory
from .protocols import MeasureDefinitionLookup
from .sqlalchemy import (
    Base,
    CounterTotals,
    ManualExclusionRepository,
    MeasureRepository,
    PatientCacheRepository,
    QueryCacheRepository,
    get_engine,
    dispose_engine,
    get_session_context,
    get_session_maker,
)

__all__ = [
    "Base",
    "get_engine",
    "dispose_engine",
    "get_session_context",
    "get_session_maker",
    "CounterTotals",
    "ManualExclusionRepository",
    "MeasureDefinitionLookup",
    "MeasureRepository",
    "PatientCacheRepository",
    "QueryCacheRepository",
    "RepositoryFactory",
]
