"""Pydantic domain models for the quality measure engine."""

from .classification import COUNTER_FIELDS, ClassificationDoc, ProviderPerformance
from .exclusion import ExclusionRecord
from .filters import NULL_TOKEN, FilterSpec
from .measure import MeasureDefinition, MeasureKey
from .result import MeasureResult

__all__ = [
    "COUNTER_FIELDS",
    "NULL_TOKEN",
    "ClassificationDoc",
    "ExclusionRecord",
    "FilterSpec",
    "MeasureDefinition",
    "MeasureKey",
    "MeasureResult",
    "ProviderPerformance",
]
