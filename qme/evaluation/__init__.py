"""Measure evaluation: classification, exclusion overlay and aggregation."""

from .aggregator import Aggregator
from .executor import MeasureExecutor
from .filters import (
    base_key_conditions,
    build_filter_conditions,
    manually_excluded,
    not_manually_excluded,
)
from .overlay import ExclusionOverlay
from .report import QualityReport
from .session import open_executor, open_report

__all__ = [
    "Aggregator",
    "ExclusionOverlay",
    "MeasureExecutor",
    "QualityReport",
    "base_key_conditions",
    "build_filter_conditions",
    "manually_excluded",
    "not_manually_excluded",
    "open_executor",
    "open_report",
]
