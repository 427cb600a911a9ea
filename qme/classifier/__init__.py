"""Classifier contract consumed by the classification orchestrator."""

from .protocol import (
    ClassificationParams,
    Classifier,
    ClassifierOutcome,
    RecordSelector,
)

__all__ = [
    "ClassificationParams",
    "Classifier",
    "ClassifierOutcome",
    "RecordSelector",
]
