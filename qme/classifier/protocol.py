"""Classifier protocol definition.

The classifier holds the measure-specific clinical logic. The engine only
consumes its output.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from qme.data_models import ClassificationDoc, MeasureDefinition


@dataclass(frozen=True)
class ClassificationParams:
    """Parameters passed to the classifier for one evaluation."""

    effective_date: int
    test_batch: str | None = None


@dataclass(frozen=True)
class RecordSelector:
    """Narrows classification to a test batch, optionally a single patient."""

    test_batch: str | None = None
    patient_id: str | None = None


@dataclass
class ClassifierOutcome:
    """Result of a classifier run: documents on success, an error payload otherwise."""

    ok: bool
    documents: list[ClassificationDoc] = field(default_factory=list)
    error: Any = None

    @classmethod
    def success(cls, documents: list[ClassificationDoc]) -> "ClassifierOutcome":
        return cls(ok=True, documents=documents)

    @classmethod
    def failure(cls, error: Any) -> "ClassifierOutcome":
        return cls(ok=False, error=error)


@runtime_checkable
class Classifier(Protocol):
    """Protocol for measure classifiers."""

    async def classify(
        self,
        definition: MeasureDefinition,
        params: ClassificationParams,
        selector: RecordSelector,
    ) -> ClassifierOutcome:
        """Classify the selected patient records for a measure.

        Parameters
        ----------
        definition
            Measure being evaluated.
        params
            Effective date and test batch of the evaluation.
        selector
            Records to classify: the whole test batch or one patient.

        Returns
        -------
        ClassifierOutcome
            One document per selected patient, or the failure payload.
        """
        ...
