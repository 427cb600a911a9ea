"""Classifier double for tests."""

from qme.classifier import ClassificationParams, ClassifierOutcome, RecordSelector
from qme.data_models import ClassificationDoc, MeasureDefinition


class StubClassifier:
    """Classifier returning canned documents or a failure payload."""

    def __init__(
        self,
        documents: list[ClassificationDoc] | None = None,
        error: object = None,
    ):
        self.documents = documents or []
        self.error = error
        self.calls: list[tuple[MeasureDefinition, ClassificationParams, RecordSelector]] = []

    async def classify(
        self,
        definition: MeasureDefinition,
        params: ClassificationParams,
        selector: RecordSelector,
    ) -> ClassifierOutcome:
        self.calls.append((definition, params, selector))
        if self.error is not None:
            return ClassifierOutcome.failure(self.error)
        docs = [
            doc
            for doc in self.documents
            if selector.patient_id is None or doc.patient_id == selector.patient_id
        ]
        return ClassifierOutcome.success(docs)
