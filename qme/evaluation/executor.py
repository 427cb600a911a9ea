"""Classification orchestrator for one measure evaluation."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from qme.classifier import (
    ClassificationParams,
    Classifier,
    ClassifierOutcome,
    RecordSelector,
)
from qme.data_models import ClassificationDoc, FilterSpec, MeasureKey, MeasureResult
from qme.exceptions import ClassificationError
from qme.storage.sqlalchemy.repositories import (
    ManualExclusionRepository,
    PatientCacheRepository,
    QueryCacheRepository,
)

from .aggregator import Aggregator
from .overlay import ExclusionOverlay

if TYPE_CHECKING:
    from qme.storage.factory import RepositoryFactory
    from qme.storage.protocols import MeasureDefinitionLookup

logger = logging.getLogger(__name__)


class MeasureExecutor:
    """Classifies patient records into measure groups and totals them.

    One executor is bound to a measure, sub-measure, effective date and test
    batch. The clinical decisions are delegated to the classifier.
    """

    def __init__(
        self,
        key: MeasureKey,
        classifier: Classifier,
        patient_cache: PatientCacheRepository,
        exclusions: ManualExclusionRepository,
        results: QueryCacheRepository,
        measures: MeasureDefinitionLookup,
    ):
        self._key = key
        self._classifier = classifier
        self._patient_cache = patient_cache
        self._measures = measures
        self._overlay = ExclusionOverlay(exclusions, patient_cache)
        self._aggregator = Aggregator(patient_cache, results, measures)

    @classmethod
    def from_factory(
        cls,
        key: MeasureKey,
        classifier: Classifier,
        repositories: RepositoryFactory,
    ) -> MeasureExecutor:
        """Build an executor whose repositories share one session."""
        return cls(
            key=key,
            classifier=classifier,
            patient_cache=repositories.patient_cache,
            exclusions=repositories.manual_exclusions,
            results=repositories.query_cache,
            measures=repositories.measures,
        )

    @property
    def key(self) -> MeasureKey:
        return self._key

    async def classify_batch(self) -> int:
        """Classify every record of the test batch into the patient cache.

        Manual exclusions are applied afterwards. Returns the number of
        classifications written.
        """
        selector = RecordSelector(test_batch=self._key.test_batch)
        docs = await self._run_classifier(selector)

        written = await self._patient_cache.upsert_many(docs)
        logger.info(
            "Classified %d records for measure=%s%s test_batch=%s",
            written, self._key.measure_id, self._key.sub_id or "", self._key.test_batch,
        )
        await self.apply_manual_exclusions()
        return written

    async def classify_patient(self, patient_id: str) -> int:
        """Classify one patient's record into the patient cache.

        Manual exclusions for the measure are re-applied afterwards.
        """
        selector = RecordSelector(test_batch=self._key.test_batch, patient_id=patient_id)
        docs = await self._run_classifier(selector)

        written = await self._patient_cache.upsert_many(docs)
        logger.info(
            "Classified patient=%s for measure=%s%s (%d written)",
            patient_id, self._key.measure_id, self._key.sub_id or "", written,
        )
        await self.apply_manual_exclusions()
        return written

    async def evaluate_patient(self, patient_id: str) -> ClassificationDoc | None:
        """Classify one patient without touching the cache.

        Manual exclusions are not applied. Returns None when the classifier
        produced no classification for the patient.
        """
        selector = RecordSelector(test_batch=self._key.test_batch, patient_id=patient_id)
        docs = await self._run_classifier(selector)
        doc = next((doc for doc in docs if doc.patient_id == patient_id), None)
        if doc is None:
            logger.debug("No classification produced for patient=%s", patient_id)
        return doc

    async def apply_manual_exclusions(self) -> int:
        """Flag cached classifications of manually excluded patients."""
        return await self._overlay.apply(self._key.measure_id, self._key.sub_id)

    async def count_records(
        self,
        filters: FilterSpec | None = None,
        start_time: int | float | datetime | None = None,
    ) -> MeasureResult:
        """Total the cached classifications and store the result."""
        return await self._aggregator.count_records_in_measure_groups(
            self._key, filters=filters, start_time=start_time
        )

    async def _run_classifier(self, selector: RecordSelector) -> list[ClassificationDoc]:
        definition = await self._measures.get(self._key.measure_id, self._key.sub_id)
        params = ClassificationParams(
            effective_date=self._key.effective_date,
            test_batch=self._key.test_batch,
        )

        outcome: ClassifierOutcome = await self._classifier.classify(
            definition, params, selector
        )
        if not outcome.ok:
            logger.error(
                "Classifier failed for measure=%s%s: %s",
                self._key.measure_id, self._key.sub_id or "", outcome.error,
            )
            raise ClassificationError(
                outcome.error,
                measure_id=self._key.measure_id,
                sub_id=self._key.sub_id,
            )

        return [doc.for_key(self._key) for doc in outcome.documents]
