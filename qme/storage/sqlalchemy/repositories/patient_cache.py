import logging
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass

from sqlalchemy import ColumnElement, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from qme.data_models import (
    COUNTER_FIELDS,
    ClassificationDoc,
    MeasureKey,
    ProviderPerformance,
)
from qme.storage.sqlalchemy.tables import (
    PatientCacheTable,
    PatientLanguageTable,
    ProviderPerformanceTable,
)

from ._utils import equals_or_null, storage_errors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CounterTotals:
    """Summed measure-group counters of one aggregation group."""

    population: int = 0
    denominator: int = 0
    numerator: int = 0
    antinumerator: int = 0
    exclusions: int = 0
    denexcep: int = 0
    considered: int = 0


def key_conditions(key: MeasureKey) -> list[ColumnElement[bool]]:
    """Equality conditions on the four key columns of the patient cache."""
    return [
        PatientCacheTable.measure_id == key.measure_id,
        equals_or_null(PatientCacheTable.sub_id, key.sub_id),
        PatientCacheTable.effective_date == key.effective_date,
        equals_or_null(PatientCacheTable.test_batch, key.test_batch),
    ]


class PatientCacheRepository:
    """Repository for cached per-patient classifications."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def upsert(self, doc: ClassificationDoc) -> None:
        """Insert or fully replace one classification."""
        await self.upsert_many([doc])

    async def upsert_many(self, docs: Iterable[ClassificationDoc]) -> int:
        """Insert or fully replace classifications, one row per patient and key."""
        by_key: dict[MeasureKey, dict[str, ClassificationDoc]] = {}
        for doc in docs:
            # Later documents for the same patient win
            by_key.setdefault(doc.key, {})[doc.patient_id] = doc

        written = 0
        async with storage_errors(self._session, "patient_cache.upsert"):
            for key, docs_by_patient in by_key.items():
                existing = await self._find_models(key, list(docs_by_patient))
                for patient_id, doc in docs_by_patient.items():
                    model = existing.get(patient_id)
                    if model is not None:
                        self._update_model(model, doc)
                        logger.debug("Replaced cached classification: %s", patient_id)
                    else:
                        self._session.add(self._to_model(doc))
                    written += 1
            await self._session.commit()

        logger.debug("Wrote %d cached classifications", written)
        return written

    async def find(self, key: MeasureKey, patient_id: str) -> ClassificationDoc | None:
        """Get the cached classification of one patient."""
        async with storage_errors(
            self._session, "patient_cache.find", patient_id=patient_id
        ):
            models = await self._find_models(key, [patient_id])
        model = models.get(patient_id)
        return self._to_domain(model) if model is not None else None

    async def scan(
        self, *conditions: ColumnElement[bool]
    ) -> AsyncIterator[ClassificationDoc]:
        """Yield cached classifications matching all conditions."""
        stmt = (
            select(PatientCacheTable)
            .where(*conditions)
            .order_by(PatientCacheTable.patient_id)
        )
        async with storage_errors(self._session, "patient_cache.scan"):
            result = await self._session.execute(stmt)
            models = result.scalars().all()

        for model in models:
            yield self._to_domain(model)

    async def find_by_key(self, key: MeasureKey) -> list[ClassificationDoc]:
        """Get all cached classifications for a measure evaluation."""
        return [doc async for doc in self.scan(*key_conditions(key))]

    async def summarize(self, *conditions: ColumnElement[bool]) -> list[CounterTotals]:
        """Sum the counters of matching rows, one entry per measure id group."""
        sums = [
            func.coalesce(func.sum(getattr(PatientCacheTable, name)), 0).label(name)
            for name in COUNTER_FIELDS
        ]
        stmt = (
            select(
                PatientCacheTable.measure_id,
                *sums,
                func.count(PatientCacheTable.id).label("considered"),
            )
            .where(*conditions)
            .group_by(PatientCacheTable.measure_id)
        )
        async with storage_errors(self._session, "patient_cache.summarize"):
            rows = (await self._session.execute(stmt)).all()

        return [
            CounterTotals(
                **{name: int(getattr(row, name)) for name in COUNTER_FIELDS},
                considered=int(row.considered),
            )
            for row in rows
        ]

    async def count(self, *conditions: ColumnElement[bool]) -> int:
        """Count cached classifications matching all conditions."""
        stmt = select(func.count()).select_from(PatientCacheTable).where(*conditions)
        async with storage_errors(self._session, "patient_cache.count"):
            result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def exists(self, key: MeasureKey) -> bool:
        """Whether any classification is cached for the key."""
        stmt = select(PatientCacheTable.id).where(*key_conditions(key)).limit(1)
        async with storage_errors(self._session, "patient_cache.exists"):
            result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def mark_manually_excluded(
        self,
        measure_id: str,
        sub_id: str | None,
        patient_ids: Iterable[str],
    ) -> int:
        """Set manual_exclusion on every cached row of the measure for the patients.

        Applies across all effective dates and test batches. Returns the
        number of rows matched.
        """
        ids = sorted(set(patient_ids))
        if not ids:
            return 0

        stmt = (
            update(PatientCacheTable)
            .where(
                PatientCacheTable.measure_id == measure_id,
                equals_or_null(PatientCacheTable.sub_id, sub_id),
                PatientCacheTable.patient_id.in_(ids),
            )
            .values(manual_exclusion=True)
            .execution_options(synchronize_session="fetch")
        )
        async with storage_errors(
            self._session, "patient_cache.mark_manually_excluded", measure_id=measure_id
        ):
            result = await self._session.execute(stmt)
            await self._session.commit()
        return result.rowcount or 0

    async def _find_models(
        self, key: MeasureKey, patient_ids: list[str]
    ) -> dict[str, PatientCacheTable]:
        stmt = select(PatientCacheTable).where(
            *key_conditions(key),
            PatientCacheTable.patient_id.in_(patient_ids),
        )
        result = await self._session.execute(stmt)
        return {model.patient_id: model for model in result.scalars().all()}

    def _to_model(self, doc: ClassificationDoc) -> PatientCacheTable:
        model = PatientCacheTable(
            measure_id=doc.measure_id,
            sub_id=doc.sub_id,
            effective_date=doc.effective_date,
            test_batch=doc.test_batch,
            patient_id=doc.patient_id,
        )
        self._update_model(model, doc)
        return model

    def _update_model(self, model: PatientCacheTable, doc: ClassificationDoc) -> None:
        for name in COUNTER_FIELDS:
            setattr(model, name, getattr(doc, name))
        model.race_code = doc.race_code
        model.ethnicity_code = doc.ethnicity_code
        model.gender = doc.gender
        model.manual_exclusion = doc.manual_exclusion
        model.provider_performances = [
            ProviderPerformanceTable(
                position=position,
                provider_id=performance.provider_id,
                start_date=performance.start_date,
                end_date=performance.end_date,
            )
            for position, performance in enumerate(doc.provider_performances)
        ]
        model.languages = [
            PatientLanguageTable(position=position, tag=tag)
            for position, tag in enumerate(doc.languages)
        ]

    def _to_domain(self, model: PatientCacheTable) -> ClassificationDoc:
        return ClassificationDoc(
            measure_id=model.measure_id,
            sub_id=model.sub_id,
            effective_date=model.effective_date,
            test_batch=model.test_batch,
            patient_id=model.patient_id,
            **{name: getattr(model, name) for name in COUNTER_FIELDS},
            provider_performances=[
                ProviderPerformance(
                    provider_id=row.provider_id,
                    start_date=row.start_date,
                    end_date=row.end_date,
                )
                for row in model.provider_performances
            ],
            race_code=model.race_code,
            ethnicity_code=model.ethnicity_code,
            gender=model.gender,
            languages=[row.tag for row in model.languages],
            manual_exclusion=model.manual_exclusion,
        )
