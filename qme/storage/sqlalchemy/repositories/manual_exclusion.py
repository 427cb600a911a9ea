import logging
from collections.abc import AsyncIterator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qme.data_models import ExclusionRecord
from qme.storage.sqlalchemy.tables import ManualExclusionTable
from qme.time import utc_now

from ._utils import equals_or_null, storage_errors

logger = logging.getLogger(__name__)


class ManualExclusionRepository:
    """Repository for the manual exclusion registry."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, record: ExclusionRecord) -> ExclusionRecord:
        """Register an exclusion; an existing one for the same patient is kept."""
        stmt = select(ManualExclusionTable).where(
            ManualExclusionTable.measure_id == record.measure_id,
            equals_or_null(ManualExclusionTable.sub_id, record.sub_id),
            ManualExclusionTable.patient_id == record.patient_id,
        )
        async with storage_errors(
            self._session, "manual_exclusions.add", patient_id=record.patient_id
        ):
            existing = (await self._session.execute(stmt)).scalars().first()
            if existing is not None:
                return self._to_domain(existing)

            model = ManualExclusionTable(
                measure_id=record.measure_id,
                sub_id=record.sub_id,
                patient_id=record.patient_id,
                rationale=record.rationale,
                excluded_by=record.excluded_by,
                created_at=record.created_at or utc_now(),
            )
            self._session.add(model)
            await self._session.commit()

        logger.info(
            "Registered manual exclusion: measure=%s%s patient=%s",
            record.measure_id, record.sub_id or "", record.patient_id,
        )
        return self._to_domain(model)

    async def scan(
        self, measure_id: str, sub_id: str | None
    ) -> AsyncIterator[ExclusionRecord]:
        """Yield the exclusions registered for a measure/sub-measure."""
        stmt = (
            select(ManualExclusionTable)
            .where(
                ManualExclusionTable.measure_id == measure_id,
                equals_or_null(ManualExclusionTable.sub_id, sub_id),
            )
            .order_by(ManualExclusionTable.id)
        )
        async with storage_errors(
            self._session, "manual_exclusions.scan", measure_id=measure_id
        ):
            result = await self._session.execute(stmt)
            models = result.scalars().all()

        for model in models:
            yield self._to_domain(model)

    async def find_by_measure(
        self, measure_id: str, sub_id: str | None
    ) -> list[ExclusionRecord]:
        """Get the exclusions registered for a measure/sub-measure."""
        return [record async for record in self.scan(measure_id, sub_id)]

    def _to_domain(self, model: ManualExclusionTable) -> ExclusionRecord:
        return ExclusionRecord(
            measure_id=model.measure_id,
            sub_id=model.sub_id,
            patient_id=model.patient_id,
            rationale=model.rationale,
            excluded_by=model.excluded_by,
            created_at=model.created_at,
        )
