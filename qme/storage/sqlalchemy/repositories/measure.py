import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qme.data_models import MeasureDefinition
from qme.exceptions import MeasureNotFoundError
from qme.storage.sqlalchemy.tables import MeasureTable

from ._utils import equals_or_null, storage_errors

logger = logging.getLogger(__name__)


class MeasureRepository:
    """Repository for measure definitions. Implements MeasureDefinitionLookup."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def save(self, definition: MeasureDefinition) -> None:
        """Save or update a measure definition."""
        async with storage_errors(
            self._session, "measures.save", measure_id=definition.id
        ):
            existing = await self._find_model(definition.id, definition.sub_id)
            if existing is not None:
                existing.nqf_id = definition.nqf_id
                existing.name = definition.name
                existing.population_ids = dict(definition.population_ids)
            else:
                self._session.add(
                    MeasureTable(
                        measure_id=definition.id,
                        sub_id=definition.sub_id,
                        nqf_id=definition.nqf_id,
                        name=definition.name,
                        population_ids=dict(definition.population_ids),
                    )
                )
            await self._session.commit()

    async def find(self, measure_id: str, sub_id: str | None) -> MeasureDefinition | None:
        """Find a measure definition, None if missing."""
        async with storage_errors(
            self._session, "measures.find", measure_id=measure_id
        ):
            model = await self._find_model(measure_id, sub_id)
        if model is None:
            return None
        return self._to_domain(model)

    async def get(self, measure_id: str, sub_id: str | None) -> MeasureDefinition:
        """Get a measure definition.

        Raises
        ------
        MeasureNotFoundError
            If no definition exists for the measure/sub-measure.
        """
        definition = await self.find(measure_id, sub_id)
        if definition is None:
            raise MeasureNotFoundError(measure_id, sub_id)
        return definition

    async def find_all(self) -> list[MeasureDefinition]:
        stmt = select(MeasureTable).order_by(MeasureTable.measure_id, MeasureTable.sub_id)
        async with storage_errors(self._session, "measures.find_all"):
            result = await self._session.execute(stmt)
            models = result.scalars().all()
        return [self._to_domain(model) for model in models]

    async def _find_model(self, measure_id: str, sub_id: str | None) -> MeasureTable | None:
        stmt = select(MeasureTable).where(
            MeasureTable.measure_id == measure_id,
            equals_or_null(MeasureTable.sub_id, sub_id),
        )
        result = await self._session.execute(stmt)
        return result.scalars().first()

    def _to_domain(self, model: MeasureTable) -> MeasureDefinition:
        return MeasureDefinition(
            id=model.measure_id,
            sub_id=model.sub_id,
            nqf_id=model.nqf_id,
            name=model.name,
            population_ids=model.population_ids or {},
        )
