import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qme.data_models import FilterSpec, MeasureKey, MeasureResult
from qme.storage.sqlalchemy.tables import QueryCacheTable
from qme.time import utc_now

from ._utils import equals_or_null, storage_errors

logger = logging.getLogger(__name__)


def _filters_payload(filters: FilterSpec | None) -> dict | None:
    if filters is None:
        return None
    return filters.model_dump()


def _same_filters(stored: FilterSpec | None, requested: FilterSpec | None) -> bool:
    """Compare filters, treating absent and all-empty filters as equal."""
    return (stored or FilterSpec()) == (requested or FilterSpec())


class QueryCacheRepository:
    """Append-only repository for aggregated measure results."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def add(self, result: MeasureResult) -> MeasureResult:
        """Persist a result. Committed before returning."""
        created_at = result.created_at or utc_now()
        model = QueryCacheTable(
            measure_id=result.measure_id,
            sub_id=result.sub_id,
            nqf_id=result.nqf_id,
            population_ids=dict(result.population_ids),
            effective_date=result.effective_date,
            test_batch=result.test_batch,
            filters=_filters_payload(result.filters),
            population=result.population,
            denominator=result.denominator,
            numerator=result.numerator,
            antinumerator=result.antinumerator,
            exclusions=result.exclusions,
            denexcep=result.denexcep,
            considered=result.considered,
            execution_time=result.execution_time,
            created_at=created_at,
        )
        async with storage_errors(
            self._session, "query_cache.add", measure_id=result.measure_id
        ):
            self._session.add(model)
            await self._session.commit()

        logger.debug("Stored result for measure=%s%s", result.measure_id, result.sub_id or "")
        return result.model_copy(update={"created_at": created_at})

    async def find_all(self, key: MeasureKey) -> list[MeasureResult]:
        """Get all stored results for a key, newest first."""
        stmt = (
            select(QueryCacheTable)
            .where(
                QueryCacheTable.measure_id == key.measure_id,
                equals_or_null(QueryCacheTable.sub_id, key.sub_id),
                QueryCacheTable.effective_date == key.effective_date,
                equals_or_null(QueryCacheTable.test_batch, key.test_batch),
            )
            .order_by(QueryCacheTable.id.desc())
        )
        async with storage_errors(
            self._session, "query_cache.find_all", measure_id=key.measure_id
        ):
            result = await self._session.execute(stmt)
            models = result.scalars().all()

        return [self._to_domain(model) for model in models]

    async def find_latest(
        self, key: MeasureKey, filters: FilterSpec | None = None
    ) -> MeasureResult | None:
        """Get the newest stored result for a key and filter set."""
        for stored in await self.find_all(key):
            if _same_filters(stored.filters, filters):
                return stored
        return None

    def _to_domain(self, model: QueryCacheTable) -> MeasureResult:
        return MeasureResult(
            measure_id=model.measure_id,
            sub_id=model.sub_id,
            nqf_id=model.nqf_id,
            population_ids=model.population_ids or {},
            effective_date=model.effective_date,
            test_batch=model.test_batch,
            filters=(
                FilterSpec.model_validate(model.filters)
                if model.filters is not None
                else None
            ),
            population=model.population,
            denominator=model.denominator,
            numerator=model.numerator,
            antinumerator=model.antinumerator,
            exclusions=model.exclusions,
            denexcep=model.denexcep,
            considered=model.considered,
            execution_time=model.execution_time,
            created_at=model.created_at,
        )
