"""Quality report: cached results in front of a measure executor."""

import logging
from datetime import datetime

from qme.data_models import FilterSpec, MeasureResult
from qme.storage.sqlalchemy.repositories import PatientCacheRepository, QueryCacheRepository

from .executor import MeasureExecutor

logger = logging.getLogger(__name__)


class QualityReport:
    """Answers "what are the totals for this measure?" from stored results.

    Classification and aggregation only run when asked to calculate.
    """

    def __init__(
        self,
        executor: MeasureExecutor,
        patient_cache: PatientCacheRepository,
        results: QueryCacheRepository,
    ):
        self._executor = executor
        self._patient_cache = patient_cache
        self._results = results

    async def patients_cached(self) -> bool:
        """Whether classifications are cached for the executor's key."""
        return await self._patient_cache.exists(self._executor.key)

    async def is_calculated(self, filters: FilterSpec | None = None) -> bool:
        """Whether a result is stored for the key and filters."""
        return await self.result(filters) is not None

    async def result(self, filters: FilterSpec | None = None) -> MeasureResult | None:
        """Newest stored result for the key and filters."""
        return await self._results.find_latest(self._executor.key, filters)

    async def calculate(
        self,
        filters: FilterSpec | None = None,
        start_time: int | float | datetime | None = None,
        reclassify: bool = False,
    ) -> MeasureResult:
        """Classify (unless already cached), then aggregate and store a result."""
        if reclassify or not await self.patients_cached():
            await self._executor.classify_batch()
        else:
            logger.debug(
                "Using cached classifications for measure=%s",
                self._executor.key.measure_id,
            )
            await self._executor.apply_manual_exclusions()

        return await self._executor.count_records(filters=filters, start_time=start_time)
