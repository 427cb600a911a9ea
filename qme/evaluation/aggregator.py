"""Aggregation of cached classifications into measure results."""

import logging
from datetime import datetime

from qme.data_models import FilterSpec, MeasureKey, MeasureResult
from qme.exceptions import AggregationError
from qme.storage.protocols import MeasureDefinitionLookup
from qme.storage.sqlalchemy.repositories import (
    CounterTotals,
    PatientCacheRepository,
    QueryCacheRepository,
)
from qme.time import epoch_now, to_epoch

from .filters import (
    base_key_conditions,
    build_filter_conditions,
    manually_excluded,
    not_manually_excluded,
)

logger = logging.getLogger(__name__)


class Aggregator:
    """Sums cached classifications under a filter and persists the result."""

    def __init__(
        self,
        patient_cache: PatientCacheRepository,
        results: QueryCacheRepository,
        measures: MeasureDefinitionLookup,
    ):
        self._patient_cache = patient_cache
        self._results = results
        self._measures = measures

    async def count_records_in_measure_groups(
        self,
        key: MeasureKey,
        filters: FilterSpec | None = None,
        start_time: int | float | datetime | None = None,
    ) -> MeasureResult:
        """Total the measure groups of all cached classifications for ``key``.

        Manually excluded patients are left out of the sums and counted as
        exclusions instead. The result is stored before it is returned.

        Parameters
        ----------
        key
            Measure, effective date and test batch to aggregate.
        filters
            Optional demographic/provider filters.
        start_time
            When given, ``execution_time`` is the seconds elapsed since it.

        Raises
        ------
        AggregationError
            If the grouped sum yields more than one group.
        """
        definition = await self._measures.get(key.measure_id, key.sub_id)

        scope = [*base_key_conditions(key), *build_filter_conditions(filters)]

        groups = await self._patient_cache.summarize(*scope, not_manually_excluded())
        totals = self._single_group(key, groups)

        manual_exclusions = await self._patient_cache.count(*scope, manually_excluded())

        result = MeasureResult(
            measure_id=key.measure_id,
            sub_id=key.sub_id,
            nqf_id=definition.display_id,
            population_ids=definition.population_ids,
            effective_date=key.effective_date,
            test_batch=key.test_batch,
            filters=filters,
            population=totals.population,
            denominator=totals.denominator,
            numerator=totals.numerator,
            antinumerator=totals.antinumerator,
            exclusions=totals.exclusions + manual_exclusions,
            denexcep=totals.denexcep,
            considered=totals.considered,
            execution_time=(
                epoch_now() - to_epoch(start_time) if start_time is not None else None
            ),
        )

        stored = await self._results.add(result)
        logger.info(
            "Aggregated measure=%s%s effective_date=%d test_batch=%s: "
            "population=%d denominator=%d numerator=%d exclusions=%d considered=%d",
            key.measure_id, key.sub_id or "", key.effective_date, key.test_batch,
            stored.population, stored.denominator, stored.numerator,
            stored.exclusions, stored.considered,
        )
        return stored

    def _single_group(self, key: MeasureKey, groups: list[CounterTotals]) -> CounterTotals:
        if not groups:
            logger.debug("No cached classifications for measure=%s", key.measure_id)
            return CounterTotals()
        if len(groups) != 1:
            raise AggregationError(
                f"Expected one group from patient cache aggregation, got {len(groups)}",
                details={"measure_id": key.measure_id, "sub_id": key.sub_id},
            )
        return groups[0]
