"""Unit tests for Aggregator group validation and result assembly."""

from unittest.mock import AsyncMock

import pytest

from qme.data_models import FilterSpec
from qme.evaluation import Aggregator
from qme.exceptions import AggregationError
from qme.storage import CounterTotals


@pytest.fixture
def patient_cache():
    repo = AsyncMock()
    repo.count.return_value = 0
    return repo


@pytest.fixture
def results():
    repo = AsyncMock()
    repo.add.side_effect = lambda result: result
    return repo


@pytest.fixture
def aggregator(patient_cache, results, measure_definition):
    measures = AsyncMock()
    measures.get.return_value = measure_definition
    return Aggregator(patient_cache, results, measures)


class TestAggregator:
    @pytest.mark.asyncio
    async def test_zero_groups_yields_zero_counters(
        self, aggregator, patient_cache, results, measure_key
    ):
        patient_cache.summarize.return_value = []

        result = await aggregator.count_records_in_measure_groups(measure_key)

        assert result.population == 0
        assert result.numerator == 0
        assert result.considered == 0
        results.add.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_more_than_one_group_is_an_error(
        self, aggregator, patient_cache, results, measure_key
    ):
        patient_cache.summarize.return_value = [CounterTotals(), CounterTotals()]

        with pytest.raises(AggregationError, match="got 2"):
            await aggregator.count_records_in_measure_groups(measure_key)

        results.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_manual_exclusions_added_to_exclusions(
        self, aggregator, patient_cache, measure_key
    ):
        patient_cache.summarize.return_value = [
            CounterTotals(population=2, denominator=2, numerator=1, exclusions=1, considered=2)
        ]
        patient_cache.count.return_value = 3

        result = await aggregator.count_records_in_measure_groups(measure_key)

        assert result.exclusions == 4
        assert result.considered == 2

    @pytest.mark.asyncio
    async def test_enriches_with_measure_definition(
        self, aggregator, patient_cache, measure_key, measure_definition
    ):
        patient_cache.summarize.return_value = []
        filters = FilterSpec(genders=["F"])

        result = await aggregator.count_records_in_measure_groups(measure_key, filters)

        assert result.nqf_id == "0043"
        assert result.population_ids == measure_definition.population_ids
        assert result.filters == filters
        assert result.key == measure_key

    @pytest.mark.asyncio
    async def test_execution_time_only_with_start_time(
        self, aggregator, patient_cache, measure_key
    ):
        patient_cache.summarize.return_value = []

        untimed = await aggregator.count_records_in_measure_groups(measure_key)
        timed = await aggregator.count_records_in_measure_groups(
            measure_key, start_time=0
        )

        assert untimed.execution_time is None
        assert timed.execution_time is not None
        assert timed.execution_time > 0
