"""End-to-end measure evaluation against SQLite."""

import pytest

from qme.data_models import NULL_TOKEN, ExclusionRecord, FilterSpec, ProviderPerformance
from qme.evaluation import MeasureExecutor, QualityReport
from qme.exceptions import MeasureNotFoundError, StorageError
from qme.storage import PatientCacheRepository
from tests.shared.classifier import StubClassifier


@pytest.fixture
def three_patients(make_doc):
    return [
        make_doc("p1", population=1, denominator=1, numerator=1, gender="F"),
        make_doc("p2", population=1, denominator=1, numerator=1, gender="M"),
        make_doc("p3", population=1, denominator=1, numerator=0, gender="F"),
    ]


@pytest.fixture
def classifier(three_patients):
    return StubClassifier(three_patients)


@pytest.fixture
def executor(measure_key, classifier, repositories, stored_measure):
    return MeasureExecutor.from_factory(measure_key, classifier, repositories)


def _comparable(result):
    # SQLite drops the timezone of stored timestamps
    return result.model_dump(exclude={"created_at"})


@pytest.fixture
def report(executor, repositories):
    return QualityReport(executor, repositories.patient_cache, repositories.query_cache)


class TestMeasureEvaluation:
    """Classify, overlay and aggregate."""

    @pytest.mark.asyncio
    async def test_counts_cached_classifications(self, executor):
        await executor.classify_batch()

        result = await executor.count_records()

        assert result.population == 3
        assert result.denominator == 3
        assert result.numerator == 2
        assert result.exclusions == 0
        assert result.considered == 3
        assert result.nqf_id == "0043"

    @pytest.mark.asyncio
    async def test_manual_exclusion_moves_patient_to_exclusions(
        self, executor, repositories
    ):
        await repositories.manual_exclusions.add(ExclusionRecord(measure_id="X", patient_id="p3"))
        await executor.classify_batch()

        result = await executor.count_records()

        assert result.population == 2
        assert result.denominator == 2
        assert result.numerator == 2
        assert result.exclusions == 1
        assert result.considered == 2

    @pytest.mark.asyncio
    async def test_exclusion_registered_after_classification(self, executor, repositories):
        """Re-applying the overlay picks up exclusions added later."""
        await executor.classify_batch()
        await repositories.manual_exclusions.add(ExclusionRecord(measure_id="X", patient_id="p1"))

        await executor.apply_manual_exclusions()
        result = await executor.count_records()

        assert result.numerator == 1
        assert result.exclusions == 1

    @pytest.mark.asyncio
    async def test_filtered_counts(self, executor):
        await executor.classify_batch()

        result = await executor.count_records(FilterSpec(genders=["F"]))

        assert result.population == 2
        assert result.numerator == 1
        assert result.filters == FilterSpec(genders=["F"])

    @pytest.mark.asyncio
    async def test_results_are_stored(self, executor, repositories, measure_key):
        await executor.classify_batch()

        result = await executor.count_records(start_time=0)
        stored = await repositories.query_cache.find_latest(measure_key)

        assert _comparable(stored) == _comparable(result)
        assert stored.created_at is not None
        assert stored.execution_time > 0

    @pytest.mark.asyncio
    async def test_classify_patient_updates_one_row(
        self, executor, repositories, measure_key
    ):
        await executor.classify_batch()

        written = await executor.classify_patient("p3")

        assert written == 1
        assert len(await repositories.patient_cache.find_by_key(measure_key)) == 3

    @pytest.mark.asyncio
    async def test_null_provider_counts_only_unassigned_patients(
        self, measure_key, make_doc, repositories, stored_measure
    ):
        docs = [
            make_doc(
                "real_and_null",
                population=1,
                provider_performances=[
                    ProviderPerformance(provider_id="prov-2"),
                    ProviderPerformance(provider_id=None),
                ],
            ),
            make_doc("none", population=1),
        ]
        executor = MeasureExecutor.from_factory(
            measure_key, StubClassifier(docs), repositories
        )
        await executor.classify_batch()

        result = await executor.count_records(FilterSpec(providers=[NULL_TOKEN]))

        assert result.population == 1
        assert result.considered == 1

    @pytest.mark.asyncio
    async def test_failed_write_leaves_session_usable(
        self, executor, monkeypatch, repositories, measure_key
    ):
        """After a failed flush the same executor can classify and count again."""
        to_model = PatientCacheRepository._to_model

        def without_patient_id(self, doc):
            model = to_model(self, doc)
            model.patient_id = None
            return model

        monkeypatch.setattr(PatientCacheRepository, "_to_model", without_patient_id)
        with pytest.raises(StorageError) as exc_info:
            await executor.classify_batch()
        assert exc_info.value.operation == "patient_cache.upsert"

        monkeypatch.undo()
        written = await executor.classify_batch()
        result = await executor.count_records()

        assert written == 3
        assert result.population == 3
        assert len(await repositories.patient_cache.find_by_key(measure_key)) == 3

    @pytest.mark.asyncio
    async def test_unknown_measure(self, measure_key, repositories):
        executor = MeasureExecutor.from_factory(measure_key, StubClassifier(), repositories)

        with pytest.raises(MeasureNotFoundError):
            await executor.classify_batch()


class TestQualityReport:
    """Stored results in front of the executor."""

    @pytest.mark.asyncio
    async def test_nothing_calculated_initially(self, report):
        assert not await report.patients_cached()
        assert not await report.is_calculated()
        assert await report.result() is None

    @pytest.mark.asyncio
    async def test_calculate_classifies_and_stores(self, report):
        result = await report.calculate()

        assert await report.patients_cached()
        assert await report.is_calculated()
        assert _comparable(await report.result()) == _comparable(result)
        assert result.numerator == 2

    @pytest.mark.asyncio
    async def test_results_are_per_filter(self, report):
        await report.calculate(FilterSpec(genders=["M"]))

        assert await report.is_calculated(FilterSpec(genders=["M"]))
        assert not await report.is_calculated(FilterSpec(genders=["F"]))
        assert not await report.is_calculated()

    @pytest.mark.asyncio
    async def test_empty_filter_equals_no_filter(self, report):
        await report.calculate(FilterSpec())

        assert await report.is_calculated()

    @pytest.mark.asyncio
    async def test_cached_patients_are_not_reclassified(self, report, classifier):
        await report.calculate()

        await report.calculate()

        assert len(classifier.calls) == 1

    @pytest.mark.asyncio
    async def test_reclassify(self, report, classifier):
        await report.calculate()

        await report.calculate(reclassify=True)

        assert len(classifier.calls) == 2

    @pytest.mark.asyncio
    async def test_cached_calculation_applies_new_exclusions(self, report, repositories):
        await report.calculate()
        await repositories.manual_exclusions.add(ExclusionRecord(measure_id="X", patient_id="p2"))

        result = await report.calculate()

        assert result.exclusions == 1
        assert result.considered == 2
        assert _comparable(await report.result()) == _comparable(result)
