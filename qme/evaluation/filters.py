"""Filter predicate builder.

Translates a FilterSpec into SQL conditions over the patient cache. The
caller ANDs the returned conditions; alternatives within one dimension are
ORed here. Nothing in this module touches the database.
"""

from sqlalchemy import ColumnElement, false, or_, select

from qme.data_models import FilterSpec, MeasureKey
from qme.storage.sqlalchemy.repositories import key_conditions
from qme.storage.sqlalchemy.tables import (
    PatientCacheTable,
    PatientLanguageTable,
    ProviderPerformanceTable,
)


def base_key_conditions(key: MeasureKey) -> list[ColumnElement[bool]]:
    """Equality on measure id, sub id, effective date and test batch."""
    return key_conditions(key)


def build_filter_conditions(filters: FilterSpec | None) -> list[ColumnElement[bool]]:
    """Build one condition per non-empty filter dimension.

    An absent FilterSpec and one with only empty lists both yield no
    conditions.
    """
    if filters is None or filters.is_empty:
        return []

    conditions: list[ColumnElement[bool]] = []
    if filters.providers:
        conditions.append(_provider_condition(filters))
    if filters.races:
        conditions.append(PatientCacheTable.race_code.in_(filters.races))
    if filters.ethnicities:
        conditions.append(PatientCacheTable.ethnicity_code.in_(filters.ethnicities))
    if filters.genders:
        conditions.append(PatientCacheTable.gender.in_(filters.genders))
    if filters.languages:
        conditions.append(_language_condition(filters))
    return conditions


def not_manually_excluded() -> ColumnElement[bool]:
    """Manual exclusion unset or false."""
    return or_(
        PatientCacheTable.manual_exclusion.is_(None),
        PatientCacheTable.manual_exclusion.is_(False),
    )


def manually_excluded() -> ColumnElement[bool]:
    return PatientCacheTable.manual_exclusion.is_(True)


def _has_provider_performance(*criteria: ColumnElement[bool]) -> ColumnElement[bool]:
    return (
        select(ProviderPerformanceTable.id)
        .where(
            ProviderPerformanceTable.patient_cache_id == PatientCacheTable.id,
            *criteria,
        )
        .exists()
    )


def _provider_condition(filters: FilterSpec) -> ColumnElement[bool]:
    # provider_performances are already restricted to the measurement period
    alternatives: list[ColumnElement[bool]] = []
    if filters.provider_ids:
        alternatives.append(
            _has_provider_performance(
                ProviderPerformanceTable.provider_id.in_(filters.provider_ids)
            )
        )
    if filters.includes_no_provider:
        # No performances at all, or only performances without a provider
        alternatives.append(
            ~_has_provider_performance(ProviderPerformanceTable.provider_id.is_not(None))
        )
    return or_(*alternatives) if alternatives else false()


def _language_condition(filters: FilterSpec) -> ColumnElement[bool]:
    alternatives: list[ColumnElement[bool]] = []
    codes = filters.language_codes
    if codes:
        # "en" matches "en" and any region variant such as "en-US"
        tag_matches = [
            or_(
                PatientLanguageTable.tag == code,
                PatientLanguageTable.tag.like(f"{_escape_like(code)}-%", escape="\\"),
            )
            for code in codes
        ]
        alternatives.append(
            select(PatientLanguageTable.id)
            .where(
                PatientLanguageTable.patient_cache_id == PatientCacheTable.id,
                or_(*tag_matches),
            )
            .exists()
        )
    if filters.includes_unspecified_language:
        alternatives.append(
            ~select(PatientLanguageTable.id)
            .where(PatientLanguageTable.patient_cache_id == PatientCacheTable.id)
            .exists()
        )
    return or_(*alternatives) if alternatives else false()


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

