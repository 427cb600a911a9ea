"""SQLAlchemy table definitions for the measure engine.

These are thin persistence mappings. Domain logic lives in Pydantic models.
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qme.time import utc_now

from .base import Base, TimestampMixin


class PatientCacheTable(Base, TimestampMixin):
    """Cached classification of one patient for one measure evaluation."""

    __tablename__ = "patient_cache"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    measure_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sub_id: Mapped[str | None] = mapped_column(String(16), nullable=True)
    effective_date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    test_batch: Mapped[str | None] = mapped_column(String(64), nullable=True)
    patient_id: Mapped[str] = mapped_column(String(64), nullable=False)

    population: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    denominator: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    numerator: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    antinumerator: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    exclusions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    denexcep: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    race_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    ethnicity_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    gender: Mapped[str | None] = mapped_column(String(16), nullable=True)

    # None until the exclusion overlay runs
    manual_exclusion: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    provider_performances: Mapped[list["ProviderPerformanceTable"]] = relationship(
        back_populates="patient",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ProviderPerformanceTable.position",
    )
    languages: Mapped[list["PatientLanguageTable"]] = relationship(
        back_populates="patient",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PatientLanguageTable.position",
    )

    __table_args__ = (
        Index(
            "ix_patient_cache_key",
            "measure_id",
            "sub_id",
            "effective_date",
            "test_batch",
            "patient_id",
        ),
        Index("ix_patient_cache_measure_patient", "measure_id", "sub_id", "patient_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<PatientCacheTable(measure_id={self.measure_id}, sub_id={self.sub_id}, "
            f"patient_id={self.patient_id}, effective_date={self.effective_date})>"
        )


class ProviderPerformanceTable(Base):
    """Provider attribution of a cached patient, restricted to the measurement period."""

    __tablename__ = "provider_performances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_cache_id: Mapped[int] = mapped_column(
        ForeignKey("patient_cache.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    provider_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    start_date: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    end_date: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    patient: Mapped[PatientCacheTable] = relationship(
        back_populates="provider_performances"
    )


class PatientLanguageTable(Base):
    """Language tag (e.g. en-US) of a cached patient."""

    __tablename__ = "patient_languages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_cache_id: Mapped[int] = mapped_column(
        ForeignKey("patient_cache.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tag: Mapped[str] = mapped_column(String(32), nullable=False)

    patient: Mapped[PatientCacheTable] = relationship(back_populates="languages")


class ManualExclusionTable(Base):
    """Administratively entered manual exclusions."""

    __tablename__ = "manual_exclusions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    measure_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sub_id: Mapped[str | None] = mapped_column(String(16), nullable=True)
    patient_id: Mapped[str] = mapped_column(String(64), nullable=False)
    rationale: Mapped[str | None] = mapped_column(Text, nullable=True)
    excluded_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        Index("ix_manual_exclusions_measure", "measure_id", "sub_id", "patient_id"),
    )


class QueryCacheTable(Base):
    """Append-only store of aggregated measure results."""

    __tablename__ = "query_cache"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    measure_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sub_id: Mapped[str | None] = mapped_column(String(16), nullable=True)
    nqf_id: Mapped[str] = mapped_column(String(64), nullable=False)
    population_ids: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    effective_date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    test_batch: Mapped[str | None] = mapped_column(String(64), nullable=True)
    filters: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    population: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    denominator: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    numerator: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    antinumerator: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    exclusions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    denexcep: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    considered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    execution_time: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        Index(
            "ix_query_cache_key", "measure_id", "sub_id", "effective_date", "test_batch"
        ),
    )


class MeasureTable(Base, TimestampMixin):
    """Measure definitions (display identifiers and population ids)."""

    __tablename__ = "measures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    measure_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sub_id: Mapped[str | None] = mapped_column(String(16), nullable=True)
    nqf_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    population_ids: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (Index("ix_measures_measure", "measure_id", "sub_id"),)
