"""Repository factory for engine storage."""

from sqlalchemy.ext.asyncio import AsyncSession

from .sqlalchemy.repositories.manual_exclusion import ManualExclusionRepository
from .sqlalchemy.repositories.measure import MeasureRepository
from .sqlalchemy.repositories.patient_cache import PatientCacheRepository
from .sqlalchemy.repositories.query_cache import QueryCacheRepository


class RepositoryFactory:
    """Factory for creating engine repositories from a database session."""

    def __init__(self, session: AsyncSession):
        self._session = session

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def patient_cache(self) -> PatientCacheRepository:
        """Get classification cache repository."""
        return PatientCacheRepository(self._session)

    @property
    def manual_exclusions(self) -> ManualExclusionRepository:
        """Get manual exclusion registry repository."""
        return ManualExclusionRepository(self._session)

    @property
    def query_cache(self) -> QueryCacheRepository:
        """Get aggregated results repository."""
        return QueryCacheRepository(self._session)

    @property
    def measures(self) -> MeasureRepository:
        """Get measure definition repository."""
        return MeasureRepository(self._session)
