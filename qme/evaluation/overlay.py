"""Manual exclusion overlay."""

import logging

from qme.storage.sqlalchemy.repositories import (
    ManualExclusionRepository,
    PatientCacheRepository,
)

logger = logging.getLogger(__name__)


class ExclusionOverlay:
    """Flags cached classifications of manually excluded patients.

    The overlay is additive: it sets ``manual_exclusion`` and never clears
    it. Patients removed from the registry keep their flag until they are
    re-classified.
    """

    def __init__(
        self,
        exclusions: ManualExclusionRepository,
        patient_cache: PatientCacheRepository,
    ):
        self._exclusions = exclusions
        self._patient_cache = patient_cache

    async def apply(self, measure_id: str, sub_id: str | None) -> int:
        """Apply registered exclusions of a measure to the cache.

        Returns the number of cached classifications matched.
        """
        patient_ids = {
            record.patient_id
            async for record in self._exclusions.scan(measure_id, sub_id)
        }
        if not patient_ids:
            logger.debug(
                "No manual exclusions for measure=%s%s", measure_id, sub_id or ""
            )
            return 0

        matched = await self._patient_cache.mark_manually_excluded(
            measure_id, sub_id, patient_ids
        )
        logger.info(
            "Applied %d manual exclusions to %d cached classifications (measure=%s%s)",
            len(patient_ids), matched, measure_id, sub_id or "",
        )
        return matched
