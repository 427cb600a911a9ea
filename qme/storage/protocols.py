"""Storage layer protocols."""

from typing import Protocol

from qme.data_models import MeasureDefinition


class MeasureDefinitionLookup(Protocol):
    """Protocol for read-only measure definition lookups."""

    async def get(self, measure_id: str, sub_id: str | None) -> MeasureDefinition:
        """Return the definition, raising MeasureNotFoundError if missing."""
        ...
