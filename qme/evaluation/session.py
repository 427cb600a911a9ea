"""Session-scoped entry points for measure evaluation."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from qme.classifier import Classifier
from qme.data_models import MeasureKey
from qme.storage.factory import RepositoryFactory
from qme.storage.sqlalchemy.engine import get_session_context

from .executor import MeasureExecutor
from .report import QualityReport

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_executor(
    key: MeasureKey, classifier: Classifier
) -> AsyncIterator[MeasureExecutor]:
    """Yield an executor whose repositories share one session on the shared engine.

    Pending work is rolled back when the block raises; the session is closed
    on exit.
    """
    async with get_session_context() as session:
        factory = RepositoryFactory(session)
        try:
            yield MeasureExecutor.from_factory(key, classifier, factory)
        except Exception:
            logger.warning(
                "Rolling back evaluation session for measure=%s%s",
                key.measure_id, key.sub_id or "",
            )
            await factory.session.rollback()
            raise


@asynccontextmanager
async def open_report(
    key: MeasureKey, classifier: Classifier
) -> AsyncIterator[QualityReport]:
    """Like ``open_executor``, yielding a QualityReport in front of the executor."""
    async with get_session_context() as session:
        factory = RepositoryFactory(session)
        executor = MeasureExecutor.from_factory(key, classifier, factory)
        try:
            yield QualityReport(executor, factory.patient_cache, factory.query_cache)
        except Exception:
            await factory.session.rollback()
            raise
