"""Participation Log Repository: SQL implementation of EvaluationPersistence.

Invariants:
    - create_participation inserts exactly one row and returns its id as a string
    - save() updates the row by id; calling it again with the same metrics
      rewrites the same values (idempotent)
    - Every failure surfaces as PersistenceFailureError (core/errors.py)
"""

import logging
import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy.ext.asyncio import AsyncSession

from coach.core.errors import CoachError, PersistenceFailureError
from coach.core.evaluation import EvaluationMetrics
from coach.models.participation_log import ParticipationLog

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class SqlParticipationLogRepository:
    """EvaluationPersistence over the participation_log table.

    session_scope is DatabaseSessionManager.session (or any factory of
    AsyncSession context managers).
    """

    def __init__(self, session_scope: SessionScope):
        self._session_scope = session_scope

    async def create_participation(
        self, session_id: str, user_id: str,
        transcript_url: str | None, reflection: str | None,
    ) -> str:
        row = ParticipationLog(
            session_id=session_id,
            user_id=user_id,
            transcript_url=transcript_url,
            reflection=reflection,
        )
        try:
            async with self._session_scope() as db:
                db.add(row)
                await db.commit()
        except CoachError as e:
            raise PersistenceFailureError(e.message) from e
        logger.info(
            "Participation record created",
            extra={"user_session_id": str(row.id)},
        )
        return str(row.id)

    async def save(self, user_session_id: str, metrics: EvaluationMetrics) -> None:
        def apply(row: ParticipationLog) -> None:
            row.feedback = metrics.feedback
            row.words_per_min = metrics.words_per_min
            row.filler_words_per_min = metrics.filler_words_per_min
            row.participation_percentage = metrics.participation_percentage
            row.duration = metrics.duration
            row.pisa_shared_understanding = metrics.pisa_shared_understanding
            row.pisa_problem_solving_action = metrics.pisa_problem_solving_action
            row.pisa_team_organization = metrics.pisa_team_organization
            row.overall_score = metrics.overall_score
            row.detailed_feedback = metrics.detailed_feedback

        await self._update(user_session_id, apply)
        logger.info("Evaluation saved", extra={"user_session_id": user_session_id})

    async def save_reflection(self, user_session_id: str, reflection: str) -> None:
        def apply(row: ParticipationLog) -> None:
            row.reflection = reflection

        await self._update(user_session_id, apply)

    async def get(self, user_session_id: str) -> ParticipationLog | None:
        async with self._session_scope() as db:
            return await db.get(ParticipationLog, _parse_id(user_session_id))

    async def _update(
        self, user_session_id: str, apply: Callable[[ParticipationLog], None],
    ) -> None:
        row_id = _parse_id(user_session_id)
        try:
            async with self._session_scope() as db:
                row = await db.get(ParticipationLog, row_id)
                if row is None:
                    raise PersistenceFailureError(
                        f"participation record {user_session_id} not found",
                    )
                apply(row)
                await db.commit()
        except PersistenceFailureError:
            raise
        except CoachError as e:
            raise PersistenceFailureError(e.message) from e


def _parse_id(user_session_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(user_session_id))
    except ValueError as e:
        raise PersistenceFailureError(
            f"invalid participation id {user_session_id!r}",
        ) from e
