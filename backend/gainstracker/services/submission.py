# gainstracker/services/submission.py
from __future__ import annotations
import logging
from typing import Callable, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gainstracker.errors import SubmissionFailed
from gainstracker.models import Workout
from gainstracker.repositories.workout_repo import WorkoutRepository
from gainstracker.schemas.workout import SubmissionPayload

log = logging.getLogger(__name__)


class WorkoutSubmitter(Protocol):
    def submit(self, payload: SubmissionPayload) -> Workout: ...


class RepositorySubmitter:
    """Saves finished workouts through ``WorkoutRepository`` in a fresh session."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def submit(self, payload: SubmissionPayload) -> Workout:
        try:
            with self.session_factory() as db:
                workout = WorkoutRepository(db).create(
                    payload.user_id,
                    name=payload.name,
                    duration=payload.duration,
                    muscles=payload.muscles,
                    details=[d.model_dump(mode="json") for d in payload.details],
                )
                db.expunge(workout)
                return workout
        except SQLAlchemyError as e:
            log.warning("could not save workout for user %s: %s", payload.user_id, e)
            raise SubmissionFailed("could not save workout") from e
