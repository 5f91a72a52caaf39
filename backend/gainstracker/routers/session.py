# gainstracker/routers/session.py
"""
The active workout: one draft per user, driven through its DraftController.

Routes are plain ``def`` and run in the threadpool; the controller lock keeps
them and the ticker thread from interleaving on one draft.
"""
from contextlib import contextmanager
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from gainstracker.db import get_db
from gainstracker.deps.auth import get_current_user
from gainstracker.deps.session import get_draft
from gainstracker.errors import (
    EmptyDraft,
    IndexOutOfRange,
    InvalidSetField,
    InvalidSetValue,
    NotFound,
    SubmissionFailed,
)
from gainstracker.models import User
from gainstracker.repositories.exercise_repo import ExerciseRepository
from gainstracker.schemas.draft import (
    AddExerciseRequest,
    Draft,
    DraftRead,
    DraftSummary,
    FinishRequest,
    SetFieldUpdate,
)
from gainstracker.schemas.workout import FinishedWorkoutRead, WorkoutRead
from gainstracker.services.draft_manager import format_elapsed
from gainstracker.services.session_registry import DraftController

router = APIRouter(prefix="/session", tags=["session"])

@contextmanager
def draft_errors():
    try:
        yield
    except (NotFound, IndexOutOfRange) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (InvalidSetField, InvalidSetValue) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except EmptyDraft as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SubmissionFailed:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not save workout; session kept")

def _read(draft: Draft) -> DraftRead:
    return DraftRead(**draft.model_dump(), elapsed_display=format_elapsed(draft.elapsed_seconds))

@router.get("", response_model=DraftRead)
def get_session(ctl: DraftController = Depends(get_draft)):
    return _read(ctl.current())

@router.get("/summary", response_model=DraftSummary)
def get_summary(ctl: DraftController = Depends(get_draft)):
    return ctl.summary()

@router.post("/timer", response_model=DraftRead)
def toggle_timer(ctl: DraftController = Depends(get_draft)):
    return _read(ctl.toggle_global_timer())

@router.post("/exercises", response_model=DraftRead, status_code=status.HTTP_201_CREATED)
def add_exercise(
    payload: AddExerciseRequest,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    ctl: DraftController = Depends(get_draft),
):
    ex = ExerciseRepository(db).get(payload.exercise_id)
    if not ex or ex.user_id != current.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exercise not found")
    return _read(ctl.add_exercise(ex))

@router.delete("/exercises/{instance_id}", response_model=DraftRead)
def remove_exercise(instance_id: int, ctl: DraftController = Depends(get_draft)):
    return _read(ctl.remove_exercise(instance_id))

@router.post("/exercises/{instance_id}/sets", response_model=DraftRead, status_code=status.HTTP_201_CREATED)
def add_set(instance_id: int, ctl: DraftController = Depends(get_draft)):
    with draft_errors():
        return _read(ctl.add_set(instance_id))

@router.patch("/exercises/{instance_id}/sets/{set_index}", response_model=DraftRead)
def update_set(
    instance_id: int,
    set_index: int,
    payload: SetFieldUpdate,
    ctl: DraftController = Depends(get_draft),
):
    with draft_errors():
        return _read(ctl.update_set_field(instance_id, set_index, payload.field, payload.value))

@router.post("/exercises/{instance_id}/sets/{set_index}/timer", response_model=DraftRead)
def toggle_set_timer(instance_id: int, set_index: int, ctl: DraftController = Depends(get_draft)):
    with draft_errors():
        return _read(ctl.toggle_set_timer(instance_id, set_index))

@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def discard_session(ctl: DraftController = Depends(get_draft)):
    ctl.discard()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.post("/finish", response_model=FinishedWorkoutRead, status_code=status.HTTP_201_CREATED)
def finish_session(
    payload: FinishRequest,
    current: User = Depends(get_current_user),
    ctl: DraftController = Depends(get_draft),
):
    with draft_errors():
        workout, cleared = ctl.finish(payload.name, current.id)
    return FinishedWorkoutRead(**WorkoutRead.model_validate(workout).model_dump(), draft_cleared=cleared)
