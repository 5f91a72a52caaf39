from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from gainstracker.db import get_db
from gainstracker.deps.auth import get_current_user
from gainstracker.models import User
from gainstracker.repositories.workout_repo import WorkoutRepository
from gainstracker.schemas.workout import SubmissionPayload, WorkoutRead

router = APIRouter(prefix="/workouts", tags=["workouts"])

@router.post("", response_model=WorkoutRead, status_code=status.HTTP_201_CREATED)
def create_workout(payload: SubmissionPayload, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    if payload.user_id != current.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed for this user")
    return WorkoutRepository(db).create(
        current.id,
        name=payload.name,
        duration=payload.duration,
        muscles=payload.muscles,
        details=[d.model_dump(mode="json") for d in payload.details],
    )

@router.get("", response_model=list[WorkoutRead])
def list_my_workouts(
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    return WorkoutRepository(db).list_by_user(current.id, limit=limit, offset=offset)

@router.delete("/{workout_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workout(workout_id: int, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    repo = WorkoutRepository(db)
    w = repo.get(workout_id)
    if not w:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workout not found")
    if w.user_id != current.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed for this workout")
    repo.remove(w)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
