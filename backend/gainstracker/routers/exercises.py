from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session
from gainstracker.db import get_db
from gainstracker.deps.auth import get_current_user
from gainstracker.models import Exercise, ExerciseType, User
from gainstracker.repositories.exercise_repo import ExerciseRepository
from gainstracker.schemas.exercise import ExerciseCreate, ExerciseRead, ExerciseUpdate

router = APIRouter(prefix="/exercises", tags=["exercises"])

def _owned(repo: ExerciseRepository, exercise_id: int, current: User) -> Exercise:
    ex = repo.get(exercise_id)
    if not ex:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exercise not found")
    if ex.user_id != current.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed for this exercise")
    return ex

@router.get("", response_model=list[ExerciseRead])
def list_my_exercises(
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    type: ExerciseType | None = Query(None),
    q: str | None = Query(None, max_length=120),
):
    return ExerciseRepository(db).list_by_user(current.id, type=type, q=(q or "").strip() or None)

@router.post("", response_model=ExerciseRead, status_code=status.HTTP_201_CREATED)
def create_exercise(payload: ExerciseCreate, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    return ExerciseRepository(db).create(current.id, name=payload.name, muscle=payload.muscle, type=payload.type)

@router.put("/{exercise_id}", response_model=ExerciseRead)
def update_exercise(
    exercise_id: int,
    payload: ExerciseUpdate,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    repo = ExerciseRepository(db)
    ex = _owned(repo, exercise_id, current)
    return repo.update(ex, name=payload.name, muscle=payload.muscle, type=payload.type)

@router.delete("/{exercise_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_exercise(exercise_id: int, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    repo = ExerciseRepository(db)
    # entries already copied into a draft are unaffected
    repo.remove(_owned(repo, exercise_id, current))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
