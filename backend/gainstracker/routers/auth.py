import logging
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session
from gainstracker.db import get_db
from gainstracker.models import User
from gainstracker.schemas.user import (
    EmailCheck,
    EmailStatus,
    TokenResponse,
    UserLogin,
    UserProfile,
    UserRead,
    UserRegister,
)
from gainstracker.security import hash_password, verify_password, create_access_token
from gainstracker.deps.auth import get_current_user
from gainstracker.deps.session import get_registry
from gainstracker.repositories.exercise_repo import ExerciseRepository
from gainstracker.repositories.user_repo import UserRepository
from gainstracker.repositories.workout_repo import WorkoutRepository
from gainstracker.services.session_registry import SessionRegistry

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/check-email", response_model=EmailStatus)
def check_email(payload: EmailCheck, db: Session = Depends(get_db)):
    # the login screen asks this first to choose between sign-in and sign-up
    return EmailStatus(exists=UserRepository(db).get_by_email(payload.email) is not None)

@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(payload: UserRegister, db: Session = Depends(get_db)):
    repo = UserRepository(db)
    if repo.get_by_email(payload.email):
        raise HTTPException(status_code=400, detail="email already registered")
    try:
        user = repo.create(
            email=payload.email.lower(),
            name=payload.name,
            password_hash=hash_password(payload.password),
        )
    except ValueError as e:
        if str(e) == "email_already_exists":
            raise HTTPException(status_code=400, detail="email already registered")
        raise
    log.info("registered user %s", user.id)
    return user

@router.post("/login", response_model=TokenResponse)
def login(payload: UserLogin, db: Session = Depends(get_db)):
    user = UserRepository(db).get_by_email(payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="invalid credentials")
    return TokenResponse(access_token=create_access_token(sub=str(user.id)), user=UserRead.model_validate(user))

@router.get("/me", response_model=UserProfile)
def me(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    registry: SessionRegistry = Depends(get_registry),
):
    return UserProfile(
        **UserRead.model_validate(current_user).model_dump(),
        exercise_count=ExerciseRepository(db).count_by_user(current_user.id),
        workout_count=WorkoutRepository(db).count_by_user(current_user.id),
        session=registry.get(current_user.id).summary(),
    )

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    current_user: User = Depends(get_current_user),
    registry: SessionRegistry = Depends(get_registry),
):
    # tokens are stateless; only the in-memory controller goes away, the draft stays stored
    registry.close(current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
