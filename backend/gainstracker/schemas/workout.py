from typing import Annotated
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, StringConstraints
from gainstracker.models.exercise import ExerciseType

WORKOUT_NAME_MAX = 120

WorkoutName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=WORKOUT_NAME_MAX)]

class StrengthSetOut(BaseModel):
    weight: Annotated[float, Field(ge=0)] | None = None
    reps: Annotated[int, Field(ge=0)] | None = None

    model_config = ConfigDict(extra="forbid")

class TimedSetOut(BaseModel):
    elapsed_seconds: Annotated[int, Field(ge=0)]

    model_config = ConfigDict(extra="forbid")

class WorkoutDetail(BaseModel):
    name: str
    type: ExerciseType
    muscle: str
    sets: list[TimedSetOut | StrengthSetOut]

class SubmissionPayload(BaseModel):
    """The finished-workout document accepted by the workout store."""
    user_id: int
    name: WorkoutName
    duration: Annotated[int, Field(ge=0)]  # minutes
    muscles: list[str]
    details: list[WorkoutDetail]

class WorkoutRead(BaseModel):
    id: int
    user_id: int
    name: str
    duration: int
    muscles: list[str]
    details: list[dict]
    created_at: datetime

    model_config = {"from_attributes": True}

class FinishedWorkoutRead(WorkoutRead):
    # False when the saved session's draft is still stored; cleared on the next write
    draft_cleared: bool = True
