"""
Pydantic shapes of the active-session draft.

The draft is what gets persisted to the key-value store, so these models
double as the storage encoding of the ``exercises`` key.
"""
from typing import Annotated
from pydantic import BaseModel, ConfigDict, Field, StringConstraints, TypeAdapter
from gainstracker.models.exercise import ExerciseType
from gainstracker.schemas.workout import WORKOUT_NAME_MAX

NonNegInt = Annotated[int, Field(ge=0)]

class StrengthSet(BaseModel):
    # free text while drafting; parsed when the workout is submitted
    weight: str
    reps: str

    model_config = ConfigDict(extra="forbid")

class TimedSet(BaseModel):
    elapsed_seconds: NonNegInt

    model_config = ConfigDict(extra="forbid")

DraftSet = StrengthSet | TimedSet

class ExerciseEntry(BaseModel):
    instance_id: int
    name: str
    muscle: str
    type: ExerciseType
    sets: list[DraftSet] = Field(default_factory=list)
    is_running: bool = False
    active_set_index: NonNegInt = 0

class Draft(BaseModel):
    exercises: list[ExerciseEntry] = Field(default_factory=list)
    elapsed_seconds: NonNegInt = 0
    is_running: bool = True
    last_resumed_at_millis: int | None = None
    base_seconds_at_last_resume: NonNegInt = 0

class DraftRead(Draft):
    elapsed_display: str

class DraftSummary(BaseModel):
    has_active_session: bool
    is_paused: bool
    exercise_count: int
    elapsed_seconds: int

class ExerciseTemplate(BaseModel):
    """The fields copied from a library exercise into a new entry."""
    name: str
    muscle: str
    type: ExerciseType

    model_config = ConfigDict(from_attributes=True)

class AddExerciseRequest(BaseModel):
    exercise_id: int

class SetFieldUpdate(BaseModel):
    field: str
    value: str | int | float | None = None

class FinishRequest(BaseModel):
    # blank falls back to the default workout name
    name: Annotated[str, StringConstraints(strip_whitespace=True, max_length=WORKOUT_NAME_MAX)] = ""

exercise_list_adapter = TypeAdapter(list[ExerciseEntry])
