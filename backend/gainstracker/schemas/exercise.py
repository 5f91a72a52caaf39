from typing import Annotated
from datetime import datetime
from pydantic import BaseModel, StringConstraints, field_validator
from gainstracker.models.exercise import ExerciseType, MUSCLE_GROUPS

ExerciseName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]

class ExerciseCreate(BaseModel):
    name: ExerciseName
    muscle: str = "Full Body"
    type: ExerciseType = ExerciseType.strength

    @field_validator("muscle")
    @classmethod
    def known_muscle(cls, v: str) -> str:
        if v not in MUSCLE_GROUPS:
            raise ValueError(f"muscle must be one of: {', '.join(MUSCLE_GROUPS)}")
        return v

class ExerciseUpdate(BaseModel):
    name: ExerciseName | None = None
    muscle: str | None = None
    type: ExerciseType | None = None

    @field_validator("muscle")
    @classmethod
    def known_muscle(cls, v: str | None) -> str | None:
        if v is not None and v not in MUSCLE_GROUPS:
            raise ValueError(f"muscle must be one of: {', '.join(MUSCLE_GROUPS)}")
        return v

class ExerciseRead(BaseModel):
    id: int
    user_id: int
    name: str
    muscle: str
    type: ExerciseType
    created_at: datetime

    model_config = {"from_attributes": True}
