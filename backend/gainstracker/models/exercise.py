from enum import Enum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import Integer, ForeignKey, String, DateTime, func, Enum as SAEnum
from gainstracker.db import Base

class ExerciseType(str, Enum):
    strength = "Strength"
    warmup = "Warmup"
    stretching = "Stretching"

    @property
    def is_timed(self) -> bool:
        return self is not ExerciseType.strength

MUSCLE_GROUPS = ("Chest", "Back", "Shoulders", "Biceps", "Triceps", "Legs", "Abs", "Full Body")

class Exercise(Base):
    """A library template the user can add to an active session."""
    __tablename__ = "exercises"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    muscle: Mapped[str] = mapped_column(String(40), nullable=False, server_default="Full Body")
    type: Mapped[ExerciseType] = mapped_column(
        SAEnum(ExerciseType, name="exercise_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        server_default=ExerciseType.strength.value,
    )
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="exercises")
