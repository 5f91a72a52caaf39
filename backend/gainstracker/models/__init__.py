from gainstracker.models.user import User
from gainstracker.models.exercise import Exercise, ExerciseType, MUSCLE_GROUPS
from gainstracker.models.workout import Workout
from gainstracker.models.kv_entry import KeyValueEntry

__all__ = ["User", "Exercise", "ExerciseType", "MUSCLE_GROUPS", "Workout", "KeyValueEntry"]
