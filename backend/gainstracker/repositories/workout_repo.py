from __future__ import annotations
from sqlalchemy import select, func
from gainstracker.models import Workout
from gainstracker.repositories.base import BaseRepository

class WorkoutRepository(BaseRepository[Workout]):
    model = Workout

    def list_by_user(self, user_id: int, *, limit: int = 50, offset: int = 0) -> list[Workout]:
        stmt = select(Workout).where(Workout.user_id == user_id)\
                              .order_by(Workout.id.desc())\
                              .limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars().all())

    def count_by_user(self, user_id: int) -> int:
        return self.db.execute(select(func.count(Workout.id)).where(Workout.user_id == user_id)).scalar_one()

    def create(self, user_id: int, *, name: str, duration: int, muscles: list[str], details: list[dict]) -> Workout:
        return self.save(Workout(user_id=user_id, name=name, duration=duration, muscles=muscles, details=details))
