from __future__ import annotations
from sqlalchemy import select, func, or_
from gainstracker.models import Exercise, ExerciseType
from gainstracker.repositories.base import BaseRepository

class ExerciseRepository(BaseRepository[Exercise]):
    model = Exercise

    def list_by_user(
        self,
        user_id: int,
        *,
        type: ExerciseType | None = None,
        q: str | None = None,
    ) -> list[Exercise]:
        stmt = select(Exercise).where(Exercise.user_id == user_id)
        if type is not None:
            stmt = stmt.where(Exercise.type == type)
        if q:
            # matches the picker search: name or muscle, case-insensitive
            needle = f"%{q.lower()}%"
            stmt = stmt.where(or_(func.lower(Exercise.name).like(needle), func.lower(Exercise.muscle).like(needle)))
        stmt = stmt.order_by(Exercise.name.asc(), Exercise.id.asc())
        return list(self.db.execute(stmt).scalars().all())

    def create(self, user_id: int, *, name: str, muscle: str, type: ExerciseType) -> Exercise:
        return self.save(Exercise(user_id=user_id, name=name, muscle=muscle, type=type))

    def update(self, ex: Exercise, **fields) -> Exercise:
        for k, v in fields.items():
            if v is not None:
                setattr(ex, k, v)
        return self.save(ex)

    def count_by_user(self, user_id: int) -> int:
        return self.db.execute(select(func.count(Exercise.id)).where(Exercise.user_id == user_id)).scalar_one()
