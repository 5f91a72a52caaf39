# gainstracker/services/draft_manager.py
"""
Active-session draft manager.

The draft (exercise entries, elapsed seconds, running flag) lives in a
durable key-value store that is the single source of truth: every mutation
is written back, and a cold start rebuilds the draft from the stored keys.

Elapsed time is never counted up one second at a time. It is recomputed as

    base_seconds_at_last_resume + floor((now - last_resumed_at_millis) / 1000)

so time spent while the process was closed or suspended is still counted.
"""
from __future__ import annotations
import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from gainstracker.errors import (
    IndexOutOfRange,
    InvalidSetField,
    InvalidSetValue,
    NotFound,
    PersistenceUnavailable,
)
from gainstracker.repositories.kv_repo import KeyValueStore
from gainstracker.schemas.draft import (
    Draft,
    DraftSet,
    DraftSummary,
    ExerciseEntry,
    ExerciseTemplate,
    StrengthSet,
    TimedSet,
    exercise_list_adapter,
)
from gainstracker.schemas.workout import (
    WORKOUT_NAME_MAX,
    StrengthSetOut,
    SubmissionPayload,
    TimedSetOut,
    WorkoutDetail,
)
from gainstracker.services.clock import Clock, now_millis

log = logging.getLogger(__name__)

DEFAULT_WORKOUT_NAME = "Daily Session"


@dataclass(frozen=True)
class DraftKeys:
    prefix: str = "active_session"

    @property
    def exercises(self) -> str:
        return f"{self.prefix}.exercises"

    @property
    def elapsed_seconds(self) -> str:
        return f"{self.prefix}.elapsed_seconds"

    @property
    def is_running(self) -> str:
        return f"{self.prefix}.is_running"

    @property
    def last_resumed_at_millis(self) -> str:
        return f"{self.prefix}.last_resumed_at_millis"

    @property
    def base_seconds_at_last_resume(self) -> str:
        return f"{self.prefix}.base_seconds_at_last_resume"

    def all(self) -> tuple[str, ...]:
        return (
            self.exercises,
            self.elapsed_seconds,
            self.is_running,
            self.last_resumed_at_millis,
            self.base_seconds_at_last_resume,
        )


def format_elapsed(seconds: int) -> str:
    """MM:SS, minutes are not wrapped into hours."""
    mins, secs = divmod(max(int(seconds), 0), 60)
    return f"{mins:02d}:{secs:02d}"


def derive_elapsed(base_seconds: int, last_resumed_at_millis: int, now: int) -> int:
    # a clock that went backwards must not shrink the counter
    return base_seconds + max(0, (now - last_resumed_at_millis) // 1000)


def default_set(entry_type) -> DraftSet:
    if entry_type.is_timed:
        return TimedSet(elapsed_seconds=0)
    return StrengthSet(weight="", reps="")


class DraftManager:
    """Owns one user's draft. Not thread-safe: callers serialize access."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        clock: Clock = now_millis,
        key_prefix: str = "active_session",
        default_workout_name: str = DEFAULT_WORKOUT_NAME,
    ):
        self.store = store
        self.clock = clock
        self.keys = DraftKeys(key_prefix)
        self.default_workout_name = default_workout_name
        self._draft: Optional[Draft] = None
        self._last_instance_id = 0
        # a discard whose key removal failed; retried before the store is used again
        self._clear_pending = False

    # ------------------------------------------------------------------
    # loading / persistence
    # ------------------------------------------------------------------

    def load_draft(self, now: Optional[int] = None) -> Draft:
        now = self._now(now)
        try:
            if self._clear_pending and not self._clear_stored():
                # whatever is still stored was already finished or discarded
                raise PersistenceUnavailable("stale draft could not be cleared")
            draft = self._read(now)
        except PersistenceUnavailable as e:
            log.warning("could not load session draft, starting fresh: %s", e)
            draft = None
        self._draft = draft if draft is not None else self._fresh(now)
        return self._snapshot()

    def _read(self, now: int) -> Optional[Draft]:
        raw_exercises = self.store.get(self.keys.exercises)
        if raw_exercises is None:
            return None
        raw_elapsed = self.store.get(self.keys.elapsed_seconds)
        raw_running = self.store.get(self.keys.is_running)
        raw_anchor = self.store.get(self.keys.last_resumed_at_millis)
        raw_base = self.store.get(self.keys.base_seconds_at_last_resume)
        try:
            exercises = exercise_list_adapter.validate_json(raw_exercises)
            elapsed = int(raw_elapsed) if raw_elapsed is not None else 0
            is_running = bool(json.loads(raw_running)) if raw_running is not None else True
            anchor = int(raw_anchor) if raw_anchor is not None else None
            base = int(raw_base) if raw_base is not None else None
            if is_running:
                if anchor is None:
                    # running but never anchored: resume from what was last shown
                    anchor, base = now, elapsed
                elif base is None:
                    base = 0
                elapsed = derive_elapsed(base, anchor, now)
            else:
                anchor = None
                if base is None:
                    base = elapsed
            return Draft(
                exercises=exercises,
                elapsed_seconds=elapsed,
                is_running=is_running,
                last_resumed_at_millis=anchor,
                base_seconds_at_last_resume=base,
            )
        except ValueError as e:
            # pydantic's ValidationError is a ValueError too
            raise PersistenceUnavailable(f"stored draft is unreadable: {e}") from e

    def _persist(self, draft: Draft) -> None:
        items = {
            self.keys.exercises: exercise_list_adapter.dump_json(draft.exercises).decode(),
            self.keys.elapsed_seconds: str(draft.elapsed_seconds),
            self.keys.is_running: json.dumps(draft.is_running),
            self.keys.base_seconds_at_last_resume: str(draft.base_seconds_at_last_resume),
        }
        if draft.last_resumed_at_millis is not None:
            items[self.keys.last_resumed_at_millis] = str(draft.last_resumed_at_millis)
        try:
            self.store.set_many(items)
            if draft.last_resumed_at_millis is None:
                self.store.remove_many([self.keys.last_resumed_at_millis])
        except PersistenceUnavailable as e:
            log.warning("session draft kept in memory only: %s", e)
        else:
            # every key has now been overwritten, so nothing stale is left
            self._clear_pending = False

    def _clear_stored(self) -> bool:
        try:
            self.store.remove_many(self.keys.all())
        except PersistenceUnavailable as e:
            log.warning("could not clear stored session draft, will retry: %s", e)
            self._clear_pending = True
            return False
        self._clear_pending = False
        return True

    # ------------------------------------------------------------------
    # timer
    # ------------------------------------------------------------------

    def tick(self, now: Optional[int] = None) -> Draft:
        draft = self._current()
        if not draft.is_running:
            return self._snapshot()
        self._refresh(draft, self._now(now))
        for entry in draft.exercises:
            if not (entry.is_running and entry.type.is_timed):
                continue
            if entry.active_set_index >= len(entry.sets):
                continue
            timed = entry.sets[entry.active_set_index]
            if isinstance(timed, TimedSet):
                timed.elapsed_seconds += 1
        self._persist(draft)
        return self._snapshot()

    def current(self, now: Optional[int] = None) -> Draft:
        """The draft with elapsed time re-derived for ``now``; nothing is written."""
        self._refresh(self._current(), self._now(now))
        return self._snapshot()

    def toggle_global_timer(self, now: Optional[int] = None) -> Draft:
        draft = self._current()
        now = self._now(now)
        if draft.is_running:
            self._refresh(draft, now)
            draft.base_seconds_at_last_resume = draft.elapsed_seconds
            draft.last_resumed_at_millis = None
            draft.is_running = False
            log.info("session timer paused at %ss", draft.elapsed_seconds)
        else:
            draft.base_seconds_at_last_resume = draft.elapsed_seconds
            draft.last_resumed_at_millis = now
            draft.is_running = True
            log.info("session timer resumed at %ss", draft.elapsed_seconds)
        self._persist(draft)
        return self._snapshot()

    # ------------------------------------------------------------------
    # entries and sets
    # ------------------------------------------------------------------

    def add_exercise(self, template: Any, now: Optional[int] = None) -> Draft:
        """Append a copy of a library exercise (model, dict or ExerciseTemplate)."""
        draft = self._current()
        if isinstance(template, dict):
            tpl = ExerciseTemplate.model_validate(template)
        else:
            tpl = ExerciseTemplate.model_validate(template, from_attributes=True)
        entry = ExerciseEntry(
            instance_id=self._next_instance_id(self._now(now)),
            name=tpl.name,
            muscle=tpl.muscle,
            type=tpl.type,
            sets=[default_set(tpl.type)],
            is_running=False,
            active_set_index=0,
        )
        draft.exercises.append(entry)
        self._persist(draft)
        return self._snapshot()

    def remove_exercise(self, instance_id: int) -> Draft:
        draft = self._current()
        kept = [e for e in draft.exercises if e.instance_id != instance_id]
        if len(kept) != len(draft.exercises):
            draft.exercises = kept
            self._persist(draft)
        return self._snapshot()

    def add_set(self, instance_id: int) -> Draft:
        draft = self._current()
        entry = self._entry(instance_id)
        entry.sets.append(default_set(entry.type))
        self._persist(draft)
        return self._snapshot()

    def update_set_field(self, instance_id: int, set_index: int, field: str, value: Any) -> Draft:
        draft = self._current()
        entry = self._entry(instance_id)
        target = self._set(entry, set_index)
        if isinstance(target, StrengthSet):
            if field not in ("weight", "reps"):
                raise InvalidSetField(field, "strength sets have weight and reps")
            setattr(target, field, "" if value is None else str(value))
        else:
            if field != "elapsed_seconds":
                raise InvalidSetField(field, "timed sets have elapsed_seconds")
            if isinstance(value, float) and not value.is_integer():
                raise InvalidSetField(field, "must be a whole number of seconds")
            try:
                seconds = int(value)
            except (TypeError, ValueError, OverflowError):
                raise InvalidSetField(field, "must be a whole number of seconds")
            if seconds < 0:
                raise InvalidSetField(field, "must not be negative")
            target.elapsed_seconds = seconds
        self._persist(draft)
        return self._snapshot()

    def toggle_set_timer(self, instance_id: int, set_index: int) -> Draft:
        draft = self._current()
        entry = self._entry(instance_id)
        self._set(entry, set_index)
        if not draft.is_running or not entry.type.is_timed:
            # nothing would tick the set, so there is nothing to start
            log.debug("ignoring set timer toggle on %s (paused or untimed)", instance_id)
            return self._snapshot()
        if entry.is_running and entry.active_set_index == set_index:
            entry.is_running = False
        else:
            entry.is_running = True
            entry.active_set_index = set_index
        self._persist(draft)
        return self._snapshot()

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def discard(self, now: Optional[int] = None) -> bool:
        """
        Drop the draft. Returns False when the stored keys could not be
        removed; the removal is then retried on the next load or write.
        """
        cleared = self._clear_stored()
        if cleared:
            # the next session starts its clock when it is first touched
            self._draft = None
        else:
            self._draft = self._fresh(self._now(now))
        log.info("session draft discarded")
        return cleared

    @property
    def clear_pending(self) -> bool:
        return self._clear_pending

    def build_submission(self, workout_name: Optional[str], user_id: int) -> SubmissionPayload:
        draft = self.current()
        name = (workout_name or "").strip()[:WORKOUT_NAME_MAX].rstrip() or self.default_workout_name
        details = [
            WorkoutDetail(
                name=entry.name,
                type=entry.type,
                muscle=entry.muscle,
                sets=[self._finalize_set(entry, i, s) for i, s in enumerate(entry.sets)],
            )
            for entry in draft.exercises
        ]
        return SubmissionPayload(
            user_id=user_id,
            name=name,
            duration=draft.elapsed_seconds // 60,
            muscles=list(dict.fromkeys(entry.muscle for entry in draft.exercises)),
            details=details,
        )

    def summary(self) -> DraftSummary:
        draft = self.current()
        return DraftSummary(
            has_active_session=bool(draft.exercises) or draft.elapsed_seconds > 0,
            is_paused=not draft.is_running,
            exercise_count=len(draft.exercises),
            elapsed_seconds=draft.elapsed_seconds,
        )

    @property
    def is_running(self) -> bool:
        return self._current().is_running

    @property
    def has_running_set_timer(self) -> bool:
        """True when a tick would advance some Warmup/Stretching set."""
        draft = self._current()
        return draft.is_running and any(e.is_running and e.type.is_timed for e in draft.exercises)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _now(self, now: Optional[int]) -> int:
        return self.clock() if now is None else now

    def _current(self) -> Draft:
        if self._draft is None:
            self.load_draft()
        return self._draft

    @staticmethod
    def _refresh(draft: Draft, now: int) -> None:
        if draft.is_running:
            draft.elapsed_seconds = max(
                draft.elapsed_seconds,
                derive_elapsed(draft.base_seconds_at_last_resume, draft.last_resumed_at_millis, now),
            )

    def _snapshot(self) -> Draft:
        return self._draft.model_copy(deep=True)

    def _fresh(self, now: int) -> Draft:
        return Draft(
            exercises=[],
            elapsed_seconds=0,
            is_running=True,
            last_resumed_at_millis=now,
            base_seconds_at_last_resume=0,
        )

    def _next_instance_id(self, now: int) -> int:
        highest = max((e.instance_id for e in self._draft.exercises), default=0)
        self._last_instance_id = max(now, highest + 1, self._last_instance_id + 1)
        return self._last_instance_id

    def _entry(self, instance_id: int) -> ExerciseEntry:
        for entry in self._draft.exercises:
            if entry.instance_id == instance_id:
                return entry
        raise NotFound(instance_id)

    @staticmethod
    def _set(entry: ExerciseEntry, set_index: int) -> DraftSet:
        if not 0 <= set_index < len(entry.sets):
            raise IndexOutOfRange(entry.instance_id, set_index)
        return entry.sets[set_index]

    @staticmethod
    def _finalize_set(entry: ExerciseEntry, set_index: int, s: DraftSet):
        if isinstance(s, TimedSet):
            return TimedSetOut(elapsed_seconds=s.elapsed_seconds)
        return StrengthSetOut(
            weight=_parse_number(entry.name, set_index, "weight", s.weight, float),
            reps=_parse_number(entry.name, set_index, "reps", s.reps, int),
        )


def _parse_number(exercise: str, set_index: int, field: str, text: str, kind):
    text = (text or "").strip()
    if not text:
        return None
    try:
        value = kind(text)
    except ValueError:
        raise InvalidSetValue(exercise, set_index, field, text)
    if value < 0 or (kind is float and not math.isfinite(value)):
        raise InvalidSetValue(exercise, set_index, field, text)
    return value
