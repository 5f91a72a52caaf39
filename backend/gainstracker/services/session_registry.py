# gainstracker/services/session_registry.py
"""
One owning handle per user draft.

``DraftController`` wraps a ``DraftManager`` together with the ticker that
drives it and the submitter that receives finished workouts. Every operation
goes through the controller and holds its lock, which the ticker thread takes
too, so the draft has a single writer. Elapsed time is derived from the
anchor on every read, so the ticker is only armed while a Warmup/Stretching
set timer is running.
"""
from __future__ import annotations
import logging
import threading
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session

from gainstracker.errors import EmptyDraft
from gainstracker.models import Workout
from gainstracker.repositories.kv_repo import SqlKeyValueStore
from gainstracker.schemas.draft import Draft, DraftSummary
from gainstracker.services.clock import Clock, now_millis
from gainstracker.services.draft_manager import DraftManager
from gainstracker.services.submission import RepositorySubmitter, WorkoutSubmitter
from gainstracker.services.ticker import SessionTicker
from gainstracker.settings import Settings

log = logging.getLogger(__name__)


class DraftController:
    def __init__(self, manager: DraftManager, submitter: WorkoutSubmitter, *, tick_interval: float = 1.0):
        self.manager = manager
        self.submitter = submitter
        self.lock = threading.RLock()
        self.ticker = SessionTicker(tick_interval, self._on_tick, lock=self.lock)

    def _on_tick(self) -> None:
        # called by the ticker with self.lock held
        self.manager.tick()
        self._sync_ticker()

    def _sync_ticker(self) -> None:
        if self.manager.has_running_set_timer:
            self.ticker.arm()
        else:
            self.ticker.disarm()

    def _run(self, op: Callable[..., Draft], *args: Any) -> Draft:
        with self.lock:
            draft = op(*args)
            self._sync_ticker()
            return draft

    def load(self) -> Draft:
        return self._run(self.manager.load_draft)

    def current(self) -> Draft:
        return self._run(self.manager.current)

    def summary(self) -> DraftSummary:
        with self.lock:
            return self.manager.summary()

    def toggle_global_timer(self) -> Draft:
        return self._run(self.manager.toggle_global_timer)

    def add_exercise(self, template: Any) -> Draft:
        return self._run(self.manager.add_exercise, template)

    def remove_exercise(self, instance_id: int) -> Draft:
        return self._run(self.manager.remove_exercise, instance_id)

    def add_set(self, instance_id: int) -> Draft:
        return self._run(self.manager.add_set, instance_id)

    def update_set_field(self, instance_id: int, set_index: int, field: str, value: Any) -> Draft:
        return self._run(self.manager.update_set_field, instance_id, set_index, field, value)

    def toggle_set_timer(self, instance_id: int, set_index: int) -> Draft:
        return self._run(self.manager.toggle_set_timer, instance_id, set_index)

    def discard(self) -> bool:
        with self.lock:
            self.ticker.disarm()
            return self.manager.discard()

    def finish(self, workout_name: Optional[str], user_id: int) -> tuple[Workout, bool]:
        """
        Save the draft as a workout; the draft is only cleared once saved.

        Returns the workout and whether the stored draft was cleared. When it
        was not, the clear is retried on the next load or write.
        """
        with self.lock:
            if not self.manager.summary().exercise_count:
                raise EmptyDraft()
            payload = self.manager.build_submission(workout_name, user_id)
            workout = self.submitter.submit(payload)
            cleared = self.discard()
        log.info("user %s saved workout %r (%s min)", user_id, payload.name, payload.duration)
        if not cleared:
            log.warning("user %s: saved workout %s but the stored draft is still there", user_id, workout.id)
        return workout, cleared

    def shutdown(self) -> None:
        self.ticker.disarm()


class SessionRegistry:
    """
    Controllers by user id, created on first use. A controller untouched for
    ``DRAFT_IDLE_SECONDS`` is shut down and dropped; its draft stays in the
    store and is reloaded on the next request.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        settings: Settings,
        *,
        clock: Clock = now_millis,
    ):
        self.session_factory = session_factory
        self.settings = settings
        self.clock = clock
        self._controllers: dict[int, DraftController] = {}
        self._last_seen: dict[int, int] = {}
        self._lock = threading.Lock()

    def get(self, user_id: int) -> DraftController:
        now = self.clock()
        with self._lock:
            self._evict_idle(now)
            controller = self._controllers.get(user_id)
            if controller is None:
                controller = self._build(user_id)
                controller.load()
                self._controllers[user_id] = controller
            self._last_seen[user_id] = now
            return controller

    def _build(self, user_id: int) -> DraftController:
        manager = DraftManager(
            SqlKeyValueStore(self.session_factory, f"user:{user_id}"),
            clock=self.clock,
            key_prefix=self.settings.DRAFT_KEY_PREFIX,
            default_workout_name=self.settings.DEFAULT_WORKOUT_NAME,
        )
        return DraftController(
            manager,
            RepositorySubmitter(self.session_factory),
            tick_interval=self.settings.TICK_INTERVAL_SECONDS,
        )

    def _evict_idle(self, now: int) -> None:
        cutoff = now - int(self.settings.DRAFT_IDLE_SECONDS * 1000)
        for user_id in [u for u, seen in self._last_seen.items() if seen < cutoff]:
            log.debug("evicting idle session controller for user %s", user_id)
            self._drop(user_id)

    def _drop(self, user_id: int) -> None:
        self._last_seen.pop(user_id, None)
        controller = self._controllers.pop(user_id, None)
        if controller is not None:
            controller.shutdown()

    def __len__(self) -> int:
        return len(self._controllers)

    def close(self, user_id: int) -> None:
        with self._lock:
            self._drop(user_id)

    def close_all(self) -> None:
        with self._lock:
            for user_id in list(self._controllers):
                self._drop(user_id)
