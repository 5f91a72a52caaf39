import pytest

from gainstracker.errors import IndexOutOfRange, InvalidSetField, InvalidSetValue, NotFound
from gainstracker.repositories.kv_repo import MemoryKeyValueStore
from gainstracker.schemas.draft import StrengthSet, TimedSet
from gainstracker.services.draft_manager import DraftKeys, DraftManager, format_elapsed

T0 = 1_700_000_000_000
KEYS = DraftKeys()

SQUAT = {"name": "Squat", "muscle": "Legs", "type": "Strength"}
BENCH = {"name": "Bench Press", "muscle": "Chest", "type": "Strength"}
FLY = {"name": "Cable Fly", "muscle": "Chest", "type": "Strength"}
HAMSTRING = {"name": "Hamstring Stretch", "muscle": "Legs", "type": "Stretching"}
JOG = {"name": "Jog", "muscle": "Full Body", "type": "Warmup"}


class FakeClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def manager(store, clock):
    m = DraftManager(store, clock=clock)
    m.load_draft()
    return m


# --- loading ---

def test_fresh_draft_starts_running_and_writes_nothing(manager, store):
    d = manager.load_draft()
    assert d.exercises == []
    assert d.is_running is True
    assert d.elapsed_seconds == 0
    assert d.last_resumed_at_millis == T0
    assert store.data == {}

def test_reload_while_running_counts_time_spent_closed(clock):
    store = MemoryKeyValueStore({
        KEYS.exercises: "[]",
        KEYS.elapsed_seconds: "3",  # stale
        KEYS.is_running: "true",
        KEYS.base_seconds_at_last_resume: "50",
        KEYS.last_resumed_at_millis: str(T0 - 10_000),
    })
    d = DraftManager(store, clock=clock).load_draft()
    assert d.elapsed_seconds == 60
    assert d.is_running is True

def test_reload_running_without_anchor_resumes_from_stored_elapsed(clock):
    store = MemoryKeyValueStore({
        KEYS.exercises: "[]",
        KEYS.elapsed_seconds: "42",
        KEYS.is_running: "true",
    })
    m = DraftManager(store, clock=clock)
    d = m.load_draft()
    assert d.elapsed_seconds == 42
    assert d.last_resumed_at_millis == T0
    clock.advance(3_000)
    assert m.tick().elapsed_seconds == 45

def test_reload_paused_keeps_frozen_elapsed(clock):
    store = MemoryKeyValueStore({
        KEYS.exercises: "[]",
        KEYS.elapsed_seconds: "120",
        KEYS.is_running: "false",
        KEYS.base_seconds_at_last_resume: "120",
    })
    d = DraftManager(store, clock=clock).load_draft(now=T0 + 999_000)
    assert d.is_running is False
    assert d.elapsed_seconds == 120
    assert d.last_resumed_at_millis is None

def test_missing_running_flag_defaults_to_running(clock):
    store = MemoryKeyValueStore({KEYS.exercises: "[]"})
    assert DraftManager(store, clock=clock).load_draft().is_running is True

def test_unreadable_draft_starts_fresh(clock):
    store = MemoryKeyValueStore({KEYS.exercises: "{not json", KEYS.elapsed_seconds: "77"})
    d = DraftManager(store, clock=clock).load_draft()
    assert d.exercises == []
    assert d.elapsed_seconds == 0

def test_entries_survive_a_restart(manager, store, clock):
    manager.add_exercise(SQUAT)
    d = manager.add_exercise(HAMSTRING)
    reloaded = DraftManager(store, clock=clock).load_draft()
    assert [e.name for e in reloaded.exercises] == ["Squat", "Hamstring Stretch"]
    assert reloaded.exercises == d.exercises


# --- global timer ---

def test_resume_after_pause_counts_from_paused_value(clock):
    store = MemoryKeyValueStore({
        KEYS.exercises: "[]",
        KEYS.elapsed_seconds: "120",
        KEYS.is_running: "false",
        KEYS.base_seconds_at_last_resume: "120",
    })
    m = DraftManager(store, clock=clock)
    m.load_draft()
    m.toggle_global_timer(now=T0)
    d = m.tick(now=T0 + 5_000)
    assert d.elapsed_seconds == 125

def test_pause_then_resume_with_no_time_passing_keeps_elapsed(manager, clock):
    clock.advance(7_000)
    assert manager.tick().elapsed_seconds == 7
    paused = manager.toggle_global_timer()
    assert paused.is_running is False
    resumed = manager.toggle_global_timer()
    assert resumed.is_running is True
    assert resumed.elapsed_seconds == 7
    assert manager.tick().elapsed_seconds == 7

def test_tick_recomputes_from_anchor_not_by_counting(manager, clock):
    # only two ticks fire across 90 seconds (app was suspended)
    clock.advance(1_000)
    manager.tick()
    clock.advance(89_000)
    assert manager.tick().elapsed_seconds == 90

def test_tick_while_paused_is_a_noop(manager, clock, store):
    clock.advance(4_000)
    manager.tick()
    manager.toggle_global_timer()
    clock.advance(60_000)
    assert manager.tick().elapsed_seconds == 4
    assert store.data[KEYS.elapsed_seconds] == "4"

def test_clock_going_backwards_never_shrinks_elapsed(manager, clock):
    clock.advance(10_000)
    manager.tick()
    assert manager.tick(now=T0 - 5_000).elapsed_seconds == 10
    assert manager.tick(now=T0 + 11_000).elapsed_seconds == 11

def test_pause_persists_snapshot_and_drops_anchor(manager, clock, store):
    clock.advance(3_000)
    manager.tick()
    manager.toggle_global_timer()
    assert store.data[KEYS.is_running] == "false"
    assert store.data[KEYS.base_seconds_at_last_resume] == "3"
    assert KEYS.last_resumed_at_millis not in store.data
    manager.toggle_global_timer()
    assert store.data[KEYS.last_resumed_at_millis] == str(clock.now)


# --- entries and sets ---

def test_add_exercise_defaults_by_category(manager):
    manager.add_exercise(SQUAT)
    manager.add_exercise(JOG)
    d = manager.add_exercise(HAMSTRING)
    squat, jog, stretch = d.exercises
    assert squat.sets == [StrengthSet(weight="", reps="")]
    assert jog.sets == [TimedSet(elapsed_seconds=0)]
    assert stretch.sets == [TimedSet(elapsed_seconds=0)]
    assert all(not e.is_running and e.active_set_index == 0 for e in d.exercises)

def test_instance_ids_unique_within_the_same_millisecond(manager):
    manager.add_exercise(SQUAT)
    manager.add_exercise(SQUAT)
    d = manager.add_exercise(SQUAT)
    ids = [e.instance_id for e in d.exercises]
    assert len(set(ids)) == 3
    assert ids == sorted(ids)

def test_remove_exercise(manager):
    manager.add_exercise(SQUAT)
    d = manager.add_exercise(BENCH)
    d = manager.remove_exercise(d.exercises[0].instance_id)
    assert [e.name for e in d.exercises] == ["Bench Press"]

def test_remove_missing_exercise_is_noop(manager, store):
    d = manager.remove_exercise(12345)
    assert d.exercises == []
    assert store.data == {}

def test_add_set_appends_category_default(manager):
    d = manager.add_exercise(HAMSTRING)
    d = manager.add_set(d.exercises[0].instance_id)
    assert d.exercises[0].sets == [TimedSet(elapsed_seconds=0), TimedSet(elapsed_seconds=0)]

def test_add_set_unknown_entry(manager):
    with pytest.raises(NotFound):
        manager.add_set(999)

def test_update_set_field(manager):
    iid = manager.add_exercise(SQUAT).exercises[0].instance_id
    manager.update_set_field(iid, 0, "weight", "60")
    d = manager.update_set_field(iid, 0, "reps", 5)
    assert d.exercises[0].sets[0] == StrengthSet(weight="60", reps="5")

def test_update_set_field_errors(manager):
    iid = manager.add_exercise(SQUAT).exercises[0].instance_id
    with pytest.raises(IndexOutOfRange):
        manager.update_set_field(iid, 3, "weight", "60")
    with pytest.raises(IndexOutOfRange):
        manager.update_set_field(iid, -1, "weight", "60")
    with pytest.raises(InvalidSetField):
        manager.update_set_field(iid, 0, "elapsed_seconds", 5)
    with pytest.raises(NotFound):
        manager.update_set_field(iid + 1, 0, "weight", "60")

def test_update_timed_set_requires_whole_seconds(manager):
    iid = manager.add_exercise(JOG).exercises[0].instance_id
    assert manager.update_set_field(iid, 0, "elapsed_seconds", "30").exercises[0].sets[0].elapsed_seconds == 30
    with pytest.raises(InvalidSetField):
        manager.update_set_field(iid, 0, "elapsed_seconds", "abc")
    with pytest.raises(InvalidSetField):
        manager.update_set_field(iid, 0, "elapsed_seconds", -4)
    assert manager.update_set_field(iid, 0, "elapsed_seconds", 45.0).exercises[0].sets[0].elapsed_seconds == 45
    with pytest.raises(InvalidSetField):
        manager.update_set_field(iid, 0, "elapsed_seconds", 2.5)
    with pytest.raises(InvalidSetField):
        manager.update_set_field(iid, 0, "elapsed_seconds", None)

def test_strength_values_are_kept_as_entered_text(manager):
    iid = manager.add_exercise(SQUAT).exercises[0].instance_id
    manager.update_set_field(iid, 0, "weight", 12.5)
    d = manager.update_set_field(iid, 0, "reps", None)
    assert d.exercises[0].sets[0] == StrengthSet(weight="12.5", reps="")
    assert manager.build_submission("", user_id=1).details[0].sets[0].weight == 12.5


# --- per-set timers ---

def test_set_timer_only_advances_the_active_set(manager, clock):
    iid = manager.add_exercise(HAMSTRING).exercises[0].instance_id
    manager.add_set(iid)
    manager.toggle_set_timer(iid, 1)
    for _ in range(3):
        clock.advance(1_000)
        d = manager.tick()
    sets = d.exercises[0].sets
    assert sets[0].elapsed_seconds == 0
    assert sets[1].elapsed_seconds == 3

def test_stopping_a_set_timer_keeps_its_time(manager, clock):
    iid = manager.add_exercise(JOG).exercises[0].instance_id
    manager.toggle_set_timer(iid, 0)
    clock.advance(1_000)
    manager.tick()
    clock.advance(1_000)
    manager.tick()
    d = manager.toggle_set_timer(iid, 0)
    assert d.exercises[0].is_running is False
    clock.advance(1_000)
    d = manager.tick()
    assert d.exercises[0].sets[0].elapsed_seconds == 2

def test_starting_another_set_moves_the_timer(manager, clock):
    iid = manager.add_exercise(HAMSTRING).exercises[0].instance_id
    manager.add_set(iid)
    manager.toggle_set_timer(iid, 0)
    d = manager.toggle_set_timer(iid, 1)
    assert d.exercises[0].is_running is True
    assert d.exercises[0].active_set_index == 1

def test_set_timers_of_different_entries_run_together(manager, clock):
    a = manager.add_exercise(HAMSTRING).exercises[0].instance_id
    b = manager.add_exercise(JOG).exercises[1].instance_id
    manager.toggle_set_timer(a, 0)
    manager.toggle_set_timer(b, 0)
    clock.advance(1_000)
    d = manager.tick()
    assert [e.sets[0].elapsed_seconds for e in d.exercises] == [1, 1]

def test_set_timer_ignored_while_paused(manager):
    iid = manager.add_exercise(HAMSTRING).exercises[0].instance_id
    manager.toggle_global_timer()
    d = manager.toggle_set_timer(iid, 0)
    assert d.exercises[0].is_running is False

def test_set_timer_ignored_for_strength(manager):
    iid = manager.add_exercise(SQUAT).exercises[0].instance_id
    d = manager.toggle_set_timer(iid, 0)
    assert d.exercises[0].is_running is False

def test_set_timer_bad_index(manager):
    iid = manager.add_exercise(HAMSTRING).exercises[0].instance_id
    with pytest.raises(IndexOutOfRange):
        manager.toggle_set_timer(iid, 1)


# --- discard ---

def test_discard_clears_all_keys(manager, store, clock):
    manager.add_exercise(SQUAT)
    clock.advance(65_000)
    manager.tick()
    manager.toggle_global_timer()
    manager.toggle_global_timer()
    assert set(KEYS.all()) <= set(store.data)
    manager.discard()
    assert not any(k in store.data for k in KEYS.all())
    d = DraftManager(store, clock=clock).load_draft()
    assert d.exercises == []
    assert d.is_running is True
    assert d.elapsed_seconds == 0

def test_next_session_clock_starts_when_first_touched(manager, clock):
    manager.add_exercise(SQUAT)
    manager.discard()
    clock.advance(3_600_000)
    d = manager.current()
    assert d.elapsed_seconds == 0
    assert d.last_resumed_at_millis == clock.now

def test_discard_leaves_other_keys_alone(manager, store):
    store.data["workoutToken"] = "abc"
    manager.add_exercise(SQUAT)
    manager.discard()
    assert store.data == {"workoutToken": "abc"}


# --- submission ---

def test_submission_dedupes_muscles_and_defaults_name(manager):
    manager.add_exercise(BENCH)
    manager.add_exercise(FLY)
    p = manager.build_submission("   ", user_id=7)
    assert p.muscles == ["Chest"]
    assert p.name == "Daily Session"
    assert p.user_id == 7

def test_submission_keeps_given_name_trimmed(manager):
    manager.add_exercise(BENCH)
    assert manager.build_submission("  Push Day ", user_id=1).name == "Push Day"

def test_submission_name_is_capped(manager):
    manager.add_exercise(BENCH)
    assert manager.build_submission("y" * 300, user_id=1).name == "y" * 120
    assert manager.build_submission(" " * 300, user_id=1).name == "Daily Session"

def test_submission_duration_without_any_tick(manager, clock):
    manager.add_exercise(SQUAT)
    clock.advance(185_000)
    assert manager.build_submission("", user_id=1).duration == 3

def test_submission_duration_is_whole_minutes(manager, clock):
    manager.add_exercise(SQUAT)
    clock.advance(119_000)
    manager.tick()
    assert manager.build_submission("", user_id=1).duration == 1

def test_submission_parses_strength_sets(manager):
    iid = manager.add_exercise(SQUAT).exercises[0].instance_id
    manager.add_set(iid)
    manager.update_set_field(iid, 0, "weight", "62.5")
    manager.update_set_field(iid, 0, "reps", "8")
    p = manager.build_submission("Legs", user_id=1)
    detail = p.details[0]
    assert detail.name == "Squat"
    assert detail.muscle == "Legs"
    assert detail.sets[0].weight == 62.5
    assert detail.sets[0].reps == 8
    assert detail.sets[1].weight is None and detail.sets[1].reps is None

def test_submission_projects_timed_sets(manager, clock):
    iid = manager.add_exercise(HAMSTRING).exercises[0].instance_id
    manager.toggle_set_timer(iid, 0)
    clock.advance(1_000)
    manager.tick()
    dumped = manager.build_submission("", user_id=1).model_dump(mode="json")
    assert dumped["details"] == [
        {"name": "Hamstring Stretch", "type": "Stretching", "muscle": "Legs", "sets": [{"elapsed_seconds": 1}]}
    ]

@pytest.mark.parametrize("field,value", [("weight", "heavy"), ("reps", "8.5"), ("weight", "-5")])
def test_submission_rejects_bad_numbers(manager, field, value):
    iid = manager.add_exercise(SQUAT).exercises[0].instance_id
    manager.update_set_field(iid, 0, field, value)
    with pytest.raises(InvalidSetValue):
        manager.build_submission("", user_id=1)

def test_build_submission_does_not_clear_draft(manager, store):
    manager.add_exercise(SQUAT)
    manager.build_submission("", user_id=1)
    assert KEYS.exercises in store.data
    assert len(manager.load_draft().exercises) == 1


# --- helpers ---

def test_summary(manager, clock):
    s = manager.summary()
    assert s.has_active_session is False
    manager.add_exercise(SQUAT)
    manager.toggle_global_timer()
    s = manager.summary()
    assert s.has_active_session is True
    assert s.is_paused is True
    assert s.exercise_count == 1

def test_summary_and_pause_derive_elapsed_without_ticks(manager, clock):
    clock.advance(42_000)
    assert manager.summary().elapsed_seconds == 42
    paused = manager.toggle_global_timer()
    assert paused.elapsed_seconds == 42
    assert paused.base_seconds_at_last_resume == 42
    clock.advance(10_000)
    assert manager.summary().elapsed_seconds == 42

def test_format_elapsed():
    assert format_elapsed(0) == "00:00"
    assert format_elapsed(65) == "01:05"
    assert format_elapsed(3_725) == "62:05"

def test_returned_draft_is_a_copy(manager):
    d = manager.add_exercise(SQUAT)
    d.exercises.clear()
    assert len(manager.current().exercises) == 1
