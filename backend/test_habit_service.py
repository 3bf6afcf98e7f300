"""Streak engine, toggle and daily reset sweep."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from errors import HabitNotFound, StoreUnavailable, VersionConflict
from models.records import HabitRecord
from services.habit_service import HabitService, compute_toggle
from stores.memory import InMemoryHabitStore

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)
OWNER = "user-1"


def make_habit(**overrides) -> HabitRecord:
    values = dict(
        id="h1",
        owner=OWNER,
        name="Read",
        frequency="daily",
        created_at=NOW - timedelta(days=30),
        updated_at=NOW - timedelta(days=30),
    )
    values.update(overrides)
    return HabitRecord(**values)


# ── compute_toggle ────────────────────────────────────────────────
def test_first_completion_starts_streak():
    fields = compute_toggle(make_habit(), NOW)
    assert fields == {"completed_today": True, "streak": 1, "last_completed_at": NOW}


def test_completion_after_yesterday_continues_streak():
    habit = make_habit(streak=3, last_completed_at=NOW - timedelta(days=1))
    fields = compute_toggle(habit, NOW)
    assert fields["streak"] == 4
    assert fields["completed_today"] is True


def test_completion_just_after_midnight_continues_streak():
    just_before = datetime(2024, 3, 9, 23, 59, tzinfo=timezone.utc)
    just_after = datetime(2024, 3, 10, 0, 1, tzinfo=timezone.utc)
    habit = make_habit(streak=2, last_completed_at=just_before)
    assert compute_toggle(habit, just_after)["streak"] == 3


def test_gap_of_three_days_breaks_streak():
    habit = make_habit(streak=5, last_completed_at=NOW - timedelta(days=3))
    assert compute_toggle(habit, NOW)["streak"] == 1


def test_undo_same_day_gives_streak_back():
    habit = make_habit(completed_today=True, streak=4, last_completed_at=NOW - timedelta(hours=2))
    fields = compute_toggle(habit, NOW)
    assert fields == {"completed_today": False, "streak": 3}


def test_undo_to_zero_clears_timestamp():
    habit = make_habit(completed_today=True, streak=1, last_completed_at=NOW - timedelta(hours=1))
    fields = compute_toggle(habit, NOW)
    assert fields == {"completed_today": False, "streak": 0, "last_completed_at": None}


def test_undo_on_a_later_day_leaves_streak_alone():
    habit = make_habit(completed_today=True, streak=4, last_completed_at=NOW - timedelta(days=1))
    assert compute_toggle(habit, NOW) == {"completed_today": False}


def test_undo_never_goes_negative():
    habit = make_habit(completed_today=True, streak=0, last_completed_at=NOW)
    assert compute_toggle(habit, NOW)["streak"] == 0


def test_invariants_hold_over_random_toggle_sequences():
    rng = random.Random(1234)
    store = InMemoryHabitStore()
    store.put(make_habit())
    now = NOW
    for _ in range(500):
        now += timedelta(hours=rng.choice([0, 1, 5, 13, 24, 49]))
        if rng.random() < 0.15:
            HabitService.reset_all(store, OWNER, now)
        else:
            HabitService.toggle(store, OWNER, "h1", now)
        habit = store.get(OWNER, "h1")
        assert habit.streak >= 0
        if habit.completed_today:
            assert habit.last_completed_at is not None
        if habit.last_completed_at is None:
            assert habit.streak == 0


# ── toggle through the store ──────────────────────────────────────
def test_toggle_round_trip_persists():
    store = InMemoryHabitStore()
    store.put(make_habit(streak=3, last_completed_at=NOW - timedelta(days=1)))

    done = HabitService.toggle(store, OWNER, "h1", NOW)
    assert (done.completed_today, done.streak, done.last_completed_at) == (True, 4, NOW)

    undone = HabitService.toggle(store, OWNER, "h1", NOW + timedelta(minutes=5))
    assert (undone.completed_today, undone.streak) == (False, 3)
    assert undone.last_completed_at == NOW
    assert undone.updated_at == NOW + timedelta(minutes=5)


def test_toggle_unknown_habit_is_not_found_and_writes_nothing():
    store = InMemoryHabitStore()
    store.put(make_habit())
    before = store.get(OWNER, "h1")

    with pytest.raises(HabitNotFound):
        HabitService.toggle(store, "someone-else", "h1", NOW)
    with pytest.raises(HabitNotFound):
        HabitService.toggle(store, OWNER, "missing", NOW)

    assert store.get(OWNER, "h1") == before


def test_toggle_loses_race_with_conflict():
    class RacingStore(InMemoryHabitStore):
        """Another writer slips in between our read and write."""

        def get(self, owner, habit_id):
            habit = super().get(owner, habit_id)
            super().update(owner, habit_id, {"name": "Renamed"})
            return habit

    store = RacingStore()
    store.put(make_habit())
    with pytest.raises(VersionConflict):
        HabitService.toggle(store, OWNER, "h1", NOW)


def test_reset_does_not_overwrite_a_concurrent_toggle():
    class TogglingDuringReset(InMemoryHabitStore):
        """The user un-completes and re-completes between the sweep's read and write."""

        raced = False

        def update(self, owner, habit_id, fields, expected_version=None):
            if not self.raced:
                self.raced = True
                HabitService.toggle(self, owner, habit_id, NOW)
                HabitService.toggle(self, owner, habit_id, NOW)
            return super().update(owner, habit_id, fields, expected_version)

    store = TogglingDuringReset()
    store.put(make_habit(completed_today=True, streak=3, last_completed_at=NOW - timedelta(days=1)))

    assert HabitService.ensure_daily_reset(store, OWNER, NOW) == 0
    habit = store.get(OWNER, "h1")
    assert (habit.completed_today, habit.streak, habit.last_completed_at) == (True, 4, NOW)
    assert store.get_last_reset(OWNER) is None

    # the next check sees today's completion and leaves it
    assert HabitService.ensure_daily_reset(store, OWNER, NOW) == 0
    assert store.get_last_reset(OWNER) == "2024-03-10"

    undone = HabitService.toggle(store, OWNER, "h1", NOW)
    assert (undone.completed_today, undone.streak) == (False, 3)


def test_reset_skips_habit_deleted_mid_sweep():
    class DeletingDuringReset(InMemoryHabitStore):
        def update(self, owner, habit_id, fields, expected_version=None):
            self.delete(owner, habit_id)
            return super().update(owner, habit_id, fields, expected_version)

    store = DeletingDuringReset()
    store.put(make_habit(completed_today=True, streak=1, last_completed_at=NOW))

    assert HabitService.reset_all(store, OWNER, NOW) == 0
    assert store.get_last_reset(OWNER) == "2024-03-10"


# ── reset sweep ───────────────────────────────────────────────────
def test_reset_preserves_streak_memory():
    store = InMemoryHabitStore()
    store.put(make_habit(completed_today=True, streak=2, last_completed_at=NOW))

    assert HabitService.reset_all(store, OWNER, NOW) == 1

    habit = store.get(OWNER, "h1")
    assert habit.completed_today is False
    assert habit.streak == 2
    assert habit.last_completed_at == NOW


def test_reset_counts_only_completed_and_is_idempotent():
    store = InMemoryHabitStore()
    store.put(make_habit(id="a", completed_today=True, streak=1, last_completed_at=NOW))
    store.put(make_habit(id="b"))
    store.put(make_habit(id="c", completed_today=True, streak=7, last_completed_at=NOW))
    store.put(make_habit(id="other", owner="user-2", completed_today=True, streak=1, last_completed_at=NOW))

    assert HabitService.reset_all(store, OWNER, NOW) == 2
    assert HabitService.reset_all(store, OWNER, NOW) == 0
    assert store.get("user-2", "other").completed_today is True


def test_reset_continues_past_failures():
    class FlakyStore(InMemoryHabitStore):
        def update(self, owner, habit_id, fields, expected_version=None):
            if habit_id == "b":
                raise StoreUnavailable()
            return super().update(owner, habit_id, fields, expected_version)

    store = FlakyStore()
    for habit_id in ("a", "b", "c"):
        store.put(make_habit(id=habit_id, completed_today=True, streak=1, last_completed_at=NOW))

    assert HabitService.reset_all(store, OWNER, NOW) == 2
    assert store.get(OWNER, "a").completed_today is False
    assert store.get(OWNER, "b").completed_today is True
    assert store.get(OWNER, "c").completed_today is False
    # Not marked done for the day, so the next listing tries again
    assert store.get_last_reset(OWNER) is None


def test_ensure_daily_reset_runs_once_per_day():
    store = InMemoryHabitStore()
    store.put(make_habit(completed_today=True, streak=1, last_completed_at=NOW - timedelta(days=1)))

    assert HabitService.ensure_daily_reset(store, OWNER, NOW) == 1
    assert store.get_last_reset(OWNER) == "2024-03-10"

    HabitService.toggle(store, OWNER, "h1", NOW + timedelta(hours=1))
    assert HabitService.ensure_daily_reset(store, OWNER, NOW + timedelta(hours=2)) is None
    assert store.get(OWNER, "h1").completed_today is True

    next_day = NOW + timedelta(days=1)
    assert HabitService.ensure_daily_reset(store, OWNER, next_day) == 1
    habit = HabitService.toggle(store, OWNER, "h1", next_day)
    assert habit.streak == 3


def test_first_lazy_reset_keeps_todays_completions():
    store = InMemoryHabitStore()
    store.put(make_habit(id="today", completed_today=True, streak=4, last_completed_at=NOW - timedelta(hours=2)))
    store.put(make_habit(id="stale", completed_today=True, streak=1, last_completed_at=NOW - timedelta(days=2)))

    assert HabitService.ensure_daily_reset(store, OWNER, NOW) == 1
    assert store.get(OWNER, "today").completed_today is True
    assert store.get(OWNER, "stale").completed_today is False


# ── CRUD ──────────────────────────────────────────────────────────
def test_create_habit_defaults():
    store = InMemoryHabitStore()
    habit = HabitService.create_habit(store, OWNER, {"name": "Walk", "frequency": "weekly"}, NOW)
    assert habit.completed_today is False
    assert habit.streak == 0
    assert habit.last_completed_at is None
    assert habit.description is None
    assert habit.created_at == habit.updated_at == NOW
    assert store.get(OWNER, habit.id) == habit


def test_list_habits_filters_and_paginates():
    store = InMemoryHabitStore()
    for i in range(5):
        store.put(make_habit(
            id=f"h{i}",
            frequency="weekly" if i % 2 else "daily",
            completed_today=i == 0,
            created_at=NOW + timedelta(minutes=i),
        ))

    page = HabitService.list_habits(store, OWNER, limit=2, offset=1)
    assert [h.id for h in page["habits"]] == ["h1", "h2"]
    assert page["total"] == 5

    daily = HabitService.list_habits(store, OWNER, frequency="daily")
    assert [h.id for h in daily["habits"]] == ["h0", "h2", "h4"]

    done = HabitService.list_habits(store, OWNER, completed_today=True)
    assert [h.id for h in done["habits"]] == ["h0"]

    capped = HabitService.list_habits(store, OWNER, limit=1000)
    assert capped["limit"] == 100


def test_update_habit_ignores_completion_fields():
    store = InMemoryHabitStore()
    store.put(make_habit())
    later = NOW + timedelta(hours=1)
    habit = HabitService.update_habit(
        store, OWNER, "h1", {"name": "Read more", "streak": 99, "completed_today": True}, later
    )
    assert habit.name == "Read more"
    assert habit.streak == 0
    assert habit.completed_today is False
    assert habit.updated_at == later


def test_delete_habit():
    store = InMemoryHabitStore()
    store.put(make_habit())
    HabitService.delete_habit(store, OWNER, "h1")
    assert store.get(OWNER, "h1") is None
    with pytest.raises(HabitNotFound):
        HabitService.delete_habit(store, OWNER, "h1")
