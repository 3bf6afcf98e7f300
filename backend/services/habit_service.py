"""
habit_service.py — Habits, completion toggles and streaks
The streak engine works on a single stored record and the current instant:
no completion history is kept, so "consecutive" means the last completion
fell on today or yesterday (UTC calendar days).
"""

import logging
import uuid
from datetime import datetime

import config
from errors import AppError, HabitNotFound, VersionConflict
from models.records import HabitRecord
from services import date_service
from stores.base import HabitStore

logger = logging.getLogger(__name__)


def compute_toggle(habit: HabitRecord, now: datetime) -> dict:
    """
    Next completion state when the user toggles a habit.

    Completing continues the streak when the previous completion was today
    or yesterday, otherwise starts over at 1. Un-completing only gives the
    streak back when the completion being undone happened today.

    Returns:
        The changed fields only (completed_today, streak, last_completed_at).
    """
    today = date_service.today(now)
    last_day = date_service.calendar_day(habit.last_completed_at)

    if not habit.completed_today:
        continues = last_day is not None and last_day in (today, date_service.yesterday(today))
        return {
            "completed_today": True,
            "streak": habit.streak + 1 if continues else 1,
            "last_completed_at": now,
        }

    updates = {"completed_today": False}
    if last_day == today:
        new_streak = max(habit.streak - 1, 0)
        updates["streak"] = new_streak
        # The timestamp before this completion is not kept, so only clear it at zero
        if new_streak == 0:
            updates["last_completed_at"] = None
    return updates


class HabitService:
    @staticmethod
    def create_habit(store: HabitStore, owner: str, data: dict, now: datetime) -> HabitRecord:
        record = HabitRecord(
            id=str(uuid.uuid4()),
            owner=owner,
            name=data["name"],
            description=data.get("description") or None,
            frequency=data.get("frequency", "daily"),
            completed_today=False,
            streak=0,
            created_at=now,
            updated_at=now,
            last_completed_at=None,
        )
        return store.put(record)

    @staticmethod
    def get_habit(store: HabitStore, owner: str, habit_id: str) -> HabitRecord:
        habit = store.get(owner, habit_id)
        if habit is None:
            raise HabitNotFound(habit_id)
        return habit

    @staticmethod
    def list_habits(
        store: HabitStore,
        owner: str,
        frequency: str | None = None,
        completed_today: bool | None = None,
        limit: int = config.HABITS_DEFAULT_LIMIT,
        offset: int = 0,
    ) -> dict:
        """Filtered page of an owner's habits plus the filtered total."""
        limit = max(0, min(limit, config.HABITS_MAX_LIMIT))
        offset = max(0, offset)

        habits = store.list_by_owner(owner)
        if frequency:
            habits = [h for h in habits if h.frequency == frequency]
        if completed_today is not None:
            habits = [h for h in habits if h.completed_today == completed_today]

        return {
            "habits": habits[offset:offset + limit],
            "total": len(habits),
            "limit": limit,
            "offset": offset,
        }

    @staticmethod
    def update_habit(store: HabitStore, owner: str, habit_id: str, data: dict, now: datetime) -> HabitRecord:
        """Edit name/description/frequency. Completion state only moves through toggle()."""
        fields = {k: v for k, v in data.items() if k in ("name", "description", "frequency")}
        fields["updated_at"] = now
        return store.update(owner, habit_id, fields)

    @staticmethod
    def delete_habit(store: HabitStore, owner: str, habit_id: str):
        if not store.delete(owner, habit_id):
            raise HabitNotFound(habit_id)

    @staticmethod
    def toggle(store: HabitStore, owner: str, habit_id: str, now: datetime) -> HabitRecord:
        """Read, compute and write back in one version-guarded update."""
        habit = store.get(owner, habit_id)
        if habit is None:
            raise HabitNotFound(habit_id)

        fields = compute_toggle(habit, now)
        fields["updated_at"] = now
        updated = store.update(owner, habit_id, fields, expected_version=habit.version)
        logger.info(
            f"Toggled habit {habit_id} for {owner}: completed={updated.completed_today} streak={updated.streak}"
        )
        return updated

    @staticmethod
    def _sweep(store: HabitStore, owner: str, now: datetime, before_day: str | None = None) -> tuple[int, list[str]]:
        """
        Clear the flag on each completed habit, guarded by the version read here.

        A habit changed or deleted since the listing is left as the other
        writer made it; a changed one is reported back as pending so the
        day's marker is not recorded and the next check looks again.
        """
        reset_count = 0
        pending: list[str] = []
        for habit in store.list_by_owner(owner):
            if not habit.completed_today:
                continue
            if before_day and (date_service.calendar_day(habit.last_completed_at) or "") >= before_day:
                continue
            try:
                store.update(
                    owner, habit.id, {"completed_today": False, "updated_at": now}, expected_version=habit.version
                )
                reset_count += 1
            except HabitNotFound:
                continue
            except VersionConflict:
                logger.info(f"Habit {habit.id} of {owner} changed during the daily reset, left as is")
                pending.append(habit.id)
            except AppError as e:
                # Best-effort: earlier resets stay, the rest still get their turn
                logger.warning(f"Daily reset failed for habit {habit.id} of {owner}: {e}")
                pending.append(habit.id)
        return reset_count, pending

    @staticmethod
    def _finish_sweep(store: HabitStore, owner: str, now: datetime, reset_count: int, pending: list[str]) -> int:
        if not pending:
            store.set_last_reset(owner, date_service.today(now))
        logger.info(f"Reset {reset_count} habit(s) for {owner} ({len(pending)} pending)")
        return reset_count

    @staticmethod
    def reset_all(store: HabitStore, owner: str, now: datetime) -> int:
        """
        Clear completed_today on every completed habit of an owner.

        streak and last_completed_at are left alone so the next toggle can
        still see yesterday's completion. Safe to call repeatedly; the day's
        reset marker is only recorded when every habit was handled.

        Returns:
            Number of habits actually changed.
        """
        reset_count, pending = HabitService._sweep(store, owner, now)
        return HabitService._finish_sweep(store, owner, now, reset_count, pending)

    @staticmethod
    def ensure_daily_reset(store: HabitStore, owner: str, now: datetime) -> int | None:
        """
        Run the reset once per calendar day. Returns None when already done today.

        Only completions from earlier days are cleared, so the first sweep for
        an owner without a marker keeps whatever was completed today.
        """
        last_reset = store.get_last_reset(owner)
        if not date_service.has_new_day_started(last_reset, now):
            return None
        today = date_service.today(now)
        reset_count, pending = HabitService._sweep(store, owner, now, before_day=today)
        return HabitService._finish_sweep(store, owner, now, reset_count, pending)
