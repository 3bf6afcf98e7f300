"""
memory.py — In-process stores
Dict-backed stores guarded by a lock so a single update is atomic. Used by
the tests and by STORE_BACKEND=memory for throwaway local runs.
"""

import threading
from dataclasses import replace

from errors import HabitNotFound, VersionConflict, UserAlreadyExists
from models.records import HabitRecord, UserRecord
from stores.base import HabitStore, UserStore, updatable


class InMemoryHabitStore(HabitStore):

    def __init__(self):
        self._lock = threading.Lock()
        # (owner, habit_id) → HabitRecord
        self._habits: dict[tuple[str, str], HabitRecord] = {}
        self._resets: dict[str, str] = {}

    def put(self, record: HabitRecord) -> HabitRecord:
        with self._lock:
            self._habits[(record.owner, record.id)] = replace(record)
            return replace(record)

    def get(self, owner: str, habit_id: str) -> HabitRecord | None:
        with self._lock:
            record = self._habits.get((owner, habit_id))
            return replace(record) if record else None

    def update(self, owner: str, habit_id: str, fields: dict, expected_version: int | None = None) -> HabitRecord:
        with self._lock:
            current = self._habits.get((owner, habit_id))
            if current is None:
                raise HabitNotFound(habit_id)
            if expected_version is not None and current.version != expected_version:
                raise VersionConflict(habit_id)
            updated = replace(current, version=current.version + 1, **updatable(fields))
            self._habits[(owner, habit_id)] = updated
            return replace(updated)

    def delete(self, owner: str, habit_id: str) -> bool:
        with self._lock:
            return self._habits.pop((owner, habit_id), None) is not None

    def list_by_owner(self, owner: str) -> list[HabitRecord]:
        with self._lock:
            records = [replace(r) for (o, _), r in self._habits.items() if o == owner]
        return sorted(records, key=lambda r: (r.created_at is None, r.created_at))

    def get_last_reset(self, owner: str) -> str | None:
        with self._lock:
            return self._resets.get(owner)

    def set_last_reset(self, owner: str, day: str) -> None:
        with self._lock:
            self._resets[owner] = day


class InMemoryUserStore(UserStore):

    def __init__(self):
        self._lock = threading.Lock()
        self._users: dict[str, UserRecord] = {}

    def create(self, record: UserRecord) -> UserRecord:
        with self._lock:
            if any(u.email == record.email for u in self._users.values()):
                raise UserAlreadyExists()
            self._users[record.id] = replace(record)
            return replace(record)

    def get_by_id(self, user_id: str) -> UserRecord | None:
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user else None

    def get_by_email(self, email: str) -> UserRecord | None:
        with self._lock:
            for user in self._users.values():
                if user.email == email:
                    return replace(user)
            return None

    def record_login(self, user_id: str, when) -> None:
        with self._lock:
            user = self._users.get(user_id)
            if user:
                self._users[user_id] = replace(user, last_login_at=when)
