"""
supabase.py — PostgREST-backed stores
Rows travel as JSON with snake_case columns; timestamps as ISO strings.
An optimistic update adds a version=eq.N filter, so a PATCH that matches
nothing is either a missing habit or a lost race; a follow-up GET tells
which.
"""

import logging

import httpx

from errors import HabitNotFound, VersionConflict, StoreUnavailable, UserAlreadyExists
from models.records import HabitRecord, UserRecord
from services.date_service import parse_timestamp, isoformat
from stores.base import HabitStore, UserStore, updatable
from supabase_rest import SupabaseRest

logger = logging.getLogger(__name__)

HABITS_TABLE = "habits"
RESETS_TABLE = "habit_resets"
USERS_TABLE = "users"

_TIMESTAMP_FIELDS = ("created_at", "updated_at", "last_completed_at", "last_login_at")


def _to_row(data: dict) -> dict:
    return {k: isoformat(v) if k in _TIMESTAMP_FIELDS else v for k, v in data.items()}


def _habit_record(row: dict) -> HabitRecord:
    return HabitRecord(
        id=row["id"],
        owner=row["owner"],
        name=row["name"],
        frequency=row.get("frequency", "daily"),
        description=row.get("description"),
        completed_today=bool(row.get("completed_today", False)),
        streak=int(row.get("streak", 0)),
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
        last_completed_at=parse_timestamp(row.get("last_completed_at")),
        version=int(row.get("version", 1)),
    )


def _user_record(row: dict) -> UserRecord:
    return UserRecord(
        id=row["id"],
        email=row["email"],
        password_hash=row["password_hash"],
        name=row.get("name", ""),
        created_at=parse_timestamp(row.get("created_at")),
        updated_at=parse_timestamp(row.get("updated_at")),
        last_login_at=parse_timestamp(row.get("last_login_at")),
    )


class SupabaseHabitStore(HabitStore):

    def __init__(self, client: SupabaseRest):
        self.client = client

    def put(self, record: HabitRecord) -> HabitRecord:
        row = _to_row({
            "owner": record.owner,
            "id": record.id,
            "name": record.name,
            "description": record.description,
            "frequency": record.frequency,
            "completed_today": record.completed_today,
            "streak": record.streak,
            "version": record.version,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
            "last_completed_at": record.last_completed_at,
        })
        try:
            created = self.client.insert(HABITS_TABLE, row)
        except httpx.HTTPError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e
        return _habit_record(created or row)

    def get(self, owner: str, habit_id: str) -> HabitRecord | None:
        try:
            rows = self.client.select(HABITS_TABLE, filters={"owner": owner, "id": habit_id})
        except httpx.HTTPError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e
        return _habit_record(rows[0]) if rows else None

    def update(self, owner: str, habit_id: str, fields: dict, expected_version: int | None = None) -> HabitRecord:
        current = None
        if expected_version is None:
            # PostgREST cannot express version = version + 1, so read the current version first
            current = self.get(owner, habit_id)
            if current is None:
                raise HabitNotFound(habit_id)
            expected_version = current.version

        data = _to_row(updatable(fields))
        data["version"] = expected_version + 1
        filters = {"owner": owner, "id": habit_id, "version": expected_version}
        try:
            rows = self.client.update(HABITS_TABLE, filters, data)
        except httpx.HTTPError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e

        if rows:
            return _habit_record(rows[0])
        if self.get(owner, habit_id) is None:
            raise HabitNotFound(habit_id)
        raise VersionConflict(habit_id)

    def delete(self, owner: str, habit_id: str) -> bool:
        try:
            rows = self.client.delete(HABITS_TABLE, {"owner": owner, "id": habit_id})
        except httpx.HTTPError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e
        return bool(rows)

    def list_by_owner(self, owner: str) -> list[HabitRecord]:
        try:
            rows = self.client.select(HABITS_TABLE, filters={"owner": owner}, order="created_at.asc")
        except httpx.HTTPError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e
        return [_habit_record(r) for r in rows]

    def get_last_reset(self, owner: str) -> str | None:
        try:
            rows = self.client.select(RESETS_TABLE, filters={"owner": owner})
        except httpx.HTTPError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e
        return rows[0]["last_reset_on"] if rows else None

    def set_last_reset(self, owner: str, day: str) -> None:
        try:
            self.client.upsert(RESETS_TABLE, {"owner": owner, "last_reset_on": day})
        except httpx.HTTPError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e


class SupabaseUserStore(UserStore):

    def __init__(self, client: SupabaseRest):
        self.client = client

    def create(self, record: UserRecord) -> UserRecord:
        row = _to_row({
            "id": record.id,
            "email": record.email,
            "password_hash": record.password_hash,
            "name": record.name,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
            "last_login_at": record.last_login_at,
        })
        try:
            created = self.client.insert(USERS_TABLE, row)
        except httpx.HTTPStatusError as e:
            # 409 is PostgREST's answer to a unique violation on email
            if e.response.status_code == 409:
                raise UserAlreadyExists() from e
            raise StoreUnavailable(details={"reason": str(e)}) from e
        except httpx.HTTPError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e
        return _user_record(created or row)

    def _select_one(self, filters: dict) -> UserRecord | None:
        try:
            rows = self.client.select(USERS_TABLE, filters=filters)
        except httpx.HTTPError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e
        return _user_record(rows[0]) if rows else None

    def get_by_id(self, user_id: str) -> UserRecord | None:
        return self._select_one({"id": user_id})

    def get_by_email(self, email: str) -> UserRecord | None:
        return self._select_one({"email": email})

    def record_login(self, user_id: str, when) -> None:
        try:
            self.client.update(USERS_TABLE, {"id": user_id}, {"last_login_at": isoformat(when)})
        except httpx.HTTPError as e:
            logger.warning(f"Failed to update last login for {user_id}: {e}")
