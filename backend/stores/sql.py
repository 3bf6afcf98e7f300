"""
sql.py — SQLAlchemy-backed stores
One short-lived session per operation; the version column gives habit
updates a compare-and-set so concurrent toggles cannot silently overwrite
each other.
"""

import logging

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from errors import HabitNotFound, VersionConflict, StoreUnavailable, UserAlreadyExists
from models.habit import Habit
from models.habit_reset import HabitReset
from models.user import User
from models.records import HabitRecord, UserRecord
from services.date_service import ensure_utc
from stores.base import HabitStore, UserStore, updatable

logger = logging.getLogger(__name__)


def _utc(value):
    return ensure_utc(value) if value is not None else None


def _habit_record(row: Habit) -> HabitRecord:
    return HabitRecord(
        id=row.id,
        owner=row.owner,
        name=row.name,
        frequency=row.frequency,
        description=row.description,
        completed_today=bool(row.completed_today),
        streak=row.streak,
        created_at=_utc(row.created_at),
        updated_at=_utc(row.updated_at),
        last_completed_at=_utc(row.last_completed_at),
        version=row.version,
    )


def _user_record(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        name=row.name,
        created_at=_utc(row.created_at),
        updated_at=_utc(row.updated_at),
        last_login_at=_utc(row.last_login_at),
    )


class SqlHabitStore(HabitStore):

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def put(self, record: HabitRecord) -> HabitRecord:
        try:
            with self._session_factory() as db:
                row = Habit(
                    owner=record.owner,
                    id=record.id,
                    name=record.name,
                    description=record.description,
                    frequency=record.frequency,
                    completed_today=record.completed_today,
                    streak=record.streak,
                    version=record.version,
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                    last_completed_at=record.last_completed_at,
                )
                db.add(row)
                db.commit()
                db.refresh(row)
                return _habit_record(row)
        except SQLAlchemyError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e

    def get(self, owner: str, habit_id: str) -> HabitRecord | None:
        try:
            with self._session_factory() as db:
                row = db.get(Habit, (owner, habit_id))
                return _habit_record(row) if row else None
        except SQLAlchemyError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e

    def update(self, owner: str, habit_id: str, fields: dict, expected_version: int | None = None) -> HabitRecord:
        values = updatable(fields)
        try:
            with self._session_factory() as db:
                stmt = update(Habit).where(Habit.owner == owner, Habit.id == habit_id)
                if expected_version is not None:
                    stmt = stmt.where(Habit.version == expected_version)
                stmt = stmt.values(version=Habit.version + 1, **values).returning(Habit)
                row = db.scalars(stmt).first()

                if row is None:
                    db.rollback()
                    if db.get(Habit, (owner, habit_id)) is None:
                        raise HabitNotFound(habit_id)
                    raise VersionConflict(habit_id)

                # Converted before commit; the row may be gone by the time it expires
                record = _habit_record(row)
                db.commit()
                return record
        except SQLAlchemyError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e

    def delete(self, owner: str, habit_id: str) -> bool:
        try:
            with self._session_factory() as db:
                result = db.execute(delete(Habit).where(Habit.owner == owner, Habit.id == habit_id))
                db.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e

    def list_by_owner(self, owner: str) -> list[HabitRecord]:
        try:
            with self._session_factory() as db:
                rows = db.scalars(
                    select(Habit).where(Habit.owner == owner).order_by(Habit.created_at, Habit.id)
                ).all()
                return [_habit_record(r) for r in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e

    def get_last_reset(self, owner: str) -> str | None:
        try:
            with self._session_factory() as db:
                row = db.get(HabitReset, owner)
                return row.last_reset_on if row else None
        except SQLAlchemyError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e

    def set_last_reset(self, owner: str, day: str) -> None:
        try:
            with self._session_factory() as db:
                db.merge(HabitReset(owner=owner, last_reset_on=day))
                db.commit()
        except SQLAlchemyError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e


class SqlUserStore(UserStore):

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create(self, record: UserRecord) -> UserRecord:
        try:
            with self._session_factory() as db:
                row = User(
                    id=record.id,
                    email=record.email,
                    password_hash=record.password_hash,
                    name=record.name,
                    created_at=record.created_at,
                    updated_at=record.updated_at,
                    last_login_at=record.last_login_at,
                )
                db.add(row)
                db.commit()
                db.refresh(row)
                return _user_record(row)
        except IntegrityError as e:
            raise UserAlreadyExists() from e
        except SQLAlchemyError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e

    def get_by_id(self, user_id: str) -> UserRecord | None:
        try:
            with self._session_factory() as db:
                row = db.get(User, user_id)
                return _user_record(row) if row else None
        except SQLAlchemyError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e

    def get_by_email(self, email: str) -> UserRecord | None:
        try:
            with self._session_factory() as db:
                row = db.scalars(select(User).where(User.email == email)).first()
                return _user_record(row) if row else None
        except SQLAlchemyError as e:
            raise StoreUnavailable(details={"reason": str(e)}) from e

    def record_login(self, user_id: str, when) -> None:
        try:
            with self._session_factory() as db:
                db.execute(update(User).where(User.id == user_id).values(last_login_at=when))
                db.commit()
        except SQLAlchemyError as e:
            # Non-critical: a failed login timestamp must not block the login itself
            logger.warning(f"Failed to update last login for {user_id}: {e}")
