from abc import ABC, abstractmethod

from models.records import HabitRecord, UserRecord, HABIT_UPDATABLE_FIELDS


class HabitStore(ABC):
    """Habit persistence keyed by (owner, habit_id)."""

    @abstractmethod
    def put(self, record: HabitRecord) -> HabitRecord:
        """Insert a new habit and return it as stored."""
        ...

    @abstractmethod
    def get(self, owner: str, habit_id: str) -> HabitRecord | None:
        ...

    @abstractmethod
    def update(self, owner: str, habit_id: str, fields: dict, expected_version: int | None = None) -> HabitRecord:
        """
        Apply a partial update atomically and return the updated record.

        Only names in HABIT_UPDATABLE_FIELDS are written; the version is
        bumped on every successful write.

        Raises:
            HabitNotFound: no habit with this id under this owner.
            VersionConflict: expected_version given and the stored version differs.
            StoreUnavailable: the backend failed.
        """
        ...

    @abstractmethod
    def delete(self, owner: str, habit_id: str) -> bool:
        """Delete permanently. Returns False if nothing was there."""
        ...

    @abstractmethod
    def list_by_owner(self, owner: str) -> list[HabitRecord]:
        """All habits of one owner, oldest first."""
        ...

    @abstractmethod
    def get_last_reset(self, owner: str) -> str | None:
        """Calendar day of the owner's last completed daily reset."""
        ...

    @abstractmethod
    def set_last_reset(self, owner: str, day: str) -> None:
        ...


class UserStore(ABC):
    """User accounts, unique by lower-cased email."""

    @abstractmethod
    def create(self, record: UserRecord) -> UserRecord:
        """Raises UserAlreadyExists when the email is taken."""
        ...

    @abstractmethod
    def get_by_id(self, user_id: str) -> UserRecord | None:
        ...

    @abstractmethod
    def get_by_email(self, email: str) -> UserRecord | None:
        ...

    @abstractmethod
    def record_login(self, user_id: str, when) -> None:
        ...


def updatable(fields: dict) -> dict:
    """Drop anything a partial update is not allowed to touch."""
    return {k: v for k, v in fields.items() if k in HABIT_UPDATABLE_FIELDS}
