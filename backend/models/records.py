"""
records.py — Storage-neutral records
Every store (memory, SQL, Supabase) speaks in these dataclasses, so the
services never see ORM objects or raw PostgREST rows.
"""

from dataclasses import dataclass, field
from datetime import datetime

FREQUENCIES = ("daily", "weekly")

# Fields a partial update may touch; id/owner/created_at/version never change through update()
HABIT_UPDATABLE_FIELDS = (
    "name",
    "description",
    "frequency",
    "completed_today",
    "streak",
    "last_completed_at",
    "updated_at",
)


@dataclass
class HabitRecord:
    id: str
    owner: str
    name: str
    frequency: str = "daily"
    description: str | None = None
    completed_today: bool = False
    streak: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_completed_at: datetime | None = None
    version: int = 1


@dataclass
class UserRecord:
    id: str
    email: str
    password_hash: str = field(repr=False)
    name: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_login_at: datetime | None = None
