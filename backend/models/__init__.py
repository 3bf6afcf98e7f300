# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from models.user import User
from models.habit import Habit
from models.habit_reset import HabitReset
from models.records import HabitRecord, UserRecord

__all__ = [
    "User",
    "Habit",
    "HabitReset",
    "HabitRecord",
    "UserRecord",
]
