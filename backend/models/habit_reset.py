from sqlalchemy import Column, String
from database import Base


class HabitReset(Base):
    """Last calendar day ("YYYY-MM-DD") a daily reset ran for an owner."""

    __tablename__ = "habit_resets"

    owner = Column(String(64), primary_key=True)
    last_reset_on = Column(String(10), nullable=False)
