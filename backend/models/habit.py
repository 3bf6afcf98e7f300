from sqlalchemy import Column, Integer, String, DateTime, Boolean
from database import Base


class Habit(Base):
    __tablename__ = "habits"

    owner = Column(String(64), primary_key=True)  # partition key
    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    frequency = Column(String(10), nullable=False, default="daily")  # daily/weekly
    completed_today = Column(Boolean, nullable=False, default=False)
    streak = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    last_completed_at = Column(DateTime(timezone=True), nullable=True)
