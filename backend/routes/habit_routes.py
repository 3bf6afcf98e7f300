from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

import config
from auth import get_current_user
from dependencies import get_habit_store, get_now
from models.records import HabitRecord
from services.date_service import isoformat
from services.habit_service import HabitService
from stores.base import HabitStore

router = APIRouter(prefix="/api/v1/habits", tags=["Habits"])


class HabitCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    frequency: Literal["daily", "weekly"]


class HabitUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    frequency: Optional[Literal["daily", "weekly"]] = None


def serialize_habit(habit: HabitRecord) -> dict:
    return {
        "id": habit.id,
        "name": habit.name,
        "description": habit.description,
        "frequency": habit.frequency,
        "completedToday": habit.completed_today,
        "streak": habit.streak,
        "createdAt": isoformat(habit.created_at),
        "updatedAt": isoformat(habit.updated_at),
        "lastCompletedAt": isoformat(habit.last_completed_at),
    }


@router.get("")
def list_habits(
    frequency: Optional[Literal["daily", "weekly"]] = None,
    completed_today: Optional[bool] = Query(None, alias="completedToday"),
    limit: int = Query(config.HABITS_DEFAULT_LIMIT, ge=0),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user),
    store: HabitStore = Depends(get_habit_store),
    now: datetime = Depends(get_now),
):
    if config.HABITS_AUTO_RESET:
        HabitService.ensure_daily_reset(store, user_id, now)

    result = HabitService.list_habits(
        store, user_id, frequency=frequency, completed_today=completed_today, limit=limit, offset=offset
    )
    result["habits"] = [serialize_habit(h) for h in result["habits"]]
    return {"success": True, "data": result}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_habit(
    habit_data: HabitCreate,
    user_id: str = Depends(get_current_user),
    store: HabitStore = Depends(get_habit_store),
    now: datetime = Depends(get_now),
):
    habit = HabitService.create_habit(store, user_id, habit_data.model_dump(), now)
    return {"success": True, "data": serialize_habit(habit)}


@router.post("/reset")
def reset_habits(
    user_id: str = Depends(get_current_user),
    store: HabitStore = Depends(get_habit_store),
    now: datetime = Depends(get_now),
):
    reset_count = HabitService.reset_all(store, user_id, now)
    return {
        "success": True,
        "data": {"resetCount": reset_count, "message": f"Reset {reset_count} habit(s)"},
    }


@router.get("/{habit_id}")
def get_habit(
    habit_id: str,
    user_id: str = Depends(get_current_user),
    store: HabitStore = Depends(get_habit_store),
):
    habit = HabitService.get_habit(store, user_id, habit_id)
    return {"success": True, "data": serialize_habit(habit)}


@router.patch("/{habit_id}")
def update_habit(
    habit_id: str,
    habit_data: HabitUpdate,
    user_id: str = Depends(get_current_user),
    store: HabitStore = Depends(get_habit_store),
    now: datetime = Depends(get_now),
):
    data = habit_data.model_dump(exclude_unset=True)
    if "name" in data and data["name"] is None:
        # name may be omitted but never cleared
        del data["name"]
    if "frequency" in data and data["frequency"] is None:
        del data["frequency"]
    habit = HabitService.update_habit(store, user_id, habit_id, data, now)
    return {"success": True, "data": serialize_habit(habit)}


@router.delete("/{habit_id}")
def delete_habit(
    habit_id: str,
    user_id: str = Depends(get_current_user),
    store: HabitStore = Depends(get_habit_store),
):
    HabitService.delete_habit(store, user_id, habit_id)
    return {"success": True, "data": None}


@router.post("/{habit_id}/toggle")
def toggle_habit(
    habit_id: str,
    user_id: str = Depends(get_current_user),
    store: HabitStore = Depends(get_habit_store),
    now: datetime = Depends(get_now),
):
    habit = HabitService.toggle(store, user_id, habit_id, now)
    return {"success": True, "data": serialize_habit(habit)}
