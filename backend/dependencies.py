"""
dependencies.py — FastAPI dependencies for the per-app collaborators
Stores and the clock are built once in create_app() and kept on app.state,
so a test app can hand in its own.
"""

from datetime import datetime

from fastapi import Request

from stores.base import HabitStore, UserStore


def get_habit_store(request: Request) -> HabitStore:
    return request.app.state.habit_store


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_now(request: Request) -> datetime:
    """The current instant according to the app's clock."""
    return request.app.state.clock()
