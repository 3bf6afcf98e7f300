import os
import sys
import logging
from contextlib import asynccontextmanager
from typing import Callable
from datetime import datetime

# Ensure this directory is in the path for uvicorn and other runners
current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.append(current_dir)

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from errors import AppError
from routes.auth_routes import router as auth_router
from routes.habit_routes import router as habit_router
from services.date_service import utc_now
from stores import build_stores
from stores.base import HabitStore, UserStore

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def _error_response(status_code: int, code: str, message: str, details=None, headers=None) -> JSONResponse:
    error = {"code": code, "message": message}
    if details:
        error["details"] = details
    return JSONResponse({"success": False, "error": error}, status_code=status_code, headers=headers)


def _validation_details(exc: RequestValidationError) -> dict:
    """Map pydantic errors to {field: message}, dropping the body/query prefix."""
    details = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details[".".join(loc) or "request"] = err.get("msg", "Invalid value")
    return details


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc)
        return _error_response(exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(400, "VALIDATION_ERROR", "Validation failed", _validation_details(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
        return _error_response(
            exc.status_code, code, str(exc.detail), headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return _error_response(500, "INTERNAL_ERROR", "Internal server error", {"reason": str(exc)})


def create_app(
    habit_store: HabitStore | None = None,
    user_store: UserStore | None = None,
    clock: Callable[[], datetime] | None = None,
) -> FastAPI:
    """
    Build the API. Stores not handed in are built from the configured
    backend when the app starts, not at import; the clock defaults to UTC now.
    """
    logging.basicConfig(level=config.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.habit_store is None or app.state.user_store is None:
            default_habits, default_users = build_stores()
            app.state.habit_store = app.state.habit_store or default_habits
            app.state.user_store = app.state.user_store or default_users
        yield

    app = FastAPI(title="Habit Tracker API", lifespan=lifespan)
    app.state.habit_store = habit_store
    app.state.user_store = user_store
    app.state.clock = clock or utc_now

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/api/v1/health-check")
    async def health():
        return {"success": True, "data": {"status": "ok"}}

    app.include_router(auth_router)
    app.include_router(habit_router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
