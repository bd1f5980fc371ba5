"""Main FastAPI application."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from certprep.config import validate_settings
from certprep.database import init_db
from certprep.exam.errors import (
    ConfirmationRequired,
    ExamError,
    InvalidTransition,
)
from certprep.logging_setup import setup_console_logging
from certprep.routes import admin, auth, catalog, dashboard, purchases, sessions
from certprep.services.cleanup_service import schedule_session_sweep
from certprep.services.session_provider import SessionProvider

setup_console_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="CertPrep API")
app.state.session_provider = SessionProvider()

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Startup events
@app.on_event("startup")
def startup_events() -> None:
    """Check settings, create tables and start background workers."""
    validate_settings()
    init_db()
    app.state.session_provider.start()
    schedule_session_sweep()


@app.on_event("shutdown")
def shutdown_events() -> None:
    app.state.session_provider.stop()


# Error rendering: every error body is {"error": "<message>"}

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(ExamError)
async def exam_error_handler(request: Request, exc: ExamError) -> JSONResponse:
    if isinstance(exc, ConfirmationRequired):
        return JSONResponse(
            status_code=409,
            content={
                "error": str(exc),
                "unansweredCount": len(exc.unanswered),
                "unanswered": exc.unanswered,
            },
        )
    status_code = 409 if isinstance(exc, InvalidTransition) else 400
    message = exc.args[0] if exc.args else str(exc)
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# Include routers; sessions first so /api/test/session is not read as a test id
app.include_router(auth.router)
app.include_router(sessions.router)
app.include_router(catalog.router)
app.include_router(dashboard.router)
app.include_router(purchases.router)
app.include_router(admin.router)
