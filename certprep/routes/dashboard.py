"""Dashboard endpoints for the signed-in user."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session as DbSession

from certprep.database import get_db
from certprep.dependencies.auth import CurrentUser
from certprep.services import dashboard_service

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/test-history")
def get_test_history(
    current_user: CurrentUser,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Last 20 attempts with durations and a summary."""
    result = dashboard_service.fetch_history(db, current_user)
    return {"data": result, **result}


@router.get("/performance-stats")
def get_performance_stats(
    current_user: CurrentUser,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    result = dashboard_service.fetch_performance(db, current_user)
    return {"data": result, **result}


@router.get("/analytics")
def get_analytics(
    current_user: CurrentUser,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Per question-type analysis of the most recent answers."""
    result = dashboard_service.fetch_analytics(db, current_user)
    return {"data": result, **result}
