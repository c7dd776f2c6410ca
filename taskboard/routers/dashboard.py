from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..crud import dashboard
from ..database import get_db
from ..models import User
from .auth import get_current_user

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.get("/overview")
def get_overview(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Task counts by state and the completion rate."""
    return {"success": True, "data": dashboard.overview(db, current_user.id)}


@router.get("/statistics")
def get_statistics(
    period: str = dashboard.WEEK,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Activity for the last week or month, distributions, and the 7-day completion trend."""
    return {"success": True, "data": dashboard.statistics(db, current_user.id, period)}


@router.get("/productivity-score")
def get_productivity_score(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"success": True, "data": dashboard.productivity_score(db, current_user.id)}
