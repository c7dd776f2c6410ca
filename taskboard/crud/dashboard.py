from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
import calendar
import logging
import math

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..errors import ValidationFailed
from ..models import Task, TaskStatus
from ..models.types import utcnow

logger = logging.getLogger(__name__)

WEEK = "week"
MONTH = "month"
PERIODS = (WEEK, MONTH)
TREND_DAYS = 7


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def completion_rate(total: int, completed: int) -> int:
    """Completed share of all tasks as a rounded percentage."""
    if total <= 0:
        return 0
    return round_half_up(completed / total * 100)


def one_month_before(moment: datetime) -> datetime:
    """Same clock time one calendar month earlier; the day is clamped to the target month."""
    if moment.month == 1:
        year, month = moment.year - 1, 12
    else:
        year, month = moment.year, moment.month - 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def period_start(period: str, now: datetime) -> datetime:
    if period == WEEK:
        return now - timedelta(days=7)
    if period == MONTH:
        return one_month_before(now)
    raise ValidationFailed([{"field": "period", "message": "Period must be one of: week, month"}])


@dataclass(frozen=True)
class ProductivityScore:
    score: int
    level: str


def volume_bonus(total: int) -> int:
    if total <= 10:
        return 40
    if total <= 30:
        return 30
    if total <= 60:
        return 20
    return 10


def productivity_level(score: int) -> str:
    if score >= 80:
        return "Expert"
    if score >= 60:
        return "Advanced"
    if score >= 40:
        return "Intermediate"
    return "Beginner"


def compute_productivity_score(total: int, completed: int, overdue: int) -> ProductivityScore:
    """Score out of 100: 60 points for completion rate, up to 40 for a
    manageable task volume, minus 5 per overdue task."""
    score = 0.0
    if total > 0:
        score += completed / total * 60
        score += volume_bonus(total)
        score -= overdue * 5

    final = max(0, min(100, round_half_up(score)))
    return ProductivityScore(score=final, level=productivity_level(final))


def _count(db: Session, owner_id: str, *criteria) -> int:
    return db.query(func.count(Task.id)).filter(Task.user_id == owner_id, *criteria).scalar() or 0


def _distribution(db: Session, owner_id: str, column, key: str) -> list:
    rows = (
        db.query(column, func.count(Task.id))
        .filter(Task.user_id == owner_id)
        .group_by(column)
        .order_by(column)
        .all()
    )
    return [{key: value, "count": count} for value, count in rows]


def overview(db: Session, owner_id: str) -> dict:
    total = _count(db, owner_id)
    completed = _count(db, owner_id, Task.status == TaskStatus.COMPLETED.value)
    pending = _count(db, owner_id, Task.status == TaskStatus.PENDING.value)
    in_progress = _count(db, owner_id, Task.status == TaskStatus.IN_PROGRESS.value)
    overdue = _count(db, owner_id, Task.is_overdue.is_(True))

    logger.info("Dashboard overview retrieved for user %s", owner_id)
    return {
        "totalTasks": total,
        "completedTasks": completed,
        "pendingTasks": pending,
        "inProgressTasks": in_progress,
        "overdueTasks": overdue,
        "completionRate": completion_rate(total, completed),
    }


def statistics(db: Session, owner_id: str, period: str = WEEK, now: Optional[datetime] = None) -> dict:
    """Counts for the period plus distributions and a 7-day completion trend.

    The trend window is always the trailing seven days, whatever ``period`` is.
    """
    now = now or utcnow()
    start = period_start(period, now)

    completed_in_period = _count(
        db,
        owner_id,
        Task.status == TaskStatus.COMPLETED.value,
        Task.completed_at >= start,
    )
    created_in_period = _count(db, owner_id, Task.created_at >= start)

    completed_dates = (
        db.query(Task.completed_at)
        .filter(
            Task.user_id == owner_id,
            Task.status == TaskStatus.COMPLETED.value,
            Task.completed_at >= now - timedelta(days=TREND_DAYS),
        )
        .all()
    )
    per_day = Counter(completed_at.date().isoformat() for (completed_at,) in completed_dates)

    logger.info("Statistics retrieved for user %s", owner_id)
    return {
        "period": period,
        "completedInPeriod": completed_in_period,
        "createdInPeriod": created_in_period,
        "priorityDistribution": _distribution(db, owner_id, Task.priority, "priority"),
        "statusDistribution": _distribution(db, owner_id, Task.status, "status"),
        "completionTrend": [{"date": day, "count": per_day[day]} for day in sorted(per_day)],
    }


def productivity_score(db: Session, owner_id: str) -> dict:
    total = _count(db, owner_id)
    completed = _count(db, owner_id, Task.status == TaskStatus.COMPLETED.value)
    overdue = _count(db, owner_id, Task.is_overdue.is_(True))

    result = compute_productivity_score(total, completed, overdue)

    logger.info("Productivity score calculated for user %s: %d", owner_id, result.score)
    return {
        "score": result.score,
        "level": result.level,
        "totalTasks": total,
        "completedTasks": completed,
        "completionRate": completion_rate(total, completed),
        "overdueTasks": overdue,
    }
