"""
Background jobs.

Two timers run beside the HTTP server, sharing nothing with it but the
database:

- the overdue sweep, at the top of every hour, flags unfinished tasks whose
  deadline has passed;
- recurring regeneration, once a day, clones every task that has recurrence
  enabled with its deadline pushed one period forward.

Failures are logged and the loop waits for the next slot. Nothing is retried.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from .config import RECURRING_JOB_HOUR, RECURRING_JOB_MINUTE
from .database import get_session
from .models import RecurringFrequency, Task, TaskStatus
from .models.types import utcnow

logger = logging.getLogger(__name__)

RECURRENCE_STEPS: Dict[str, timedelta] = {
    RecurringFrequency.DAILY.value: timedelta(hours=24),
    RecurringFrequency.WEEKLY.value: timedelta(days=7),
}


def mark_overdue_tasks(db: Session, now: Optional[datetime] = None) -> int:
    """Flag every unfinished task whose deadline is strictly before ``now``.

    Only ever sets the flag; tasks that were completed or rescheduled keep
    whatever value they had.
    """
    now = now or utcnow()
    result = db.execute(
        update(Task)
        .where(
            Task.deadline.is_not(None),
            Task.deadline < now,
            Task.status != TaskStatus.COMPLETED.value,
        )
        .values(is_overdue=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    count = result.rowcount or 0
    logger.info("Overdue tasks updated: %d", count)
    return count


def build_recurrence_clone(task: Task) -> Optional[Task]:
    """Next occurrence of ``task``, or None when it has no frequency or deadline."""
    step = RECURRENCE_STEPS.get(task.recurring_frequency or "")
    if step is None:
        logger.warning("Recurring task %s has no valid frequency; skipped", task.id)
        return None
    if task.deadline is None:
        logger.warning("Recurring task %s has no deadline; skipped", task.id)
        return None

    return Task(
        title=task.title,
        description=task.description,
        priority=task.priority,
        deadline=task.deadline + step,
        tags=list(task.tags or []),
        user_id=task.user_id,
        recurring_enabled=task.recurring_enabled,
        recurring_frequency=task.recurring_frequency,
    )


def regenerate_recurring_tasks(db: Session) -> int:
    """Clone every recurring task one period ahead of its own deadline.

    The source task is not modified, so each run clones it again.
    """
    sources = db.query(Task).filter(Task.recurring_enabled.is_(True)).all()

    created = 0
    for source in sources:
        clone = build_recurrence_clone(source)
        if clone is None:
            continue
        db.add(clone)
        created += 1
    db.commit()

    logger.info("Recurring tasks created: %d", created)
    return created


def next_hourly_run(now: datetime) -> datetime:
    """Next top of the hour strictly after ``now``."""
    return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)


def next_daily_run(now: datetime, hour: int = RECURRING_JOB_HOUR, minute: int = RECURRING_JOB_MINUTE) -> datetime:
    """Next ``hour:minute`` strictly after ``now``."""
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


def run_job(name: str, job: Callable[[Session], int]) -> Optional[int]:
    """Run one job in its own session. Errors are logged, never raised."""
    try:
        with get_session() as session:
            return job(session)
    except Exception:
        logger.exception("Error running %s", name)
        return None


async def run_periodic(
    name: str,
    job: Callable[[Session], int],
    next_run: Callable[[datetime], datetime],
    clock: Callable[[], datetime] = utcnow,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> None:
    """Sleep until each slot from ``next_run`` and run ``job`` in a worker thread.

    Each slot is derived from the previous one, so a job that finishes before
    its own slot has passed on the clock is not fired a second time.
    To stop, cancel the task.
    """
    slot = next_run(clock())
    while True:
        delay = (slot - clock()).total_seconds()
        logger.debug("%s sleeping %.0fs", name, delay)
        await sleep(max(0.0, delay))
        await asyncio.to_thread(run_job, name, job)
        slot = next_run(max(slot, clock()))


class JobScheduler:
    """Owns the two background timers for the lifetime of the app."""

    def __init__(self) -> None:
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def start(self) -> None:
        if self._tasks:
            return
        logger.info("Starting background jobs...")
        self._tasks = {
            "overdue-sweep": asyncio.create_task(
                run_periodic("overdue sweep", mark_overdue_tasks, next_hourly_run)
            ),
            "recurring-tasks": asyncio.create_task(
                run_periodic("recurring tasks", regenerate_recurring_tasks, next_daily_run)
            ),
        }

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks = {}
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tasks:
            logger.info("Background jobs stopped")
