from typing import List
import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ..errors import ForbiddenError, NotFoundError
from ..models import Task, TaskStatus
from ..models.types import utcnow
from ..schemas.task import RecurringSettings, TaskCreate, TaskListQuery, TaskUpdate, parse_sort

logger = logging.getLogger(__name__)


def ensure_owner(task: Task, owner_id: str, action: str = "access") -> None:
    """Raise ``ForbiddenError`` unless ``owner_id`` owns ``task``."""
    if task.user_id != owner_id:
        logger.warning("Unauthorized %s attempt to task %s by user %s", action, task.id, owner_id)
        raise ForbiddenError(f"Not authorized to {action} this task")


def get_owned_task(db: Session, owner_id: str, task_id: str, action: str = "access") -> Task:
    task = db.get(Task, task_id)
    if task is None:
        raise NotFoundError()
    ensure_owner(task, owner_id, action)
    return task


def create_task(db: Session, owner_id: str, data: TaskCreate) -> Task:
    """Persist a new task for ``owner_id``.

    The overdue flag is computed once here from the submitted deadline and
    status; afterwards only the hourly sweep touches it.
    """
    now = utcnow()
    recurring = data.recurring or RecurringSettings()

    task = Task(
        title=data.title,
        description=data.description,
        priority=data.priority,
        status=data.status,
        deadline=data.deadline,
        is_overdue=bool(
            data.deadline is not None
            and data.deadline < now
            and data.status != TaskStatus.COMPLETED.value
        ),
        tags=list(data.tags),
        recurring_enabled=recurring.enabled,
        recurring_frequency=recurring.frequency,
        user_id=owner_id,
    )
    db.add(task)
    db.commit()
    db.refresh(task)

    logger.info("Task created: %s by user %s", task.id, owner_id)
    return task


def list_tasks(db: Session, owner_id: str, filters: TaskListQuery) -> List[Task]:
    """Return the owner's tasks matching every supplied filter."""
    query = db.query(Task).options(joinedload(Task.user)).filter(Task.user_id == owner_id)

    if filters.status:
        query = query.filter(Task.status == filters.status)

    if filters.priority:
        query = query.filter(Task.priority == filters.priority)

    if filters.search:
        needle = filters.search.lower()
        query = query.filter(
            or_(
                func.lower(Task.title).contains(needle, autoescape=True),
                func.lower(Task.description).contains(needle, autoescape=True),
            )
        )

    if filters.start_date is not None:
        query = query.filter(Task.deadline >= filters.start_date)
    if filters.end_date is not None:
        query = query.filter(Task.deadline <= filters.end_date)

    for column, descending in parse_sort(filters.sort_by):
        attr = getattr(Task, column)
        query = query.order_by(attr.desc() if descending else attr.asc())

    tasks = query.all()

    # Tags live in a JSON column; any-of membership is checked here so the
    # query stays portable across SQLite and Postgres.
    if filters.tags:
        wanted = set(filters.tags)
        tasks = [task for task in tasks if wanted.intersection(task.tags or [])]

    logger.info("Retrieved %d tasks for user %s", len(tasks), owner_id)
    return tasks


def update_task(db: Session, owner_id: str, task_id: str, data: TaskUpdate) -> Task:
    task = get_owned_task(db, owner_id, task_id, action="update")

    changes = data.model_dump(exclude_unset=True, exclude={"recurring"})

    # completed_at is stamped once, on the transition into Completed
    if changes.get("status") == TaskStatus.COMPLETED.value and task.status != TaskStatus.COMPLETED.value:
        task.completed_at = utcnow()

    for field, value in changes.items():
        setattr(task, field, value)

    if data.recurring is not None:
        task.recurring_enabled = data.recurring.enabled
        task.recurring_frequency = data.recurring.frequency

    task.updated_at = utcnow()

    db.commit()
    db.refresh(task)

    logger.info("Task updated: %s by user %s", task.id, owner_id)
    return task


def delete_task(db: Session, owner_id: str, task_id: str) -> None:
    task = get_owned_task(db, owner_id, task_id, action="delete")
    db.delete(task)
    db.commit()
    logger.info("Task deleted: %s by user %s", task_id, owner_id)
