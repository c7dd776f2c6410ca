from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..crud import tasks as crud
from ..database import get_db
from ..models import User
from ..schemas.task import TaskCreate, TaskListQuery, TaskRead, TaskUpdate
from ..validation import validated_body, validated_query
from .auth import get_current_user

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_task(
    task: TaskCreate = Depends(validated_body(TaskCreate)),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a new task for the current user."""
    db_task = crud.create_task(db, current_user.id, task)
    return {
        "success": True,
        "message": "Task created successfully",
        "data": TaskRead.from_model(db_task).to_response(),
    }


@router.get("")
def get_tasks(
    filters: TaskListQuery = Depends(validated_query(TaskListQuery)),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the current user's tasks with optional filtering and sorting."""
    tasks = crud.list_tasks(db, current_user.id, filters)
    return {
        "success": True,
        "count": len(tasks),
        "data": [TaskRead.from_model(task, populate_user=True).to_response() for task in tasks],
    }


@router.get("/{task_id}")
def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get a specific task by ID."""
    task = crud.get_owned_task(db, current_user.id, task_id)
    return {"success": True, "data": TaskRead.from_model(task, populate_user=True).to_response()}


@router.put("/{task_id}")
def update_task(
    task_id: str,
    task_update: TaskUpdate = Depends(validated_body(TaskUpdate)),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update a specific task."""
    task = crud.update_task(db, current_user.id, task_id, task_update)
    return {
        "success": True,
        "message": "Task updated successfully",
        "data": TaskRead.from_model(task).to_response(),
    }


@router.delete("/{task_id}")
def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete a specific task."""
    crud.delete_task(db, current_user.id, task_id)
    return {"success": True, "message": "Task deleted successfully"}
