from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import JSON, Column, Index
from datetime import datetime
from typing import List, Optional
from uuid import uuid4
import enum

from .types import UTCDateTime, utcnow


class TaskPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class TaskStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class RecurringFrequency(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class Task(SQLModel, table=True):
    """Task owned by exactly one user.

    ``is_overdue`` is a stored flag, not a computed property: it is set at
    creation and afterwards only by the hourly sweep.
    """
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_status", "user_id", "status"),
        Index("ix_tasks_user_deadline", "user_id", "deadline"),
        Index("ix_tasks_user_created_at", "user_id", "created_at"),
    )

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    title: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    priority: str = Field(default=TaskPriority.MEDIUM.value)
    status: str = Field(default=TaskStatus.PENDING.value)
    deadline: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))
    is_overdue: bool = Field(default=False)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))
    recurring_enabled: bool = Field(default=False)
    recurring_frequency: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False))
    user_id: str = Field(foreign_key="users.id", nullable=False)

    # Relationship back to user
    user: Optional["User"] = Relationship(back_populates="tasks")
