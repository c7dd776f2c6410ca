from datetime import datetime
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..models import RecurringFrequency, Task as TaskModel, TaskPriority, TaskStatus
from ..models.types import to_aware_utc
from .user import UserSummary


class RecurringSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", use_enum_values=True)

    enabled: bool = False
    frequency: Optional[RecurringFrequency] = None


class TaskCreate(BaseModel):
    """Schema for creating new tasks."""
    model_config = ConfigDict(extra="forbid", use_enum_values=True, str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    priority: TaskPriority = TaskPriority.MEDIUM.value
    status: TaskStatus = TaskStatus.PENDING.value
    deadline: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    recurring: Optional[RecurringSettings] = None

    @field_validator("deadline")
    @classmethod
    def normalize_deadline(cls, value):
        return to_aware_utc(value)


class TaskUpdate(BaseModel):
    """Schema for updating existing tasks. Only submitted fields are applied."""
    model_config = ConfigDict(extra="forbid", use_enum_values=True, str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    deadline: Optional[datetime] = None
    tags: Optional[List[str]] = None
    recurring: Optional[RecurringSettings] = None

    @field_validator("deadline")
    @classmethod
    def normalize_deadline(cls, value):
        return to_aware_utc(value)

    @field_validator("title", "priority", "status", "tags", "recurring")
    @classmethod
    def reject_null(cls, value):
        # Only runs for submitted values; omitted fields keep their default.
        if value is None:
            raise ValueError("Field cannot be null")
        return value

    @model_validator(mode="after")
    def require_any_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class TaskRead(BaseModel):
    """Task as returned to clients (camelCase keys)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    description: Optional[str] = None
    priority: str
    status: str
    deadline: Optional[datetime] = None
    is_overdue: bool
    tags: List[str]
    user: Union[UserSummary, str]
    completed_at: Optional[datetime] = None
    recurring: RecurringSettings
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, task: TaskModel, populate_user: bool = False) -> "TaskRead":
        """Build the response view of ``task``.

        ``user`` is the owner id, or the owner summary with ``populate_user``.
        """
        owner = UserSummary.model_validate(task.user) if populate_user else task.user_id
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            priority=task.priority,
            status=task.status,
            deadline=task.deadline,
            is_overdue=task.is_overdue,
            tags=list(task.tags or []),
            user=owner,
            completed_at=task.completed_at,
            recurring=RecurringSettings(
                enabled=task.recurring_enabled,
                frequency=task.recurring_frequency,
            ),
            created_at=task.created_at,
            updated_at=task.updated_at,
        )

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


# API sort keys -> Task attribute names. snake_case keys are accepted as well.
SORTABLE_FIELDS = {
    "id": "id",
    "title": "title",
    "description": "description",
    "priority": "priority",
    "status": "status",
    "deadline": "deadline",
    "isOverdue": "is_overdue",
    "completedAt": "completed_at",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}
SORTABLE_FIELDS.update({column: column for column in list(SORTABLE_FIELDS.values())})
DEFAULT_SORT = "-createdAt"


def parse_sort(sort_by: str) -> List[Tuple[str, bool]]:
    """Split ``"-deadline,title"`` into ``[("deadline", True), ("title", False)]`` (column, descending)."""
    keys = []
    for token in sort_by.replace(",", " ").split():
        descending = token.startswith("-")
        name = token.lstrip("+-")
        if name not in SORTABLE_FIELDS:
            raise ValueError(f"Cannot sort by '{name}'")
        keys.append((SORTABLE_FIELDS[name], descending))
    return keys


class TaskListQuery(BaseModel):
    """Query-string filters for listing tasks. Omitted filters impose no constraint."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    status: Optional[str] = None
    priority: Optional[str] = None
    search: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    tags: List[str] = Field(default_factory=list)
    sort_by: str = DEFAULT_SORT

    @field_validator("*", mode="before")
    @classmethod
    def blank_as_missing(cls, value, info):
        if isinstance(value, str) and not value.strip():
            return DEFAULT_SORT if info.field_name == "sort_by" else None
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return value

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value):
        return to_aware_utc(value)

    @field_validator("sort_by")
    @classmethod
    def check_sort(cls, value):
        if not parse_sort(value):
            return DEFAULT_SORT
        return value
