from datetime import datetime, timezone

from taskboard.schemas.task import TaskCreate, TaskListQuery, TaskUpdate
from taskboard.schemas.user import LoginRequest, RegisterRequest
from taskboard.validation import FieldError, validate_payload


def _fields(result):
    return {error.field for error in result.errors}


def test_register_accepts_valid_payload():
    result = validate_payload(
        RegisterRequest,
        {"username": "alice99", "email": "alice@example.com", "password": "secret"},
    )

    assert result.ok
    assert result.value.username == "alice99"


def test_register_collects_every_violation():
    result = validate_payload(
        RegisterRequest,
        {"username": "a!", "email": "not-an-email", "password": "123"},
    )

    assert not result.ok
    assert result.value is None
    assert _fields(result) == {"username", "email", "password"}


def test_register_rejects_non_alphanumeric_and_long_usernames():
    for username in ("bad name", "under_score", "x" * 31):
        result = validate_payload(
            RegisterRequest,
            {"username": username, "email": "a@example.com", "password": "secret"},
        )
        assert _fields(result) == {"username"}, username


def test_register_requires_all_fields():
    result = validate_payload(RegisterRequest, {})

    assert _fields(result) == {"username", "email", "password"}


def test_login_has_no_password_length_rule():
    assert validate_payload(LoginRequest, {"email": "a@example.com", "password": "x"}).ok

    result = validate_payload(LoginRequest, {"email": "nope"})
    assert _fields(result) == {"email", "password"}


def test_task_create_applies_defaults():
    result = validate_payload(TaskCreate, {"title": "  Write report  "})

    assert result.ok
    task = result.value
    assert task.title == "Write report"
    assert task.priority == "Medium"
    assert task.status == "Pending"
    assert task.tags == []
    assert task.deadline is None
    assert task.recurring is None


def test_task_create_collects_errors_without_defaults():
    result = validate_payload(
        TaskCreate,
        {
            "title": "x" * 101,
            "description": "y" * 501,
            "priority": "Urgent",
            "status": "Done",
            "deadline": "not a date",
            "tags": ["ok", 5],
            "recurring": {"enabled": True, "frequency": "monthly"},
        },
    )

    assert result.value is None
    assert _fields(result) == {
        "title",
        "description",
        "priority",
        "status",
        "deadline",
        "tags.1",
        "recurring.frequency",
    }


def test_task_create_requires_title_and_rejects_unknown_fields():
    result = validate_payload(TaskCreate, {"owner": "someone"})

    assert _fields(result) == {"title", "owner"}


def test_task_create_normalizes_deadline_to_utc():
    result = validate_payload(TaskCreate, {"title": "t", "deadline": "2026-03-01T10:00:00+02:00"})

    assert result.value.deadline == datetime(2026, 3, 1, 8, 0, 0, tzinfo=timezone.utc)
    assert result.value.deadline.utcoffset().total_seconds() == 0


def test_naive_deadline_is_taken_as_utc():
    result = validate_payload(TaskCreate, {"title": "t", "deadline": "2026-03-01T10:00:00"})

    assert result.value.deadline == datetime(2026, 3, 1, 10, 0, 0, tzinfo=timezone.utc)


def test_empty_description_is_rejected():
    created = validate_payload(TaskCreate, {"title": "t", "description": ""})
    blank = validate_payload(TaskCreate, {"title": "t", "description": "   "})
    updated = validate_payload(TaskUpdate, {"description": ""})

    assert _fields(created) == {"description"}
    assert _fields(blank) == {"description"}
    assert _fields(updated) == {"description"}


def test_task_update_requires_at_least_one_field():
    result = validate_payload(TaskUpdate, {})

    assert result.errors == [FieldError("body", "At least one field must be provided")]


def test_task_update_rejects_explicit_nulls_for_required_fields():
    result = validate_payload(TaskUpdate, {"title": None, "status": None})

    assert _fields(result) == {"title", "status"}


def test_task_update_allows_clearing_optional_fields():
    result = validate_payload(TaskUpdate, {"description": None, "deadline": None})

    assert result.ok
    assert result.value.model_dump(exclude_unset=True) == {"description": None, "deadline": None}


def test_non_object_body_is_a_single_error():
    result = validate_payload(TaskCreate, ["title"])

    assert result.errors == [FieldError("body", "Request body must be a JSON object")]


def test_list_query_parses_filters():
    result = validate_payload(
        TaskListQuery,
        {"tags": "work, home,,", "startDate": "2026-01-01", "sortBy": "-deadline,title", "status": ""},
    )

    assert result.ok
    query = result.value
    assert query.tags == ["work", "home"]
    assert query.start_date == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert query.sort_by == "-deadline,title"
    assert query.status is None


def test_list_query_rejects_unknown_sort_field():
    result = validate_payload(TaskListQuery, {"sortBy": "-password"})

    assert not result.ok
    assert "Cannot sort by 'password'" in result.errors[0].message
