from datetime import datetime, timedelta, timezone

import pytest

from taskboard.crud.dashboard import (
    completion_rate,
    compute_productivity_score,
    one_month_before,
    period_start,
    productivity_level,
    statistics,
)
from taskboard.errors import ValidationFailed
from taskboard.models import Task

from .helpers import create_task


@pytest.mark.parametrize(
    "total, completed, overdue, score, level",
    [
        (0, 0, 0, 0, "Beginner"),
        (10, 10, 0, 100, "Expert"),
        (40, 20, 3, 35, "Beginner"),
        (2, 1, 0, 70, "Advanced"),
        (30, 15, 0, 60, "Advanced"),
        (61, 0, 5, 0, "Beginner"),
        (100, 100, 0, 70, "Advanced"),
        (8, 1, 2, 38, "Beginner"),
    ],
)
def test_compute_productivity_score(total, completed, overdue, score, level):
    result = compute_productivity_score(total, completed, overdue)

    assert result.score == score
    assert result.level == level


def test_score_rounds_half_up():
    # 60 * 1/8 + 40 = 47.5
    assert compute_productivity_score(8, 1, 0).score == 48


def test_level_boundaries():
    assert productivity_level(80) == "Expert"
    assert productivity_level(79) == "Advanced"
    assert productivity_level(60) == "Advanced"
    assert productivity_level(40) == "Intermediate"
    assert productivity_level(39) == "Beginner"


def test_completion_rate():
    assert completion_rate(0, 0) == 0
    assert completion_rate(3, 1) == 33
    assert completion_rate(8, 1) == 13
    assert completion_rate(4, 4) == 100


def test_month_window_clamps_day():
    assert one_month_before(datetime(2026, 3, 31, 9, 30)) == datetime(2026, 2, 28, 9, 30)
    assert one_month_before(datetime(2026, 1, 15)) == datetime(2025, 12, 15)
    assert period_start("week", datetime(2026, 3, 10)) == datetime(2026, 3, 3)


def test_unknown_period_is_rejected():
    with pytest.raises(ValidationFailed):
        period_start("year", datetime(2026, 3, 10))


def test_overview(client, auth_headers, other_headers):
    past = (datetime.now(timezone.utc) - timedelta(days=2)).isoformat()
    create_task(client, auth_headers, title="a", status="Completed")
    create_task(client, auth_headers, title="b", status="In Progress")
    create_task(client, auth_headers, title="c", deadline=past)
    create_task(client, other_headers, title="not counted", status="Completed")

    response = client.get("/api/dashboard/overview", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": {
            "totalTasks": 3,
            "completedTasks": 1,
            "pendingTasks": 1,
            "inProgressTasks": 1,
            "overdueTasks": 1,
            "completionRate": 33,
        },
    }


def test_overview_without_tasks(client, auth_headers):
    data = client.get("/api/dashboard/overview", headers=auth_headers).json()["data"]

    assert data["totalTasks"] == 0
    assert data["completionRate"] == 0


def test_statistics_endpoint(client, auth_headers):
    first = create_task(client, auth_headers, title="one", priority="High")
    create_task(client, auth_headers, title="two", priority="High")
    create_task(client, auth_headers, title="three", priority="Low")
    client.put(f"/api/tasks/{first['id']}", json={"status": "Completed"}, headers=auth_headers)

    response = client.get("/api/dashboard/statistics", headers=auth_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    today = datetime.now(timezone.utc).date().isoformat()
    assert data["period"] == "week"
    assert data["completedInPeriod"] == 1
    assert data["createdInPeriod"] == 3
    assert data["priorityDistribution"] == [
        {"priority": "High", "count": 2},
        {"priority": "Low", "count": 1},
    ]
    assert data["statusDistribution"] == [
        {"status": "Completed", "count": 1},
        {"status": "Pending", "count": 2},
    ]
    assert data["completionTrend"] == [{"date": today, "count": 1}]


def test_statistics_rejects_unknown_period(client, auth_headers):
    response = client.get("/api/dashboard/statistics", params={"period": "year"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["details"] == [{"field": "period", "message": "Period must be one of: week, month"}]


def test_statistics_windows(db_session, make_user):
    owner = make_user()
    now = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

    def add(title, created_days_ago, completed_days_ago=None):
        task = Task(
            title=title,
            user_id=owner.id,
            created_at=now - timedelta(days=created_days_ago),
        )
        if completed_days_ago is not None:
            task.status = "Completed"
            task.completed_at = now - timedelta(days=completed_days_ago)
        db_session.add(task)

    add("recent", created_days_ago=2, completed_days_ago=1)
    add("same day", created_days_ago=3, completed_days_ago=1)
    add("earlier", created_days_ago=20, completed_days_ago=10)
    add("old", created_days_ago=45)
    db_session.commit()

    week = statistics(db_session, owner.id, "week", now=now)
    month = statistics(db_session, owner.id, "month", now=now)

    assert (week["completedInPeriod"], week["createdInPeriod"]) == (2, 2)
    assert (month["completedInPeriod"], month["createdInPeriod"]) == (3, 3)
    # The trend always covers the trailing seven days
    assert week["completionTrend"] == month["completionTrend"] == [{"date": "2026-10-17", "count": 2}]


def test_productivity_score_endpoint(client, auth_headers):
    first = create_task(client, auth_headers, title="one")
    create_task(client, auth_headers, title="two")
    client.put(f"/api/tasks/{first['id']}", json={"status": "Completed"}, headers=auth_headers)

    response = client.get("/api/dashboard/productivity-score", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["data"] == {
        "score": 70,
        "level": "Advanced",
        "totalTasks": 2,
        "completedTasks": 1,
        "completionRate": 50,
        "overdueTasks": 0,
    }
