# tests/test_dashboard_api.py
from datetime import datetime, timezone
from http import HTTPStatus


def _create_student(
    client,
    headers,
    name: str,
    monthly_fee: float,
    is_active: bool = True,
    with_recurrence: bool = True,
) -> dict:
    payload = {
        "name": name,
        "instrument": "Piano",
        "monthly_fee": monthly_fee,
        "is_active": is_active,
    }
    if with_recurrence:
        payload["recurrence"] = {
            "frequency": "WEEKLY",
            "start_date": "2024-03-04",
            "slots": [{"weekday": 1, "time": "14:00:00"}],
        }
    response = client.post("/students", json=payload, headers=headers)
    assert response.status_code == HTTPStatus.CREATED, response.text
    return response.json()


def test_dashboard_summary_for_today(client, teacher_headers, other_teacher_headers, clock):
    """
    Monday 2024-03-04, 09:00: one generated lesson at 14:00 and one manual
    booking already marked PRESENT.
    """
    clock.current = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)

    ana = _create_student(client, teacher_headers, "Ana Souza", 250.0)
    bruno = _create_student(client, teacher_headers, "Bruno Lima", 180.5, with_recurrence=False)
    _create_student(
        client, teacher_headers, "Carla Dias", 400.0, is_active=False, with_recurrence=False
    )
    _create_student(client, other_teacher_headers, "Other Teacher Student", 999.0)

    booked = client.post(
        "/lessons",
        json={"student_id": bruno["id"], "scheduled_at": "2024-03-04T08:00:00Z"},
        headers=teacher_headers,
    ).json()
    client.patch(
        f"/lessons/{booked['id']}",
        json={"attendance": "PRESENT"},
        headers=teacher_headers,
    )
    # Tomorrow does not count
    client.post(
        "/lessons",
        json={"student_id": bruno["id"], "scheduled_at": "2024-03-05T08:00:00Z"},
        headers=teacher_headers,
    )

    response = client.get("/dashboard", headers=teacher_headers)
    assert response.status_code == HTTPStatus.OK
    data = response.json()

    assert data["day"] == "2024-03-04"
    stats = data["stats"]
    assert stats["total_students"] == 3
    assert stats["active_students"] == 2
    assert stats["estimated_monthly_income"] == 430.5
    assert stats["lessons_today"] == 2
    assert stats["pending_lessons_today"] == 1

    assert [entry["student_name"] for entry in data["lessons_today"]] == [
        "Bruno Lima",
        "Ana Souza",
    ]
    assert data["lessons_today"][1]["student_id"] == ana["id"]


def test_dashboard_empty_for_new_teacher(client, teacher_headers):
    response = client.get("/dashboard", headers=teacher_headers)
    assert response.status_code == HTTPStatus.OK

    stats = response.json()["stats"]
    assert stats == {
        "total_students": 0,
        "active_students": 0,
        "estimated_monthly_income": 0.0,
        "lessons_today": 0,
        "pending_lessons_today": 0,
    }
    assert response.json()["lessons_today"] == []


def test_dashboard_requires_teacher(client):
    response = client.get("/dashboard")
    assert response.status_code == HTTPStatus.UNAUTHORIZED
