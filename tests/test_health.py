# tests/test_health.py
from http import HTTPStatus


def test_health_reports_process_state(client):
    """
    /health answers without a teacher header and describes the running
    process: environment, monitor state and wired alert channels.
    """
    response = client.get("/health")
    assert response.status_code == HTTPStatus.OK

    data = response.json()
    assert data["status"] == "ok"
    assert data["app_name"] == "TeachTune Scheduler"
    assert data["environment"] == "test"
    assert "checked_at" in data


def test_health_reports_monitor_disabled_in_tests(client):
    """
    MONITOR_ENABLED=false in the test environment, so the background
    monitor never starts.
    """
    data = client.get("/health").json()
    assert data["monitor_running"] is False


def test_health_lists_only_in_app_channel_without_configuration(client):
    data = client.get("/health").json()
    assert data["alert_channels"] == ["in_app"]
