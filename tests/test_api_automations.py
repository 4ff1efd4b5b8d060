from datetime import timedelta

import pytest

from app.models.user import User
from app.services.automation_store import AutomationStore
from app.services.schedule_calculator import scheduler_now

BASE = "/api/automations"


def daily_payload(**overrides):
    payload = {
        "name": "Invoice nudges",
        "type": "INVOICE_REMINDER",
        "schedule_type": "DAILY",
        "schedule_time": "09:00",
        "recipients": [{"email": "client@example.com", "name": "Client"}],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def created(client):
    response = client.post(BASE, json=daily_payload())
    assert response.status_code == 201
    return response.json()


def test_root(client):
    assert client.get("/").json() == {"status": "running"}


# ---------------------------------------------------------
# AUTH
# ---------------------------------------------------------
def test_missing_user_header_is_rejected(client):
    client.headers.pop("X-User-Id")
    assert client.get(BASE).status_code == 401


def test_unknown_user_is_rejected(client):
    assert client.get(BASE, headers={"X-User-Id": "999"}).status_code == 401


# ---------------------------------------------------------
# CRUD
# ---------------------------------------------------------
def test_create_computes_next_execution(created, user):
    assert created["user_id"] == user.id
    assert created["is_active"] is True
    assert created["next_execution_at"] is not None
    assert created["recipients"][0]["email"] == "client@example.com"
    assert created["recipients"][0]["recipient_type"] == "CUSTOM"
    assert created["total_executions"] == 0
    assert created["recent_executions"] == []


def test_create_inactive_has_no_next_execution(client):
    body = client.post(BASE, json=daily_payload(is_active=False)).json()
    assert body["next_execution_at"] is None


@pytest.mark.parametrize("overrides", [
    {"schedule_time": None},
    {"schedule_time": "25:00"},
    {"schedule_type": "WEEKLY"},
    {"schedule_type": "MONTHLY"},
    {"schedule_type": "INTERVAL", "schedule_time": None},
    {"schedule_type": "WEEKLY", "schedule_day_of_week": 7},
    {"type": "SMS_BLAST"},
    {"recipients": [{"email": "not-an-email"}]},
])
def test_create_rejects_invalid_payload(client, overrides):
    assert client.post(BASE, json=daily_payload(**overrides)).status_code == 422


def test_create_rejects_invalid_action_config(client):
    response = client.post(BASE, json=daily_payload(type="TASK_CREATION", config={"tasks": []}))
    assert response.status_code == 400
    assert "TASK_CREATION" in response.json()["detail"]


def test_list_filters_by_type_and_state(client, created):
    client.post(BASE, json=daily_payload(name="Backups", type="BACKUP_DATA", is_active=False))

    everything = client.get(BASE).json()
    assert everything["total"] == 2

    invoices = client.get(BASE, params={"type": "INVOICE_REMINDER"}).json()
    assert [a["id"] for a in invoices["data"]] == [created["id"]]

    inactive = client.get(BASE, params={"is_active": False}).json()
    assert [a["name"] for a in inactive["data"]] == ["Backups"]


def test_get_other_users_automation_is_not_found(client, db, make_automation):
    stranger = User(email="stranger@example.com")
    db.add(stranger)
    db.commit()
    theirs = make_automation(user_id=stranger.id)

    assert client.get(f"{BASE}/{theirs.id}").status_code == 404
    assert client.delete(f"{BASE}/{theirs.id}").status_code == 404


def test_deactivate_clears_next_execution_and_reactivate_restores_it(client, created):
    url = f"{BASE}/{created['id']}"

    paused = client.put(url, json={"is_active": False}).json()
    assert paused["is_active"] is False
    assert paused["next_execution_at"] is None

    resumed = client.put(url, json={"is_active": True}).json()
    assert resumed["next_execution_at"] is not None


def test_update_schedule_recomputes_next_execution(client, created):
    body = client.put(
        f"{BASE}/{created['id']}",
        json={"schedule_type": "INTERVAL", "schedule_interval": 15},
    ).json()

    assert body["schedule_type"] == "INTERVAL"
    assert body["next_execution_at"] != created["next_execution_at"]


def test_update_rejects_incomplete_merged_schedule(client, created):
    response = client.put(f"{BASE}/{created['id']}", json={"schedule_type": "WEEKLY"})
    assert response.status_code == 400
    assert "schedule_day_of_week" in response.json()["detail"]


def test_update_replaces_recipients(client, created):
    body = client.put(
        f"{BASE}/{created['id']}",
        json={"recipients": [{"email": "new@example.com"}, {"email": "other@example.com"}]},
    ).json()
    assert sorted(r["email"] for r in body["recipients"]) == ["new@example.com", "other@example.com"]


@pytest.mark.parametrize("field", ["is_active", "name", "schedule_type"])
def test_update_rejects_null_for_required_fields(client, created, field):
    url = f"{BASE}/{created['id']}"

    response = client.put(url, json={field: None})

    assert response.status_code == 422
    assert client.get(url).json()[field] == created[field]


def test_update_missing_automation(client):
    assert client.put(f"{BASE}/999", json={"name": "x"}).status_code == 404


def test_delete(client, created):
    url = f"{BASE}/{created['id']}"
    assert client.delete(url).status_code == 204
    assert client.get(url).status_code == 404


# ---------------------------------------------------------
# MANUAL RUN + HISTORY
# ---------------------------------------------------------
def test_manual_execute_runs_without_touching_schedule(client, created, email_service):
    url = f"{BASE}/{created['id']}"

    body = client.post(f"{url}/execute").json()

    assert set(body) == {"execution_id", "status", "result", "error"}
    assert body["status"] == "SUCCESS"
    assert body["execution_id"] is not None
    assert body["result"]["emails_sent"] == 1
    assert email_service.sent[0]["to"] == "client@example.com"

    detail = client.get(url).json()
    assert detail["next_execution_at"] == created["next_execution_at"]
    assert detail["execution_count"] == 1
    assert detail["total_executions"] == 1
    assert detail["recent_executions"][0]["status"] == "SUCCESS"


def test_manual_execute_reports_business_failure(client, created, email_service):
    email_service.failing.add("client@example.com")

    body = client.post(f"{BASE}/{created['id']}/execute").json()

    assert body["status"] == "FAILED"
    assert "client@example.com" in body["error"]


def test_manual_execute_of_disabled_automation(client):
    paused = client.post(BASE, json=daily_payload(is_active=False)).json()
    assert client.post(f"{BASE}/{paused['id']}/execute").status_code == 400


def test_manual_execute_missing_automation(client):
    assert client.post(f"{BASE}/999/execute").status_code == 404


def test_execution_history(client, created, email_service):
    email_service.failing.add("client@example.com")
    client.post(f"{BASE}/{created['id']}/execute")

    history = client.get(f"{BASE}/executions").json()
    assert history["total"] == 1
    assert history["data"][0]["automation_name"] == "Invoice nudges"
    assert history["data"][0]["automation_type"] == "INVOICE_REMINDER"
    assert history["data"][0]["status"] == "FAILED"

    assert client.get(f"{BASE}/executions", params={"status": "SUCCESS"}).json()["total"] == 0
    assert client.get(f"{BASE}/executions", params={"automation_id": 999}).json()["total"] == 0


# ---------------------------------------------------------
# SCHEDULER TICK
# ---------------------------------------------------------
def test_scheduler_tick_reports_camel_case_results(client, make_automation, email_service):
    due = make_automation(
        name="Due now",
        recipients=["a@example.com"],
        next_execution_at=scheduler_now() - timedelta(minutes=1),
    )
    make_automation(name="Later", next_execution_at=scheduler_now() + timedelta(hours=1))

    client.headers.pop("X-User-Id")
    body = client.get(f"{BASE}/scheduler").json()

    assert body["executedCount"] == 1
    item = body["results"][0]
    assert item["automationId"] == due.id
    assert item["name"] == "Due now"
    assert item["status"] == "SUCCESS"
    assert item["nextExecution"] is not None
    assert "error" not in item
    assert len(email_service.sent) == 1

    assert client.get(f"{BASE}/scheduler").json() == {"executedCount": 0, "results": []}


def test_scheduler_tick_includes_failure_reason(client, make_automation):
    make_automation(name="No recipients", next_execution_at=scheduler_now() - timedelta(minutes=1))

    item = client.get(f"{BASE}/scheduler").json()["results"][0]

    assert item["status"] == "FAILED"
    assert item["error"] == "No recipients configured"


def test_scheduler_tick_failure_returns_500(client, monkeypatch):
    def explode(self, now):
        raise RuntimeError("database unreachable")

    monkeypatch.setattr(AutomationStore, "find_due", explode)

    response = client.get(f"{BASE}/scheduler")
    assert response.status_code == 500
    assert response.json() == {"detail": "Scheduler error"}
