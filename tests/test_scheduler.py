from datetime import timedelta

from app import scheduler as scheduler_module
from app.models.automation import AutomationExecution
from app.services.schedule_calculator import scheduler_now


def test_background_tick_runs_due_automations(monkeypatch, session_factory, make_automation):
    automation = make_automation(next_execution_at=scheduler_now() - timedelta(minutes=1))
    monkeypatch.setattr(scheduler_module, "SessionLocal", session_factory)

    scheduler_module.run_automation_tick()

    session = session_factory()
    try:
        execution = session.query(AutomationExecution).filter_by(automation_id=automation.id).one()
        # no recipients configured
        assert execution.status == "FAILED"
    finally:
        session.close()


def test_background_tick_swallows_and_logs_errors(monkeypatch, caplog):
    class Session:
        def close(self):
            pass

    def broken_runner(db):
        raise RuntimeError("database unreachable")

    monkeypatch.setattr(scheduler_module, "SessionLocal", Session)
    monkeypatch.setattr(scheduler_module, "build_runner", broken_runner)

    scheduler_module.run_automation_tick()

    assert "Scheduler Error" in caplog.text


def test_start_registers_single_flight_job(monkeypatch):
    started = []
    jobs = []

    class FakeScheduler:
        running = False

        def add_job(self, func, trigger, **kwargs):
            jobs.append((func, trigger, kwargs))

        def start(self):
            started.append(True)

    monkeypatch.setattr(scheduler_module, "scheduler", FakeScheduler())

    scheduler_module.start_scheduler()

    func, trigger, kwargs = jobs[0]
    assert func is scheduler_module.run_automation_tick
    assert trigger == "interval"
    assert kwargs["id"] == "automation_tick"
    assert kwargs["max_instances"] == 1
    assert kwargs["coalesce"] is True
    assert started == [True]
