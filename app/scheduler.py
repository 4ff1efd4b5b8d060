import logging
from apscheduler.schedulers.background import BackgroundScheduler
from app.core.config import settings
from app.core.database import SessionLocal

# --- WORKERS ---
from app.workers.automation.runner import build_runner

logger = logging.getLogger(__name__)
scheduler = BackgroundScheduler(timezone=settings.SCHEDULER_TIMEZONE)

# ---------------------------------------------------------
# WRAPPER: Automation Tick
# ---------------------------------------------------------
def run_automation_tick():
    """
    Creates a DB session and runs one scheduler tick.
    The external GET /api/automations/scheduler does the same thing.
    """
    db = SessionLocal()
    try:
        tick = build_runner(db).run_tick()
        if tick.executed_count:
            logger.info(f"✅ Scheduler: {tick.executed_count} automation(s) executed.")
    except Exception:
        logger.exception("❌ Scheduler Error (Automation Tick)")
    finally:
        db.close()

# ---------------------------------------------------------
# SCHEDULER SETUP
# ---------------------------------------------------------
def start_scheduler():
    if scheduler.running:
        return

    # max_instances=1: a slow tick is never overlapped by the next one
    scheduler.add_job(
        run_automation_tick,
        "interval",
        seconds=settings.SCHEDULER_INTERVAL_SECONDS,
        id="automation_tick",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )

    scheduler.start()
    logger.info(f"🚀 Background Scheduler Started (every {settings.SCHEDULER_INTERVAL_SECONDS}s).")


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
