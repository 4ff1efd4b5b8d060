import logging
from datetime import datetime
from sqlalchemy.orm import Session, selectinload

from app.models.automation import Automation, AutomationExecution

logger = logging.getLogger(__name__)


class AutomationStore:
    """
    Persistence boundary for the scheduler.

    Write methods only stage changes on the session; the runner calls
    commit() once per automation so the execution record, the bookkeeping
    and the new next_execution_at land together (or not at all).
    """

    def __init__(self, db: Session):
        self.db = db

    # ---------------------------------------------------------
    # READS
    # ---------------------------------------------------------
    def find_due(self, now: datetime):
        return (
            self.db.query(Automation)
            .options(selectinload(Automation.recipients), selectinload(Automation.user))
            .filter(
                Automation.is_active.is_(True),
                Automation.next_execution_at.isnot(None),
                Automation.next_execution_at <= now,
            )
            .order_by(Automation.next_execution_at, Automation.id)
            .all()
        )

    def get(self, automation_id: int):
        return self.db.get(Automation, automation_id)

    # ---------------------------------------------------------
    # STAGED WRITES
    # ---------------------------------------------------------
    def update_next_execution(self, automation_id: int, next_execution_at, is_active: bool = None):
        automation = self.get(automation_id)
        if automation is None:
            raise LookupError(f"Automation {automation_id} no longer exists")
        if is_active is not None:
            automation.is_active = is_active
        # inactive rows never carry a next run
        automation.next_execution_at = next_execution_at if automation.is_active else None

    def mark_executed(self, automation_id: int, executed_at: datetime, succeeded: bool):
        automation = self.get(automation_id)
        if automation is None:
            raise LookupError(f"Automation {automation_id} no longer exists")
        automation.total_executions = (automation.total_executions or 0) + 1
        if succeeded:
            automation.successful_executions = (automation.successful_executions or 0) + 1
        automation.last_executed_at = executed_at

    def append_execution(self, automation_id, status, started_at, completed_at=None, error=None, result=None):
        execution = AutomationExecution(
            automation_id=automation_id,
            status=getattr(status, "value", status),
            started_at=started_at,
            completed_at=completed_at,
            error=error,
            result=result,
        )
        self.db.add(execution)
        self.db.flush()
        return execution

    # ---------------------------------------------------------
    # UNIT OF WORK
    # ---------------------------------------------------------
    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
