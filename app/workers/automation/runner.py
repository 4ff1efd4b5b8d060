"""
app/workers/automation/runner.py

One scheduler "tick":

  1. Load every active automation whose next_execution_at <= now
  2. For each one, as a single unit of work:
       a. dispatch the action
       b. seal an AutomationExecution (SUCCESS / FAILED / CRITICAL_ERROR)
       c. recompute next_execution_at from the *current* time
       d. commit
  3. Return {executed_count, results}

A failure inside one automation is recorded against that automation only;
the loop always moves on to the next one. Only a failure to load the due
list escapes run_tick().
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.models.automation import ExecutionStatus, ScheduleType
from app.services.automation_store import AutomationStore
from app.services.email_service import EmailService
from app.services.schedule_calculator import compute_next_execution, scheduler_now
from app.workers.automation.dispatcher import ActionDispatcher

logger = logging.getLogger(__name__)


@dataclass
class AutomationResult:
    automation_id: int
    name: str
    status: ExecutionStatus
    next_execution: Optional[datetime] = None
    error: Optional[str] = None
    execution_id: Optional[int] = None
    result: Optional[dict] = None


@dataclass
class TickResult:
    executed_count: int
    results: List[AutomationResult] = field(default_factory=list)


def _error_text(e: Exception) -> str:
    return str(e) or e.__class__.__name__


class SchedulerRunner:
    def __init__(self, store, dispatcher, clock: Callable[[], datetime] = scheduler_now):
        self.store = store
        self.dispatcher = dispatcher
        self.clock = clock

    def run_tick(self, now: datetime = None) -> TickResult:
        now = now or self.clock()
        logger.info(f"🔄 Checking automations due at {now.isoformat()}")

        due = self.store.find_due(now)
        logger.info(f"📋 {len(due)} automation(s) to execute")

        # captured now: each commit expires the loaded rows, and one may be deleted mid-tick
        identities = [(automation.id, automation.name) for automation in due]

        results = []
        for automation, (automation_id, name) in zip(due, identities):
            try:
                results.append(self.run_one(automation))
            except Exception as e:
                logger.exception(f"💥 Could not process '{name}'")
                self.store.rollback()
                results.append(AutomationResult(
                    automation_id=automation_id,
                    name=name,
                    status=ExecutionStatus.CRITICAL_ERROR,
                    error=_error_text(e),
                ))
        return TickResult(executed_count=len(due), results=results)

    def run_one(self, automation, reschedule: bool = True) -> AutomationResult:
        """
        reschedule=False is the manual "run now" path: the execution is
        recorded but next_execution_at and is_active are left as they are.
        """
        # read up front: a rollback below expires the ORM instance
        automation_id = automation.id
        name = automation.name
        exhausts = reschedule and automation.schedule_type == ScheduleType.ONCE.value

        started_at = self.clock()
        logger.info(f"⚡ Executing '{name}' ({automation.type})")
        status, error, result = self._dispatch(automation, started_at)
        completed_at = self.clock()

        try:
            if exhausts:
                next_execution = None
            elif reschedule:
                next_execution = compute_next_execution(automation, completed_at)
            else:
                next_execution = automation.next_execution_at

            execution = self.store.append_execution(
                automation_id, status, started_at, completed_at=completed_at, error=error, result=result
            )
            execution_id = execution.id if execution is not None else None
            if reschedule:
                self.store.update_next_execution(
                    automation_id, next_execution, is_active=False if exhausts else None
                )
            self.store.mark_executed(automation_id, completed_at, succeeded=status == ExecutionStatus.SUCCESS)
            self.store.commit()
        except Exception as e:
            logger.exception(f"💥 Could not record execution of '{name}'")
            self.store.rollback()
            return AutomationResult(
                automation_id=automation_id,
                name=name,
                status=ExecutionStatus.CRITICAL_ERROR,
                error=f"Failed to record execution: {_error_text(e)}",
            )

        if status == ExecutionStatus.SUCCESS:
            logger.info(f"✅ '{name}' succeeded, next execution: {next_execution}")
        else:
            logger.error(f"❌ '{name}' {status.value}: {error}")
        if exhausts:
            logger.info(f"🔒 '{name}' is a one-shot automation and is now deactivated")

        return AutomationResult(
            automation_id=automation_id,
            name=name,
            status=status,
            next_execution=next_execution,
            error=error,
            execution_id=execution_id,
            result=result,
        )

    def _dispatch(self, automation, now: datetime):
        try:
            outcome = self.dispatcher.execute(automation, now)
        except Exception as e:
            logger.exception(f"💥 Critical error while executing '{automation.name}'")
            # drop any half-applied side effects before recording the failure
            self.store.rollback()
            return ExecutionStatus.CRITICAL_ERROR, _error_text(e), None

        if outcome.ok:
            return ExecutionStatus.SUCCESS, None, outcome.result
        return ExecutionStatus.FAILED, outcome.error or "Unknown error", outcome.result


def build_runner(db: Session, email_service=None) -> SchedulerRunner:
    email_service = email_service or EmailService()
    return SchedulerRunner(AutomationStore(db), ActionDispatcher(db, email_service))
