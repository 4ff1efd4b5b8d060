import logging
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import func, desc

from app.models.automation import Automation, AutomationRecipient, AutomationExecution, ScheduleType
from app.schemas.automation import AutomationCreate, AutomationUpdate, ExecutionOut, RecipientOut, validate_schedule
from app.services.schedule_calculator import compute_next_execution, scheduler_now
from app.workers.automation.actions import ActionConfigError
from app.workers.automation.dispatcher import validate_action_config

logger = logging.getLogger(__name__)

SCHEDULE_FIELDS = (
    "schedule_type",
    "schedule_time",
    "schedule_day_of_month",
    "schedule_day_of_week",
    "schedule_interval",
    "custom_cron_expression",
)


class AutomationConfigError(ValueError):
    pass


class AutomationService:
    def __init__(self, db: Session, clock=scheduler_now):
        self.db = db
        self.clock = clock

    # ---------------------------------------------------------
    # 1. READS
    # ---------------------------------------------------------
    def _serialize(self, automation: Automation, executions_limit: int):
        recent = (
            self.db.query(AutomationExecution)
            .filter(AutomationExecution.automation_id == automation.id)
            .order_by(desc(AutomationExecution.started_at), desc(AutomationExecution.id))
            .limit(executions_limit)
            .all()
        )
        execution_count = (
            self.db.query(func.count(AutomationExecution.id))
            .filter(AutomationExecution.automation_id == automation.id)
            .scalar() or 0
        )
        data = {column.name: getattr(automation, column.name) for column in Automation.__table__.columns}
        data["recipients"] = [RecipientOut.model_validate(r) for r in automation.recipients]
        data["recent_executions"] = [ExecutionOut.model_validate(e) for e in recent]
        data["execution_count"] = execution_count
        return data

    def _get_owned(self, user_id: int, automation_id: int) -> Optional[Automation]:
        return (
            self.db.query(Automation)
            .filter(Automation.id == automation_id, Automation.user_id == user_id)
            .first()
        )

    def list_automations(self, user_id: int, page: int = 1, limit: int = 20,
                         automation_type: str = None, is_active: bool = None):
        query = self.db.query(Automation).filter(Automation.user_id == user_id)
        if automation_type:
            query = query.filter(Automation.type == automation_type)
        if is_active is not None:
            query = query.filter(Automation.is_active.is_(is_active))

        total = query.count()
        results = query.order_by(desc(Automation.created_at), desc(Automation.id))\
                       .offset((page - 1) * limit)\
                       .limit(limit).all()

        data = [self._serialize(a, executions_limit=5) for a in results]
        return {"data": data, "total": total, "page": page, "limit": limit}

    def get_automation(self, user_id: int, automation_id: int):
        automation = self._get_owned(user_id, automation_id)
        if automation is None:
            return None
        return self._serialize(automation, executions_limit=10)

    def list_executions(self, user_id: int, page: int = 1, limit: int = 20,
                        automation_id: int = None, status: str = None):
        query = self.db.query(AutomationExecution, Automation.name, Automation.type)\
            .join(Automation, AutomationExecution.automation_id == Automation.id)\
            .filter(Automation.user_id == user_id)
        if automation_id is not None:
            query = query.filter(AutomationExecution.automation_id == automation_id)
        if status:
            query = query.filter(AutomationExecution.status == status)

        total = query.count()
        rows = query.order_by(desc(AutomationExecution.started_at), desc(AutomationExecution.id))\
                    .offset((page - 1) * limit)\
                    .limit(limit).all()

        data = []
        for execution, name, automation_type in rows:
            data.append({
                "id": execution.id,
                "automation_id": execution.automation_id,
                "status": execution.status,
                "started_at": execution.started_at,
                "completed_at": execution.completed_at,
                "error": execution.error,
                "result": execution.result,
                "automation_name": name,
                "automation_type": automation_type,
            })
        return {"data": data, "total": total, "page": page, "limit": limit}

    # ---------------------------------------------------------
    # 2. WRITES
    # ---------------------------------------------------------
    def _check_action(self, automation_type, config, conditions):
        try:
            validate_action_config(automation_type, config, conditions)
        except ActionConfigError as e:
            raise AutomationConfigError(str(e))

    def create_automation(self, user_id: int, payload: AutomationCreate):
        self._check_action(payload.type, payload.config, payload.conditions)

        automation = Automation(
            user_id=user_id,
            name=payload.name,
            description=payload.description,
            type=payload.type.value,
            is_active=payload.is_active,
            schedule_type=payload.schedule_type.value,
            schedule_time=payload.schedule_time,
            schedule_day_of_month=payload.schedule_day_of_month,
            schedule_day_of_week=payload.schedule_day_of_week,
            schedule_interval=payload.schedule_interval,
            custom_cron_expression=payload.custom_cron_expression,
            config=payload.config,
            conditions=payload.conditions or None,
            total_executions=0,
            successful_executions=0,
        )
        automation.next_execution_at = compute_next_execution(automation, self.clock())
        automation.recipients = [
            AutomationRecipient(email=r.email, name=r.name, recipient_type=r.recipient_type.value)
            for r in payload.recipients
        ]

        self.db.add(automation)
        self.db.commit()
        self.db.refresh(automation)
        logger.info(f"🆕 Automation {automation.id} '{automation.name}' created, next run {automation.next_execution_at}")
        return self._serialize(automation, executions_limit=5)

    def update_automation(self, user_id: int, automation_id: int, payload: AutomationUpdate):
        automation = self._get_owned(user_id, automation_id)
        if automation is None:
            return None

        changes = payload.model_dump(exclude_unset=True, exclude={"recipients"})
        for key, value in changes.items():
            if hasattr(value, "value"):
                changes[key] = value.value

        merged = {f: changes.get(f, getattr(automation, f)) for f in SCHEDULE_FIELDS}
        try:
            validate_schedule(
                merged["schedule_type"],
                merged["schedule_time"],
                merged["schedule_day_of_week"],
                merged["schedule_day_of_month"],
                merged["schedule_interval"],
            )
        except ValueError as e:
            raise AutomationConfigError(str(e))

        if "config" in changes or "conditions" in changes:
            self._check_action(
                automation.type,
                changes.get("config", automation.config),
                changes.get("conditions", automation.conditions),
            )

        # re-enabling a one-shot that already ran starts it over
        reactivating_once = (
            changes.get("is_active") is True
            and not automation.is_active
            and merged["schedule_type"] == ScheduleType.ONCE.value
            and automation.last_executed_at is not None
        )

        for key, value in changes.items():
            if key == "config" and value is None:
                continue
            setattr(automation, key, value)

        if reactivating_once:
            logger.info(f"🔄 Reactivating one-shot automation '{automation.name}', clearing last run")
            automation.last_executed_at = None

        schedule_touched = any(f in changes for f in SCHEDULE_FIELDS) or "is_active" in changes
        if schedule_touched:
            automation.next_execution_at = compute_next_execution(automation, self.clock())
        if not automation.is_active:
            automation.next_execution_at = None

        if payload.recipients is not None:
            automation.recipients = [
                AutomationRecipient(email=r.email, name=r.name, recipient_type=r.recipient_type.value)
                for r in payload.recipients
            ]

        self.db.commit()
        self.db.refresh(automation)
        return self._serialize(automation, executions_limit=5)

    def delete_automation(self, user_id: int, automation_id: int) -> bool:
        automation = self._get_owned(user_id, automation_id)
        if automation is None:
            return False
        self.db.delete(automation)
        self.db.commit()
        logger.info(f"🗑️ Automation {automation_id} deleted")
        return True
