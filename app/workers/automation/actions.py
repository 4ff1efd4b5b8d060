"""
app/workers/automation/actions.py

One handler per automation type. Every handler:

  1. declares a pydantic `config_model`; the stored JSON config is parsed
     into it once, before anything runs
  2. implements execute(config, ctx) -> Outcome

Business failures (no recipients, unknown project, rejected address) come
back as Outcome(ok=False). Anything raised is unexpected and the runner
records it as CRITICAL_ERROR.
"""

import os
import json
import html
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.automation import AutomationType
from app.models.email_message import EmailMessage
from app.models.project import Client, Project, Task

logger = logging.getLogger(__name__)


class ActionConfigError(ValueError):
    pass


def format_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "config"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


@dataclass
class Outcome:
    ok: bool
    error: Optional[str] = None
    result: dict = field(default_factory=dict)

    @classmethod
    def success(cls, result: dict = None):
        return cls(ok=True, result=result or {})

    @classmethod
    def failure(cls, error: str, result: dict = None):
        return cls(ok=False, error=error, result=result or {})


@dataclass
class ActionContext:
    db: Session
    automation: Any
    now: datetime
    email_service: Any

    @property
    def user_id(self):
        return self.automation.user_id

    @property
    def recipients(self):
        return list(self.automation.recipients or [])


class AutomationAction:
    type: AutomationType = None
    config_model = None

    def parse_config(self, raw):
        try:
            return self.config_model.model_validate(raw or {})
        except ValidationError as e:
            raise ActionConfigError(f"Invalid {self.type.value} config: {format_validation_error(e)}")

    def execute(self, config, ctx: ActionContext) -> Outcome:
        raise NotImplementedError


# =========================================================
# 1. EMAIL-PRODUCING ACTIONS
# =========================================================

class EmailActionConfig(BaseModel):
    subject: Optional[str] = None
    message: Optional[str] = None


def render_email_html(subject: str, message: str) -> str:
    body = html.escape(message).replace("\n", "<br/>")
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #333;">{html.escape(subject)}</h2>'
        f'<div style="background: #f9f9f9; padding: 20px; border-radius: 8px;">{body}</div>'
        '<p style="color: #666; font-size: 12px; margin-top: 20px;">'
        "This email was sent automatically by your CRM."
        "</p></div>"
    )


def send_to_recipients(ctx: ActionContext, subject: str, message: str) -> Outcome:
    recipients = ctx.recipients
    if not recipients:
        return Outcome.failure("No recipients configured", {"emails_sent": 0, "emails_failed": 0})

    html_body = render_email_html(subject, message)
    details = []

    for recipient in recipients:
        success, error = ctx.email_service.send_email(recipient.email, subject, html_body, to_name=recipient.name)
        ctx.db.add(EmailMessage(
            user_id=ctx.user_id,
            automation_id=ctx.automation.id,
            email=recipient.email,
            to_name=recipient.name,
            subject=subject,
            body=html_body,
            status="sent" if success else "failed",
            error_message=error,
            sent_at=ctx.now if success else None,
        ))
        details.append({"email": recipient.email, "status": "sent" if success else "failed", "error": error})

    failed = [d for d in details if d["status"] == "failed"]
    result = {
        "emails_sent": len(details) - len(failed),
        "emails_failed": len(failed),
        "details": details,
    }
    if failed:
        addresses = ", ".join(d["email"] for d in failed)
        return Outcome.failure(f"Email delivery failed for {addresses}: {failed[0]['error']}", result)
    return Outcome.success(result)


class EmailAction(AutomationAction):
    config_model = EmailActionConfig

    def __init__(self, action_type: AutomationType, default_subject: str, default_message: str):
        self.type = action_type
        self.default_subject = default_subject
        self.default_message = default_message

    def compose(self, config, ctx: ActionContext):
        return config.subject or self.default_subject, config.message or self.default_message

    def execute(self, config, ctx: ActionContext) -> Outcome:
        subject, message = self.compose(config, ctx)
        return send_to_recipients(ctx, subject, message)


class DeadlineAlertConfig(EmailActionConfig):
    days_ahead: int = Field(3, ge=0, le=365)


class DeadlineAlertAction(EmailAction):
    config_model = DeadlineAlertConfig

    def __init__(self):
        super().__init__(
            AutomationType.DEADLINE_ALERT,
            "Upcoming deadlines",
            "The following tasks are due soon:",
        )

    def execute(self, config, ctx: ActionContext) -> Outcome:
        horizon = ctx.now + timedelta(days=config.days_ahead)
        tasks = (
            ctx.db.query(Task)
            .filter(
                Task.user_id == ctx.user_id,
                Task.status != "DONE",
                Task.due_date.isnot(None),
                Task.due_date >= ctx.now,
                Task.due_date <= horizon,
            )
            .order_by(Task.due_date)
            .all()
        )
        if not tasks:
            return Outcome.success({"tasks_due": 0, "emails_sent": 0, "skipped": True})

        subject, intro = self.compose(config, ctx)
        lines = [f"- {t.title} (due {t.due_date:%Y-%m-%d %H:%M})" for t in tasks]
        outcome = send_to_recipients(ctx, subject, intro + "\n\n" + "\n".join(lines))
        outcome.result["tasks_due"] = len(tasks)
        return outcome


class WeeklySummaryAction(EmailAction):
    def __init__(self):
        super().__init__(
            AutomationType.WEEKLY_SUMMARY,
            "Your weekly summary",
            "Here is where things stand this week:",
        )

    def execute(self, config, ctx: ActionContext) -> Outcome:
        reports = [
            {"type": report_type, "data": build_report(ctx.db, ctx.user_id, report_type, ctx.now)}
            for report_type in REPORT_TYPES
        ]
        subject, intro = self.compose(config, ctx)
        outcome = send_to_recipients(ctx, subject, intro + "\n\n" + format_reports(reports))
        outcome.result["reports"] = reports
        return outcome


# =========================================================
# 2. REPORTS
# =========================================================

REPORT_TYPES = ("projects_summary", "clients_summary", "tasks_summary")


def build_report(db: Session, user_id: int, report_type: str, now: datetime) -> dict:
    if report_type == "projects_summary":
        rows = (
            db.query(Project.status, func.count(Project.id))
            .filter(Project.user_id == user_id)
            .group_by(Project.status)
            .all()
        )
        by_status = {(status or "UNKNOWN"): count for status, count in rows}
        return {"total_projects": sum(by_status.values()), "by_status": by_status}

    if report_type == "clients_summary":
        total = db.query(func.count(Client.id)).filter(Client.user_id == user_id).scalar() or 0
        return {"total_clients": total}

    if report_type == "tasks_summary":
        base = db.query(func.count(Task.id)).filter(Task.user_id == user_id)
        return {
            "total_tasks": base.scalar() or 0,
            "open_tasks": base.filter(Task.status != "DONE").scalar() or 0,
            "done_tasks": base.filter(Task.status == "DONE").scalar() or 0,
            "overdue_tasks": base.filter(
                Task.status != "DONE", Task.due_date.isnot(None), Task.due_date < now
            ).scalar() or 0,
        }

    raise ValueError(f"Unknown report type: {report_type}")


def format_reports(reports: list) -> str:
    lines = []
    for report in reports:
        lines.append(report["type"].replace("_", " ").title())
        for key, value in report["data"].items():
            if isinstance(value, dict):
                value = ", ".join(f"{k}: {v}" for k, v in value.items()) or "none"
            lines.append(f"  {key.replace('_', ' ')}: {value}")
    return "\n".join(lines)


class ReportGenerationConfig(BaseModel):
    report_types: List[Literal["projects_summary", "clients_summary", "tasks_summary"]] = Field(min_length=1)
    email_report: bool = False
    subject: Optional[str] = None


class ReportGenerationAction(AutomationAction):
    type = AutomationType.REPORT_GENERATION
    config_model = ReportGenerationConfig

    def execute(self, config, ctx: ActionContext) -> Outcome:
        reports = [
            {"type": report_type, "data": build_report(ctx.db, ctx.user_id, report_type, ctx.now)}
            for report_type in config.report_types
        ]
        result = {"reports_generated": len(reports), "reports": reports}
        if not config.email_report:
            return Outcome.success(result)

        outcome = send_to_recipients(ctx, config.subject or "Automated report", format_reports(reports))
        outcome.result.update(result)
        return outcome


# =========================================================
# 3. DATA ACTIONS
# =========================================================

class TaskTemplate(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    status: Literal["TODO", "IN_PROGRESS", "DONE"] = "TODO"
    priority: Literal["LOW", "MEDIUM", "HIGH", "URGENT"] = "MEDIUM"
    project_id: Optional[int] = None
    due_date: Optional[datetime] = None
    due_in_days: Optional[int] = Field(None, ge=0)


class TaskCreationConfig(BaseModel):
    tasks: List[TaskTemplate] = Field(min_length=1)


class TaskCreationAction(AutomationAction):
    type = AutomationType.TASK_CREATION
    config_model = TaskCreationConfig

    def execute(self, config, ctx: ActionContext) -> Outcome:
        project_ids = {t.project_id for t in config.tasks if t.project_id is not None}
        if project_ids:
            owned = {
                pid for (pid,) in ctx.db.query(Project.id)
                .filter(Project.id.in_(project_ids), Project.user_id == ctx.user_id)
                .all()
            }
            missing = sorted(project_ids - owned)
            if missing:
                return Outcome.failure(f"Projects not found: {missing}")

        created = []
        for template in config.tasks:
            due_date = template.due_date
            if due_date is None and template.due_in_days is not None:
                due_date = ctx.now + timedelta(days=template.due_in_days)
            created.append(Task(
                user_id=ctx.user_id,
                project_id=template.project_id,
                title=template.title,
                description=template.description,
                status=template.status,
                priority=template.priority,
                due_date=due_date,
            ))

        ctx.db.add_all(created)
        ctx.db.flush()
        return Outcome.success({"tasks_created": len(created), "task_ids": [t.id for t in created]})


class StatusChange(BaseModel):
    entity_type: Literal["project", "task"]
    entity_id: int
    new_status: str = Field(min_length=1)


class StatusUpdateConfig(BaseModel):
    updates: List[StatusChange] = Field(min_length=1)


ENTITY_MODELS = {"project": Project, "task": Task}


class StatusUpdateAction(AutomationAction):
    type = AutomationType.STATUS_UPDATE
    config_model = StatusUpdateConfig

    def execute(self, config, ctx: ActionContext) -> Outcome:
        # resolve everything first so a bad id leaves nothing half-applied
        resolved = []
        for update in config.updates:
            model = ENTITY_MODELS[update.entity_type]
            entity = ctx.db.query(model).filter(model.id == update.entity_id, model.user_id == ctx.user_id).first()
            if entity is None:
                return Outcome.failure(f"{update.entity_type} {update.entity_id} not found")
            resolved.append((update, entity))

        applied = []
        for update, entity in resolved:
            entity.status = update.new_status
            if isinstance(entity, Project):
                entity.updated_at = ctx.now
            applied.append(f"{update.entity_type} {update.entity_id} -> {update.new_status}")

        return Outcome.success({"updates_applied": len(applied), "updates": applied})


class ProjectArchiveConfig(BaseModel):
    statuses: List[str] = Field(default_factory=lambda: ["COMPLETED"], min_length=1)
    older_than_days: int = Field(30, ge=0)


class ProjectArchiveAction(AutomationAction):
    type = AutomationType.PROJECT_ARCHIVE
    config_model = ProjectArchiveConfig

    def execute(self, config, ctx: ActionContext) -> Outcome:
        cutoff = ctx.now - timedelta(days=config.older_than_days)
        projects = (
            ctx.db.query(Project)
            .filter(
                Project.user_id == ctx.user_id,
                Project.status.in_(config.statuses),
                or_(Project.updated_at.is_(None), Project.updated_at <= cutoff),
            )
            .all()
        )
        for project in projects:
            project.status = "ARCHIVED"
            project.updated_at = ctx.now

        return Outcome.success({"projects_archived": len(projects), "project_ids": [p.id for p in projects]})


class BackupDataConfig(BaseModel):
    include: List[Literal["clients", "projects", "tasks"]] = Field(
        default_factory=lambda: ["clients", "projects", "tasks"], min_length=1
    )

    class Config:
        # files always land in BACKUP_DIR; a stored "directory" key is rejected
        extra = "forbid"


BACKUP_MODELS = {"clients": Client, "projects": Project, "tasks": Task}


def _row_to_dict(row) -> dict:
    return {column.name: getattr(row, column.name) for column in row.__table__.columns}


class BackupDataAction(AutomationAction):
    type = AutomationType.BACKUP_DATA
    config_model = BackupDataConfig

    def execute(self, config, ctx: ActionContext) -> Outcome:
        snapshot = {"user_id": ctx.user_id, "created_at": ctx.now.isoformat()}
        counts = {}
        for name in config.include:
            model = BACKUP_MODELS[name]
            rows = ctx.db.query(model).filter(model.user_id == ctx.user_id).order_by(model.id).all()
            snapshot[name] = [_row_to_dict(r) for r in rows]
            counts[name] = len(rows)

        directory = settings.BACKUP_DIR
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(
            directory,
            f"backup_user{ctx.user_id}_automation{ctx.automation.id}_{ctx.now:%Y%m%d_%H%M%S}.json",
        )
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(snapshot, fh, default=str, indent=2)

        logger.info(f"💾 Backup written to {path} {counts}")
        return Outcome.success({"file": path, "counts": counts})


# =========================================================
# REGISTRY
# =========================================================

def default_actions() -> dict:
    actions = [
        EmailAction(AutomationType.EMAIL_REMINDER, "Automatic reminder", "This is an automatic reminder."),
        EmailAction(
            AutomationType.CLIENT_FOLLOW_UP,
            "Following up",
            "I wanted to follow up on our recent work together. Let me know if there is anything you need.",
        ),
        EmailAction(
            AutomationType.INVOICE_REMINDER,
            "Invoice payment reminder",
            "This is a friendly reminder that an invoice is awaiting payment. Thank you!",
        ),
        EmailAction(AutomationType.NOTIFICATION_SEND, "Notification", "You have a new notification."),
        EmailAction(
            AutomationType.CLIENT_CHECK_IN,
            "Checking in",
            "Just checking in to see how things are going and whether you need anything from me.",
        ),
        DeadlineAlertAction(),
        WeeklySummaryAction(),
        TaskCreationAction(),
        StatusUpdateAction(),
        ReportGenerationAction(),
        BackupDataAction(),
        ProjectArchiveAction(),
    ]
    return {action.type: action for action in actions}
