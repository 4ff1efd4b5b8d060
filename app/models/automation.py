import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, Boolean, TIMESTAMP, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.core.database import Base


class ScheduleType(str, enum.Enum):
    ONCE = "ONCE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"
    INTERVAL = "INTERVAL"
    CUSTOM_CRON = "CUSTOM_CRON"


class AutomationType(str, enum.Enum):
    EMAIL_REMINDER = "EMAIL_REMINDER"
    TASK_CREATION = "TASK_CREATION"
    STATUS_UPDATE = "STATUS_UPDATE"
    REPORT_GENERATION = "REPORT_GENERATION"
    CLIENT_FOLLOW_UP = "CLIENT_FOLLOW_UP"
    INVOICE_REMINDER = "INVOICE_REMINDER"
    BACKUP_DATA = "BACKUP_DATA"
    NOTIFICATION_SEND = "NOTIFICATION_SEND"
    PROJECT_ARCHIVE = "PROJECT_ARCHIVE"
    CLIENT_CHECK_IN = "CLIENT_CHECK_IN"
    DEADLINE_ALERT = "DEADLINE_ALERT"
    WEEKLY_SUMMARY = "WEEKLY_SUMMARY"


class ExecutionStatus(str, enum.Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CRITICAL_ERROR = "CRITICAL_ERROR"


class RecipientType(str, enum.Enum):
    CUSTOM = "CUSTOM"
    CLIENT = "CLIENT"
    TEAM = "TEAM"
    PROJECT_MEMBERS = "PROJECT_MEMBERS"


# ---------------------------------------------------------
# 1. AUTOMATIONS (The Rule)
# ---------------------------------------------------------
class Automation(Base):
    __tablename__ = "automations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)

    # Action
    type = Column(String, nullable=False)  # AutomationType value
    config = Column(JSON, default=dict)
    conditions = Column(JSON, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    # Schedule descriptor
    schedule_type = Column(String, nullable=False)  # ScheduleType value
    schedule_time = Column(String, nullable=True)  # "HH:MM"
    schedule_day_of_month = Column(Integer, nullable=True)  # 1-31
    schedule_day_of_week = Column(Integer, nullable=True)  # 0 = Sunday ... 6 = Saturday
    schedule_interval = Column(Integer, nullable=True)  # minutes
    custom_cron_expression = Column(String, nullable=True)

    # Single source of truth for "when is this due"
    next_execution_at = Column(TIMESTAMP, nullable=True, index=True)

    # Bookkeeping
    last_executed_at = Column(TIMESTAMP, nullable=True)
    total_executions = Column(Integer, default=0, nullable=False)
    successful_executions = Column(Integer, default=0, nullable=False)

    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="automations")
    recipients = relationship(
        "AutomationRecipient",
        back_populates="automation",
        cascade="all, delete-orphan",
        order_by="AutomationRecipient.id",
    )
    executions = relationship(
        "AutomationExecution",
        back_populates="automation",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Automation(id={self.id}, name='{self.name}', type={self.type}, schedule={self.schedule_type})>"


# ---------------------------------------------------------
# 2. RECIPIENTS (Who gets the emails)
# ---------------------------------------------------------
class AutomationRecipient(Base):
    __tablename__ = "automation_recipients"

    id = Column(Integer, primary_key=True, index=True)
    automation_id = Column(Integer, ForeignKey("automations.id", ondelete="CASCADE"), index=True)

    email = Column(String, nullable=False)
    name = Column(String, nullable=True)
    recipient_type = Column(String, default=RecipientType.CUSTOM.value)

    automation = relationship("Automation", back_populates="recipients")


# ---------------------------------------------------------
# 3. EXECUTIONS (Append-only ledger)
# ---------------------------------------------------------
class AutomationExecution(Base):
    __tablename__ = "automation_executions"

    id = Column(Integer, primary_key=True, index=True)
    automation_id = Column(Integer, ForeignKey("automations.id", ondelete="CASCADE"), index=True)

    status = Column(String, nullable=False)  # ExecutionStatus value

    started_at = Column(TIMESTAMP, nullable=False)
    completed_at = Column(TIMESTAMP, nullable=True)

    error = Column(Text, nullable=True)
    result = Column(JSON, nullable=True)

    automation = relationship("Automation", back_populates="executions")
