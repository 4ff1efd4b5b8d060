from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional
from datetime import datetime

from app.models.automation import AutomationType, ScheduleType, ExecutionStatus, RecipientType
from app.services.schedule_calculator import parse_schedule_time

TIMED_SCHEDULES = (ScheduleType.ONCE, ScheduleType.DAILY, ScheduleType.WEEKLY, ScheduleType.MONTHLY)


def validate_schedule(schedule_type, schedule_time=None, day_of_week=None, day_of_month=None, interval=None):
    """Raises ValueError when the schedule descriptor is incomplete for its kind."""
    schedule_type = ScheduleType(schedule_type)

    if schedule_type in TIMED_SCHEDULES:
        if not schedule_time:
            raise ValueError(f"schedule_time is required for {schedule_type.value} schedules")
        parse_schedule_time(schedule_time)
    if schedule_type == ScheduleType.WEEKLY and day_of_week is None:
        raise ValueError("schedule_day_of_week is required for WEEKLY schedules")
    if schedule_type == ScheduleType.MONTHLY and day_of_month is None:
        raise ValueError("schedule_day_of_month is required for MONTHLY schedules")
    if schedule_type == ScheduleType.INTERVAL and interval is None:
        raise ValueError("schedule_interval is required for INTERVAL schedules")


# --- 1. RECIPIENTS ---
class RecipientIn(BaseModel):
    email: EmailStr
    name: Optional[str] = None
    recipient_type: RecipientType = RecipientType.CUSTOM

class RecipientOut(BaseModel):
    id: int
    email: str
    name: Optional[str] = None
    recipient_type: str

    class Config:
        from_attributes = True


# --- 2. CREATE / UPDATE ---
class AutomationCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    type: AutomationType
    is_active: bool = True

    schedule_type: ScheduleType
    schedule_time: Optional[str] = None
    schedule_day_of_month: Optional[int] = Field(None, ge=1, le=31)
    schedule_day_of_week: Optional[int] = Field(None, ge=0, le=6)
    schedule_interval: Optional[int] = Field(None, ge=1)
    custom_cron_expression: Optional[str] = None

    config: Dict[str, Any] = Field(default_factory=dict)
    conditions: Optional[Dict[str, Any]] = None
    recipients: List[RecipientIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_schedule(self):
        validate_schedule(
            self.schedule_type,
            self.schedule_time,
            self.schedule_day_of_week,
            self.schedule_day_of_month,
            self.schedule_interval,
        )
        return self


class AutomationUpdate(BaseModel):
    """Partial update. Cross-field schedule checks run after merging with the stored row."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    schedule_type: Optional[ScheduleType] = None
    schedule_time: Optional[str] = None
    schedule_day_of_month: Optional[int] = Field(None, ge=1, le=31)
    schedule_day_of_week: Optional[int] = Field(None, ge=0, le=6)
    schedule_interval: Optional[int] = Field(None, ge=1)
    custom_cron_expression: Optional[str] = None

    config: Optional[Dict[str, Any]] = None
    conditions: Optional[Dict[str, Any]] = None
    recipients: Optional[List[RecipientIn]] = None

    @field_validator("name", "is_active", "schedule_type")
    @classmethod
    def reject_null(cls, value):
        # omit the field to leave it unchanged; these columns are NOT NULL
        if value is None:
            raise ValueError("may not be null")
        return value

    @field_validator("schedule_time")
    @classmethod
    def check_time(cls, value):
        if value:
            parse_schedule_time(value)
        return value


# --- 3. READ MODELS ---
class ExecutionOut(BaseModel):
    id: int
    automation_id: int
    status: ExecutionStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None

    class Config:
        from_attributes = True

class ExecutionWithAutomation(ExecutionOut):
    automation_name: Optional[str] = None
    automation_type: Optional[str] = None

class AutomationOut(BaseModel):
    id: int
    user_id: int
    name: str
    description: Optional[str] = None
    type: AutomationType
    is_active: bool

    schedule_type: ScheduleType
    schedule_time: Optional[str] = None
    schedule_day_of_month: Optional[int] = None
    schedule_day_of_week: Optional[int] = None
    schedule_interval: Optional[int] = None
    custom_cron_expression: Optional[str] = None

    config: Dict[str, Any] = Field(default_factory=dict)
    conditions: Optional[Dict[str, Any]] = None
    recipients: List[RecipientOut] = Field(default_factory=list)

    next_execution_at: Optional[datetime] = None
    last_executed_at: Optional[datetime] = None
    total_executions: int = 0
    successful_executions: int = 0

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    recent_executions: List[ExecutionOut] = Field(default_factory=list)
    execution_count: int = 0

    class Config:
        from_attributes = True


class AutomationListResponse(BaseModel):
    data: List[AutomationOut]
    total: int
    page: int
    limit: int

class ExecutionListResponse(BaseModel):
    data: List[ExecutionWithAutomation]
    total: int
    page: int
    limit: int


# --- 4. EXECUTION TRIGGERS ---
class ManualExecutionResponse(BaseModel):
    execution_id: Optional[int] = None
    status: ExecutionStatus
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

class TickResultItem(BaseModel):
    automation_id: int = Field(alias="automationId")
    name: str
    status: ExecutionStatus
    next_execution: Optional[datetime] = Field(None, alias="nextExecution")
    error: Optional[str] = None

    class Config:
        populate_by_name = True

class TickResponse(BaseModel):
    executed_count: int = Field(alias="executedCount")
    results: List[TickResultItem]

    class Config:
        populate_by_name = True
