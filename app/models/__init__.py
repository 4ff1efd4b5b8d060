from .user import User
from .project import Client, Project, Task
from .email_message import EmailMessage
from .automation import (
    Automation,
    AutomationRecipient,
    AutomationExecution,
    AutomationType,
    ScheduleType,
    ExecutionStatus,
    RecipientType,
)

__all__ = [
    "User",
    "Client",
    "Project",
    "Task",
    "EmailMessage",
    "Automation",
    "AutomationRecipient",
    "AutomationExecution",
    "AutomationType",
    "ScheduleType",
    "ExecutionStatus",
    "RecipientType",
]
