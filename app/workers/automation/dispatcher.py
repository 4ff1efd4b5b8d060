import logging
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.workers.automation.actions import (
    ActionConfigError,
    ActionContext,
    Outcome,
    default_actions,
    format_validation_error,
)
from app.workers.automation.conditions import AutomationConditions, build_condition_context, conditions_met

logger = logging.getLogger(__name__)

ACTIONS = default_actions()


def parse_conditions(raw):
    if not raw:
        return None
    try:
        return AutomationConditions.model_validate(raw)
    except ValidationError as e:
        raise ActionConfigError(f"Invalid conditions: {format_validation_error(e)}")


def validate_action_config(automation_type, config, conditions=None):
    """Create/update-time check. Raises ActionConfigError."""
    action = ACTIONS.get(automation_type)
    if action is None:
        raise ActionConfigError(f"Unsupported automation type: {automation_type}")
    action.parse_config(config)
    parse_conditions(conditions)


class ActionDispatcher:
    """
    Routes an automation to the handler for its type.

    Returns an Outcome for everything the handler can anticipate, including
    a stored config that no longer parses. Unexpected exceptions propagate
    so the runner can record them as CRITICAL_ERROR.
    """

    def __init__(self, db: Session, email_service, actions: dict = None):
        self.db = db
        self.email_service = email_service
        self.actions = actions if actions is not None else ACTIONS

    def execute(self, automation, now: datetime) -> Outcome:
        action = self.actions.get(automation.type)
        if action is None:
            return Outcome.failure(f"Unsupported automation type: {automation.type}")

        try:
            config = action.parse_config(automation.config)
            conditions = parse_conditions(automation.conditions)
        except ActionConfigError as e:
            logger.warning(f"⚠️ '{automation.name}' has invalid stored settings: {e}")
            return Outcome.failure(str(e), {"type": automation.type})

        if conditions is not None:
            context = build_condition_context(automation, now)
            if not conditions_met(conditions, context):
                logger.info(f"⏭️ '{automation.name}' conditions not met, skipping action")
                return Outcome.success({"type": automation.type, "skipped": True, "reason": "conditions not met"})

        ctx = ActionContext(db=self.db, automation=automation, now=now, email_service=self.email_service)
        outcome = action.execute(config, ctx)
        outcome.result.setdefault("type", automation.type)
        return outcome
