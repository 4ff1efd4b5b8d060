from typing import Any, List, Literal

from pydantic import BaseModel, Field

from app.services.schedule_calculator import sunday_based_weekday


class ConditionFilter(BaseModel):
    path: str
    op: Literal["eq", "neq", "in", "exists"]
    value: Any = None


class AutomationConditions(BaseModel):
    filters: List[ConditionFilter] = Field(default_factory=list)


def build_condition_context(automation, now) -> dict:
    user = automation.user
    return {
        "now": {
            "weekday": sunday_based_weekday(now),
            "hour": now.hour,
            "day": now.day,
            "month": now.month,
        },
        "automation": {
            "id": automation.id,
            "name": automation.name,
            "type": automation.type,
            "total_executions": automation.total_executions or 0,
            "successful_executions": automation.successful_executions or 0,
        },
        "user": {
            "id": user.id if user else automation.user_id,
            "email": user.email if user else None,
        },
    }


def _get_path(payload: dict, path: str) -> Any:
    current: Any = payload
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _matches_filter(payload: dict, filt: ConditionFilter) -> bool:
    value = _get_path(payload, filt.path)
    target = filt.value
    if filt.op == "eq":
        return value == target
    if filt.op == "neq":
        return value != target
    if filt.op == "in":
        if not isinstance(target, list):
            return False
        return value in target
    if filt.op == "exists":
        return value is not None
    return False


def conditions_met(conditions: AutomationConditions, context: dict) -> bool:
    return all(_matches_filter(context, filt) for filt in conditions.filters)
