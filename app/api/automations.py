import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.automation import Automation, AutomationType, ExecutionStatus
from app.models.user import User
from app.services.automation_service import AutomationService, AutomationConfigError
from app.services.email_service import EmailService
from app.workers.automation.runner import build_runner
from app.schemas.automation import (
    AutomationCreate,
    AutomationUpdate,
    AutomationOut,
    AutomationListResponse,
    ExecutionListResponse,
    ManualExecutionResponse,
    TickResponse,
    TickResultItem,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/automations", tags=["Automations"])


def get_email_service():
    return EmailService()


def get_current_user_id(
    x_user_id: Optional[int] = Header(None),
    db: Session = Depends(get_db),
):
    """
    Authentication lives in front of this service; it forwards the
    resolved owner as X-User-Id.
    """
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if db.get(User, x_user_id) is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return x_user_id


# =========================================================
# 1. SCHEDULER TRIGGER
# =========================================================

@router.get("/scheduler", response_model=TickResponse, response_model_exclude_none=True)
def run_scheduler_tick(
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Runs one tick. Called by an external cron / the invoker script."""
    runner = build_runner(db, email_service)
    try:
        tick = runner.run_tick()
    except Exception:
        logger.exception("❌ Scheduler tick failed")
        raise HTTPException(status_code=500, detail="Scheduler error")

    return TickResponse(
        executed_count=tick.executed_count,
        results=[
            TickResultItem(
                automation_id=r.automation_id,
                name=r.name,
                status=r.status,
                next_execution=r.next_execution,
                error=r.error,
            )
            for r in tick.results
        ],
    )


# =========================================================
# 2. HISTORY
# =========================================================

@router.get("/executions", response_model=ExecutionListResponse)
def list_executions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    automation_id: Optional[int] = Query(None),
    status: Optional[ExecutionStatus] = Query(None),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return AutomationService(db).list_executions(
        user_id,
        page=page,
        limit=limit,
        automation_id=automation_id,
        status=status.value if status else None,
    )


# =========================================================
# 3. CRUD
# =========================================================

@router.get("", response_model=AutomationListResponse)
def list_automations(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    type: Optional[AutomationType] = Query(None),
    is_active: Optional[bool] = Query(None),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return AutomationService(db).list_automations(
        user_id,
        page=page,
        limit=limit,
        automation_type=type.value if type else None,
        is_active=is_active,
    )


@router.post("", response_model=AutomationOut, status_code=201)
def create_automation(
    request: AutomationCreate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        return AutomationService(db).create_automation(user_id, request)
    except AutomationConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{automation_id}", response_model=AutomationOut)
def get_automation(
    automation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    automation = AutomationService(db).get_automation(user_id, automation_id)
    if automation is None:
        raise HTTPException(status_code=404, detail="Automation not found")
    return automation


@router.put("/{automation_id}", response_model=AutomationOut)
def update_automation(
    automation_id: int,
    request: AutomationUpdate,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        automation = AutomationService(db).update_automation(user_id, automation_id, request)
    except AutomationConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if automation is None:
        raise HTTPException(status_code=404, detail="Automation not found")
    return automation


@router.delete("/{automation_id}", status_code=204)
def delete_automation(
    automation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    if not AutomationService(db).delete_automation(user_id, automation_id):
        raise HTTPException(status_code=404, detail="Automation not found")
    return Response(status_code=204)


# =========================================================
# 4. MANUAL RUN
# =========================================================

@router.post("/{automation_id}/execute", response_model=ManualExecutionResponse)
def execute_automation(
    automation_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
):
    """Runs the action now. The regular schedule is left untouched."""
    automation = db.query(Automation).filter(
        Automation.id == automation_id,
        Automation.user_id == user_id,
    ).first()
    if not automation:
        raise HTTPException(status_code=404, detail="Automation not found")
    if not automation.is_active:
        raise HTTPException(status_code=400, detail="Automation is disabled")

    outcome = build_runner(db, email_service).run_one(automation, reschedule=False)
    return ManualExecutionResponse(
        execution_id=outcome.execution_id,
        status=outcome.status,
        result=outcome.result,
        error=outcome.error,
    )
