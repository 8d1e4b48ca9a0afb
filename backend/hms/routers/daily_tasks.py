"""
Nightly reconciliation routes
Triggered by an external scheduler (cron) or by a manager on demand.
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from hms.config import settings
from hms.database import get_db
from hms.models.schemas import DailyReportResponse, BillingRecordResponse
from hms.routers.errors import status_for
from hms.security.auth import CurrentUser, require_manager
from hms.services.reconciliation_service import (
    ReconciliationService, AutoCancelResult, NoShowBillingResult, DailyReportResult
)

router = APIRouter(prefix="/daily-tasks", tags=["Daily tasks"])


def _errors(errors) -> list:
    return [{"reservation_id": e.reservation_id, "message": e.message} for e in errors]


def _step_error(error) -> Optional[dict]:
    return {"message": error.message, "code": error.code.value} if error else None


def _auto_cancel_summary(result: AutoCancelResult) -> dict:
    return {
        "success": result.success,
        "error": _step_error(result.error),
        "cancelled_count": result.cancelled_count,
        "cancelled_ids": result.cancelled_ids,
        "errors": _errors(result.errors),
    }


def _no_show_summary(result: NoShowBillingResult) -> dict:
    return {
        "success": result.success,
        "error": _step_error(result.error),
        "billed_count": result.billed_count,
        "total_fees": result.total_fees,
        "billing_record_ids": result.billing_record_ids,
        "errors": _errors(result.errors),
    }


def _report_summary(result: DailyReportResult) -> dict:
    if not result.success:
        return {
            "success": False,
            "error": _step_error(result.error),
        }
    return {"success": True, "report": DailyReportResponse.model_validate(result.report)}


@router.post("/run")
def run_daily_tasks(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_manager)
):
    """Run all three steps; each reports its own outcome"""
    run = ReconciliationService(db).run_scheduled_tasks()
    return {
        "started_at": run.started_at,
        "auto_cancel": _auto_cancel_summary(run.auto_cancel),
        "no_show_billing": _no_show_summary(run.no_show_billing),
        "daily_report": _report_summary(run.daily_report),
    }


@router.post("/auto-cancel")
def auto_cancel(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_manager)
):
    return _auto_cancel_summary(ReconciliationService(db).auto_cancel_unpaid_reservations())


@router.post("/no-show-billing")
def no_show_billing(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_manager)
):
    return _no_show_summary(ReconciliationService(db).bill_no_show_guests())


@router.post("/daily-report", response_model=DailyReportResponse,
             status_code=status.HTTP_201_CREATED)
def daily_report(
    report_date: Optional[date] = None,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_manager)
):
    result = ReconciliationService(db).generate_daily_report(report_date, current_user.id)
    if not result.success:
        raise HTTPException(
            status_code=status_for(result.error.code),
            detail={"message": result.error.message, "code": result.error.code.value},
        )
    return result.report


@router.get("/reports", response_model=List[DailyReportResponse])
def recent_reports(
    limit: int = settings.DAILY_REPORT_HISTORY_LIMIT,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_manager)
):
    return ReconciliationService(db).get_recent_daily_reports(limit)


@router.get("/no-show-billings", response_model=List[BillingRecordResponse])
def no_show_billings(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_manager)
):
    return ReconciliationService(db).get_no_show_billing_records()
