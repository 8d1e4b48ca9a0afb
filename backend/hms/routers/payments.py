"""
Payment routes - ledger
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hms.database import get_db
from hms.models.schemas import (
    PaymentCreate, PaymentResponse, RefundRequest, ServiceChargeResponse
)
from hms.routers.errors import unwrap
from hms.security.auth import CurrentUser, get_current_user, require_staff
from hms.services.billing_service import BillingService

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def process_payment(
    data: PaymentCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Record a payment against a reservation"""
    return unwrap(BillingService(db).process_payment(
        data.reservation_id, data.amount, data.payment_method, current_user.id,
        transaction_id=data.transaction_id, notes=data.notes
    ))


@router.post("/{payment_id}/refund", response_model=PaymentResponse,
             status_code=status.HTTP_201_CREATED)
def refund_payment(
    payment_id: str,
    data: RefundRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    return unwrap(BillingService(db).refund(payment_id, data.amount, data.reason, current_user.id))


@router.get("/reservations/{reservation_id}", response_model=List[PaymentResponse])
def payment_history(
    reservation_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return unwrap(BillingService(db).get_payment_history(reservation_id))


@router.get("/reservations/{reservation_id}/summary")
def checkout_summary(
    reservation_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    """Balance breakdown ahead of check-out"""
    summary = unwrap(BillingService(db).get_checkout_summary(reservation_id))
    return {
        "reservation_id": reservation_id,
        "final_price": summary["final_price"],
        "total_paid": summary["total_paid"],
        "service_charges_total": summary["service_charges_total"],
        "outstanding_balance": summary["outstanding_balance"],
        "service_charges": [
            ServiceChargeResponse.model_validate(c) for c in summary["service_charges"]
        ],
        "payments": [PaymentResponse.model_validate(p) for p in summary["payments"]],
    }
