"""
Front desk routes - check-in, check-out, walk-ins, service charges
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hms.database import get_db
from hms.models.schemas import (
    CheckInRequest, CheckOutRequest, WalkInCreate, ServiceChargeCreate,
    ServiceChargeResponse, PaymentResponse, ReservationDetail
)
from hms.routers.errors import unwrap
from hms.security.auth import CurrentUser, require_staff
from hms.services.front_desk_service import FrontDeskService

router = APIRouter(prefix="/front-desk", tags=["Front desk"])


@router.get("/current-guests", response_model=List[ReservationDetail])
def current_guests(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    return FrontDeskService(db).get_current_guests()


@router.get("/pending", response_model=List[ReservationDetail])
def pending_reservations(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    return FrontDeskService(db).get_pending_reservations()


@router.post("/reservations/{reservation_id}/check-in")
def check_in(
    reservation_id: str,
    data: CheckInRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    """Check a confirmed reservation into a room"""
    service = FrontDeskService(db)
    result = unwrap(service.check_in(reservation_id, data.room_id, current_user.id))
    assignment = result["room_assignment"]
    return {
        "reservation": unwrap(service.reservation_service.get_reservation_detail(reservation_id)),
        "room_assignment": {
            "id": assignment.id,
            "room_id": assignment.room_id,
            "assigned_at": assignment.assigned_at,
            "assigned_by": assignment.assigned_by,
        },
    }


@router.post("/reservations/{reservation_id}/check-out")
def check_out(
    reservation_id: str,
    data: CheckOutRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    """Settle and check out"""
    service = FrontDeskService(db)
    result = unwrap(service.check_out(
        reservation_id, data.payment_method, data.amount, data.service_charges, current_user.id
    ))
    return {
        "reservation": unwrap(service.reservation_service.get_reservation_detail(reservation_id)),
        "payment": PaymentResponse.model_validate(result["payment"]),
        "service_charges": [
            ServiceChargeResponse.model_validate(c) for c in result["service_charges"]
        ],
    }


@router.post("/walk-ins", status_code=status.HTTP_201_CREATED)
def create_walk_in(
    data: WalkInCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    """Register and book a walk-in guest, checking them in when a room is free"""
    service = FrontDeskService(db)
    result = unwrap(service.create_walk_in(data.guest, data.reservation, current_user.id))
    assignment = result["room_assignment"]
    return {
        "guest_id": result["guest"].id,
        "reservation": unwrap(
            service.reservation_service.get_reservation_detail(result["reservation"].id)
        ),
        "room_id": assignment.room_id if assignment else None,
    }


@router.post("/reservations/{reservation_id}/service-charges",
             response_model=ServiceChargeResponse, status_code=status.HTTP_201_CREATED)
def add_service_charge(
    reservation_id: str,
    data: ServiceChargeCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    return unwrap(FrontDeskService(db).add_service_charge(reservation_id, data, current_user.id))
