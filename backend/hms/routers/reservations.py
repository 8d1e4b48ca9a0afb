"""
Reservation routes
"""
from typing import List, Optional
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from hms.database import get_db
from hms.models.enums import ReservationStatus, CheckinStatus, UserRole
from hms.models.schemas import (
    ReservationCreate, ReservationUpdate, ReservationFilter, ReservationDetail,
    BulkBookingCreate
)
from hms.routers.errors import unwrap
from hms.security.auth import CurrentUser, get_current_user, require_staff, require_travel
from hms.services.reservation_service import ReservationService

router = APIRouter(prefix="/reservations", tags=["Reservations"])


def _detail(service: ReservationService, reservation_id: str) -> ReservationDetail:
    return unwrap(service.get_reservation_detail(reservation_id))


@router.get("", response_model=List[ReservationDetail])
def list_reservations(
    status: Optional[ReservationStatus] = None,
    checkin_status: Optional[CheckinStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    room_type_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    """Search reservations"""
    service = ReservationService(db)
    return service.search_reservations(ReservationFilter(
        status=status, checkin_status=checkin_status, date_from=date_from,
        date_to=date_to, room_type_id=room_type_id
    ))


@router.get("/mine", response_model=List[ReservationDetail])
def my_reservations(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return ReservationService(db).get_user_reservations(current_user.id)


@router.get("/pending", response_model=List[ReservationDetail])
def pending_reservations(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    return ReservationService(db).get_pending_reservations()


@router.get("/{reservation_id}", response_model=ReservationDetail)
def get_reservation(
    reservation_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    detail = _detail(ReservationService(db), reservation_id)
    if current_user.role in (UserRole.CUSTOMER, UserRole.TRAVEL) and \
            detail.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    return detail


@router.post("", response_model=ReservationDetail, status_code=status.HTTP_201_CREATED)
def create_reservation(
    data: ReservationCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Book a stay for the calling guest"""
    service = ReservationService(db)
    reservation = unwrap(service.create(current_user.id, data))
    return _detail(service, reservation.id)


@router.post("/bulk", response_model=List[ReservationDetail],
             status_code=status.HTTP_201_CREATED)
def create_bulk_booking(
    data: BulkBookingCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_travel)
):
    """Travel-company block booking"""
    service = ReservationService(db)
    reservations = unwrap(service.create_bulk_booking(current_user.id, data))
    return [_detail(service, r.id) for r in reservations]


@router.patch("/{reservation_id}", response_model=ReservationDetail)
def update_reservation(
    reservation_id: str,
    data: ReservationUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    service = ReservationService(db)
    unwrap(service.update(reservation_id, data))
    return _detail(service, reservation_id)


@router.post("/{reservation_id}/cancel", response_model=ReservationDetail)
def cancel_reservation(
    reservation_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    service = ReservationService(db)
    unwrap(service.cancel(reservation_id))
    return _detail(service, reservation_id)
