"""
Room inventory routes
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hms.database import get_db
from hms.models.enums import RoomStatus
from hms.models.schemas import RoomCreate, RoomUpdate, RoomResponse
from hms.routers.errors import unwrap
from hms.security.auth import CurrentUser, get_current_user, require_staff, require_manager
from hms.services.room_service import RoomService

router = APIRouter(prefix="/rooms", tags=["Rooms"])


@router.get("", response_model=List[RoomResponse])
def list_rooms(
    room_type_id: Optional[str] = None,
    status: Optional[RoomStatus] = None,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    return RoomService(db).get_rooms(room_type_id=room_type_id, status=status)


@router.get("/available", response_model=List[RoomResponse])
def available_rooms(
    room_type_id: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user)
):
    return RoomService(db).get_available_rooms(room_type_id)


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(
    data: RoomCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_manager)
):
    return unwrap(RoomService(db).create_room(data))


@router.patch("/{room_id}", response_model=RoomResponse)
def update_room(
    room_id: str,
    data: RoomUpdate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_manager)
):
    return unwrap(RoomService(db).update_room(room_id, data))


@router.post("/{room_id}/maintenance", response_model=RoomResponse)
def set_maintenance(
    room_id: str,
    on: bool = True,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_manager)
):
    """Take a room out of service (on=true) or bring it back (on=false)"""
    return unwrap(RoomService(db).set_maintenance(room_id, on))


@router.post("/{room_id}/cleaned", response_model=RoomResponse)
def mark_room_cleaned(
    room_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_staff)
):
    return unwrap(RoomService(db).mark_room_cleaned(room_id))


@router.delete("/{room_id}")
def delete_room(
    room_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(require_manager)
):
    unwrap(RoomService(db).delete_room(room_id))
    return {"message": "Room deleted"}
