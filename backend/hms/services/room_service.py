"""
Room service
Room inventory, availability and the reservation <-> room binding
"""
from typing import List, Optional
from datetime import date
import logging

from sqlalchemy import and_, or_, func, select
from sqlalchemy.exc import IntegrityError

from hms.models.entities import Room, RoomType, RoomAssignment, Reservation
from hms.models.enums import RoomStatus, ReservationStatus, CheckinStatus
from hms.models.schemas import RoomCreate, RoomUpdate
from hms.services.base import BaseService, transactional
from hms.services.result import ServiceResult, ErrorCode

logger = logging.getLogger(__name__)


def overlaps(check_in_date: date, check_out_date: date):
    """
    SQL predicate: reservation interval intersects [check_in_date, check_out_date)
    Covers left overhang, right overhang and containment.
    """
    return or_(
        and_(Reservation.check_in_date <= check_in_date,
             Reservation.check_out_date > check_in_date),
        and_(Reservation.check_in_date < check_out_date,
             Reservation.check_out_date >= check_out_date),
        and_(Reservation.check_in_date >= check_in_date,
             Reservation.check_out_date <= check_out_date),
    )


class RoomService(BaseService):
    """Room service"""

    source = "room_service"

    def get_room(self, room_id: str) -> Optional[Room]:
        return self.db.query(Room).filter(Room.id == room_id).first()

    def get_rooms(self, room_type_id: Optional[str] = None,
                  status: Optional[RoomStatus] = None) -> List[Room]:
        query = self.db.query(Room)
        if room_type_id:
            query = query.filter(Room.room_type_id == room_type_id)
        if status:
            query = query.filter(Room.status == status)
        return query.order_by(Room.room_number).all()

    def get_available_rooms(self, room_type_id: Optional[str] = None) -> List[Room]:
        """Rooms currently in status available"""
        return self.get_rooms(room_type_id=room_type_id, status=RoomStatus.AVAILABLE)

    def _bookable_rooms_query(self, room_type_id: str, check_in_date: date,
                              check_out_date: date):
        """
        Available rooms of the type, minus rooms bound to a reservation of the
        same type that overlaps the range and is confirmed or checked in
        """
        blocked = select(RoomAssignment.room_id).join(
            Reservation, RoomAssignment.reservation_id == Reservation.id
        ).where(
            Reservation.room_type_id == room_type_id,
            or_(Reservation.status == ReservationStatus.CONFIRMED,
                Reservation.checkin_status == CheckinStatus.CHECKED_IN),
            overlaps(check_in_date, check_out_date),
        )
        return self.db.query(Room).filter(
            Room.room_type_id == room_type_id,
            Room.status == RoomStatus.AVAILABLE,
            Room.id.notin_(blocked),
        )

    def count_bookable_rooms(self, room_type_id: str, check_in_date: date,
                             check_out_date: date) -> int:
        return self._bookable_rooms_query(
            room_type_id, check_in_date, check_out_date
        ).with_entities(func.count(Room.id)).scalar() or 0

    def find_bookable_room(self, room_type_id: str, check_in_date: date,
                           check_out_date: date) -> Optional[Room]:
        return self._bookable_rooms_query(
            room_type_id, check_in_date, check_out_date
        ).order_by(Room.room_number).first()

    # ============== Binding ==============

    @transactional
    def assign(self, reservation: Reservation, room_id: str,
               actor_id: Optional[str] = None) -> ServiceResult:
        """
        Bind a reservation to a room and mark the room occupied
        The store's unique constraints are the last line against double assignment.
        """
        room = self.get_room(room_id)
        if not room:
            return ServiceResult.fail(ErrorCode.ROOM_NOT_FOUND, "Room not found")
        if room.status != RoomStatus.AVAILABLE:
            return ServiceResult.fail(ErrorCode.ROOM_NOT_AVAILABLE, "Room is not available")
        if room.room_type_id != reservation.room_type_id:
            return ServiceResult.fail(
                ErrorCode.ROOM_TYPE_MISMATCH, "Room type does not match reservation"
            )

        existing = self.db.query(RoomAssignment).filter(
            RoomAssignment.room_id == room_id
        ).first()
        if existing:
            return ServiceResult.fail(
                ErrorCode.ROOM_ALREADY_ASSIGNED, "Room is already assigned to another reservation"
            )

        assignment = RoomAssignment(
            reservation_id=reservation.id,
            room_id=room.id,
            assigned_at=self._now(),
            assigned_by=actor_id,
        )
        self.db.add(assignment)
        room.status = RoomStatus.OCCUPIED
        room.updated_at = self._now()
        try:
            self.db.flush()
        except IntegrityError:
            logger.warning("Concurrent assignment rejected for room %s", room.room_number)
            return ServiceResult.fail(
                ErrorCode.ROOM_ALREADY_ASSIGNED, "Room is already assigned to another reservation"
            )
        return ServiceResult.ok(assignment)

    @transactional
    def release(self, reservation_id: str) -> ServiceResult:
        """Delete the reservation's assignment and make its room available again"""
        assignment = self.db.query(RoomAssignment).filter(
            RoomAssignment.reservation_id == reservation_id
        ).first()
        if not assignment:
            return ServiceResult.ok(None)

        room = assignment.room
        room.status = RoomStatus.AVAILABLE
        room.updated_at = self._now()
        self.db.delete(assignment)
        self.db.flush()
        return ServiceResult.ok(room)

    # ============== Inventory management ==============

    def _room_number_taken(self, room_number: str, exclude_id: Optional[str] = None) -> bool:
        query = self.db.query(Room).filter(Room.room_number == room_number)
        if exclude_id:
            query = query.filter(Room.id != exclude_id)
        return query.first() is not None

    @transactional
    def create_room(self, data: RoomCreate) -> ServiceResult:
        room_type = self.db.query(RoomType).filter(RoomType.id == data.room_type_id).first()
        if not room_type:
            return ServiceResult.fail(ErrorCode.ROOM_TYPE_NOT_FOUND, "Room type not found")
        if self._room_number_taken(data.room_number):
            return ServiceResult.fail(
                ErrorCode.ROOM_NUMBER_EXISTS, f"Room {data.room_number} already exists"
            )

        room = Room(**data.model_dump(), status=RoomStatus.AVAILABLE)
        self.db.add(room)
        self.db.flush()
        return ServiceResult.ok(room)

    @transactional
    def update_room(self, room_id: str, data: RoomUpdate) -> ServiceResult:
        room = self.get_room(room_id)
        if not room:
            return ServiceResult.fail(ErrorCode.ROOM_NOT_FOUND, "Room not found")

        update_data = data.model_dump(exclude_unset=True)
        if "room_type_id" in update_data:
            room_type = self.db.query(RoomType).filter(
                RoomType.id == update_data["room_type_id"]
            ).first()
            if not room_type:
                return ServiceResult.fail(ErrorCode.ROOM_TYPE_NOT_FOUND, "Room type not found")
        if "room_number" in update_data and self._room_number_taken(
                update_data["room_number"], exclude_id=room_id):
            return ServiceResult.fail(
                ErrorCode.ROOM_NUMBER_EXISTS, f"Room {update_data['room_number']} already exists"
            )

        for key, value in update_data.items():
            setattr(room, key, value)
        room.updated_at = self._now()
        self.db.flush()
        return ServiceResult.ok(room)

    @transactional
    def set_maintenance(self, room_id: str, on: bool = True) -> ServiceResult:
        """Take a room out of service, or return it from maintenance"""
        room = self.get_room(room_id)
        if not room:
            return ServiceResult.fail(ErrorCode.ROOM_NOT_FOUND, "Room not found")

        if on:
            if room.status == RoomStatus.OCCUPIED:
                return ServiceResult.fail(
                    ErrorCode.ROOM_OCCUPIED, "Cannot put an occupied room into maintenance"
                )
            room.status = RoomStatus.MAINTENANCE
        else:
            if room.status != RoomStatus.MAINTENANCE:
                return ServiceResult.fail(
                    ErrorCode.INVALID_ROOM_STATUS, "Room is not under maintenance"
                )
            room.status = RoomStatus.AVAILABLE
        room.updated_at = self._now()
        self.db.flush()
        return ServiceResult.ok(room)

    @transactional
    def mark_room_cleaned(self, room_id: str) -> ServiceResult:
        room = self.get_room(room_id)
        if not room:
            return ServiceResult.fail(ErrorCode.ROOM_NOT_FOUND, "Room not found")
        if room.status != RoomStatus.CLEANING:
            return ServiceResult.fail(ErrorCode.INVALID_ROOM_STATUS, "Room is not being cleaned")

        room.status = RoomStatus.AVAILABLE
        room.updated_at = self._now()
        self.db.flush()
        return ServiceResult.ok(room)

    @transactional
    def delete_room(self, room_id: str) -> ServiceResult:
        room = self.get_room(room_id)
        if not room:
            return ServiceResult.fail(ErrorCode.ROOM_NOT_FOUND, "Room not found")
        if room.status == RoomStatus.OCCUPIED or room.assignment is not None:
            return ServiceResult.fail(ErrorCode.ROOM_OCCUPIED, "Cannot delete an occupied room")

        self.db.delete(room)
        self.db.flush()
        return ServiceResult.ok(room_id)
