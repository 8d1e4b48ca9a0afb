"""
Ledger follow-ups driven by committed domain events

Service charges are billed to the stay; once the reservation's balance is
settled (at check-out or by a later payment) its open charges are marked paid.
Each handler works in a session of its own.
"""
from typing import Callable, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hms.database import SessionLocal
from hms.models.entities import ServiceCharge
from hms.models.events import EventType
from hms.services.billing_service import BillingService
from hms.services.event_bus import EventBus, Event, event_bus

logger = logging.getLogger(__name__)


class LedgerEventHandlers:
    """Subscribers that settle service charges"""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def settle_service_charges(self, reservation_id: str) -> int:
        """Mark open charges paid when nothing is outstanding; returns how many"""
        db = self.session_factory()
        try:
            billing = BillingService(db)
            reservation = billing.get_reservation(reservation_id)
            if not reservation:
                return 0
            outstanding = billing.balance_of(reservation).outstanding_balance
            if outstanding > 0:
                return 0

            open_charges = db.query(ServiceCharge).filter(
                ServiceCharge.reservation_id == reservation_id,
                ServiceCharge.is_paid.is_(False),
            ).all()
            for charge in open_charges:
                charge.is_paid = True
            db.commit()
            if open_charges:
                logger.info("Settled %d service charges for reservation %s",
                            len(open_charges), reservation_id)
            return len(open_charges)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Could not settle service charges for reservation %s",
                             reservation_id)
            return 0
        finally:
            db.close()

    def handle_guest_checked_out(self, event: Event) -> None:
        settled = self.settle_service_charges(event.reservation_id)
        if not settled and event.data.get("service_charge_ids"):
            logger.warning("Reservation %s checked out with unpaid service charges",
                           event.reservation_id)

    def handle_payment_received(self, event: Event) -> None:
        self.settle_service_charges(event.reservation_id)

    def register(self, bus: Optional[EventBus] = None) -> None:
        bus = bus or event_bus
        bus.subscribe(EventType.GUEST_CHECKED_OUT, self.handle_guest_checked_out)
        bus.subscribe(EventType.PAYMENT_RECEIVED, self.handle_payment_received)

    def unregister(self, bus: Optional[EventBus] = None) -> None:
        bus = bus or event_bus
        bus.unsubscribe(EventType.GUEST_CHECKED_OUT, self.handle_guest_checked_out)
        bus.unsubscribe(EventType.PAYMENT_RECEIVED, self.handle_payment_received)


ledger_handlers = LedgerEventHandlers()
