"""
Service base - unit of work, clock and event plumbing shared by every service
"""
from typing import Callable, List, Optional
from datetime import datetime, date
import functools
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hms.models.events import EventType
from hms.services.event_bus import event_bus, Event
from hms.services.result import ServiceResult, ErrorCode

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_TX_ACTIVE_KEY = "hms.unit_of_work"
_PENDING_EVENTS_KEY = "hms.pending_events"


def transactional(method):
    """
    Run a service method as one unit of work.

    - success result: commit, then publish the events queued during the unit
    - failure result: roll back, drop queued events
    - SQLAlchemyError: roll back, log, return INTERNAL_ERROR

    A call made while another unit of work is open on the same session joins
    it: only the outermost call commits or rolls back.
    """
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        info = self.db.info
        if info.get(_TX_ACTIVE_KEY):
            return method(self, *args, **kwargs)

        info[_TX_ACTIVE_KEY] = True
        info[_PENDING_EVENTS_KEY] = []
        try:
            result = method(self, *args, **kwargs)
            if result.success:
                self.db.commit()
                events: List[Event] = info.get(_PENDING_EVENTS_KEY, [])
            else:
                self.db.rollback()
                events = []
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Store failure in %s", method.__qualname__)
            return ServiceResult.fail(
                ErrorCode.INTERNAL_ERROR, f"{method.__name__} failed"
            )
        finally:
            info.pop(_TX_ACTIVE_KEY, None)
            info.pop(_PENDING_EVENTS_KEY, None)

        for event in events:
            self._publish_event(event)
        return result

    return wrapper


class BaseService:
    """Holds the session, the event publisher and the clock"""

    source = "service"

    def __init__(self, db: Session, event_publisher: Callable[[Event], None] = None,
                 clock: Optional[Clock] = None):
        self.db = db
        # injectable for tests
        self._publish_event = event_publisher or event_bus.publish
        self._clock = clock or datetime.now

    def _now(self) -> datetime:
        return self._clock()

    def _today(self) -> date:
        return self._now().date()

    def _emit(self, event_type: EventType, data) -> None:
        """Queue an event; it is published only if the unit of work commits"""
        event = Event(
            event_type=event_type,
            timestamp=self._now(),
            data=data.to_dict(),
            source=self.source,
        )
        pending = self.db.info.get(_PENDING_EVENTS_KEY)
        if pending is None:
            self._publish_event(event)
        else:
            pending.append(event)
