# Business Services
from hms.services.price_service import PriceService
from hms.services.room_service import RoomService
from hms.services.billing_service import BillingService
from hms.services.reservation_service import ReservationService
from hms.services.front_desk_service import FrontDeskService
from hms.services.reconciliation_service import ReconciliationService

__all__ = [
    'PriceService', 'RoomService', 'BillingService', 'ReservationService',
    'FrontDeskService', 'ReconciliationService'
]
