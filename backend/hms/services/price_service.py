"""
Price service
Stay pricing (nightly or residential flat rate) and guest discounts
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from sqlalchemy.orm import Session

from hms.config import settings
from hms.models.entities import RoomType, User
from hms.models.enums import ResidentialDuration

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Coerce a number (or None) to a 2-place Decimal"""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Quote:
    total_price: Decimal
    discount_amount: Decimal
    final_price: Decimal
    is_travel_company: bool = False


class PriceService:
    """Price service"""

    def __init__(self, db: Session):
        self.db = db

    def stay_price(self, room_type: RoomType, check_in_date: date, check_out_date: date,
                   is_residential: bool = False,
                   residential_duration: Optional[ResidentialDuration] = None) -> Decimal:
        """
        Undiscounted price of a stay.

        Residential stays on a residential room type are charged the flat
        weekly / monthly rate, falling back to base_price x 7 / x 30 when the
        type has no explicit rate. Everything else is base_price x nights.
        """
        base = to_money(room_type.base_price)
        if is_residential and room_type.is_residential and residential_duration:
            duration = ResidentialDuration(residential_duration)
            if duration == ResidentialDuration.WEEKLY:
                rate = room_type.weekly_rate
                return to_money(rate) if rate is not None else base * settings.WEEKLY_NIGHTS
            rate = room_type.monthly_rate
            return to_money(rate) if rate is not None else base * settings.MONTHLY_NIGHTS

        nights = (check_out_date - check_in_date).days
        return to_money(base * nights)

    def discount_percentage(self, guest: Optional[User]) -> Decimal:
        """Travel-company rate for company members, else the loyalty tier's rate"""
        if guest is None:
            return Decimal("0")
        if guest.travel_company is not None:
            return Decimal(str(guest.travel_company.discount_rate or 0))
        if guest.loyalty_program is not None:
            return Decimal(str(guest.loyalty_program.discount_percentage or 0))
        return Decimal("0")

    def quote(self, room_type: RoomType, guest: Optional[User], check_in_date: date,
              check_out_date: date, is_residential: bool = False,
              residential_duration: Optional[ResidentialDuration] = None) -> Quote:
        total = self.stay_price(room_type, check_in_date, check_out_date,
                                is_residential, residential_duration)
        discount = to_money(total * self.discount_percentage(guest) / Decimal("100"))
        return Quote(
            total_price=total,
            discount_amount=discount,
            final_price=total - discount,
            is_travel_company=bool(guest is not None and guest.travel_company_id),
        )
