"""
Reconciliation service - nightly batch

Three independent steps, each returning its own result:
1. auto-cancel unpaid same-day pending reservations
2. bill no-shows
3. snapshot yesterday's occupancy / revenue into a DailyReport

A failure in one step never prevents the next, and within the per-record
steps each reservation is its own unit of work.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from hms.config import settings
from hms.models.entities import (
    Reservation, Room, Payment, BillingRecord, DailyReport
)
from hms.models.enums import (
    ReservationStatus, CheckinStatus, RoomStatus, PaymentStatus, BillingType, BillingStatus
)
from hms.models.events import (
    EventType, ReservationStatusChangedData, NoShowBilledData, DailyReportGeneratedData
)
from hms.services.base import BaseService, transactional
from hms.services.price_service import to_money
from hms.services.result import ServiceResult, ServiceError, ErrorCode

logger = logging.getLogger(__name__)


@dataclass
class TaskError:
    reservation_id: Optional[str]
    message: str


@dataclass
class AutoCancelResult:
    cancelled_ids: List[str] = field(default_factory=list)
    errors: List[TaskError] = field(default_factory=list)
    error: Optional[ServiceError] = None

    @property
    def success(self) -> bool:
        """False when the step could not load its reservations"""
        return self.error is None

    @property
    def cancelled_count(self) -> int:
        return len(self.cancelled_ids)


@dataclass
class NoShowBillingResult:
    billing_record_ids: List[str] = field(default_factory=list)
    total_fees: Decimal = Decimal("0.00")
    errors: List[TaskError] = field(default_factory=list)
    error: Optional[ServiceError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def billed_count(self) -> int:
        return len(self.billing_record_ids)


@dataclass
class DailyReportResult:
    report: Optional[DailyReport] = None
    error: Optional[ServiceError] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class ReconciliationRun:
    started_at: datetime
    auto_cancel: AutoCancelResult
    no_show_billing: NoShowBillingResult
    daily_report: DailyReportResult


def _day_bounds(day: date):
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class ReconciliationService(BaseService):
    """Reconciliation service"""

    source = "reconciliation_service"

    # ============== Batch plumbing ==============

    def _load_batch(self, query, step: str):
        """Run a step's selection query; a store failure ends the step, not the run"""
        try:
            return query(), None
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Reconciliation %s: could not load reservations", step)
            return [], ServiceError(
                message=f"{step} could not load reservations", code=ErrorCode.INTERNAL_ERROR
            )

    def _run_record(self, handler, reservation: Reservation, reservation_id: str) -> ServiceResult:
        """One reservation, one unit of work; any failure is reported, never raised"""
        try:
            return handler(reservation)
        except Exception as e:
            self.db.rollback()
            logger.exception("Reconciliation failed for reservation %s", reservation_id)
            return ServiceResult.fail(ErrorCode.INTERNAL_ERROR, str(e))

    # ============== Auto-cancel ==============

    def find_unpaid_same_day(self) -> List[Reservation]:
        cutoff = self._now() - timedelta(hours=settings.AUTO_CANCEL_AFTER_HOURS)
        return self.db.query(Reservation).filter(
            Reservation.status == ReservationStatus.PENDING,
            or_(Reservation.has_credit_card.is_(False), Reservation.has_credit_card.is_(None)),
            Reservation.check_in_date == self._today(),
            Reservation.created_at < cutoff,
        ).all()

    @transactional
    def _auto_cancel_one(self, reservation: Reservation) -> ServiceResult:
        old_status = reservation.status
        reservation.transition_status(ReservationStatus.CANCELLED, at=self._now())
        self.db.flush()
        self._emit(EventType.RESERVATION_CANCELLED, ReservationStatusChangedData(
            timestamp=self._now(),
            reservation_id=reservation.id,
            old_status=old_status.value,
            new_status=ReservationStatus.CANCELLED.value,
            reason="unpaid reservation auto-cancelled",
        ))
        return ServiceResult.ok(reservation.id)

    def auto_cancel_unpaid_reservations(self) -> AutoCancelResult:
        result = AutoCancelResult()
        reservations, result.error = self._load_batch(self.find_unpaid_same_day, "auto-cancel")
        for reservation in reservations:
            reservation_id = reservation.id
            outcome = self._run_record(self._auto_cancel_one, reservation, reservation_id)
            if outcome.success:
                result.cancelled_ids.append(reservation_id)
            else:
                logger.error("Auto-cancel failed for %s: %s", reservation_id, outcome.error.message)
                result.errors.append(TaskError(reservation_id, outcome.error.message))

        logger.info("Auto-cancelled %d unpaid reservations", result.cancelled_count)
        return result

    # ============== No-show billing ==============

    def find_no_shows(self) -> List[Reservation]:
        """Pending, never checked in, check-in window elapsed"""
        window_start = self._now() - timedelta(hours=settings.NO_SHOW_WINDOW_HOURS)
        return self.db.query(Reservation).filter(
            Reservation.status == ReservationStatus.PENDING,
            Reservation.checkin_status == CheckinStatus.NOT_CHECKED_IN,
            Reservation.check_in_date <= window_start.date(),
        ).all()

    @transactional
    def _bill_no_show(self, reservation: Reservation) -> ServiceResult:
        fee = to_money(
            to_money(reservation.final_price) * Decimal(str(settings.NO_SHOW_FEE_RATE))
        )
        record = BillingRecord(
            reservation_id=reservation.id,
            billing_type=BillingType.NO_SHOW,
            amount=fee,
            description=f"No-show fee for reservation on {reservation.check_in_date.isoformat()}",
            billed_at=self._now(),
            status=BillingStatus.PENDING,
        )
        self.db.add(record)
        reservation.transition_status(ReservationStatus.NO_SHOW, at=self._now())
        self.db.flush()

        self._emit(EventType.RESERVATION_NO_SHOW_BILLED, NoShowBilledData(
            timestamp=self._now(),
            reservation_id=reservation.id,
            billing_record_id=record.id,
            fee=fee,
        ))
        return ServiceResult.ok(record)

    def bill_no_show_guests(self) -> NoShowBillingResult:
        result = NoShowBillingResult()
        reservations, result.error = self._load_batch(self.find_no_shows, "no-show billing")
        for reservation in reservations:
            reservation_id = reservation.id
            outcome = self._run_record(self._bill_no_show, reservation, reservation_id)
            if outcome.success:
                result.billing_record_ids.append(outcome.data.id)
                result.total_fees += to_money(outcome.data.amount)
            else:
                logger.error("No-show billing failed for %s: %s",
                             reservation_id, outcome.error.message)
                result.errors.append(TaskError(reservation_id, outcome.error.message))

        logger.info("Billed %d no-shows, fees %s", result.billed_count, result.total_fees)
        return result

    # ============== Daily report ==============

    def _count_in_day(self, column, day: date) -> int:
        start, end = _day_bounds(day)
        return self.db.query(func.count(Reservation.id)).filter(
            column >= start, column < end
        ).scalar() or 0

    def _occupied_rooms(self, day: date) -> int:
        """
        Reservations in house on the night of ``day``: the stay spans the date,
        the guest checked in by then and had not checked out before the next day.
        One reservation holds one room.
        """
        _, next_day = _day_bounds(day)
        return self.db.query(func.count(Reservation.id)).filter(
            Reservation.check_in_date <= day,
            Reservation.check_out_date > day,
            Reservation.checked_in_at < next_day,
            or_(
                Reservation.checkin_status == CheckinStatus.CHECKED_IN,
                Reservation.checked_out_at >= next_day,
            ),
        ).scalar() or 0

    @transactional
    def _generate_report(self, day: date, actor_id: Optional[str]) -> ServiceResult:
        existing = self.db.query(DailyReport).filter(DailyReport.report_date == day).first()
        if existing:
            return ServiceResult.fail(
                ErrorCode.REPORT_ALREADY_EXISTS, f"Daily report for {day.isoformat()} already exists"
            )

        start, end = _day_bounds(day)
        total_rooms = self.db.query(func.count(Room.id)).filter(
            Room.status != RoomStatus.MAINTENANCE
        ).scalar() or 0
        occupied = self._occupied_rooms(day)
        occupancy_rate = round(occupied / total_rooms * 100, 2) if total_rooms else 0.0
        revenue = self.db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
            Payment.status == PaymentStatus.COMPLETED,
            Payment.payment_date >= start,
            Payment.payment_date < end,
        ).scalar()

        report = DailyReport(
            report_date=day,
            total_occupancy=occupied,
            total_rooms=total_rooms,
            occupancy_rate=occupancy_rate,
            total_revenue=to_money(revenue),
            total_reservations=self._count_in_day(Reservation.created_at, day),
            total_check_ins=self._count_in_day(Reservation.checked_in_at, day),
            total_check_outs=self._count_in_day(Reservation.checked_out_at, day),
            total_cancellations=self._count_in_day(Reservation.cancelled_at, day),
            total_no_shows=self._count_in_day(Reservation.no_show_at, day),
            generated_at=self._now(),
            generated_by=actor_id,
        )
        self.db.add(report)
        self.db.flush()

        self._emit(EventType.DAILY_REPORT_GENERATED, DailyReportGeneratedData(
            timestamp=self._now(),
            report_id=report.id,
            report_date=day.isoformat(),
            occupancy_rate=occupancy_rate,
            total_revenue=report.total_revenue,
        ))
        return ServiceResult.ok(report)

    def generate_daily_report(self, report_date: Optional[date] = None,
                              actor_id: Optional[str] = None) -> DailyReportResult:
        """Snapshot one calendar day, yesterday by default"""
        day = report_date or self._today() - timedelta(days=1)
        outcome = self._generate_report(day, actor_id)
        if not outcome.success:
            logger.error("Daily report for %s failed: %s", day, outcome.error.message)
            return DailyReportResult(error=outcome.error)
        logger.info("Daily report for %s: occupancy %.2f%%", day, outcome.data.occupancy_rate)
        return DailyReportResult(report=outcome.data)

    def get_recent_daily_reports(self, limit: int = settings.DAILY_REPORT_HISTORY_LIMIT
                                 ) -> List[DailyReport]:
        return self.db.query(DailyReport).order_by(
            DailyReport.report_date.desc()
        ).limit(limit).all()

    def get_no_show_billing_records(self) -> List[BillingRecord]:
        return self.db.query(BillingRecord).filter(
            BillingRecord.billing_type == BillingType.NO_SHOW
        ).order_by(BillingRecord.billed_at.desc()).all()

    # ============== Entry point ==============

    def run_scheduled_tasks(self) -> ReconciliationRun:
        started_at = self._now()
        logger.info("Reconciliation run started at %s", started_at.isoformat())

        run = ReconciliationRun(
            started_at=started_at,
            auto_cancel=self.auto_cancel_unpaid_reservations(),
            no_show_billing=self.bill_no_show_guests(),
            daily_report=self.generate_daily_report(),
        )

        logger.info(
            "Reconciliation run finished: %d cancelled, %d no-shows billed, report %s",
            run.auto_cancel.cancelled_count,
            run.no_show_billing.billed_count,
            "generated" if run.daily_report.success else run.daily_report.error.code.value,
        )
        return run
