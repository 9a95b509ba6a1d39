# payroll_api/services/attendance_summary.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional
import logging

from payroll_api.models.attendance import AttendanceRecord
from .payroll_common import D, ZERO, PayrollSettings, month_start, month_end

log = logging.getLogger(__name__)

HALF = Decimal("0.5")

PRESENT_CODES = {"P", "OT"}
HALF_DAY_CODES = {"HD"}
ABSENT_CODES = {"A", "UL", "LWP"}
PAID_LEAVE_CODES = {"PL", "CL", "SL", "EL", "ML", "PaL"}
WEEKLY_OFF_CODES = {"WO"}
HOLIDAY_CODES = {"H"}


@dataclass
class AttendanceSummary:
    employee_id: Optional[int]
    period_start: date
    period_end: date
    standard_working_days: int
    present_days: Decimal = ZERO
    absent_days: Decimal = ZERO
    paid_leave_days: Decimal = ZERO
    weekly_off_days: Decimal = ZERO
    holidays: Decimal = ZERO
    half_days: int = 0
    overtime_hours: Decimal = ZERO
    payable_days: Decimal = ZERO
    lop_days: Decimal = ZERO
    pay_ratio: Decimal = ZERO
    attendance_percentage: Decimal = ZERO
    has_attendance_data: bool = False
    skipped_statuses: int = 0

    def to_dict(self) -> dict:
        out = asdict(self)
        for k, v in out.items():
            if isinstance(v, Decimal):
                out[k] = float(v)
            elif isinstance(v, date):
                out[k] = v.isoformat()
        return out


def _pay_ratio(payable: Decimal, swd: int) -> Decimal:
    if not swd or swd <= 0:
        return ZERO
    return min(payable / Decimal(swd), Decimal("1"))


def summarize_records(records: Iterable, period_start: date, period_end: date,
                      standard_working_days: int, employee_id: Optional[int] = None) -> AttendanceSummary:
    """
    Bucket daily statuses into payable-day counts.

    `records` is any iterable of objects exposing `status` and `overtime_hours`
    (AttendanceRecord rows, or plain stand-ins in tests). Each day lands in
    exactly one bucket; HD splits half present / half absent; H counts as a
    paid non-working day alongside WO.
    """
    s = AttendanceSummary(
        employee_id=employee_id,
        period_start=period_start,
        period_end=period_end,
        standard_working_days=int(standard_working_days or 0),
    )

    for r in records:
        status = (r.status or "").strip()
        s.has_attendance_data = True
        if status in PRESENT_CODES:
            s.present_days += 1
        elif status in HALF_DAY_CODES:
            s.present_days += HALF
            s.absent_days += HALF
            s.half_days += 1
        elif status in ABSENT_CODES:
            s.absent_days += 1
        elif status in PAID_LEAVE_CODES:
            s.paid_leave_days += 1
        elif status in WEEKLY_OFF_CODES:
            s.weekly_off_days += 1
        elif status in HOLIDAY_CODES:
            s.weekly_off_days += 1
            s.holidays += 1
        else:
            s.skipped_statuses += 1
            log.warning("Unknown attendance status %r for employee %s; day skipped", status, employee_id)
            continue
        s.overtime_hours += D(getattr(r, "overtime_hours", None) or 0)

    s.payable_days = s.present_days + s.paid_leave_days + s.weekly_off_days
    s.lop_days = s.absent_days
    s.pay_ratio = _pay_ratio(s.payable_days, s.standard_working_days)

    days_in_range = (period_end - period_start).days + 1
    working = Decimal(days_in_range) - s.weekly_off_days
    if working > 0:
        pct = (s.present_days + s.paid_leave_days) / working * 100
        s.attendance_percentage = pct.quantize(Decimal("0.01"))
    return s


def summarize(employee_id: int, period_start: date, period_end: date,
              standard_working_days: Optional[int] = None) -> AttendanceSummary:
    if standard_working_days is None:
        standard_working_days = PayrollSettings.from_app().standard_working_days
    rows = (
        AttendanceRecord.query
        .filter(AttendanceRecord.employee_id == employee_id)
        .filter(AttendanceRecord.attendance_date >= period_start)
        .filter(AttendanceRecord.attendance_date <= period_end)
        .order_by(AttendanceRecord.attendance_date.asc())
        .all()
    )
    return summarize_records(rows, period_start, period_end, standard_working_days, employee_id=employee_id)


def summarize_month(employee_id: int, month: date, standard_working_days: Optional[int] = None) -> AttendanceSummary:
    return summarize(employee_id, month_start(month), month_end(month), standard_working_days)
