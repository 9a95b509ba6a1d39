# payroll_api/services/payslip_generator.py
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from payroll_api.common.errors import APIError, AlreadyExists, AttendanceMissing
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.slip import PayrollSlip
from .payroll_calculator import PayrollBreakdown, calculate
from .payroll_common import PayrollSettings, month_start

log = logging.getLogger(__name__)


@dataclass
class EmployeeOutcome:
    employee_id: int
    status: str  # created | skipped | failed
    slip_id: Optional[int] = None
    code: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class BatchReport:
    month: str
    total: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0
    interrupted: bool = False
    interrupted_reason: Optional[str] = None
    results: List[EmployeeOutcome] = field(default_factory=list)

    def add(self, outcome: EmployeeOutcome):
        self.results.append(outcome)
        self.total += 1
        if outcome.status == "created":
            self.created += 1
        elif outcome.status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1

    def to_dict(self) -> dict:
        return asdict(self)


def _breakdown(employee_id: int, month: date, settings: PayrollSettings) -> PayrollBreakdown:
    bd = calculate(employee_id, month, settings)
    if settings.require_attendance and not bd.attendance.has_attendance_data:
        raise AttendanceMissing(payload={"employee_id": employee_id, "month": month.strftime("%Y-%m")})
    return bd


def existing_slip(employee_id: int, month: date) -> Optional[PayrollSlip]:
    return PayrollSlip.query.filter_by(employee_id=employee_id, month=month_start(month)).first()


def preview(employee_id: int, month: date, settings: Optional[PayrollSettings] = None) -> dict:
    """Breakdown as it would be persisted; writes nothing."""
    settings = settings or PayrollSettings.from_app()
    return _breakdown(employee_id, month_start(month), settings).to_dict()


def generate(employee_id: int, month: date, settings: Optional[PayrollSettings] = None) -> PayrollSlip:
    """
    Calculate and persist one slip for (employee, month).

    Raises AlreadyExists when a slip is already on file, including when a
    concurrent request wins the insert and the unique constraint fires.
    """
    settings = settings or PayrollSettings.from_app()
    month = month_start(month)
    key = {"employee_id": employee_id, "month": month.strftime("%Y-%m")}

    if existing_slip(employee_id, month) is not None:
        raise AlreadyExists(payload=key)

    bd = _breakdown(employee_id, month, settings)
    slip = PayrollSlip(
        employee_id=employee_id,
        month=month,
        total_earnings=bd.total_earnings,
        gross=bd.gross_salary,
        total_deductions=bd.total_deductions,
        net_pay=bd.net_salary,
        total_employer_contributions=bd.total_employer_contributions,
        employer_cost=bd.employer_cost,
        payable_days=bd.attendance.payable_days,
        lop_days=bd.attendance.lop_days,
        schedule_date=bd.schedule_date,
        breakdown=bd.to_dict(),
        payment_status="pending",
    )
    db.session.add(slip)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        log.info("Slip for employee %s month %s created concurrently", employee_id, key["month"])
        raise AlreadyExists(payload=key)

    log.info("Created payroll slip %s for employee %s month %s (net=%s)",
             slip.id, employee_id, key["month"], bd.net_salary)
    if bd.warnings:
        log.warning("Slip %s carries warnings: %s", slip.id, [w["code"] for w in bd.warnings])
    return slip


def generate_all(month: date, employee_ids: Optional[Iterable[int]] = None,
                 settings: Optional[PayrollSettings] = None) -> BatchReport:
    """
    Generate slips for every active employee (or the given ids).

    Per-employee errors are recorded and the run continues; an infrastructure
    failure stops the run and returns what was done so far.
    """
    settings = settings or PayrollSettings.from_app()
    month = month_start(month)
    report = BatchReport(month=month.strftime("%Y-%m"))

    if employee_ids is None:
        ids = [
            row[0] for row in
            db.session.query(Employee.id)
            .filter(Employee.status == "active")
            .order_by(Employee.id.asc())
            .all()
        ]
    else:
        ids = sorted({int(x) for x in employee_ids})

    for emp_id in ids:
        try:
            slip = generate(emp_id, month, settings)
        except AlreadyExists:
            report.add(EmployeeOutcome(employee_id=emp_id, status="skipped",
                                       code=AlreadyExists.code, reason="already exists"))
        except APIError as e:
            db.session.rollback()
            report.add(EmployeeOutcome(employee_id=emp_id, status="failed", code=e.code, reason=e.message))
        except SQLAlchemyError as e:
            db.session.rollback()
            log.exception("Payroll batch %s interrupted at employee %s", report.month, emp_id)
            report.interrupted = True
            report.interrupted_reason = str(getattr(e, "orig", None) or e)
            break
        else:
            report.add(EmployeeOutcome(employee_id=emp_id, status="created", slip_id=slip.id))

    log.info(
        "Payroll batch %s: total=%s created=%s skipped=%s failed=%s%s",
        report.month, report.total, report.created, report.skipped, report.failed,
        " (interrupted)" if report.interrupted else "",
    )
    return report
