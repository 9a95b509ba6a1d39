# payroll_api/services/payroll_calculator.py
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
import logging

from payroll_api.common.errors import ProfileMissing
from payroll_api.models.payroll.salary_profile import SalaryProfile, PROFILE_EARNINGS
from .attendance_summary import AttendanceSummary, summarize_month
from .payroll_common import D, ZERO, PayrollSettings, round_half_up, month_start, month_end, to_jsonable
from .schedule_resolver import active_rows, resolve_rows

log = logging.getLogger(__name__)

EARNING_ORDER = ("basic", "da", "hra", "conveyance", "call_allowance", "other_allowances")

DEDUCTION_TYPES = (
    "pf_employee", "esic_employee", "pt", "mlwf", "tds",
    "insurance", "personal_accident", "mediclaim",
)
EMPLOYER_TYPES = (
    "pf_employer", "esic_employer", "mlwf_employer",
    "bonus", "gratuity", "edli", "pf_admin",
)

# profile flag -> component types it switches off
FLAG_COMPONENTS = {
    "pf_enabled": ("pf_employee", "pf_employer", "pf_admin", "edli"),
    "esi_enabled": ("esic_employee", "esic_employer"),
    "pt_enabled": ("pt",),
    "lwf_enabled": ("mlwf", "mlwf_employer"),
}

RATE_UNIT = Decimal("0.01")


@dataclass
class PayrollBreakdown:
    employee_id: Optional[int]
    month: date
    schedule_date: date
    profile_id: Optional[int]
    profile_effective_from: Optional[date]
    earnings: Dict[str, Decimal]
    full_month_earnings: Dict[str, Decimal]
    overtime: Dict[str, Any]
    total_earnings: Decimal
    gross_salary: Decimal
    lop_deduction: Decimal
    deductions: Dict[str, Dict[str, Any]]
    total_deductions: Decimal
    net_salary: Decimal
    employer_contributions: Dict[str, Dict[str, Any]]
    total_employer_contributions: Decimal
    employer_cost: Decimal
    attendance: AttendanceSummary
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return to_jsonable(asdict(self))


def _disabled_components(profile) -> set:
    off = set()
    for flag, types in FLAG_COMPONENTS.items():
        if getattr(profile, flag, True) is False:
            off.update(types)
    return off


def _da_on_date(month: date, da_year: Optional[int]) -> date:
    """DA follows the table of the profile's da_year for the same calendar month."""
    if da_year and int(da_year) != month.year:
        return month_end(date(int(da_year), month.month, 1))
    return month_end(month)


def calculate_from_inputs(profile, summary: AttendanceSummary, month: date,
                          schedule_rows: Iterable, settings: PayrollSettings,
                          da_rows: Optional[Iterable] = None,
                          employee_id: Optional[int] = None) -> PayrollBreakdown:
    """
    Salary profile + attendance + effective schedule rows -> breakdown.

    `schedule_rows` are the rows effective on the schedule date (last day of
    `month`); `da_rows` are the DA rows effective on the DA table date and
    default to the `da` rows among `schedule_rows`.
    """
    month = month_start(month)
    schedule_date = month_end(month)
    schedule_rows = list(schedule_rows)
    if da_rows is None:
        da_rows = [r for r in schedule_rows if r.component_type == "da"]
    warnings: List[Dict[str, Any]] = []

    # -- earnings --
    basic = D(getattr(profile, "basic", 0))
    full: Dict[str, Decimal] = {k: D(getattr(profile, k, 0)) for k in PROFILE_EARNINGS}
    da = resolve_rows(list(da_rows), _da_on_date(month, getattr(profile, "da_year", None)), basic, slab_components=())
    full["da"] = D(da["da"]["amount"]) if "da" in da else ZERO
    full = {k: full.get(k, ZERO) for k in EARNING_ORDER}

    ratio = summary.pay_ratio
    non_prorated = set(settings.non_prorated_earnings or ())
    earnings: Dict[str, Decimal] = {}
    for k, amt in full.items():
        earnings[k] = round_half_up(amt) if k in non_prorated else round_half_up(amt * ratio)

    full_total = sum(full.values(), ZERO)
    total_earnings = sum(earnings.values(), ZERO)

    # -- overtime (never prorated) --
    hours = D(summary.overtime_hours)
    rate = getattr(profile, "ot_rate_per_hour", None)
    rate_source = "profile"
    if rate is None:
        rate_source = "derived"
        swd = Decimal(summary.standard_working_days or settings.standard_working_days)
        denom = swd * D(settings.standard_hours_per_day)
        rate = (full_total / denom * D(settings.ot_multiplier)) if denom > 0 else ZERO
    rate = round_half_up(rate, RATE_UNIT)
    ot_amount = round_half_up(hours * rate) if hours > 0 else ZERO
    overtime = {"hours": hours, "rate": rate, "rate_source": rate_source, "amount": ot_amount}

    gross = total_earnings + ot_amount
    if gross <= 0:
        warnings.append({"code": "INVALID_GROSS", "message": f"Gross salary {gross} is not positive"})
        log.warning("Invalid gross %s for employee %s month %s", gross, employee_id, month)

    # -- statutory / benefit components --
    non_da = [r for r in schedule_rows if r.component_type != "da"]
    resolved = resolve_rows(non_da, schedule_date, gross, slab_components=settings.slab_components)
    disabled = _disabled_components(profile)

    deductions: Dict[str, Dict[str, Any]] = {}
    employer: Dict[str, Dict[str, Any]] = {}
    for ctype, entry in resolved.items():
        if ctype in disabled:
            continue
        if ctype in DEDUCTION_TYPES:
            deductions[ctype] = entry
        elif ctype in EMPLOYER_TYPES:
            employer[ctype] = entry

    for ctype in settings.mandatory_components:
        if ctype in disabled or ctype in resolved:
            continue
        stub = {"type": None, "amount": ZERO, "schedule_id": None}
        if ctype in EMPLOYER_TYPES:
            employer[ctype] = stub
        else:
            deductions[ctype] = stub
        warnings.append({
            "code": "MISSING_STATUTORY_COMPONENT",
            "component": ctype,
            "message": f"No {ctype} schedule effective on {schedule_date.isoformat()}",
        })
        log.warning("Missing statutory component %s on %s for employee %s", ctype, schedule_date, employee_id)

    total_deductions = sum((D(x["amount"]) for x in deductions.values()), ZERO)
    total_employer = sum((D(x["amount"]) for x in employer.values()), ZERO)
    net = round_half_up(gross - total_deductions)

    return PayrollBreakdown(
        employee_id=employee_id,
        month=month,
        schedule_date=schedule_date,
        profile_id=getattr(profile, "id", None),
        profile_effective_from=getattr(profile, "effective_from", None),
        earnings=earnings,
        full_month_earnings=full,
        overtime=overtime,
        total_earnings=total_earnings,
        gross_salary=gross,
        lop_deduction=round_half_up(full_total) - total_earnings,
        deductions=deductions,
        total_deductions=total_deductions,
        net_salary=net,
        employer_contributions=employer,
        total_employer_contributions=total_employer,
        employer_cost=gross + total_employer,
        attendance=summary,
        warnings=warnings,
    )


def active_profile(employee_id: int, on_date: date) -> Optional[SalaryProfile]:
    return (
        SalaryProfile.query
        .filter(SalaryProfile.employee_id == employee_id)
        .filter(SalaryProfile.effective_from <= on_date)
        .order_by(SalaryProfile.effective_from.desc(), SalaryProfile.id.desc())
        .first()
    )


def calculate(employee_id: int, month: date, settings: Optional[PayrollSettings] = None) -> PayrollBreakdown:
    """Full pay breakdown for one employee and month. Reads only."""
    settings = settings or PayrollSettings.from_app()
    month = month_start(month)

    profile = active_profile(employee_id, month)
    if profile is None:
        raise ProfileMissing(payload={"employee_id": employee_id, "month": month.strftime("%Y-%m")})

    swd = profile.standard_working_days or settings.standard_working_days
    summary = summarize_month(employee_id, month, swd)

    schedule_date = month_end(month)
    rows = active_rows(schedule_date)
    da_date = _da_on_date(month, profile.da_year)
    da_rows = None
    if da_date != schedule_date:
        da_rows = [r for r in active_rows(da_date) if r.component_type == "da"]

    return calculate_from_inputs(
        profile, summary, month, rows, settings,
        da_rows=da_rows, employee_id=employee_id,
    )
