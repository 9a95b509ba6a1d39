from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple

from flask import current_app

from payroll_api.common.errors import ValidationError

ZERO = Decimal("0")
ONE_UNIT = Decimal("1")


def D(x) -> Decimal:
    if x is None or x == "":
        return ZERO
    if isinstance(x, Decimal):
        return x
    return Decimal(str(x))


def round_half_up(x, unit: Decimal = ONE_UNIT) -> Decimal:
    """Round to the currency unit (whole rupee by default), halves away from zero."""
    return D(x).quantize(unit, rounding=ROUND_HALF_UP)


def month_start(d: date) -> date:
    return date(d.year, d.month, 1)


def month_end(d: date) -> date:
    return date(d.year, d.month, calendar.monthrange(d.year, d.month)[1])


def parse_month(value) -> date:
    """
    Accepts 'YYYY-MM', 'YYYY-MM-DD' or a date; returns the first of that month.
    """
    if isinstance(value, date):
        return month_start(value)
    s = str(value or "").strip()
    try:
        if len(s) == 7:
            y, m = s.split("-")
            return date(int(y), int(m), 1)
        return month_start(date.fromisoformat(s))
    except (TypeError, ValueError):
        raise ValidationError("month must be YYYY-MM or YYYY-MM-DD", payload={"month": value})


@dataclass(frozen=True)
class PayrollSettings:
    """Policy knobs read from app config; passed to the pure calculator."""
    standard_working_days: int = 26
    standard_hours_per_day: Decimal = Decimal("8")
    ot_multiplier: Decimal = Decimal("1.5")
    mandatory_components: Tuple[str, ...] = ("pf_employee", "pf_employer", "pt")
    slab_components: Tuple[str, ...] = ("pt",)
    non_prorated_earnings: Tuple[str, ...] = field(default_factory=tuple)
    require_attendance: bool = False
    enforce_status_transitions: bool = False

    @classmethod
    def from_app(cls, app=None) -> "PayrollSettings":
        cfg = (app or current_app).config
        return cls(
            standard_working_days=int(cfg.get("PAYROLL_STANDARD_WORKING_DAYS", 26)),
            standard_hours_per_day=D(cfg.get("PAYROLL_STANDARD_HOURS_PER_DAY", 8)),
            ot_multiplier=D(cfg.get("PAYROLL_OT_MULTIPLIER", "1.5")),
            mandatory_components=tuple(cfg.get("PAYROLL_MANDATORY_COMPONENTS", cls.mandatory_components)),
            slab_components=tuple(cfg.get("PAYROLL_SLAB_COMPONENTS", cls.slab_components)),
            non_prorated_earnings=tuple(cfg.get("PAYROLL_NON_PRORATED_EARNINGS") or ()),
            require_attendance=bool(cfg.get("PAYROLL_REQUIRE_ATTENDANCE", False)),
            enforce_status_transitions=bool(cfg.get("PAYROLL_ENFORCE_STATUS_TRANSITIONS", False)),
        )


def to_jsonable(v):
    """Decimals -> float, dates -> ISO strings, recursively."""
    if isinstance(v, Decimal):
        return float(v)
    if isinstance(v, date):
        return v.isoformat()
    if isinstance(v, dict):
        return {k: to_jsonable(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [to_jsonable(x) for x in v]
    return v
