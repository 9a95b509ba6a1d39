from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import List, Tuple
import logging

from payroll_api.extensions import db
from payroll_api.models.payroll.schedule import PayrollScheduleComponent

log = logging.getLogger(__name__)

# (component_type, value_type, value, min_salary, max_salary, remarks)
DEFAULT_SCHEDULES: List[Tuple] = [
    ("pf_employee", "percentage", "12", None, None, "PF employee share"),
    ("pf_employer", "percentage", "13", None, None, "PF employer share (incl. admin/EDLI)"),
    ("esic_employee", "percentage", "0.75", None, None, "ESIC employee share"),
    ("esic_employer", "percentage", "3.25", None, None, "ESIC employer share"),
    ("pt", "fixed", "0", "0", "5000", "PT slab"),
    ("pt", "fixed", "150", "5001", "7500", "PT slab"),
    ("pt", "fixed", "175", "7501", "10000", "PT slab"),
    ("pt", "fixed", "200", "10001", "999999999", "PT slab"),
    ("mlwf", "fixed", "25", None, None, "Maharashtra labour welfare fund"),
    ("tds", "percentage", "0", None, None, "TDS placeholder; set per declaration"),
    ("insurance", "fixed", "500", None, None, "Group insurance"),
    ("personal_accident", "fixed", "200", None, None, "Personal accident cover"),
    ("mediclaim", "fixed", "300", None, None, "Mediclaim"),
    ("bonus", "percentage", "8.33", None, None, "Statutory bonus accrual"),
    ("leaves", "fixed", "24", None, None, "Annual paid leave entitlement (days)"),
]


def _dec(v):
    return Decimal(v) if v is not None else None


def seed_default_schedules(effective_from: date) -> int:
    """Insert any default component rows missing for `effective_from`; returns rows added."""
    added = 0
    for ctype, vtype, value, lo, hi, remarks in DEFAULT_SCHEDULES:
        exists = (
            PayrollScheduleComponent.query
            .filter_by(component_type=ctype, effective_from=effective_from, min_salary=_dec(lo))
            .first()
        )
        if exists:
            continue
        db.session.add(PayrollScheduleComponent(
            component_type=ctype,
            value_type=vtype,
            value=Decimal(value),
            min_salary=_dec(lo),
            max_salary=_dec(hi),
            effective_from=effective_from,
            is_active=True,
            remarks=remarks,
        ))
        added += 1
    db.session.commit()
    log.info("Seeded %s default payroll schedule rows effective %s", added, effective_from)
    return added
