from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
import logging

from payroll_api.models.payroll.schedule import PayrollScheduleComponent
from .payroll_common import D, round_half_up

log = logging.getLogger(__name__)

DEFAULT_SLAB_COMPONENTS = ("pt",)


def active_rows(on_date: date) -> List[PayrollScheduleComponent]:
    """Schedule rows in force on `on_date`, newest first."""
    return (
        PayrollScheduleComponent.query
        .filter(PayrollScheduleComponent.is_active.is_(True))
        .filter(PayrollScheduleComponent.effective_from <= on_date)
        .filter((PayrollScheduleComponent.effective_to.is_(None)) | (PayrollScheduleComponent.effective_to >= on_date))
        .order_by(
            PayrollScheduleComponent.component_type.asc(),
            PayrollScheduleComponent.effective_from.desc(),
            PayrollScheduleComponent.id.desc(),
        )
        .all()
    )


def _in_slab(row, gross: Decimal) -> bool:
    lo = D(row.min_salary) if row.min_salary is not None else Decimal("0")
    if gross < lo:
        return False
    if row.max_salary is not None and gross > D(row.max_salary):
        return False
    return True


def _amount(row, base: Decimal) -> Decimal:
    if row.value_type == "percentage":
        return round_half_up(base * D(row.value) / Decimal("100"))
    return D(row.value)


def _entry(row, base: Decimal, slab: bool) -> dict:
    out = {
        "type": row.value_type,
        "amount": _amount(row, base),
        "schedule_id": row.id,
        "effective_from": row.effective_from,
    }
    if row.value_type == "percentage":
        out["percentage"] = D(row.value)
    if slab:
        out["min_salary"] = D(row.min_salary) if row.min_salary is not None else None
        out["max_salary"] = D(row.max_salary) if row.max_salary is not None else None
    return out


def resolve_rows(rows: Iterable, on_date: date, gross_salary,
                 slab_components: Iterable[str] = DEFAULT_SLAB_COMPONENTS) -> Dict[str, dict]:
    """
    Pick one row per component type and compute its monetary amount.

    Rows must already be the ones effective on `on_date`. Slab types keep the
    row whose inclusive [min_salary, max_salary] band contains the gross and
    are omitted when no band matches; other types take the latest
    effective_from (ties broken by highest id).
    """
    gross = D(gross_salary)
    slab_set = set(slab_components or ())

    by_type: Dict[str, list] = {}
    for r in rows:
        by_type.setdefault(r.component_type, []).append(r)

    out: Dict[str, dict] = {}
    for ctype, items in by_type.items():
        items = sorted(items, key=lambda r: (r.effective_from, r.id or 0), reverse=True)
        if ctype in slab_set:
            match = next((r for r in items if _in_slab(r, gross)), None)
            if match is None:
                log.debug("No %s slab covers gross %s on %s", ctype, gross, on_date)
                continue
            out[ctype] = _entry(match, gross, slab=True)
            continue

        if len(items) > 1:
            log.warning(
                "Schedule ambiguity: %d active %s rows on %s (ids=%s); using id=%s",
                len(items), ctype, on_date, [r.id for r in items], items[0].id,
            )
        out[ctype] = _entry(items[0], gross, slab=False)
    return out


def resolve(on_date: date, gross_salary, slab_components: Optional[Iterable[str]] = None) -> Dict[str, dict]:
    """Effective-dated statutory/benefit components for a gross salary."""
    return resolve_rows(
        active_rows(on_date),
        on_date,
        gross_salary,
        slab_components=slab_components if slab_components is not None else DEFAULT_SLAB_COMPONENTS,
    )


def resolve_component(component_type: str, on_date: date, base) -> Optional[dict]:
    """Single non-slab component against an arbitrary base (e.g. DA on basic)."""
    rows = [r for r in active_rows(on_date) if r.component_type == component_type]
    if not rows:
        return None
    return resolve_rows(rows, on_date, base, slab_components=()).get(component_type)


def overlapping_slabs(component_type: str, min_salary, max_salary, effective_from: date,
                      effective_to: Optional[date], exclude_id: Optional[int] = None) -> List[PayrollScheduleComponent]:
    """
    Active rows of the same type whose effective window and salary band both
    intersect the given ones.
    """
    lo = D(min_salary) if min_salary is not None else Decimal("0")
    hi = D(max_salary) if max_salary is not None else None
    this_to = effective_to or date.max

    q = (
        PayrollScheduleComponent.query
        .filter(PayrollScheduleComponent.component_type == component_type)
        .filter(PayrollScheduleComponent.is_active.is_(True))
    )
    hits = []
    for other in q.all():
        if exclude_id is not None and other.id == exclude_id:
            continue
        o_from = other.effective_from or date.min
        o_to = other.effective_to or date.max
        if not (effective_from <= o_to and o_from <= this_to):
            continue
        o_lo = D(other.min_salary) if other.min_salary is not None else Decimal("0")
        o_hi = D(other.max_salary) if other.max_salary is not None else None
        if (hi is None or o_lo <= hi) and (o_hi is None or lo <= o_hi):
            hits.append(other)
    return hits
