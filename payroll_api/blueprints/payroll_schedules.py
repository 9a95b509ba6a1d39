from __future__ import annotations
from datetime import date
from decimal import Decimal, InvalidOperation

from flask import Blueprint, request

from payroll_api.common.auth import requires_perms
from payroll_api.common.errors import ValidationError, ScheduleOverlap
from payroll_api.common.http import ok, fail
from payroll_api.extensions import db
from payroll_api.models.payroll.schedule import PayrollScheduleComponent, COMPONENT_TYPES, VALUE_TYPES
from payroll_api.services.payroll_common import PayrollSettings, to_jsonable
from payroll_api.services.schedule_resolver import resolve, overlapping_slabs

bp = Blueprint("payroll_schedules", __name__, url_prefix="/api/v1/payroll/schedules")

_EDITABLE = ("value_type", "value", "min_salary", "max_salary", "effective_from", "effective_to", "is_active", "remarks")


# ---------- helpers ----------
def _d(s, name):
    if s in (None, ""):
        return None
    try:
        return date.fromisoformat(str(s)[:10])
    except ValueError:
        raise ValidationError(f"{name} must be YYYY-MM-DD", payload={name: s})

def _dec(x, name):
    if x is None or x == "":
        return None
    try:
        d = Decimal(str(x))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{name} must be numeric", payload={name: x})
    if not d.is_finite():
        raise ValidationError(f"{name} must be a finite number", payload={name: str(x)})
    return d

def _bool(x, default=None):
    if isinstance(x, bool):
        return x
    if x is None:
        return default
    return str(x).lower() in ("1", "true", "yes", "y")

def _num(v):
    return float(v) if v is not None else None

def _row(s: PayrollScheduleComponent):
    return {
        "id": s.id,
        "component_type": s.component_type,
        "value_type": s.value_type,
        "value": _num(s.value),
        "min_salary": _num(s.min_salary),
        "max_salary": _num(s.max_salary),
        "effective_from": s.effective_from.isoformat() if s.effective_from else None,
        "effective_to": s.effective_to.isoformat() if s.effective_to else None,
        "is_active": bool(s.is_active),
        "remarks": s.remarks,
        "created_at": s.created_at.isoformat() if s.created_at else None,
        "updated_at": s.updated_at.isoformat() if s.updated_at else None,
    }

def _validate(s: PayrollScheduleComponent):
    if s.component_type not in COMPONENT_TYPES:
        raise ValidationError("invalid component_type", payload={"allowed": list(COMPONENT_TYPES)})
    if s.value_type not in VALUE_TYPES:
        raise ValidationError("value_type must be 'percentage' or 'fixed'")
    if s.value is None or s.value < 0:
        raise ValidationError("value must be a non-negative number")
    if s.effective_from is None:
        raise ValidationError("effective_from is required")
    if s.effective_to and s.effective_to < s.effective_from:
        raise ValidationError("effective_to must be on or after effective_from")
    if s.min_salary is not None and s.max_salary is not None and s.min_salary > s.max_salary:
        raise ValidationError("min_salary must not exceed max_salary")

    slab_types = PayrollSettings.from_app().slab_components
    if s.component_type in slab_types and s.is_active:
        hits = overlapping_slabs(
            s.component_type, s.min_salary, s.max_salary,
            s.effective_from, s.effective_to, exclude_id=s.id,
        )
        if hits:
            raise ScheduleOverlap(payload={"conflicts": [h.id for h in hits]})


# ---------- routes ----------
@bp.get("/current")
@requires_perms("payroll.read")
def current():
    """Resolved component amounts for ?gross= on ?date= (defaults to today)."""
    on = _d(request.args.get("date"), "date") or date.today()
    gross = _dec(request.args.get("gross"), "gross")
    if gross is None:
        return fail("gross is required", status=422, code="VALIDATION_ERROR")
    slabs = PayrollSettings.from_app().slab_components
    resolved = resolve(on, gross, slab_components=slabs)
    return ok(to_jsonable(resolved), date=on.isoformat(), gross=float(gross))


@bp.get("")
@requires_perms("payroll.read")
def list_schedules():
    q = PayrollScheduleComponent.query
    ctype = (request.args.get("component_type") or "").strip()
    if ctype:
        q = q.filter(PayrollScheduleComponent.component_type == ctype)
    if _bool(request.args.get("active_only"), False):
        q = q.filter(PayrollScheduleComponent.is_active.is_(True))
    on = _d(request.args.get("date"), "date")
    if on:
        q = (q.filter(PayrollScheduleComponent.effective_from <= on)
              .filter((PayrollScheduleComponent.effective_to.is_(None)) | (PayrollScheduleComponent.effective_to >= on)))
    rows = q.order_by(
        PayrollScheduleComponent.component_type.asc(),
        PayrollScheduleComponent.effective_from.desc(),
        PayrollScheduleComponent.min_salary.asc(),
        PayrollScheduleComponent.id.asc(),
    ).all()
    return ok([_row(r) for r in rows], total=len(rows))


@bp.post("")
@requires_perms("payroll.settings.write")
def create_schedule():
    j = request.get_json(silent=True) or {}
    s = PayrollScheduleComponent(
        component_type=(j.get("component_type") or "").strip(),
        value_type=(j.get("value_type") or "").strip(),
        value=_dec(j.get("value"), "value"),
        min_salary=_dec(j.get("min_salary"), "min_salary"),
        max_salary=_dec(j.get("max_salary"), "max_salary"),
        effective_from=_d(j.get("effective_from"), "effective_from"),
        effective_to=_d(j.get("effective_to"), "effective_to"),
        is_active=_bool(j.get("is_active"), True),
        remarks=j.get("remarks"),
    )
    _validate(s)
    db.session.add(s)
    db.session.commit()
    return ok(_row(s), status=201)


@bp.put("/<int:schedule_id>")
@requires_perms("payroll.settings.write")
def update_schedule(schedule_id: int):
    s = db.session.get(PayrollScheduleComponent, schedule_id)
    if not s:
        return fail("Schedule not found", status=404)
    j = request.get_json(silent=True) or {}

    for key in _EDITABLE:
        if key not in j:
            continue
        v = j.get(key)
        if key in ("value", "min_salary", "max_salary"):
            v = _dec(v, key)
        elif key in ("effective_from", "effective_to"):
            v = _d(v, key)
        elif key == "is_active":
            v = _bool(v, True)
        setattr(s, key, v)

    with db.session.no_autoflush:
        _validate(s)
    db.session.commit()
    return ok(_row(s))
