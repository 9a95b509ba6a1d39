from __future__ import annotations
from datetime import date
from decimal import Decimal, InvalidOperation

from flask import Blueprint, request

from payroll_api.common.auth import requires_perms
from payroll_api.common.errors import ValidationError
from payroll_api.common.http import ok, fail
from payroll_api.extensions import db
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.salary_profile import SalaryProfile, PROFILE_EARNINGS

bp = Blueprint("salary_profiles", __name__, url_prefix="/api/v1/payroll/salary-profiles")

_FLAGS = ("pf_enabled", "esi_enabled", "pt_enabled", "lwf_enabled")


# ---------- helpers ----------
def _d(s):
    if not s:
        return None
    try:
        return date.fromisoformat(str(s)[:10])
    except ValueError:
        return None

def _dec(x, name):
    if x is None or x == "":
        return None
    try:
        v = Decimal(str(x))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{name} must be numeric", payload={name: x})
    if not v.is_finite():
        raise ValidationError(f"{name} must be a finite number", payload={name: str(x)})
    if v < 0:
        raise ValidationError(f"{name} must not be negative", payload={name: x})
    return v

def _bool(x, default=True):
    if isinstance(x, bool):
        return x
    if x is None:
        return default
    return str(x).lower() in ("1", "true", "yes", "y")

def _num(v):
    return float(v) if v is not None else None

def _row(p: SalaryProfile):
    data = {
        "id": p.id,
        "employee_id": p.employee_id,
        "effective_from": p.effective_from.isoformat() if p.effective_from else None,
        "da_year": p.da_year,
        "ot_rate_per_hour": _num(p.ot_rate_per_hour),
        "standard_working_days": p.standard_working_days,
        "remarks": p.remarks,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }
    for k in PROFILE_EARNINGS:
        data[k] = _num(getattr(p, k))
    for k in _FLAGS:
        data[k] = bool(getattr(p, k))
    return data


# ---------- routes ----------
@bp.get("")
@requires_perms("payroll.read")
def history():
    """Profile versions for ?employee_id=, newest first."""
    try:
        emp_id = int(request.args.get("employee_id"))
    except (TypeError, ValueError):
        return fail("employee_id is required", status=422, code="VALIDATION_ERROR")
    rows = (
        SalaryProfile.query
        .filter(SalaryProfile.employee_id == emp_id)
        .order_by(SalaryProfile.effective_from.desc(), SalaryProfile.id.desc())
        .all()
    )
    return ok([_row(p) for p in rows], total=len(rows))


@bp.post("")
@requires_perms("payroll.settings.write")
def create():
    j = request.get_json(silent=True) or {}
    try:
        emp_id = int(j.get("employee_id"))
    except (TypeError, ValueError):
        raise ValidationError("employee_id is required")
    if db.session.get(Employee, emp_id) is None:
        return fail("Employee not found", status=404)

    eff = _d(j.get("effective_from"))
    if not eff:
        raise ValidationError("effective_from (YYYY-MM-DD) is required")

    swd = j.get("standard_working_days")
    if swd not in (None, ""):
        try:
            swd = int(swd)
        except (TypeError, ValueError):
            raise ValidationError("standard_working_days must be an integer")
        if swd <= 0:
            raise ValidationError("standard_working_days must be positive")
    else:
        swd = None

    da_year = j.get("da_year")
    p = SalaryProfile(
        employee_id=emp_id,
        effective_from=eff,
        da_year=int(da_year) if da_year not in (None, "") else eff.year,
        ot_rate_per_hour=_dec(j.get("ot_rate_per_hour"), "ot_rate_per_hour"),
        standard_working_days=swd,
        remarks=j.get("remarks"),
    )
    for k in PROFILE_EARNINGS:
        setattr(p, k, _dec(j.get(k), k) or Decimal("0"))
    for k in _FLAGS:
        setattr(p, k, _bool(j.get(k)))

    db.session.add(p)
    db.session.commit()
    return ok(_row(p), status=201)
