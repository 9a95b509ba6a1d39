from __future__ import annotations

from flask import Blueprint, request

from payroll_api.common.auth import requires_perms
from payroll_api.common.errors import ValidationError, SlipNotFound
from payroll_api.common.http import ok
from payroll_api.common.paging import paginate
from payroll_api.extensions import db
from payroll_api.models.payroll.slip import PayrollSlip, PAYMENT_STATUSES
from payroll_api.services import payslip_generator, payment_lifecycle
from payroll_api.services.attendance_summary import summarize_month
from payroll_api.services.payroll_calculator import active_profile
from payroll_api.services.payroll_common import PayrollSettings, parse_month

bp = Blueprint("payroll", __name__, url_prefix="/api/v1/payroll")


# ---------- helpers ----------
def _int(x, name):
    if x is None or x == "":
        return None
    try:
        return int(x)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer", payload={name: x})

def _bool(x):
    if isinstance(x, bool):
        return x
    if x is None:
        return False
    return str(x).lower() in ("1", "true", "yes", "y")


# ---------- generation ----------
@bp.post("/generate")
@requires_perms("payroll.create")
def generate():
    """
    Body:
      month        YYYY-MM (required)
      employee_id  single employee
      employee_ids list of employees (batch)
      all          true => every active employee (batch)
      preview      true => calculate only, single employee
    """
    j = request.get_json(silent=True) or {}
    if not j.get("month"):
        raise ValidationError("month is required")
    month = parse_month(j.get("month"))
    emp_id = _int(j.get("employee_id"), "employee_id")
    emp_ids = j.get("employee_ids")

    if _bool(j.get("preview")):
        if emp_id is None:
            raise ValidationError("employee_id is required for preview")
        return ok(payslip_generator.preview(emp_id, month), preview=True)

    if emp_ids is not None:
        if not isinstance(emp_ids, list) or not emp_ids:
            raise ValidationError("employee_ids must be a non-empty list")
        ids = [_int(x, "employee_ids") for x in emp_ids]
        report = payslip_generator.generate_all(month, employee_ids=ids)
        return ok(report.to_dict())

    if _bool(j.get("all")):
        report = payslip_generator.generate_all(month)
        return ok(report.to_dict())

    if emp_id is None:
        raise ValidationError("employee_id, employee_ids or all=true is required")

    slip = payslip_generator.generate(emp_id, month)
    return ok(slip.to_dict(), status=201)


# ---------- slips ----------
@bp.get("/slips")
@requires_perms("payroll.read")
def list_slips():
    q = PayrollSlip.query
    if request.args.get("month"):
        q = q.filter(PayrollSlip.month == parse_month(request.args.get("month")))
    emp_id = _int(request.args.get("employee_id"), "employee_id")
    if emp_id is not None:
        q = q.filter(PayrollSlip.employee_id == emp_id)
    status = (request.args.get("payment_status") or "").strip().lower()
    if status:
        if status not in PAYMENT_STATUSES:
            raise ValidationError("invalid payment_status", payload={"allowed": list(PAYMENT_STATUSES)})
        q = q.filter(PayrollSlip.payment_status == status)

    q = q.order_by(PayrollSlip.month.desc(), PayrollSlip.employee_id.asc(), PayrollSlip.id.asc())
    include = _bool(request.args.get("include_breakdown"))
    items, meta = paginate(q)
    return ok([s.to_dict(include_breakdown=include) for s in items], **meta)


@bp.get("/slips/<int:slip_id>")
@requires_perms("payroll.read")
def get_slip(slip_id: int):
    slip = db.session.get(PayrollSlip, slip_id)
    if slip is None:
        raise SlipNotFound(payload={"id": slip_id})
    return ok(slip.to_dict())


@bp.put("/slips")
@requires_perms("payroll.update")
def update_slip():
    j = request.get_json(silent=True) or {}
    slip_id = _int(j.get("id"), "id")
    if slip_id is None:
        raise ValidationError("id is required")
    changes = {k: v for k, v in j.items() if k != "id"}
    slip = payment_lifecycle.update_status(slip_id, changes)
    return ok(slip.to_dict(include_breakdown=False))


# ---------- attendance ----------
@bp.get("/attendance-summary")
@requires_perms("payroll.read")
def attendance_summary():
    emp_id = _int(request.args.get("employee_id"), "employee_id")
    if emp_id is None or not request.args.get("month"):
        raise ValidationError("employee_id and month are required")
    month = parse_month(request.args.get("month"))

    profile = active_profile(emp_id, month)
    swd = (profile.standard_working_days if profile else None) or PayrollSettings.from_app().standard_working_days
    return ok(summarize_month(emp_id, month, swd).to_dict())
