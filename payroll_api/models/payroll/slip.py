import logging
from datetime import datetime

from sqlalchemy import event, inspect

from payroll_api.extensions import db
from payroll_api.common.errors import ImmutableSlipField

log = logging.getLogger(__name__)

PAYMENT_STATUSES = ("pending", "processed", "paid", "hold")

# Only these may change after a slip is written
LIFECYCLE_FIELDS = ("payment_status", "payment_date", "payment_reference", "remarks", "updated_at")


class PayrollSlip(db.Model):
    """Monthly payslip snapshot; calculation columns are write-once."""
    __tablename__ = "payroll_slips"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="RESTRICT"), nullable=False)
    month = db.Column(db.Date, nullable=False)  # first day of month

    # -- calculation snapshot --
    total_earnings = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    gross = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_deductions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_pay = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    total_employer_contributions = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    employer_cost = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    payable_days = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    lop_days = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    schedule_date = db.Column(db.Date, nullable=False)
    breakdown = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # -- payment lifecycle --
    payment_status = db.Column(db.String(16), nullable=False, default="pending")
    payment_date = db.Column(db.Date, nullable=True)
    payment_reference = db.Column(db.String(120), nullable=True)
    remarks = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "month", name="uq_payroll_slip_emp_month"),
        db.Index("ix_payroll_slip_month_status", "month", "payment_status"),
    )

    employee = db.relationship("Employee", lazy="joined")

    def to_dict(self, include_breakdown: bool = True) -> dict:
        emp = self.employee
        data = {
            "id": self.id,
            "employee_id": self.employee_id,
            "employee_code": emp.code if emp else None,
            "employee_name": emp.full_name if emp else None,
            "month": self.month.strftime("%Y-%m") if self.month else None,
            "total_earnings": float(self.total_earnings or 0),
            "gross": float(self.gross or 0),
            "total_deductions": float(self.total_deductions or 0),
            "net_pay": float(self.net_pay or 0),
            "total_employer_contributions": float(self.total_employer_contributions or 0),
            "employer_cost": float(self.employer_cost or 0),
            "payable_days": float(self.payable_days or 0),
            "lop_days": float(self.lop_days or 0),
            "schedule_date": self.schedule_date.isoformat() if self.schedule_date else None,
            "payment_status": self.payment_status,
            "payment_date": self.payment_date.isoformat() if self.payment_date else None,
            "payment_reference": self.payment_reference,
            "remarks": self.remarks,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_breakdown:
            data["breakdown"] = self.breakdown
        return data


@event.listens_for(PayrollSlip, "before_update")
def _guard_calculated_fields(mapper, connection, target):
    state = inspect(target)
    changed = [
        attr.key for attr in state.attrs
        if attr.key not in LIFECYCLE_FIELDS
        and attr.key in mapper.columns
        and attr.history.has_changes()
    ]
    if changed:
        log.warning("Rejected update of calculated fields %s on payroll slip %s", changed, target.id)
        raise ImmutableSlipField(payload={"fields": sorted(changed)})
