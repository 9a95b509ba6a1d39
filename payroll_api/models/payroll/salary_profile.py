from datetime import datetime
from payroll_api.extensions import db

# Earning heads carried on a profile, in payslip order (DA is resolved from schedules)
PROFILE_EARNINGS = ("basic", "hra", "conveyance", "call_allowance", "other_allowances")


class SalaryProfile(db.Model):
    """Versioned monthly salary structure; a new row per revision."""
    __tablename__ = "employee_salary_profiles"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    effective_from = db.Column(db.Date, nullable=False)
    da_year = db.Column(db.Integer, nullable=True)

    basic            = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    hra              = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    conveyance       = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    call_allowance   = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    other_allowances = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    ot_rate_per_hour = db.Column(db.Numeric(10, 2), nullable=True)
    standard_working_days = db.Column(db.Integer, nullable=True)  # null => policy default

    pf_enabled  = db.Column(db.Boolean, nullable=False, default=True)
    esi_enabled = db.Column(db.Boolean, nullable=False, default=True)
    pt_enabled  = db.Column(db.Boolean, nullable=False, default=True)
    lwf_enabled = db.Column(db.Boolean, nullable=False, default=True)

    remarks = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "effective_from", name="uq_salary_profile_emp_from"),
        db.Index("ix_salary_profile_emp_from", "employee_id", "effective_from"),
    )

    employee = db.relationship("Employee", back_populates="salary_profiles")
