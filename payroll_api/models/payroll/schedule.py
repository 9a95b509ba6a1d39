from datetime import datetime
from payroll_api.extensions import db

COMPONENT_TYPES = (
    "da",
    "pf_employee", "pf_employer",
    "esic_employee", "esic_employer",
    "pt",
    "mlwf", "mlwf_employer",
    "insurance", "personal_accident", "mediclaim",
    "bonus", "gratuity", "edli", "pf_admin",
    "tds",
    "leaves",
)

VALUE_TYPES = ("percentage", "fixed")


class PayrollScheduleComponent(db.Model):
    __tablename__ = "payroll_schedules"

    id = db.Column(db.Integer, primary_key=True)
    component_type = db.Column(db.String(32), nullable=False)
    value_type = db.Column(db.String(16), nullable=False)  # percentage | fixed
    value = db.Column(db.Numeric(14, 4), nullable=False)

    # salary slab bounds, inclusive; used by slab components (PT)
    min_salary = db.Column(db.Numeric(14, 2), nullable=True)
    max_salary = db.Column(db.Numeric(14, 2), nullable=True)

    effective_from = db.Column(db.Date, nullable=False)
    effective_to = db.Column(db.Date, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    remarks = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_payroll_schedule_resolve", "component_type", "is_active", "effective_from", "effective_to"),
    )
