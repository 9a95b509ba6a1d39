from datetime import datetime
from payroll_api.extensions import db

# Daily status codes as captured by the attendance desk
ATTENDANCE_STATUSES = (
    "P", "OT", "HD",
    "A", "UL", "LWP",
    "PL", "CL", "SL", "EL", "ML", "PaL",
    "WO", "H",
)


class AttendanceRecord(db.Model):
    __tablename__ = "employee_attendance"

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    attendance_date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(8), nullable=False)
    overtime_hours = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    remarks = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_id", "attendance_date", name="uq_attendance_emp_date"),
        db.Index("ix_attendance_emp_date", "employee_id", "attendance_date"),
    )

    employee = db.relationship("Employee", lazy="joined")
