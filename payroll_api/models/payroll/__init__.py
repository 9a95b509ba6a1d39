# payroll_api/models/payroll/__init__.py
from .salary_profile import SalaryProfile
from .schedule import PayrollScheduleComponent
from .slip import PayrollSlip

__all__ = [
    "SalaryProfile",
    "PayrollScheduleComponent",
    "PayrollSlip",
]
