from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from payroll_api.common.errors import ProfileMissing
from payroll_api.models.attendance import AttendanceRecord
from payroll_api.models.employee import Employee
from payroll_api.models.payroll.salary_profile import SalaryProfile
from payroll_api.models.payroll.schedule import PayrollScheduleComponent
from payroll_api.services.attendance_summary import summarize_records
from payroll_api.services.payroll_calculator import calculate, calculate_from_inputs
from payroll_api.services.payroll_common import PayrollSettings

JAN = date(2025, 1, 1)
NO_MANDATORY = PayrollSettings(mandatory_components=())


def _profile(**kw):
    base = dict(
        id=1, effective_from=date(2024, 4, 1), da_year=None,
        basic=Decimal("26000"), hra=Decimal("0"), conveyance=Decimal("0"),
        call_allowance=Decimal("0"), other_allowances=Decimal("0"),
        ot_rate_per_hour=None, standard_working_days=None,
        pf_enabled=True, esi_enabled=True, pt_enabled=True, lwf_enabled=True,
    )
    base.update(kw)
    return SimpleNamespace(**base)


def _days(*pairs):
    out = []
    for status, n, *ot in pairs:
        out += [SimpleNamespace(status=status, overtime_hours=(ot[0] if ot else 0))] * n
    return out


def _summary(records, swd=26, month=JAN):
    return summarize_records(records, month, date(month.year, month.month, 28), swd)


def _sched(id, ctype, vtype, value, lo=None, hi=None):
    return SimpleNamespace(
        id=id, component_type=ctype, value_type=vtype, value=Decimal(str(value)),
        min_salary=None if lo is None else Decimal(str(lo)),
        max_salary=None if hi is None else Decimal(str(hi)),
        effective_from=date(2024, 4, 1),
    )


def test_basic_prorates_by_pay_ratio():
    bd = calculate_from_inputs(_profile(), _summary(_days(("P", 13))), JAN, [], NO_MANDATORY)
    assert bd.earnings["basic"] == Decimal("13000")
    assert bd.gross_salary == Decimal("13000")
    assert bd.net_salary == Decimal("13000")
    assert bd.lop_deduction == Decimal("13000")
    assert bd.schedule_date == date(2025, 1, 31)


def test_deductions_and_employer_contributions():
    rows = [
        _sched(1, "pf_employee", "percentage", 12),
        _sched(2, "pf_employer", "percentage", 13),
        _sched(3, "pt", "fixed", 0, 0, 10000),
        _sched(4, "pt", "fixed", 200, 10001, 20000),
        _sched(5, "leaves", "fixed", 24),
    ]
    bd = calculate_from_inputs(_profile(), _summary(_days(("P", 13))), JAN, rows, NO_MANDATORY)

    assert bd.deductions["pf_employee"]["amount"] == Decimal("1560")
    assert bd.deductions["pt"]["amount"] == Decimal("200")
    assert bd.total_deductions == Decimal("1760")
    assert bd.net_salary == Decimal("11240")
    # employer side is informational only
    assert bd.employer_contributions["pf_employer"]["amount"] == Decimal("1690")
    assert bd.total_employer_contributions == Decimal("1690")
    assert bd.employer_cost == Decimal("14690")
    assert "leaves" not in bd.deductions and "leaves" not in bd.employer_contributions


def test_overtime_is_added_unprorated():
    profile = _profile(ot_rate_per_hour=Decimal("100"))
    summary = _summary(_days(("P", 11), ("OT", 2, 3)))
    bd = calculate_from_inputs(profile, summary, JAN, [], NO_MANDATORY)

    assert bd.earnings["basic"] == Decimal("13000")
    assert bd.overtime["hours"] == Decimal("6")
    assert bd.overtime["amount"] == Decimal("600")
    assert bd.overtime["rate_source"] == "profile"
    assert bd.gross_salary == Decimal("13600")


def test_overtime_rate_derived_from_monthly_earnings():
    profile = _profile(basic=Decimal("20800"))
    summary = _summary(_days(("P", 25), ("OT", 1, 4)))
    bd = calculate_from_inputs(profile, summary, JAN, [], NO_MANDATORY)

    # 20800 / (26 * 8) * 1.5
    assert bd.overtime["rate"] == Decimal("150.00")
    assert bd.overtime["amount"] == Decimal("600")
    assert bd.gross_salary == Decimal("21400")


def test_non_prorated_earnings():
    settings = PayrollSettings(mandatory_components=(), non_prorated_earnings=("conveyance",))
    profile = _profile(conveyance=Decimal("1600"))
    bd = calculate_from_inputs(profile, _summary(_days(("P", 13))), JAN, [], settings)
    assert bd.earnings["conveyance"] == Decimal("1600")
    assert bd.earnings["basic"] == Decimal("13000")
    assert bd.gross_salary == Decimal("14600")


def test_da_resolved_on_basic_and_prorated():
    rows = [_sched(9, "da", "percentage", 10)]
    bd = calculate_from_inputs(_profile(), _summary(_days(("P", 13))), JAN, rows, NO_MANDATORY)
    assert bd.full_month_earnings["da"] == Decimal("2600")
    assert bd.earnings["da"] == Decimal("1300")
    assert "da" not in bd.deductions


def test_missing_mandatory_components_warn_and_default_to_zero():
    bd = calculate_from_inputs(_profile(), _summary(_days(("P", 26))), JAN, [], PayrollSettings())
    codes = [(w["code"], w.get("component")) for w in bd.warnings]
    assert ("MISSING_STATUTORY_COMPONENT", "pf_employee") in codes
    assert ("MISSING_STATUTORY_COMPONENT", "pf_employer") in codes
    assert ("MISSING_STATUTORY_COMPONENT", "pt") in codes
    assert bd.deductions["pf_employee"]["amount"] == 0
    assert bd.employer_contributions["pf_employer"]["amount"] == 0
    assert bd.net_salary == Decimal("26000")


def test_disabled_flags_drop_components():
    rows = [
        _sched(1, "pf_employee", "percentage", 12),
        _sched(2, "esic_employee", "percentage", "0.75"),
        _sched(3, "pt", "fixed", 200, 0, None),
    ]
    profile = _profile(pf_enabled=False, esi_enabled=False)
    bd = calculate_from_inputs(profile, _summary(_days(("P", 26))), JAN, rows, PayrollSettings())

    assert set(bd.deductions) == {"pt"}
    # disabled components are not reported missing
    assert bd.warnings == []


def test_zero_gross_is_flagged_not_raised():
    bd = calculate_from_inputs(_profile(), _summary([]), JAN, [], NO_MANDATORY)
    assert bd.gross_salary == 0
    assert [w["code"] for w in bd.warnings] == ["INVALID_GROSS"]


def test_breakdown_serializes():
    bd = calculate_from_inputs(_profile(), _summary(_days(("P", 13))), JAN, [], NO_MANDATORY)
    d = bd.to_dict()
    assert d["month"] == "2025-01-01"
    assert d["earnings"]["basic"] == 13000.0
    assert d["attendance"]["pay_ratio"] == 0.5


# ---------- with the database ----------

def _emp(session, code="E1"):
    e = Employee(code=code, first_name=code)
    session.add(e); session.commit()
    return e


def _present(session, emp_id, month, n):
    for day in range(1, n + 1):
        session.add(AttendanceRecord(employee_id=emp_id, attendance_date=date(month.year, month.month, day), status="P"))
    session.commit()


def test_calculate_without_profile_raises(session):
    e = _emp(session)
    with pytest.raises(ProfileMissing):
        calculate(e.id, JAN, NO_MANDATORY)


def test_calculate_picks_latest_profile_in_force(session):
    e = _emp(session)
    session.add_all([
        SalaryProfile(employee_id=e.id, effective_from=date(2024, 4, 1), basic=20000),
        SalaryProfile(employee_id=e.id, effective_from=date(2025, 1, 1), basic=26000),
        SalaryProfile(employee_id=e.id, effective_from=date(2025, 2, 1), basic=30000),
    ])
    session.commit()
    _present(session, e.id, JAN, 26)

    bd = calculate(e.id, date(2025, 1, 20), NO_MANDATORY)
    assert bd.month == JAN
    assert bd.earnings["basic"] == Decimal("26000")


def test_profile_standard_days_override(session):
    e = _emp(session)
    session.add(SalaryProfile(employee_id=e.id, effective_from=date(2024, 4, 1), basic=26000,
                              standard_working_days=13))
    session.commit()
    _present(session, e.id, JAN, 13)

    bd = calculate(e.id, JAN, NO_MANDATORY)
    assert bd.attendance.standard_working_days == 13
    assert bd.earnings["basic"] == Decimal("26000")


def test_da_follows_profile_da_year(session):
    e = _emp(session)
    session.add_all([
        PayrollScheduleComponent(component_type="da", value_type="percentage", value=10,
                                 effective_from=date(2024, 1, 1), effective_to=date(2024, 12, 31)),
        PayrollScheduleComponent(component_type="da", value_type="percentage", value=20,
                                 effective_from=date(2025, 1, 1)),
        SalaryProfile(employee_id=e.id, effective_from=date(2024, 4, 1), basic=26000, da_year=2024),
    ])
    session.commit()
    _present(session, e.id, date(2025, 3, 1), 26)

    bd = calculate(e.id, date(2025, 3, 1), NO_MANDATORY)
    assert bd.full_month_earnings["da"] == Decimal("2600")

    other = _emp(session, "E2")
    session.add(SalaryProfile(employee_id=other.id, effective_from=date(2024, 4, 1), basic=26000, da_year=2025))
    session.commit()
    _present(session, other.id, date(2025, 3, 1), 26)
    assert calculate(other.id, date(2025, 3, 1), NO_MANDATORY).full_month_earnings["da"] == Decimal("5200")
