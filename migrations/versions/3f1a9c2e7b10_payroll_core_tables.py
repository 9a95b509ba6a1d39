"""payroll core tables (employees, attendance, salary profiles, schedules, slips)

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2025-11-10 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'employees',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=32), nullable=False, unique=True),
        sa.Column('email', sa.String(length=255), nullable=True, unique=True),
        sa.Column('first_name', sa.String(length=80), nullable=False),
        sa.Column('last_name', sa.String(length=80), nullable=True),
        sa.Column('department', sa.String(length=80), nullable=True),
        sa.Column('designation', sa.String(length=80), nullable=True),
        sa.Column('doj', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_emp_status', 'employees', ['status'])

    op.create_table(
        'employee_attendance',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('attendance_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=8), nullable=False),
        sa.Column('overtime_hours', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('employee_id', 'attendance_date', name='uq_attendance_emp_date'),
    )
    op.create_index('ix_employee_attendance_employee_id', 'employee_attendance', ['employee_id'])
    op.create_index('ix_attendance_emp_date', 'employee_attendance', ['employee_id', 'attendance_date'])

    op.create_table(
        'employee_salary_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('da_year', sa.Integer(), nullable=True),
        sa.Column('basic', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('hra', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('conveyance', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('call_allowance', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('other_allowances', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('ot_rate_per_hour', sa.Numeric(10, 2), nullable=True),
        sa.Column('standard_working_days', sa.Integer(), nullable=True),
        sa.Column('pf_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('esi_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('pt_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('lwf_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('employee_id', 'effective_from', name='uq_salary_profile_emp_from'),
    )
    op.create_index('ix_salary_profile_emp_from', 'employee_salary_profiles', ['employee_id', 'effective_from'])

    op.create_table(
        'payroll_schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('component_type', sa.String(length=32), nullable=False),
        sa.Column('value_type', sa.String(length=16), nullable=False),
        sa.Column('value', sa.Numeric(14, 4), nullable=False),
        sa.Column('min_salary', sa.Numeric(14, 2), nullable=True),
        sa.Column('max_salary', sa.Numeric(14, 2), nullable=True),
        sa.Column('effective_from', sa.Date(), nullable=False),
        sa.Column('effective_to', sa.Date(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("value_type IN ('percentage', 'fixed')", name='ck_payroll_schedule_value_type'),
    )
    op.create_index(
        'ix_payroll_schedule_resolve', 'payroll_schedules',
        ['component_type', 'is_active', 'effective_from', 'effective_to'],
    )

    op.create_table(
        'payroll_slips',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.Integer(), sa.ForeignKey('employees.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('month', sa.Date(), nullable=False),
        sa.Column('total_earnings', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('gross', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total_deductions', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('net_pay', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total_employer_contributions', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('employer_cost', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('payable_days', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('lop_days', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('schedule_date', sa.Date(), nullable=False),
        sa.Column('breakdown', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('payment_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('payment_date', sa.Date(), nullable=True),
        sa.Column('payment_reference', sa.String(length=120), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('employee_id', 'month', name='uq_payroll_slip_emp_month'),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'processed', 'paid', 'hold')",
            name='ck_payroll_slip_payment_status',
        ),
    )
    op.create_index('ix_payroll_slip_month_status', 'payroll_slips', ['month', 'payment_status'])


def downgrade() -> None:
    op.drop_index('ix_payroll_slip_month_status', table_name='payroll_slips')
    op.drop_table('payroll_slips')
    op.drop_index('ix_payroll_schedule_resolve', table_name='payroll_schedules')
    op.drop_table('payroll_schedules')
    op.drop_index('ix_salary_profile_emp_from', table_name='employee_salary_profiles')
    op.drop_table('employee_salary_profiles')
    op.drop_index('ix_attendance_emp_date', table_name='employee_attendance')
    op.drop_index('ix_employee_attendance_employee_id', table_name='employee_attendance')
    op.drop_table('employee_attendance')
    op.drop_index('ix_emp_status', table_name='employees')
    op.drop_table('employees')
