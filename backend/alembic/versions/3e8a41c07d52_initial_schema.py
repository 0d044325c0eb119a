"""initial schema: projects, shifts, attendance and substitution requests

Revision ID: 3e8a41c07d52
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '3e8a41c07d52'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=64), nullable=False),
        sa.Column('last_name', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)

    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('punctuality_score', sa.Float(), nullable=False, server_default=sa.text('100')),
        sa.Column('rating', sa.Float(), nullable=False, server_default=sa.text('5')),
        sa.Column('availability_status', sa.String(length=16), nullable=False, server_default='active'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_students_user_id'), 'students', ['user_id'], unique=True)

    op.create_table(
        'projects',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.String(length=2000), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'project_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('membership_type', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('project_id', 'user_id', name='uq_project_member'),
    )
    op.create_index(op.f('ix_project_members_project_id'), 'project_members', ['project_id'], unique=False)
    op.create_index(op.f('ix_project_members_user_id'), 'project_members', ['user_id'], unique=False)

    op.create_table(
        'shifts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('day_of_week', sa.String(length=16), nullable=False),
        sa.Column('time_type', sa.String(length=8), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('stop_time', sa.DateTime(), nullable=False),
        sa.Column('required_students', sa.Integer(), nullable=False),
        sa.Column('assigned_count', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('shift_type', sa.String(length=16), nullable=False, server_default='normal'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('leader_id', sa.Integer(), nullable=False),
        sa.Column('gateman_id', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id']),
        sa.ForeignKeyConstraint(['leader_id'], ['users.id']),
        sa.ForeignKeyConstraint(['gateman_id'], ['users.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_shifts_project_id'), 'shifts', ['project_id'], unique=False)
    op.create_index(op.f('ix_shifts_date'), 'shifts', ['date'], unique=False)
    op.create_index(op.f('ix_shifts_status'), 'shifts', ['status'], unique=False)
    op.create_index(op.f('ix_shifts_leader_id'), 'shifts', ['leader_id'], unique=False)
    op.create_index(op.f('ix_shifts_gateman_id'), 'shifts', ['gateman_id'], unique=False)

    op.create_table(
        'shift_assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('project_member_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='assigned'),
        sa.Column('assigned_by', sa.Integer(), nullable=False),
        sa.Column('assigned_at', sa.DateTime(), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id']),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.ForeignKeyConstraint(['project_member_id'], ['project_members.id']),
        sa.ForeignKeyConstraint(['assigned_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_shift_assignments_shift_id'), 'shift_assignments', ['shift_id'], unique=False)
    op.create_index(op.f('ix_shift_assignments_student_id'), 'shift_assignments', ['student_id'], unique=False)
    op.create_index(
        op.f('ix_shift_assignments_project_member_id'), 'shift_assignments', ['project_member_id'], unique=False
    )
    # cancelled rows are kept, only one non-cancelled assignment per student and shift
    op.create_index(
        'uq_shift_assignments_live_student',
        'shift_assignments',
        ['shift_id', 'student_id'],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
    )

    op.create_table(
        'verification_codes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=4), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('verified_by', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id']),
        sa.ForeignKeyConstraint(['verified_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_verification_codes_code'), 'verification_codes', ['code'], unique=False)
    op.create_index(op.f('ix_verification_codes_student_id'), 'verification_codes', ['student_id'], unique=False)
    op.create_index(op.f('ix_verification_codes_shift_id'), 'verification_codes', ['shift_id'], unique=False)
    op.create_index(
        'uq_verification_codes_active',
        'verification_codes',
        ['student_id', 'shift_id'],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('clock_in_time', sa.DateTime(), nullable=True),
        sa.Column('clock_out_time', sa.DateTime(), nullable=True),
        sa.Column('attendance_status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('clock_in_verified_by', sa.Integer(), nullable=True),
        sa.Column('marked_by_leader', sa.Integer(), nullable=True),
        sa.Column('tracked_hours', sa.Float(), nullable=True),
        sa.Column('lost_hours', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id']),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.ForeignKeyConstraint(['clock_in_verified_by'], ['users.id']),
        sa.ForeignKeyConstraint(['marked_by_leader'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shift_id', 'student_id', name='uq_attendance_shift_student'),
    )
    op.create_index(op.f('ix_attendance_records_shift_id'), 'attendance_records', ['shift_id'], unique=False)
    op.create_index(op.f('ix_attendance_records_student_id'), 'attendance_records', ['student_id'], unique=False)

    op.create_table(
        'admin_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('request_type', sa.String(length=32), nullable=False),
        sa.Column('requester_id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('assignment_id', sa.Integer(), nullable=True),
        sa.Column('reason', sa.String(length=2000), nullable=True),
        sa.Column('replacement_email', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('reviewed_by', sa.Integer(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('penalized', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['requester_id'], ['users.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id']),
        sa.ForeignKeyConstraint(['assignment_id'], ['shift_assignments.id']),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_admin_requests_requester_id'), 'admin_requests', ['requester_id'], unique=False)
    op.create_index(op.f('ix_admin_requests_shift_id'), 'admin_requests', ['shift_id'], unique=False)
    op.create_index(op.f('ix_admin_requests_created_at'), 'admin_requests', ['created_at'], unique=False)
    op.create_index('ix_admin_requests_shift_status', 'admin_requests', ['shift_id', 'status'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_admin_requests_shift_status', table_name='admin_requests')
    op.drop_index(op.f('ix_admin_requests_created_at'), table_name='admin_requests')
    op.drop_index(op.f('ix_admin_requests_shift_id'), table_name='admin_requests')
    op.drop_index(op.f('ix_admin_requests_requester_id'), table_name='admin_requests')
    op.drop_table('admin_requests')

    op.drop_index(op.f('ix_attendance_records_student_id'), table_name='attendance_records')
    op.drop_index(op.f('ix_attendance_records_shift_id'), table_name='attendance_records')
    op.drop_table('attendance_records')

    op.drop_index('uq_verification_codes_active', table_name='verification_codes')
    op.drop_index(op.f('ix_verification_codes_shift_id'), table_name='verification_codes')
    op.drop_index(op.f('ix_verification_codes_student_id'), table_name='verification_codes')
    op.drop_index(op.f('ix_verification_codes_code'), table_name='verification_codes')
    op.drop_table('verification_codes')

    op.drop_index('uq_shift_assignments_live_student', table_name='shift_assignments')
    op.drop_index(op.f('ix_shift_assignments_project_member_id'), table_name='shift_assignments')
    op.drop_index(op.f('ix_shift_assignments_student_id'), table_name='shift_assignments')
    op.drop_index(op.f('ix_shift_assignments_shift_id'), table_name='shift_assignments')
    op.drop_table('shift_assignments')

    op.drop_index(op.f('ix_shifts_gateman_id'), table_name='shifts')
    op.drop_index(op.f('ix_shifts_leader_id'), table_name='shifts')
    op.drop_index(op.f('ix_shifts_status'), table_name='shifts')
    op.drop_index(op.f('ix_shifts_date'), table_name='shifts')
    op.drop_index(op.f('ix_shifts_project_id'), table_name='shifts')
    op.drop_table('shifts')

    op.drop_index(op.f('ix_project_members_user_id'), table_name='project_members')
    op.drop_index(op.f('ix_project_members_project_id'), table_name='project_members')
    op.drop_table('project_members')

    op.drop_table('projects')

    op.drop_index(op.f('ix_students_user_id'), table_name='students')
    op.drop_table('students')

    op.drop_index(op.f('ix_users_email'), table_name='users')
    op.drop_table('users')
