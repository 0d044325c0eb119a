"""student notes left by shift leaders

Revision ID: 9b7f12c4d3a1
Revises: 3e8a41c07d52
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '9b7f12c4d3a1'
down_revision: Union[str, Sequence[str], None] = '3e8a41c07d52'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'student_notes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('project_id', sa.Integer(), nullable=False),
        sa.Column('leader_id', sa.Integer(), nullable=False),
        sa.Column('body', sa.String(length=2000), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.ForeignKeyConstraint(['student_id'], ['users.id']),
        sa.ForeignKeyConstraint(['shift_id'], ['shifts.id']),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id']),
        sa.ForeignKeyConstraint(['leader_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_student_notes_student_id'), 'student_notes', ['student_id'], unique=False)
    op.create_index(op.f('ix_student_notes_shift_id'), 'student_notes', ['shift_id'], unique=False)
    op.create_index(op.f('ix_student_notes_project_id'), 'student_notes', ['project_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_student_notes_project_id'), table_name='student_notes')
    op.drop_index(op.f('ix_student_notes_shift_id'), table_name='student_notes')
    op.drop_index(op.f('ix_student_notes_student_id'), table_name='student_notes')
    op.drop_table('student_notes')
