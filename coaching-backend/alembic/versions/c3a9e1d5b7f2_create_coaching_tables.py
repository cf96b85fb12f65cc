"""create coaching tables

Revision ID: c3a9e1d5b7f2
Revises:
Create Date: 2026-10-19 09:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'c3a9e1d5b7f2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Programs
    op.create_table('coaching_programs',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('coach_id', sa.String(length=100), nullable=False),
    sa.Column('title', sa.String(length=200), nullable=False),
    sa.Column('interaction_type', sa.String(length=20), nullable=False),
    sa.Column('format', sa.String(length=20), nullable=False),
    sa.Column('session_duration_minutes', sa.Integer(), nullable=True),
    sa.Column('total_sessions', sa.Integer(), nullable=True),
    sa.Column('max_participants', sa.Integer(), nullable=True),
    sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
    sa.Column('buffer_minutes', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('advance_booking_days', sa.Integer(), nullable=False, server_default='30'),
    sa.Column('min_notice_hours', sa.Integer(), nullable=False, server_default='24'),
    sa.Column('curriculum', sa.JSON(), nullable=True),
    sa.Column('cancellation_credit_policy', sa.String(length=20), nullable=True),
    sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.CheckConstraint('buffer_minutes >= 0', name='ck_programs_buffer_non_negative'),
    sa.CheckConstraint('advance_booking_days >= 0', name='ck_programs_advance_non_negative'),
    sa.CheckConstraint('min_notice_hours >= 0', name='ck_programs_notice_non_negative'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_programs_coach', 'coaching_programs', ['coach_id'], unique=False)

    # Weekly availability and blackouts
    op.create_table('coaching_availability_rules',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('program_id', sa.Uuid(), nullable=False),
    sa.Column('day_of_week', sa.Integer(), nullable=False),
    sa.Column('start_time', sa.Time(), nullable=False),
    sa.Column('end_time', sa.Time(), nullable=False),
    sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
    sa.CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='ck_rules_day_of_week'),
    sa.CheckConstraint('start_time < end_time', name='ck_rules_window_order'),
    sa.ForeignKeyConstraint(['program_id'], ['coaching_programs.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_rules_program_day', 'coaching_availability_rules', ['program_id', 'day_of_week'], unique=False)

    op.create_table('coaching_blackout_periods',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('coach_id', sa.String(length=100), nullable=False),
    sa.Column('program_id', sa.Uuid(), nullable=True),
    sa.Column('start_date', sa.Date(), nullable=False),
    sa.Column('end_date', sa.Date(), nullable=False),
    sa.Column('reason', sa.String(length=500), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.CheckConstraint('start_date <= end_date', name='ck_blackouts_range_order'),
    sa.ForeignKeyConstraint(['program_id'], ['coaching_programs.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_blackouts_coach_dates', 'coaching_blackout_periods', ['coach_id', 'start_date', 'end_date'], unique=False)

    # Cohorts and enrollments
    op.create_table('coaching_cohorts',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('program_id', sa.Uuid(), nullable=False),
    sa.Column('name', sa.String(length=200), nullable=False),
    sa.Column('start_date', sa.Date(), nullable=False),
    sa.Column('end_date', sa.Date(), nullable=True),
    sa.Column('max_participants', sa.Integer(), nullable=True),
    sa.Column('enrollment_open', sa.Boolean(), nullable=False, server_default='true'),
    sa.Column('enrollment_deadline', sa.DateTime(timezone=True), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['program_id'], ['coaching_programs.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_cohorts_program', 'coaching_cohorts', ['program_id'], unique=False)

    op.create_table('coaching_enrollments',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('program_id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.String(length=100), nullable=False),
    sa.Column('cohort_id', sa.Uuid(), nullable=True),
    sa.Column('format', sa.String(length=20), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='ACTIVE'),
    sa.Column('sessions_included', sa.Integer(), nullable=True),
    sa.Column('sessions_used', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('package_expires_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('payment_ref', sa.String(length=200), nullable=True),
    sa.Column('enrolled_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.CheckConstraint('sessions_used >= 0', name='ck_enrollments_used_non_negative'),
    sa.CheckConstraint('sessions_included IS NULL OR sessions_used <= sessions_included', name='ck_enrollments_credit_bound'),
    sa.ForeignKeyConstraint(['program_id'], ['coaching_programs.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['cohort_id'], ['coaching_cohorts.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_enrollments_program_user', 'coaching_enrollments', ['program_id', 'user_id'], unique=False)
    op.create_index('idx_enrollments_user', 'coaching_enrollments', ['user_id'], unique=False)

    # Sessions and group attendance
    op.create_table('coaching_sessions',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('program_id', sa.Uuid(), nullable=False),
    sa.Column('cohort_id', sa.Uuid(), nullable=True),
    sa.Column('enrollment_id', sa.Uuid(), nullable=True),
    sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('ends_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('timezone', sa.String(length=64), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='SCHEDULED'),
    sa.Column('week_number', sa.Integer(), nullable=True),
    sa.Column('original_starts_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('cancel_reason', sa.String(length=500), nullable=True),
    sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('notes', sa.Text(), nullable=True),
    sa.Column('recording_url', sa.String(length=1000), nullable=True),
    sa.Column('action_items', sa.JSON(), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.CheckConstraint('starts_at < ends_at', name='ck_sessions_time_order'),
    sa.ForeignKeyConstraint(['program_id'], ['coaching_programs.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['cohort_id'], ['coaching_cohorts.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['enrollment_id'], ['coaching_enrollments.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_sessions_program_status_time', 'coaching_sessions', ['program_id', 'status', 'starts_at'], unique=False)
    op.create_index('idx_sessions_enrollment', 'coaching_sessions', ['enrollment_id'], unique=False)
    op.create_index('idx_sessions_cohort', 'coaching_sessions', ['cohort_id'], unique=False)

    op.create_table('coaching_session_attendees',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('session_id', sa.Uuid(), nullable=False),
    sa.Column('enrollment_id', sa.Uuid(), nullable=False),
    sa.Column('user_id', sa.String(length=100), nullable=False),
    sa.Column('attended', sa.Boolean(), nullable=False, server_default='false'),
    sa.Column('registered_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['session_id'], ['coaching_sessions.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['enrollment_id'], ['coaching_enrollments.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('session_id', 'enrollment_id', name='uq_attendees_session_enrollment')
    )
    op.create_index('idx_attendees_session', 'coaching_session_attendees', ['session_id'], unique=False)

    # Deliverables
    op.create_table('coaching_submissions',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('program_id', sa.Uuid(), nullable=False),
    sa.Column('enrollment_id', sa.Uuid(), nullable=False),
    sa.Column('session_id', sa.Uuid(), nullable=True),
    sa.Column('user_id', sa.String(length=100), nullable=False),
    sa.Column('week_number', sa.Integer(), nullable=True),
    sa.Column('content', sa.Text(), nullable=True),
    sa.Column('file_url', sa.String(length=1000), nullable=True),
    sa.Column('submitted_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('feedback', sa.Text(), nullable=True),
    sa.Column('feedback_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('reviewed_by_id', sa.String(length=100), nullable=True),
    sa.ForeignKeyConstraint(['program_id'], ['coaching_programs.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['enrollment_id'], ['coaching_enrollments.id'], ondelete='CASCADE'),
    sa.ForeignKeyConstraint(['session_id'], ['coaching_sessions.id'], ondelete='SET NULL'),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_submissions_enrollment_week', 'coaching_submissions', ['enrollment_id', 'week_number'], unique=False)
    op.create_index('idx_submissions_program', 'coaching_submissions', ['program_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_submissions_program', table_name='coaching_submissions')
    op.drop_index('idx_submissions_enrollment_week', table_name='coaching_submissions')
    op.drop_table('coaching_submissions')
    op.drop_index('idx_attendees_session', table_name='coaching_session_attendees')
    op.drop_table('coaching_session_attendees')
    op.drop_index('idx_sessions_cohort', table_name='coaching_sessions')
    op.drop_index('idx_sessions_enrollment', table_name='coaching_sessions')
    op.drop_index('idx_sessions_program_status_time', table_name='coaching_sessions')
    op.drop_table('coaching_sessions')
    op.drop_index('idx_enrollments_user', table_name='coaching_enrollments')
    op.drop_index('idx_enrollments_program_user', table_name='coaching_enrollments')
    op.drop_table('coaching_enrollments')
    op.drop_index('idx_cohorts_program', table_name='coaching_cohorts')
    op.drop_table('coaching_cohorts')
    op.drop_index('idx_blackouts_coach_dates', table_name='coaching_blackout_periods')
    op.drop_table('coaching_blackout_periods')
    op.drop_index('idx_rules_program_day', table_name='coaching_availability_rules')
    op.drop_table('coaching_availability_rules')
    op.drop_index('idx_programs_coach', table_name='coaching_programs')
    op.drop_table('coaching_programs')
