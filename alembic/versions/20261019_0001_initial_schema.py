"""Initial schema - users, courses, enrollments, certificates, audit log

Revision ID: 0001
Revises: 
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ACTIVE_CERTIFICATE = "status IN ('requested', 'issued', 'revoked')"
ACTIVE_ENROLLMENT = "status != 'cancelled'"


def upgrade() -> None:
    # Users table
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, default='user'),
        sa.Column('is_active', sa.Boolean(), nullable=False, default=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Refresh tokens table
    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False, index=True),
        sa.Column('token_hash', sa.String(255), unique=True, nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked', sa.Boolean(), nullable=False, default=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Courses table
    op.create_table(
        'courses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('curriculum', sa.JSON(), nullable=False, default=[]),
        sa.Column('published', sa.Boolean(), nullable=False, default=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Enrollments table
    op.create_table(
        'enrollments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('course_id', sa.Uuid(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('status', sa.String(20), nullable=False, default='enrolled'),
        sa.Column('progress', sa.Integer(), nullable=False, default=0),
        sa.Column('payment_status', sa.String(20), nullable=False, default='none'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        'uq_enrollments_active_user_course',
        'enrollments',
        ['user_id', 'course_id'],
        unique=True,
        sqlite_where=sa.text(ACTIVE_ENROLLMENT),
        postgresql_where=sa.text(ACTIVE_ENROLLMENT),
    )

    # Completed lessons table
    op.create_table(
        'completed_lessons',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('enrollment_id', sa.Uuid(), sa.ForeignKey('enrollments.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('module_index', sa.Integer(), nullable=False),
        sa.Column('topic', sa.Text(), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('enrollment_id', 'module_index', 'topic', name='uq_completed_lessons_enrollment_module_topic'),
    )

    # Certificates table
    op.create_table(
        'certificates',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('enrollment_id', sa.Uuid(), sa.ForeignKey('enrollments.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('course_id', sa.Uuid(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, default='requested', index=True),
        sa.Column('note', sa.Text(), nullable=False, default=''),
        sa.Column('requested_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('serial', sa.String(64), unique=True, nullable=True),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('artifact_ref', sa.Text(), nullable=True),
        sa.Column('issued_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('decided_by', sa.Uuid(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revocation_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        'uq_certificates_active_enrollment',
        'certificates',
        ['enrollment_id'],
        unique=True,
        sqlite_where=sa.text(ACTIVE_CERTIFICATE),
        postgresql_where=sa.text(ACTIVE_CERTIFICATE),
    )

    # Certificate history table (append-only)
    op.create_table(
        'certificate_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('enrollment_id', sa.Uuid(), sa.ForeignKey('enrollments.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('certificate_id', sa.Uuid(), sa.ForeignKey('certificates.id', ondelete='RESTRICT'), nullable=False, index=True),
        sa.Column('actor_id', sa.Uuid(), nullable=True),
        sa.Column('from_state', sa.String(20), nullable=False),
        sa.Column('to_state', sa.String(20), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('artifact_ref', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Event logs table (append-only)
    op.create_table(
        'event_logs',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('event_type', sa.String(100), nullable=False, index=True),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=False, index=True),
        sa.Column('user_id', sa.Uuid(), nullable=True, index=True),
        sa.Column('payload', sa.JSON(), nullable=False, default={}),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False, index=True),
    )
    op.create_index('ix_event_logs_entity', 'event_logs', ['entity_type', 'entity_id'])
    op.create_index('ix_event_logs_type_time', 'event_logs', ['event_type', 'created_at'])


def downgrade() -> None:
    op.drop_table('event_logs')
    op.drop_table('certificate_history')
    op.drop_index('uq_certificates_active_enrollment', table_name='certificates')
    op.drop_table('certificates')
    op.drop_table('completed_lessons')
    op.drop_index('uq_enrollments_active_user_course', table_name='enrollments')
    op.drop_table('enrollments')
    op.drop_table('courses')
    op.drop_table('refresh_tokens')
    op.drop_table('users')
