"""Event lifecycle and retention schema.

Creates:
- events: lifecycle fields plus retention settings and bookkeeping
- event_roles: co-organizers (retention warning recipients)
- wall_posts: event wall, swept by wall retention
- notifications: in-app notifications (retention warnings)
- event_lifecycle_events: immutable audit trail for retention actions

Revision ID: 001_event_retention_schema
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_event_retention_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create event and retention tables."""

    # -------------------------------------------------------------------------
    # 1. events
    # -------------------------------------------------------------------------
    print("  Creating events table...")

    op.create_table(
        'events',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('creator_id', sa.UUID(), nullable=False),
        sa.Column('state', sa.String(length=16), nullable=False, server_default='DRAFT'),
        sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rsvp_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('data_retention_months', sa.Integer(), nullable=False, server_default='24'),
        sa.Column('wall_retention_months', sa.Integer(), nullable=True),
        sa.Column('retention_notification_sent', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('retention_notification_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('archived_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('scheduled_for_deletion_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_events_state', 'events', ['state'], unique=False)
    op.create_index('ix_events_archived_at', 'events', ['archived_at'], unique=False)
    op.create_index('ix_events_scheduled_for_deletion_at', 'events', ['scheduled_for_deletion_at'], unique=False)

    print("  Created events table with 3 indexes")

    # -------------------------------------------------------------------------
    # 2. event_roles, wall_posts, notifications
    # -------------------------------------------------------------------------
    print("  Creating event_roles, wall_posts and notifications tables...")

    op.create_table(
        'event_roles',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('event_id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='ORGANIZER'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_event_roles_event_id', 'event_roles', ['event_id'], unique=False)

    op.create_table(
        'wall_posts',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('event_id', sa.UUID(), nullable=False),
        sa.Column('author_id', sa.UUID(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_wall_posts_event_id_created_at', 'wall_posts', ['event_id', 'created_at'], unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('user_id', sa.UUID(), nullable=False),
        sa.Column('event_id', sa.UUID(), nullable=True),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'], unique=False)
    op.create_index('ix_notifications_event_id', 'notifications', ['event_id'], unique=False)

    print("  Created 3 tables")

    # -------------------------------------------------------------------------
    # 3. event_lifecycle_events
    # -------------------------------------------------------------------------
    print("  Creating event_lifecycle_events table...")

    op.create_table(
        'event_lifecycle_events',
        sa.Column('id', sa.UUID(), nullable=False),
        # Note: No FK to events - entries persist after hard deletion
        sa.Column('event_id', sa.UUID(), nullable=False),
        sa.Column('event_type', sa.String(length=32), nullable=False),
        sa.Column('event_timestamp', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('initiated_by', sa.String(length=32), nullable=False),
        sa.Column('idempotency_key', sa.String(length=128), nullable=True),
        sa.Column('event_metadata', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key', name='uq_event_lifecycle_events_idempotency'),
    )
    op.create_index('ix_event_lifecycle_events_event_id', 'event_lifecycle_events', ['event_id'], unique=False)
    op.create_index('ix_event_lifecycle_events_event_type', 'event_lifecycle_events', ['event_type'], unique=False)

    print("  Created event_lifecycle_events table with 2 indexes")
    print("  Migration complete!")


def downgrade() -> None:
    """Drop event and retention tables."""

    print("  Dropping event_lifecycle_events table...")
    op.drop_index('ix_event_lifecycle_events_event_type', table_name='event_lifecycle_events')
    op.drop_index('ix_event_lifecycle_events_event_id', table_name='event_lifecycle_events')
    op.drop_table('event_lifecycle_events')

    print("  Dropping notifications, wall_posts and event_roles tables...")
    op.drop_index('ix_notifications_event_id', table_name='notifications')
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_wall_posts_event_id_created_at', table_name='wall_posts')
    op.drop_table('wall_posts')
    op.drop_index('ix_event_roles_event_id', table_name='event_roles')
    op.drop_table('event_roles')

    print("  Dropping events table...")
    op.drop_index('ix_events_scheduled_for_deletion_at', table_name='events')
    op.drop_index('ix_events_archived_at', table_name='events')
    op.drop_index('ix_events_state', table_name='events')
    op.drop_table('events')

    print("  Downgrade complete!")
