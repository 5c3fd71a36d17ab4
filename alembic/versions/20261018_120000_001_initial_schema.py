"""Initial schema: users, profiles, matches, blocks, threads, messages, meetings.

Revision ID: 001
Revises:
Create Date: 2026-10-18 12:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all initial tables."""

    # Users table
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=True, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('last_active_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Profiles table
    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('age', sa.Integer(), nullable=False),
        sa.Column('university', sa.String(200), nullable=False),
        sa.Column('location', sa.String(200), nullable=False),

        # Lifestyle
        sa.Column('cleanliness_level', sa.Integer(), nullable=False),
        sa.Column('sleep_schedule', sa.String(30), nullable=False),
        sa.Column('study_habits', sa.String(30), nullable=False),
        sa.Column('social_level', sa.String(30), nullable=False),
        sa.Column('personality', sa.String(30), nullable=False),
        sa.Column('interests', sa.JSON(), nullable=True),
        sa.Column('smoking_preference', sa.String(30), nullable=False),
        sa.Column('pets_tolerance', sa.String(30), nullable=False),

        # Monthly budget range
        sa.Column('budget_min', sa.Integer(), nullable=False),
        sa.Column('budget_max', sa.Integer(), nullable=False),

        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('profile_photo', sa.String(500), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('user_id', name='uq_profiles_user_id'),
        sa.CheckConstraint('cleanliness_level BETWEEN 1 AND 5', name='cleanliness_range_check'),
        sa.CheckConstraint('budget_min <= budget_max', name='budget_range_check'),
    )
    op.create_index('ix_profiles_university', 'profiles', ['university'])
    op.create_index('ix_profiles_location', 'profiles', ['location'])

    # Matches table, one row per unordered pair
    op.create_table(
        'matches',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_a_id', sa.Uuid(), nullable=False),
        sa.Column('user_b_id', sa.Uuid(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('initiated_by', sa.Uuid(), nullable=True),
        sa.Column('confirmed_by', sa.Uuid(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('declined_by', sa.Uuid(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_a_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_b_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['initiated_by'], ['users.id']),
        sa.ForeignKeyConstraint(['confirmed_by'], ['users.id']),
        sa.ForeignKeyConstraint(['declined_by'], ['users.id']),
        sa.UniqueConstraint('user_a_id', 'user_b_id', name='uq_matches_pair'),
        sa.CheckConstraint('user_a_id < user_b_id', name='user_order_check'),
    )
    op.create_index('ix_matches_user_a_id', 'matches', ['user_a_id'])
    op.create_index('ix_matches_user_b_id', 'matches', ['user_b_id'])

    # Blocks table (directed, enforced both ways)
    op.create_table(
        'blocks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('blocker_id', sa.Uuid(), nullable=False),
        sa.Column('blocked_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['blocker_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['blocked_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('blocker_id', 'blocked_id', name='uq_blocks_pair'),
    )
    op.create_index('ix_blocks_blocker_id', 'blocks', ['blocker_id'])
    op.create_index('ix_blocks_blocked_id', 'blocks', ['blocked_id'])

    # Threads table
    op.create_table(
        'threads',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('participant_a_id', sa.Uuid(), nullable=False),
        sa.Column('participant_b_id', sa.Uuid(), nullable=False),
        sa.Column('context_id', sa.Uuid(), nullable=True),
        sa.Column('scope_key', sa.String(64), nullable=False, server_default='direct'),
        sa.Column('last_message_id', sa.Uuid(), nullable=True),
        sa.Column('last_message_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('unread_a', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unread_b', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['participant_a_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['participant_b_id'], ['users.id'], ondelete='CASCADE'),
        sa.UniqueConstraint(
            'participant_a_id', 'participant_b_id', 'scope_key', name='uq_threads_pair_scope'
        ),
        sa.CheckConstraint('participant_a_id < participant_b_id', name='participant_order_check'),
    )
    op.create_index('ix_threads_participant_a_id', 'threads', ['participant_a_id'])
    op.create_index('ix_threads_participant_b_id', 'threads', ['participant_b_id'])
    op.create_index('ix_threads_last_message_at', 'threads', ['last_message_at'])

    # Messages table
    op.create_table(
        'messages',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('thread_id', sa.Uuid(), nullable=False),
        sa.Column('sender_id', sa.Uuid(), nullable=False),
        sa.Column('recipient_id', sa.Uuid(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='sent'),
        sa.Column('flags', sa.JSON(), nullable=True),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['thread_id'], ['threads.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id']),
        sa.ForeignKeyConstraint(['recipient_id'], ['users.id']),
    )
    op.create_index('ix_messages_thread_id', 'messages', ['thread_id'])
    op.create_index('ix_messages_recipient_id', 'messages', ['recipient_id'])
    op.create_index('ix_messages_created_at', 'messages', ['created_at'])

    # Meetings table
    op.create_table(
        'meetings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('match_id', sa.Uuid(), nullable=False),
        sa.Column('scheduled_by', sa.Uuid(), nullable=False),
        sa.Column('meeting_type', sa.String(20), nullable=False),
        sa.Column('meeting_link', sa.String(500), nullable=True),
        sa.Column('location', sa.String(200), nullable=True),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='scheduled'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['match_id'], ['matches.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['scheduled_by'], ['users.id']),
    )
    op.create_index('ix_meetings_match_id', 'meetings', ['match_id'])


def downgrade() -> None:
    """Drop all tables in reverse order."""
    op.drop_table('meetings')
    op.drop_table('messages')
    op.drop_table('threads')
    op.drop_table('blocks')
    op.drop_table('matches')
    op.drop_table('profiles')
    op.drop_table('users')
