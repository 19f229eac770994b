"""initial tasting schema

Revision ID: a1c4e7d20b13
Revises:
Create Date: 2026-10-18 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c4e7d20b13'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user_profiles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(128), nullable=True),
        sa.Column('password_hash', sa.String(128), nullable=False),
        sa.Column('email_confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_disabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('disabled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('disabled_by', sa.String(36), sa.ForeignKey('user_profiles.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_user_profiles_email', 'user_profiles', ['email'], unique=True)

    op.create_table(
        'sessions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('code', sa.String(16), nullable=False),
        sa.Column('host_name', sa.String(128), nullable=False),
        sa.Column('host_user_id', sa.String(36), sa.ForeignKey('user_profiles.id'), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='waiting'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('waiting', 'collecting', 'reviewing', 'revealed', 'finished')",
            name='ck_sessions_status',
        ),
    )
    op.create_index('ix_sessions_code', 'sessions', ['code'], unique=True)
    op.create_index('ix_sessions_host_user_id', 'sessions', ['host_user_id'])

    op.create_table(
        'participants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id'), nullable=False),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('user_profiles.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_participants_session_id', 'participants', ['session_id'])
    op.create_index('ix_participants_user_id', 'participants', ['user_id'])

    op.create_table(
        'whiskies',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('abv', sa.Float(), nullable=False),
        sa.Column('region', sa.String(128), nullable=False),
        sa.Column('distillery', sa.String(128), nullable=False),
        sa.Column('category', sa.String(128), nullable=False, server_default=''),
        sa.Column('bottling_type', sa.String(2), nullable=False, server_default='OB'),
        sa.Column('cask_type', sa.String(128), nullable=True),
        sa.Column('host_score', sa.Float(), nullable=True),
        sa.Column('whiskybase_link', sa.String(512), nullable=True),
        sa.Column('tasting_reference', sa.Text(), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('session_id', 'order_index', name='uq_whiskies_session_order'),
    )
    op.create_index('ix_whiskies_session_id', 'whiskies', ['session_id'])

    op.create_table(
        'submissions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id'), nullable=False),
        sa.Column('participant_id', sa.String(36), sa.ForeignKey('participants.id'), nullable=False),
        sa.Column('whisky_id', sa.String(36), sa.ForeignKey('whiskies.id'), nullable=False),
        sa.Column('guessed_name', sa.String(255), nullable=False),
        sa.Column('guessed_score', sa.Float(), nullable=False),
        sa.Column('guessed_age', sa.Integer(), nullable=True),
        sa.Column('guessed_abv', sa.Float(), nullable=False),
        sa.Column('guessed_region', sa.String(128), nullable=False),
        sa.Column('guessed_distillery', sa.String(128), nullable=False),
        sa.Column('guessed_category', sa.String(128), nullable=False, server_default=''),
        sa.Column('guessed_bottling_type', sa.String(2), nullable=False, server_default='OB'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('participant_id', 'whisky_id', name='uq_submissions_participant_whisky'),
    )
    op.create_index('ix_submissions_session_id', 'submissions', ['session_id'])

    op.create_table(
        'regions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(128), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        'distilleries',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('region_id', sa.String(36), sa.ForeignKey('regions.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_distilleries_region_id', 'distilleries', ['region_id'])

    op.create_table(
        'session_invitations',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('session_id', sa.String(36), sa.ForeignKey('sessions.id'), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('invited_by', sa.String(36), sa.ForeignKey('user_profiles.id'), nullable=True),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('session_id', 'email', name='uq_session_invitations_session_email'),
    )
    op.create_index('ix_session_invitations_session_id', 'session_invitations', ['session_id'])
    op.create_index('ix_session_invitations_email', 'session_invitations', ['email'])

    op.create_table(
        'keep_alive',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(64), nullable=True),
        sa.Column('random', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade():
    op.drop_table('keep_alive')
    op.drop_index('ix_session_invitations_email', table_name='session_invitations')
    op.drop_index('ix_session_invitations_session_id', table_name='session_invitations')
    op.drop_table('session_invitations')
    op.drop_index('ix_distilleries_region_id', table_name='distilleries')
    op.drop_table('distilleries')
    op.drop_table('regions')
    op.drop_index('ix_submissions_session_id', table_name='submissions')
    op.drop_table('submissions')
    op.drop_index('ix_whiskies_session_id', table_name='whiskies')
    op.drop_table('whiskies')
    op.drop_index('ix_participants_user_id', table_name='participants')
    op.drop_index('ix_participants_session_id', table_name='participants')
    op.drop_table('participants')
    op.drop_index('ix_sessions_host_user_id', table_name='sessions')
    op.drop_index('ix_sessions_code', table_name='sessions')
    op.drop_table('sessions')
    op.drop_index('ix_user_profiles_email', table_name='user_profiles')
    op.drop_table('user_profiles')
