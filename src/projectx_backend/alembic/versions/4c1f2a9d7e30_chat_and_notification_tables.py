"""chat_and_notification_tables

This migration adds:
1. user table
2. chat_room, chat_participant and chat_message tables
3. notification and user_notification_preference tables

Revision ID: 4c1f2a9d7e30
Revises:
Create Date: 2026-10-18 10:12:41.508213

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4c1f2a9d7e30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - create chat and notification tables."""

    op.create_table('user',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=320), nullable=True),
        sa.Column('password', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=63), server_default='employee', nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user')),
        sa.UniqueConstraint('username', name=op.f('uq_user_username')),
        sa.UniqueConstraint('email', name=op.f('uq_user_email')),
    )

    op.create_table('chat_room',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=False),
        sa.Column('max_members', sa.Integer(), server_default='1000', nullable=False),
        sa.Column('last_message', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['user.id'], name=op.f('fk_chat_room_created_by_user'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_chat_room')),
    )
    op.create_index(op.f('ix_chat_room_created_by'), 'chat_room', ['created_by'], unique=False)

    op.create_table('chat_participant',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('chat_room_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('role', sa.Enum('member', 'read_only', name='chat_role'), server_default='member', nullable=False),
        sa.Column('is_blocked', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.ForeignKeyConstraint(['chat_room_id'], ['chat_room.id'], name=op.f('fk_chat_participant_chat_room_id_chat_room'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name=op.f('fk_chat_participant_user_id_user'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_chat_participant')),
    )
    op.create_index(op.f('ix_chat_participant_chat_room_id'), 'chat_participant', ['chat_room_id'], unique=False)
    op.create_index(op.f('ix_chat_participant_user_id'), 'chat_participant', ['user_id'], unique=False)
    op.create_index('chat_participant_room_user_idx', 'chat_participant', ['chat_room_id', 'user_id'], unique=True)

    op.create_table('chat_message',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('chat_room_id', sa.Integer(), nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.Enum('text', 'image', 'file', 'video', 'audio', name='chat_message_type'), server_default='text', nullable=False),
        sa.Column('status', sa.Enum('sent', 'delivered', 'read', name='chat_message_status'), server_default='sent', nullable=False),
        sa.Column('reply_to_id', sa.Integer(), nullable=True),
        sa.Column('properties', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['chat_room_id'], ['chat_room.id'], name=op.f('fk_chat_message_chat_room_id_chat_room'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['sender_id'], ['user.id'], name=op.f('fk_chat_message_sender_id_user'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reply_to_id'], ['chat_message.id'], name=op.f('fk_chat_message_reply_to_id_chat_message'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_chat_message')),
    )
    op.create_index(op.f('ix_chat_message_chat_room_id'), 'chat_message', ['chat_room_id'], unique=False)
    op.create_index(op.f('ix_chat_message_sender_id'), 'chat_message', ['sender_id'], unique=False)
    op.create_index(op.f('ix_chat_message_reply_to_id'), 'chat_message', ['reply_to_id'], unique=False)
    op.create_index('chat_message_room_created_idx', 'chat_message', ['chat_room_id', 'created_at'], unique=False)

    op.create_table('notification',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('from_user_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name=op.f('fk_notification_user_id_user'), ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['from_user_id'], ['user.id'], name=op.f('fk_notification_from_user_id_user'), ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_notification')),
    )
    op.create_index(op.f('ix_notification_user_id'), 'notification', ['user_id'], unique=False)
    op.create_index(op.f('ix_notification_type'), 'notification', ['type'], unique=False)
    op.create_index(op.f('ix_notification_from_user_id'), 'notification', ['from_user_id'], unique=False)
    op.create_index('notification_user_read_idx', 'notification', ['user_id', 'is_read'], unique=False)

    preference_flags = [
        ('task_assigned', 'true'),
        ('task_updated', 'true'),
        ('task_completed', 'true'),
        ('task_commented', 'true'),
        ('task_due_soon', 'true'),
        ('project_created', 'true'),
        ('user_joined', 'true'),
        ('file_uploaded', 'true'),
        ('email_notifications', 'false'),
        ('push_notifications', 'true'),
        ('in_app_notifications', 'true'),
    ]
    op.create_table('user_notification_preference',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        *[
            sa.Column(name, sa.Boolean(), server_default=sa.text(default), nullable=False)
            for name, default in preference_flags
        ],
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], name=op.f('fk_user_notification_preference_user_id_user'), ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_user_notification_preference')),
        sa.UniqueConstraint('user_id', name=op.f('uq_user_notification_preference_user_id')),
    )


def downgrade() -> None:
    """Downgrade schema - drop chat and notification tables."""
    op.drop_table('user_notification_preference')
    op.drop_index('notification_user_read_idx', table_name='notification')
    op.drop_table('notification')
    op.drop_index('chat_message_room_created_idx', table_name='chat_message')
    op.drop_table('chat_message')
    op.drop_index('chat_participant_room_user_idx', table_name='chat_participant')
    op.drop_table('chat_participant')
    op.drop_table('chat_room')
    op.drop_table('user')

    sa.Enum(name='chat_message_status').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='chat_message_type').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='chat_role').drop(op.get_bind(), checkfirst=True)
