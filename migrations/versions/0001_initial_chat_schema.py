"""Initial chat schema

Revision ID: 0001_initial_chat_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001_initial_chat_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'projects',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('color', sa.String(length=20), server_default='#2563eb', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_projects_updated_at', 'projects', ['updated_at'])

    op.create_table(
        'threads',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('project_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('title', sa.String(length=255), server_default='New Chat', nullable=False),
        sa.Column('last_activity', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column('message_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('messages', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_threads_project_activity', 'threads', ['project_id', 'last_activity'])

    op.create_table(
        'blob_files',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('thread_id', sa.String(length=64), nullable=True),
        sa.Column('openai_file_id', sa.String(length=64), nullable=True),
        sa.Column('blob_url', sa.String(length=1024), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('content_type', sa.String(length=255), server_default='application/octet-stream', nullable=False),
        sa.Column('file_size', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column('accessed_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_blob_files_thread_id', 'blob_files', ['thread_id'])
    op.create_index('ix_blob_files_openai_file_id', 'blob_files', ['openai_file_id'])
    op.create_index('ix_blob_files_accessed_at', 'blob_files', ['accessed_at'])

    op.create_table(
        'storage_metrics',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('total_size_bytes', sa.BigInteger(), server_default='0', nullable=False),
        sa.Column('file_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_cleanup_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    # Singleton row keyed by the all-zero UUID
    op.execute(
        "INSERT INTO storage_metrics (id, total_size_bytes, file_count) "
        "VALUES ('00000000-0000-0000-0000-000000000000', 0, 0)"
    )

    op.create_table(
        'thread_shares',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('thread_id', sa.String(length=64), nullable=False),
        sa.Column('share_token', sa.String(length=128), nullable=False),
        sa.Column('permissions', sa.String(length=20), server_default='read', nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.ForeignKeyConstraint(['thread_id'], ['threads.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_thread_shares_thread_id', 'thread_shares', ['thread_id'])
    op.create_index('ix_thread_shares_share_token', 'thread_shares', ['share_token'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_thread_shares_share_token', table_name='thread_shares')
    op.drop_index('ix_thread_shares_thread_id', table_name='thread_shares')
    op.drop_table('thread_shares')
    op.drop_table('storage_metrics')
    op.drop_index('ix_blob_files_accessed_at', table_name='blob_files')
    op.drop_index('ix_blob_files_openai_file_id', table_name='blob_files')
    op.drop_index('ix_blob_files_thread_id', table_name='blob_files')
    op.drop_table('blob_files')
    op.drop_index('idx_threads_project_activity', table_name='threads')
    op.drop_table('threads')
    op.drop_index('idx_projects_updated_at', table_name='projects')
    op.drop_table('projects')
