"""Initial schema: entries, versions, metadata and diffs

Revision ID: 3f1c2a9d7e40
Revises:
Create Date: 2026-10-19 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7e40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


CHANGE_TYPES = ('create', 'update')
DIFF_OPERATIONS = ('insert', 'delete', 'replace')


def upgrade() -> None:
    """Create the index tables."""
    op.create_table(
        'journal_entries',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('file_path', sa.String(length=255), nullable=False),
        sa.Column('content_hash', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("file_path != ''", name='ck_entry_non_empty_file_path'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('file_path'),
    )
    op.create_index(
        'ix_journal_entries_updated_at', 'journal_entries', ['updated_at'], unique=False
    )

    op.create_table(
        'entry_versions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('entry_id', sa.String(length=36), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('change_type', sa.Enum(*CHANGE_TYPES, name='changetype'), nullable=False),
        sa.Column('diff', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('sequence >= 1', name='positive_version_sequence'),
        sa.ForeignKeyConstraint(['entry_id'], ['journal_entries.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('entry_id', 'sequence', name='uq_version_entry_sequence'),
    )
    op.create_index(
        'ix_entry_versions_entry_id', 'entry_versions', ['entry_id'], unique=False
    )

    op.create_table(
        'entry_metadata',
        sa.Column('entry_id', sa.String(length=36), nullable=False),
        sa.Column('word_count', sa.Integer(), nullable=False),
        sa.Column('reading_time', sa.Float(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('last_accessed', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('word_count >= 0', name='positive_metadata_word_count'),
        sa.CheckConstraint('reading_time >= 0.0', name='positive_metadata_reading_time'),
        sa.ForeignKeyConstraint(['entry_id'], ['journal_entries.id']),
        sa.PrimaryKeyConstraint('entry_id'),
    )

    op.create_table(
        'entry_diffs',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('version_id', sa.String(length=36), nullable=False),
        sa.Column('position_index', sa.Integer(), nullable=False),
        sa.Column('operation', sa.Enum(*DIFF_OPERATIONS, name='diffoperation'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('length', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['version_id'], ['entry_versions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('version_id', 'position_index', name='uq_diff_version_index'),
    )
    op.create_index(
        'ix_entry_diffs_version_id', 'entry_diffs', ['version_id'], unique=False
    )


def downgrade() -> None:
    """Drop the index tables."""
    op.drop_index('ix_entry_diffs_version_id', table_name='entry_diffs')
    op.drop_table('entry_diffs')
    op.drop_table('entry_metadata')
    op.drop_index('ix_entry_versions_entry_id', table_name='entry_versions')
    op.drop_table('entry_versions')
    op.drop_index('ix_journal_entries_updated_at', table_name='journal_entries')
    op.drop_table('journal_entries')
