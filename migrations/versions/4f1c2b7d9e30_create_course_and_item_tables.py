"""create course and item tables

Revision ID: 4f1c2b7d9e30
Revises:
Create Date: 2026-10-16 09:12:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4f1c2b7d9e30'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _srs_columns() -> list[sa.Column]:
    return [
        sa.Column('correct_count', sa.Integer(), nullable=True),
        sa.Column('wrong_count', sa.Integer(), nullable=True),
        sa.Column('next_review', sa.DateTime(), nullable=True),
        sa.Column('last_reviewed', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    """Create courses plus the word, cloze sentence and character tables."""
    op.create_table(
        'courses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False, unique=True),
        sa.Column('kind', sa.String(), nullable=False),
        sa.Column('native_language', sa.String(), nullable=True),
        sa.Column('target_language', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'words',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('native', sa.String(), nullable=False),
        sa.Column('target', sa.String(), nullable=False),
        sa.Column('pronunciation', sa.String(), nullable=True),
        sa.Column('part_of_speech', sa.String(), nullable=True),
        sa.Column('level', sa.Integer(), nullable=True),
        sa.Column('srs_level', sa.Integer(), nullable=True),
        sa.Column('mastery_level', sa.String(), nullable=True),
        sa.Column('is_difficult', sa.Boolean(), nullable=True),
        *_srs_columns(),
    )
    op.create_index('ix_words_course_id', 'words', ['course_id'])
    op.create_table(
        'cloze_sentences',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('native', sa.Text(), nullable=False),
        sa.Column('target', sa.Text(), nullable=False),
        sa.Column('cloze_text', sa.Text(), nullable=False),
        sa.Column('answer', sa.String(), nullable=False),
        sa.Column('srs_level', sa.Integer(), nullable=True),
        sa.Column('mastery_level', sa.String(), nullable=True),
        sa.Column('is_difficult', sa.Boolean(), nullable=True),
        *_srs_columns(),
    )
    op.create_index('ix_cloze_sentences_course_id', 'cloze_sentences', ['course_id'])
    op.create_table(
        'characters',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('character', sa.String(), nullable=False),
        sa.Column('meaning', sa.Text(), nullable=False),
        sa.Column('pronunciation', sa.String(), nullable=True),
        sa.Column('language', sa.String(), nullable=True),
        sa.Column('level', sa.Integer(), nullable=True),
        sa.Column('srs_stage', sa.String(), nullable=True),
        sa.Column('meaning_correct', sa.Integer(), nullable=True),
        sa.Column('meaning_wrong', sa.Integer(), nullable=True),
        sa.Column('reading_correct', sa.Integer(), nullable=True),
        sa.Column('reading_wrong', sa.Integer(), nullable=True),
        *_srs_columns(),
    )
    op.create_index('ix_characters_course_id', 'characters', ['course_id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('ix_characters_course_id', table_name='characters')
    op.drop_table('characters')
    op.drop_index('ix_cloze_sentences_course_id', table_name='cloze_sentences')
    op.drop_table('cloze_sentences')
    op.drop_index('ix_words_course_id', table_name='words')
    op.drop_table('words')
    op.drop_table('courses')
