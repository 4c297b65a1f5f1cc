"""Initial migration: profiles, decks, flashcards and generation events

Revision ID: initial
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create profiles table
    op.create_table(
        'profiles',
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('monthly_ai_flashcards_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('ai_limit_reset_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('monthly_ai_flashcards_count >= 0', name='ck_profiles_ai_count_non_negative'),
        sa.PrimaryKeyConstraint('user_id')
    )

    # Create decks table
    op.create_table(
        'decks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_decks_user_id'), 'decks', ['user_id'], unique=False)

    # Create flashcards table
    op.create_table(
        'flashcards',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('deck_id', sa.Uuid(), nullable=False),
        sa.Column('front', sa.String(), nullable=False),
        sa.Column('back', sa.String(), nullable=False),
        sa.Column('source', sa.Enum('AI', 'MANUAL', name='flashcardsource'), nullable=False),
        sa.Column('stability', sa.Float(), nullable=False, server_default='0'),
        sa.Column('difficulty', sa.Float(), nullable=False, server_default='0'),
        sa.Column('elapsed_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('scheduled_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('lapses', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('state', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_review', sa.DateTime(), nullable=True),
        sa.Column('next_review', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('state BETWEEN 0 AND 3', name='ck_flashcards_state'),
        sa.ForeignKeyConstraint(['deck_id'], ['decks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_flashcards_deck_id'), 'flashcards', ['deck_id'], unique=False)
    # Due-card queries filter and sort on next_review
    op.create_index('idx_flashcards_next_review', 'flashcards', ['next_review'], unique=False)
    op.create_index('idx_flashcards_deck_next_review', 'flashcards', ['deck_id', 'next_review'], unique=False)

    # Create generation_events table
    op.create_table(
        'generation_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('flashcard_id', sa.Uuid(), nullable=True),
        sa.Column('generation_id', sa.Uuid(), nullable=False),
        sa.Column(
            'event_type',
            sa.Enum('GENERATED', 'ACCEPTED', 'REJECTED', 'EDITED', name='generationeventtype'),
            nullable=False
        ),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['flashcard_id'], ['flashcards.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_generation_events_user_id'), 'generation_events', ['user_id'], unique=False)
    op.create_index(op.f('ix_generation_events_generation_id'), 'generation_events', ['generation_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_generation_events_generation_id'), table_name='generation_events')
    op.drop_index(op.f('ix_generation_events_user_id'), table_name='generation_events')
    op.drop_table('generation_events')

    op.drop_index('idx_flashcards_deck_next_review', table_name='flashcards')
    op.drop_index('idx_flashcards_next_review', table_name='flashcards')
    op.drop_index(op.f('ix_flashcards_deck_id'), table_name='flashcards')
    op.drop_table('flashcards')

    op.drop_index(op.f('ix_decks_user_id'), table_name='decks')
    op.drop_table('decks')

    op.drop_table('profiles')

    sa.Enum(name='generationeventtype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='flashcardsource').drop(op.get_bind(), checkfirst=True)
