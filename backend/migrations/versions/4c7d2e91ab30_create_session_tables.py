"""create game_session, session_player, word, word_owner and combat_log

Revision ID: 4c7d2e91ab30
Revises:
Create Date: 2025-09-14 10:20:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7d2e91ab30'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'game_session' not in existing_tables:
        op.create_table(
            'game_session',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('code', sa.String(length=12), nullable=False),
            sa.Column('name', sa.String(length=100), nullable=False),
            sa.Column('gm_id', sa.String(length=64), nullable=False),
            sa.Column('encounter_sentence', sa.Text(), nullable=True),
            sa.Column('encounter_noun', sa.String(length=50), nullable=True),
            sa.Column('encounter_verb', sa.String(length=50), nullable=True),
            sa.Column('encounter_adjective', sa.String(length=50), nullable=True),
            sa.Column('encounter_threat', sa.Integer(), nullable=True),
            sa.Column('encounter_difficulty', sa.Integer(), nullable=True),
            sa.Column('encounter_length', sa.Integer(), nullable=True),
            sa.Column('is_prep_turn', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('current_prep_word_index', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('current_prep_word_turn_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('vowels', sa.Text(), nullable=False),
            sa.Column('current_turn', sa.Integer(), nullable=False, server_default='1'),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('prep_word_meanings', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_game_session_code', 'game_session', ['code'], unique=True)

    if 'session_player' not in existing_tables:
        op.create_table(
            'session_player',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('session_id', sa.Integer(), sa.ForeignKey('game_session.id'), nullable=False),
            sa.Column('user_id', sa.String(length=64), nullable=False),
            sa.Column('player_name', sa.String(length=100), nullable=True),
            sa.Column('nerve', sa.Integer(), nullable=False, server_default='8'),
            sa.Column('max_nerve', sa.Integer(), nullable=False, server_default='8'),
            sa.Column('turn_order', sa.Integer(), nullable=True),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('is_active_turn', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('joined_at', sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint('session_id', 'user_id', name='uq_session_player_user'),
        )
        op.create_index('ix_session_player_session_id', 'session_player', ['session_id'])

    if 'word' not in existing_tables:
        op.create_table(
            'word',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('session_id', sa.Integer(), sa.ForeignKey('game_session.id'), nullable=False),
            sa.Column('word', sa.String(length=50), nullable=False),
            sa.Column('meaning', sa.Text(), nullable=False, server_default=''),
            sa.Column('category', sa.String(length=20), nullable=False, server_default='noun'),
            sa.Column('potency', sa.Integer(), nullable=True),
            sa.Column('is_approved', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint('session_id', 'word', name='uq_word_session_text'),
        )
        op.create_index('ix_word_session_id', 'word', ['session_id'])

    if 'word_owner' not in existing_tables:
        op.create_table(
            'word_owner',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('word_id', sa.Integer(), sa.ForeignKey('word.id'), nullable=False),
            sa.Column('owner_id', sa.String(length=64), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint('word_id', 'owner_id', name='uq_word_owner'),
        )
        op.create_index('ix_word_owner_word_id', 'word_owner', ['word_id'])

    if 'combat_log' not in existing_tables:
        op.create_table(
            'combat_log',
            sa.Column('id', sa.Integer(), primary_key=True),
            sa.Column('session_id', sa.Integer(), sa.ForeignKey('game_session.id'), nullable=False),
            sa.Column('player_id', sa.String(length=64), nullable=False),
            sa.Column('sentence', sa.Text(), nullable=False),
            sa.Column('used_words', sa.Text(), nullable=False),
            sa.Column('dice_roll', sa.Integer(), nullable=False),
            sa.Column('total_potency', sa.Integer(), nullable=False),
            sa.Column('final_result', sa.Integer(), nullable=False),
            sa.Column('turn_number', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index('ix_combat_log_session_id', 'combat_log', ['session_id'])


def downgrade():
    op.drop_table('combat_log')
    op.drop_table('word_owner')
    op.drop_table('word')
    op.drop_table('session_player')
    op.drop_table('game_session')
