"""add prep_word_ratings to game_session

Revision ID: 9a1e5c07d2f4
Revises: 4c7d2e91ab30
Create Date: 2025-09-21 16:05:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '9a1e5c07d2f4'
down_revision = '4c7d2e91ab30'
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    cols = {c['name'] for c in insp.get_columns('game_session')}
    with op.batch_alter_table('game_session') as batch_op:
        if 'prep_word_ratings' not in cols:
            batch_op.add_column(sa.Column('prep_word_ratings', sa.Text(), nullable=True))


def downgrade():
    with op.batch_alter_table('game_session') as batch_op:
        batch_op.drop_column('prep_word_ratings')
