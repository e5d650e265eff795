"""initial quiz schema: users, game config, questions, answer keys, teams, audit log

Revision ID: 5c2e9d1a7b40
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5c2e9d1a7b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    # Databases bootstrapped with `flask db-reset` already have everything
    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('username', sa.String(length=64), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_user_username', 'user', ['username'], unique=True)

    if 'game_config' not in existing_tables:
        op.create_table(
            'game_config',
            sa.Column('app_id', sa.String(length=128), nullable=False),
            sa.Column('status', sa.String(length=16), nullable=False),
            sa.Column('total_questions', sa.Integer(), nullable=False),
            sa.Column('first_question_id', sa.String(length=128), nullable=True),
            sa.PrimaryKeyConstraint('app_id'),
        )

    if 'question' not in existing_tables:
        op.create_table(
            'question',
            sa.Column('app_id', sa.String(length=128), nullable=False),
            sa.Column('id', sa.String(length=128), nullable=False),
            sa.Column('title', sa.String(length=256), nullable=True),
            sa.Column('prompt', sa.Text(), nullable=True),
            sa.Column('next_question_id', sa.String(length=128), nullable=True),
            sa.Column('position', sa.Integer(), nullable=False),
            sa.PrimaryKeyConstraint('app_id', 'id'),
        )

    if 'answer_key' not in existing_tables:
        op.create_table(
            'answer_key',
            sa.Column('app_id', sa.String(length=128), nullable=False),
            sa.Column('question_id', sa.String(length=128), nullable=False),
            sa.Column('correct_answer', sa.Text(), nullable=False),
            sa.PrimaryKeyConstraint('app_id', 'question_id'),
        )

    if 'team' not in existing_tables:
        op.create_table(
            'team',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('app_id', sa.String(length=128), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=64), nullable=False),
            sa.Column('current_question_id', sa.String(length=128), nullable=True),
            sa.Column('start_time', sa.Float(), nullable=True),
            sa.Column('end_time', sa.Float(), nullable=True),
            sa.Column('score', sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(['user_id'], ['user.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('app_id', 'user_id', name='uq_team_app_user'),
            sqlite_autoincrement=True,
        )
        op.create_index('ix_team_app_id', 'team', ['app_id'])

    if 'solved_part' not in existing_tables:
        op.create_table(
            'solved_part',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('team_id', sa.Integer(), nullable=False),
            sa.Column('question_id', sa.String(length=128), nullable=False),
            sa.Column('solved_at', sa.Float(), nullable=False),
            sa.ForeignKeyConstraint(['team_id'], ['team.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('team_id', 'question_id', name='uq_solved_part_team_question'),
        )

    if 'answer_attempt' not in existing_tables:
        op.create_table(
            'answer_attempt',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('app_id', sa.String(length=128), nullable=False),
            sa.Column('team_id', sa.Integer(), nullable=True),
            sa.Column('question_id', sa.String(length=128), nullable=False),
            sa.Column('submitted_answer', sa.Text(), nullable=False),
            sa.Column('is_correct', sa.Boolean(), nullable=False),
            sa.Column('timestamp', sa.Float(), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_answer_attempt_app_id', 'answer_attempt', ['app_id'])
        op.create_index('ix_answer_attempt_team_id', 'answer_attempt', ['team_id'])


def downgrade():
    op.drop_index('ix_answer_attempt_team_id', table_name='answer_attempt')
    op.drop_index('ix_answer_attempt_app_id', table_name='answer_attempt')
    op.drop_table('answer_attempt')
    op.drop_table('solved_part')
    op.drop_index('ix_team_app_id', table_name='team')
    op.drop_table('team')
    op.drop_table('answer_key')
    op.drop_table('question')
    op.drop_table('game_config')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
