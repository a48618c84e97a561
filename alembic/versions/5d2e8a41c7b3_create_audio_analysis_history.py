"""create audio_analysis_history table

Revision ID: 5d2e8a41c7b3
Revises:
Create Date: 2026-03-02 10:14:27.518204
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5d2e8a41c7b3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'audio_analysis_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('machine_type', sa.String(), nullable=False),
        sa.Column('uploaded_audio_path', sa.String(), nullable=False),
        sa.Column('health_score', sa.Integer(), nullable=False),
        sa.Column('risk_level', sa.String(length=16), nullable=False),
        sa.Column('fault_type_prediction', sa.String(), nullable=False),
        sa.Column('confidence_score', sa.Float(), nullable=False),
        sa.Column('analysis_date', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_audio_analysis_history_id', 'audio_analysis_history', ['id'])
    op.create_index(
        'ix_audio_analysis_history_user_date', 'audio_analysis_history', ['user_id', 'analysis_date']
    )


def downgrade() -> None:
    op.drop_index('ix_audio_analysis_history_user_date', table_name='audio_analysis_history')
    op.drop_index('ix_audio_analysis_history_id', table_name='audio_analysis_history')
    op.drop_table('audio_analysis_history')
