"""constrain health_score, confidence_score and risk_level

Revision ID: 9b41f07e2d6a
Revises: 5d2e8a41c7b3
Create Date: 2026-03-05 16:41:03.902117
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '9b41f07e2d6a'
down_revision: Union[str, None] = '5d2e8a41c7b3'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # batch mode so the same migration also runs on SQLite
    with op.batch_alter_table('audio_analysis_history') as batch_op:
        batch_op.create_check_constraint('ck_health_score_range', 'health_score BETWEEN 0 AND 100')
        batch_op.create_check_constraint('ck_confidence_score_range', 'confidence_score BETWEEN 0 AND 100')
        batch_op.create_check_constraint(
            'ck_risk_level_enum', "risk_level IN ('healthy', 'warning', 'critical')"
        )


def downgrade() -> None:
    with op.batch_alter_table('audio_analysis_history') as batch_op:
        batch_op.drop_constraint('ck_risk_level_enum', type_='check')
        batch_op.drop_constraint('ck_confidence_score_range', type_='check')
        batch_op.drop_constraint('ck_health_score_range', type_='check')
