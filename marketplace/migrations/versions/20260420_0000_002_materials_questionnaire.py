"""Materials questionnaire questions and answers

Revision ID: 002
Revises: 001
Create Date: 2026-04-20 00:00:00.000000

Replaces the questionnaire counters of materials jobs with one row per
question, answered individually.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "material_questionnaire_responses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("question_key", sa.String(100), nullable=False),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_category", sa.String(50), nullable=False),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("answer_text", sa.Text(), nullable=True),
        sa.Column("answered_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["material_generation_jobs.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_material_questionnaire_responses_job_id", "material_questionnaire_responses", ["job_id"]
    )

    op.add_column(
        "material_generation_jobs", sa.Column("questionnaire_completed_at", sa.DateTime(), nullable=True)
    )
    op.drop_column("material_generation_jobs", "questions_total")
    op.drop_column("material_generation_jobs", "questions_answered")


def downgrade() -> None:
    op.add_column(
        "material_generation_jobs",
        sa.Column("questions_answered", sa.Integer(), nullable=False, server_default="0"),
    )
    op.add_column(
        "material_generation_jobs",
        sa.Column("questions_total", sa.Integer(), nullable=False, server_default="0"),
    )
    op.drop_column("material_generation_jobs", "questionnaire_completed_at")
    op.drop_table("material_questionnaire_responses")
