"""Create survey, voice and admin tables.

Revision ID: V0001
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "V0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "survey_responses",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("session_id", sa.String(128), nullable=False),
        sa.Column("survey_type", sa.String(32), nullable=True),
        sa.Column("current_step", sa.String(64), nullable=False, server_default="unknown"),
        sa.Column("form_data", JSON_TYPE, nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("client_seq", sa.BigInteger(), nullable=True),
        sa.Column("ai_summary", JSON_TYPE, nullable=True),
        sa.Column("ai_summary_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "started_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_survey_responses_session_id", "survey_responses", ["session_id"], unique=True)
    op.create_index("ix_survey_responses_survey_type", "survey_responses", ["survey_type"])
    op.create_index("ix_survey_responses_email", "survey_responses", ["email"])
    op.create_index("ix_survey_responses_started_at", "survey_responses", ["started_at"])

    # session_id is not a foreign key: uploads may arrive before the first save
    op.create_table(
        "voice_recordings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("session_id", sa.String(128), nullable=False),
        sa.Column("step_number", sa.Integer(), nullable=False),
        sa.Column("storage_key", sa.String(512), nullable=False),
        sa.Column("file_url", sa.String(1024), nullable=False),
        sa.Column("duration", sa.Float(), nullable=False, server_default="0"),
        sa.Column("transcript", sa.Text(), nullable=True),
        sa.Column("extracted_data", JSON_TYPE, nullable=True),
        sa.Column("processing_status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_voice_recordings_session_id", "voice_recordings", ["session_id"])
    op.create_index("ix_voice_recordings_processing_status", "voice_recordings", ["processing_status"])

    op.create_table(
        "response_tags",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("color", sa.String(16), nullable=False, server_default="#3B82F6"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )

    op.create_table(
        "response_tag_assignments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "response_id",
            sa.Uuid(),
            sa.ForeignKey("survey_responses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "tag_id",
            sa.Uuid(),
            sa.ForeignKey("response_tags.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("response_id", "tag_id", name="uq_response_tag"),
    )
    op.create_index("ix_response_tag_assignments_response_id", "response_tag_assignments", ["response_id"])
    op.create_index("ix_response_tag_assignments_tag_id", "response_tag_assignments", ["tag_id"])

    op.create_table(
        "admin_notes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "response_id",
            sa.Uuid(),
            sa.ForeignKey("survey_responses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_admin_notes_response_id", "admin_notes", ["response_id"])

    op.create_table(
        "ai_insights_cache",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("insight_type", sa.String(64), nullable=False, unique=True),
        sa.Column("data", JSON_TYPE, nullable=False),
        sa.Column("response_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "generated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("ai_insights_cache")
    op.drop_index("ix_admin_notes_response_id", table_name="admin_notes")
    op.drop_table("admin_notes")
    op.drop_index("ix_response_tag_assignments_tag_id", table_name="response_tag_assignments")
    op.drop_index("ix_response_tag_assignments_response_id", table_name="response_tag_assignments")
    op.drop_table("response_tag_assignments")
    op.drop_table("response_tags")
    op.drop_index("ix_voice_recordings_processing_status", table_name="voice_recordings")
    op.drop_index("ix_voice_recordings_session_id", table_name="voice_recordings")
    op.drop_table("voice_recordings")
    op.drop_index("ix_survey_responses_started_at", table_name="survey_responses")
    op.drop_index("ix_survey_responses_email", table_name="survey_responses")
    op.drop_index("ix_survey_responses_survey_type", table_name="survey_responses")
    op.drop_index("ix_survey_responses_session_id", table_name="survey_responses")
    op.drop_table("survey_responses")
