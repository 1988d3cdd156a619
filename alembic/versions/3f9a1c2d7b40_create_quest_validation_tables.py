"""create_quest_validation_tables

Revision ID: 3f9a1c2d7b40
Revises:
Create Date: 2026-10-17 09:12:41.318204

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c2d7b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLModel persists str enums by member name
quest_status = sa.Enum("DRAFT", "ACTIVE", "COMPLETED", "ARCHIVED", name="queststatus")
validation_status = sa.Enum("PENDING", "SUCCESS", "FAILED", "PARTIAL", name="validationstatus")


def upgrade() -> None:
    """Create quests, quest_validations and quest_validation_results tables."""
    op.create_table(
        "quests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(), nullable=False),
        sa.Column("status", quest_status, nullable=False),
        sa.Column("criteria", sa.JSON(), nullable=False),
        sa.Column("network", sa.String(length=64), nullable=False),
        sa.Column("token_address", sa.String(length=256), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quests_status", "quests", ["status"])
    op.create_index("ix_quests_user_id", "quests", ["user_id"])

    op.create_table(
        "quest_validations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("quest_id", sa.Uuid(), nullable=False),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", validation_status, nullable=False),
        sa.Column("validation_data", sa.JSON(), nullable=False),
        sa.Column("error_message", sa.String(), nullable=True),
        sa.Column("next_validation_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("valid_addresses", sa.JSON(), nullable=True),
        sa.Column("processing_time_ms", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["quest_id"], ["quests.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quest_validations_quest_id", "quest_validations", ["quest_id"])
    op.create_index("ix_quest_validations_validated_at", "quest_validations", ["validated_at"])
    op.create_index("ix_quest_validations_status", "quest_validations", ["status"])

    op.create_table(
        "quest_validation_results",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("validation_id", sa.Uuid(), nullable=False),
        sa.Column("user_address", sa.String(length=256), nullable=False),
        sa.Column("is_valid", sa.Boolean(), nullable=False),
        sa.Column("result_data", sa.JSON(), nullable=False),
        sa.Column("criteria_type", sa.String(length=64), nullable=False),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["validation_id"], ["quest_validations.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_quest_validation_results_validation_id", "quest_validation_results", ["validation_id"]
    )
    op.create_index(
        "ix_quest_validation_results_user_address", "quest_validation_results", ["user_address"]
    )


def downgrade() -> None:
    """Drop quest validation tables."""
    op.drop_index("ix_quest_validation_results_user_address", table_name="quest_validation_results")
    op.drop_index("ix_quest_validation_results_validation_id", table_name="quest_validation_results")
    op.drop_table("quest_validation_results")

    op.drop_index("ix_quest_validations_status", table_name="quest_validations")
    op.drop_index("ix_quest_validations_validated_at", table_name="quest_validations")
    op.drop_index("ix_quest_validations_quest_id", table_name="quest_validations")
    op.drop_table("quest_validations")

    op.drop_index("ix_quests_user_id", table_name="quests")
    op.drop_index("ix_quests_status", table_name="quests")
    op.drop_table("quests")

    validation_status.drop(op.get_bind(), checkfirst=True)
    quest_status.drop(op.get_bind(), checkfirst=True)
