"""characters and character drafts

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "characters",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=10), nullable=False, server_default="pc"),
        sa.Column("race", sa.String(length=80), nullable=False, server_default=""),
        sa.Column("ability_scores_json", JSON_TYPE),
        sa.Column("classes_json", JSON_TYPE),
        sa.Column("hit_points_json", JSON_TYPE),
        sa.Column("armor_class", sa.Integer, nullable=False, server_default="10"),
        sa.Column("speed", sa.Integer, nullable=False, server_default="30"),
        sa.Column("saving_throws_json", JSON_TYPE),
        sa.Column("skills_json", JSON_TYPE),
        sa.Column("equipment_json", JSON_TYPE),
        sa.Column("backstory", sa.Text, nullable=False, server_default=""),
        sa.Column("notes", sa.Text, nullable=False, server_default=""),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_characters_owner_id", "characters", ["owner_id"])

    op.create_table(
        "character_drafts",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "character_id",
            sa.Integer,
            sa.ForeignKey("characters.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("changes_json", JSON_TYPE),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("character_id", "user_id", name="uq_character_drafts_key"),
    )


def downgrade() -> None:
    op.drop_table("character_drafts")
    op.drop_index("ix_characters_owner_id", table_name="characters")
    op.drop_table("characters")
