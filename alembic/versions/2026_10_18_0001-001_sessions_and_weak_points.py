"""sessions and weak points

Revision ID: 001
Revises:
Create Date: 2026-10-18

Tables as defined in app/models/database_models.py: sessions, weak_points.
The vector index table is not managed here; VectorIndexStore.ensure_index
creates it (and the pgvector extension) on first use.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── Enum types ────────────────────────────────────────────────────────
    criticality = sa.Enum("LOW", "MEDIUM", "HIGH", name="criticality")
    criticality.create(op.get_bind(), checkfirst=True)

    # ── sessions ──────────────────────────────────────────────────────────
    op.create_table(
        "sessions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("owner_id", sa.String(255), nullable=False, index=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("note_content", sa.Text, nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── weak_points ───────────────────────────────────────────────────────
    op.create_table(
        "weak_points",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("session_id", sa.String(64), sa.ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column("topic", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column(
            "criticality",
            sa.Enum("LOW", "MEDIUM", "HIGH", name="criticality", create_type=False),
            nullable=False,
        ),
        sa.Column("matched_text_snippet", sa.Text, nullable=False),
    )


def downgrade() -> None:
    op.drop_table("weak_points")
    op.drop_table("sessions")

    op.execute("DROP TYPE IF EXISTS criticality")
