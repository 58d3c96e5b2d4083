"""create ncm_nomenclator table with pgvector embeddings

Revision ID: 7f3a91c2d4e0
Revises:
Create Date: 2026-10-01 00:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from pgvector.sqlalchemy import Vector

from ncm_search.config import settings

# revision identifiers, used by Alembic.
revision = "7f3a91c2d4e0"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS vector")
    op.execute("CREATE EXTENSION IF NOT EXISTS unaccent")
    op.create_table(
        "ncm_nomenclator",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("section", sa.String(length=8), server_default="", nullable=False),
        sa.Column("chapter", sa.String(length=2), server_default="", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("embedding", Vector(dim=settings.embedding.dimension), nullable=True),
        sa.Column("embedding_model", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )
    op.create_index("ix_ncm_nomenclator_chapter", "ncm_nomenclator", ["chapter"])
    op.execute(
        "CREATE INDEX ix_ncm_nomenclator_embedding ON ncm_nomenclator "
        "USING hnsw (embedding vector_cosine_ops)"
    )


def downgrade() -> None:
    op.drop_index("ix_ncm_nomenclator_embedding", table_name="ncm_nomenclator")
    op.drop_index("ix_ncm_nomenclator_chapter", table_name="ncm_nomenclator")
    op.drop_table("ncm_nomenclator")
