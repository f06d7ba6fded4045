"""Create the documents table backing every caseflow collection.

Revision ID: 001_documents
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy import inspect

# revision identifiers
revision = "001_documents"
down_revision = None
branch_labels = None
depends_on = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists in the database."""
    bind = op.get_bind()
    inspector = inspect(bind)
    return table_name in inspector.get_table_names()


def upgrade() -> None:
    if table_exists("documents"):
        return

    op.create_table(
        "documents",
        sa.Column("seq", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column(
            "collection",
            sa.String(100),
            nullable=False,
            comment="cases, caseRequests, hearings, case_numbers, users_<role>s",
        ),
        sa.Column("doc_id", sa.String(255), nullable=False),
        sa.Column(
            "data",
            sa.JSON().with_variant(postgresql.JSONB, "postgresql"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("collection", "doc_id", name="uq_documents_collection"),
    )
    op.create_index("ix_documents_collection", "documents", ["collection"])

    if op.get_bind().dialect.name == "postgresql":
        # Lookups by party, lawyer and case id filter on payload fields
        op.execute(
            "CREATE INDEX IF NOT EXISTS idx_documents_data_gin "
            "ON documents USING gin (data jsonb_path_ops)"
        )


def downgrade() -> None:
    if not table_exists("documents"):
        return
    if op.get_bind().dialect.name == "postgresql":
        op.execute("DROP INDEX IF EXISTS idx_documents_data_gin")
    op.drop_index("ix_documents_collection", table_name="documents")
    op.drop_table("documents")
