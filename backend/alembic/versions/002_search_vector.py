"""Add full-text search (tsvector, German) and pg_trgm indexes on resources.

Revision ID: 002
Revises: 001
Create Date: 2026-09-28

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Must match marketplace.db.models.SEARCH_VECTOR_SQL
    op.execute("""
        ALTER TABLE resources
        ADD COLUMN IF NOT EXISTS search_vector tsvector
        GENERATED ALWAYS AS (
            setweight(to_tsvector('german', coalesce(title, '')), 'A')
            || setweight(to_tsvector('german', coalesce(description, '')), 'B')
        ) STORED
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_resources_search_vector ON resources USING GIN (search_vector)")
    # Trigram fallback for typos; search degrades to empty results if the extension is unavailable
    op.execute("CREATE EXTENSION IF NOT EXISTS pg_trgm")
    op.execute("CREATE INDEX IF NOT EXISTS ix_resources_title_trgm ON resources USING GIN (title gin_trgm_ops)")
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_resources_description_trgm ON resources USING GIN (description gin_trgm_ops)"
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_resources_description_trgm")
    op.execute("DROP INDEX IF EXISTS ix_resources_title_trgm")
    op.execute("DROP INDEX IF EXISTS ix_resources_search_vector")
    op.execute("ALTER TABLE resources DROP COLUMN IF EXISTS search_vector")
