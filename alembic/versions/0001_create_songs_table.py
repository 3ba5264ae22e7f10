"""create songs table

Revision ID: 0001_create_songs
Revises:
Create Date: 2026-10-18 10:00:00.000000

Hey future me - THE catalog table!

One row per audio file below the music root. file_path (relative to the root) is the
natural key and carries the UNIQUE constraint the scanner relies on: a duplicate insert
means "already catalogued", not an error.

play_count belongs to the serving layer. is_deleted is the admin soft delete, the scanner
skips those files for good.
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_create_songs"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create songs table (idempotent - skips if it already exists)."""
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    if "songs" in inspector.get_table_names():
        return

    op.create_table(
        "songs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("artist", sa.String(255), nullable=False),
        sa.Column("album", sa.String(255), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("file_path", sa.String(1024), nullable=False),
        sa.Column("lyrics_path", sa.String(1024), nullable=True),
        sa.Column("cover_image", sa.String(1024), nullable=True),
        sa.Column("play_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_collect", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("file_path", name="uq_songs_file_path"),
    )
    op.create_index("ix_songs_title", "songs", ["title"])
    op.create_index("ix_songs_artist", "songs", ["artist"])
    op.create_index("ix_songs_is_deleted", "songs", ["is_deleted"])


def downgrade() -> None:
    """Drop songs table."""
    op.drop_index("ix_songs_is_deleted", table_name="songs")
    op.drop_index("ix_songs_artist", table_name="songs")
    op.drop_index("ix_songs_title", table_name="songs")
    op.drop_table("songs")
