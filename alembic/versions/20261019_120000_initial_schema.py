"""Initial schema: api_cache, teams, players, player_stats

Revision ID: 5b1e7c2a9d40
Revises:
Create Date: 2026-10-19 12:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "5b1e7c2a9d40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "api_cache",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("key"),
    )
    op.create_index("idx_api_cache_expires_at", "api_cache", ["expires_at"], unique=False)

    op.create_table(
        "teams",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("country", sa.String(length=255), nullable=False),
        sa.Column("flag", sa.String(length=10), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("team_id", sa.Integer(), nullable=True),
        sa.Column("role", sa.String(length=100), nullable=True),
        sa.Column("batting_style", sa.String(length=100), nullable=True),
        sa.Column("bowling_style", sa.String(length=100), nullable=True),
        sa.Column("date_of_birth", sa.DateTime(), nullable=True),
        sa.Column("place_of_birth", sa.String(length=255), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("wikipedia_url", sa.Text(), nullable=True),
        sa.Column("is_in_playing11", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_players_name", "players", ["name"], unique=False)

    op.create_table(
        "player_stats",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("format", sa.String(length=50), nullable=False),
        sa.Column("matches", sa.Integer(), nullable=True),
        sa.Column("runs", sa.Integer(), nullable=True),
        sa.Column("wickets", sa.Integer(), nullable=True),
        sa.Column("batting_average", sa.String(length=20), nullable=True),
        sa.Column("bowling_average", sa.String(length=20), nullable=True),
        sa.Column("strike_rate", sa.String(length=20), nullable=True),
        sa.Column("economy_rate", sa.String(length=20), nullable=True),
        sa.Column("highest_score", sa.String(length=20), nullable=True),
        sa.Column("best_bowling", sa.String(length=50), nullable=True),
        sa.Column("centuries", sa.Integer(), nullable=True),
        sa.Column("half_centuries", sa.Integer(), nullable=True),
        sa.Column("five_wickets", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("player_id", "format", name="uq_player_stats_format"),
    )


def downgrade() -> None:
    op.drop_table("player_stats")
    op.drop_index("idx_players_name", table_name="players")
    op.drop_table("players")
    op.drop_table("teams")
    op.drop_index("idx_api_cache_expires_at", table_name="api_cache")
    op.drop_table("api_cache")
