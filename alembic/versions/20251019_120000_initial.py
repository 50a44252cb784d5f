from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20251019_120000_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def _game_fk() -> sa.Column:
    return sa.Column(
        "game_id",
        sa.String(),
        sa.ForeignKey("games.id", ondelete="CASCADE"),
        nullable=False,
    )


def upgrade() -> None:
    # games (external catalog)
    op.create_table(
        "games",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("cover_image_id", sa.String(), nullable=True),
        sa.Column("release_date", sa.Date(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_games_title", "games", ["title"])

    # library_entries (populated by the collection layer)
    op.create_table(
        "library_entries",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        _game_fk(),
        sa.Column("platform_id", sa.String(), nullable=False),
        sa.Column(
            "is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")
        ),
        _timestamp("created_at"),
        sa.UniqueConstraint(
            "user_id", "game_id", "platform_id", name="uq_library_user_game_platform"
        ),
    )
    op.create_index("ix_library_entries_user_id", "library_entries", ["user_id"])
    op.create_index("ix_library_entries_game_id", "library_entries", ["game_id"])

    # game_additions
    op.create_table(
        "game_additions",
        sa.Column("id", sa.String(), primary_key=True),
        _game_fk(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("addition_type", sa.String(), nullable=False),
        sa.Column(
            "is_complete_edition",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column(
            "required_for_full",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column("release_date", sa.Date(), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_game_additions_game_id", "game_additions", ["game_id"])
    op.create_index(
        "ix_game_additions_addition_type", "game_additions", ["addition_type"]
    )

    # user_game_editions
    op.create_table(
        "user_game_editions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        _game_fk(),
        sa.Column("platform_id", sa.String(), nullable=False),
        sa.Column(
            "edition_id",
            sa.String(),
            sa.ForeignKey("game_additions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint(
            "user_id", "game_id", "platform_id", name="uq_edition_user_game_platform"
        ),
    )
    op.create_index("ix_user_game_editions_user_id", "user_game_editions", ["user_id"])
    op.create_index("ix_user_game_editions_game_id", "user_game_editions", ["game_id"])

    # user_game_additions
    op.create_table(
        "user_game_additions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        _game_fk(),
        sa.Column("platform_id", sa.String(), nullable=False),
        sa.Column(
            "addition_id",
            sa.String(),
            sa.ForeignKey("game_additions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("owned", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _timestamp("created_at"),
        sa.UniqueConstraint(
            "user_id", "game_id", "platform_id", "addition_id", name="uq_owned_addition"
        ),
    )
    op.create_index(
        "ix_user_game_additions_user_id", "user_game_additions", ["user_id"]
    )
    op.create_index(
        "ix_user_game_additions_game_id", "user_game_additions", ["game_id"]
    )

    # completion_logs
    op.create_table(
        "completion_logs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        _game_fk(),
        sa.Column("platform_id", sa.String(), nullable=False),
        sa.Column("percentage", sa.Integer(), nullable=False),
        sa.Column(
            "source", sa.String(), nullable=False, server_default=sa.text("'manual'")
        ),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("logged_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "percentage >= 0 AND percentage <= 100", name="ck_completion_percentage"
        ),
    )
    op.create_index("ix_completion_logs_user_id", "completion_logs", ["user_id"])
    op.create_index("ix_completion_logs_game_id", "completion_logs", ["game_id"])
    op.create_index("ix_completion_logs_logged_at", "completion_logs", ["logged_at"])

    # play_sessions
    op.create_table(
        "play_sessions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        _game_fk(),
        sa.Column("platform_id", sa.String(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_play_sessions_user_id", "play_sessions", ["user_id"])
    op.create_index("ix_play_sessions_game_id", "play_sessions", ["game_id"])
    op.create_index("ix_play_sessions_started_at", "play_sessions", ["started_at"])
    op.create_index(
        "uq_play_sessions_user_active",
        "play_sessions",
        ["user_id"],
        unique=True,
        sqlite_where=sa.text("ended_at IS NULL"),
        postgresql_where=sa.text("ended_at IS NULL"),
    )

    # user_playtime
    op.create_table(
        "user_playtime",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        _game_fk(),
        sa.Column("platform_id", sa.String(), nullable=False),
        sa.Column(
            "total_minutes", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        sa.Column("last_played", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "user_id", "game_id", "platform_id", name="uq_playtime_user_game_platform"
        ),
        sa.CheckConstraint("total_minutes >= 0", name="ck_playtime_non_negative"),
    )
    op.create_index("ix_user_playtime_user_id", "user_playtime", ["user_id"])

    # user_game_progress
    op.create_table(
        "user_game_progress",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        _game_fk(),
        sa.Column("platform_id", sa.String(), nullable=False),
        sa.Column(
            "status", sa.String(), nullable=False, server_default=sa.text("'backlog'")
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint(
            "user_id", "game_id", "platform_id", name="uq_progress_user_game_platform"
        ),
    )
    op.create_index("ix_user_game_progress_user_id", "user_game_progress", ["user_id"])
    op.create_index("ix_user_game_progress_status", "user_game_progress", ["status"])


def downgrade() -> None:
    op.drop_index("ix_user_game_progress_status", table_name="user_game_progress")
    op.drop_index("ix_user_game_progress_user_id", table_name="user_game_progress")
    op.drop_table("user_game_progress")

    op.drop_index("ix_user_playtime_user_id", table_name="user_playtime")
    op.drop_table("user_playtime")

    op.drop_index("uq_play_sessions_user_active", table_name="play_sessions")
    op.drop_index("ix_play_sessions_started_at", table_name="play_sessions")
    op.drop_index("ix_play_sessions_game_id", table_name="play_sessions")
    op.drop_index("ix_play_sessions_user_id", table_name="play_sessions")
    op.drop_table("play_sessions")

    op.drop_index("ix_completion_logs_logged_at", table_name="completion_logs")
    op.drop_index("ix_completion_logs_game_id", table_name="completion_logs")
    op.drop_index("ix_completion_logs_user_id", table_name="completion_logs")
    op.drop_table("completion_logs")

    op.drop_index("ix_user_game_additions_game_id", table_name="user_game_additions")
    op.drop_index("ix_user_game_additions_user_id", table_name="user_game_additions")
    op.drop_table("user_game_additions")

    op.drop_index("ix_user_game_editions_game_id", table_name="user_game_editions")
    op.drop_index("ix_user_game_editions_user_id", table_name="user_game_editions")
    op.drop_table("user_game_editions")

    op.drop_index("ix_game_additions_addition_type", table_name="game_additions")
    op.drop_index("ix_game_additions_game_id", table_name="game_additions")
    op.drop_table("game_additions")

    op.drop_index("ix_library_entries_game_id", table_name="library_entries")
    op.drop_index("ix_library_entries_user_id", table_name="library_entries")
    op.drop_table("library_entries")

    op.drop_index("ix_games_title", table_name="games")
    op.drop_table("games")
