"""create registry sync ledger, lookup cache and collection session tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "registry_sync_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("program_stage_id", sa.String(length=255), nullable=False),
        sa.Column("site_id", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.String(length=255), nullable=False),
        sa.Column("tracked_entity_id", sa.String(length=255), nullable=False),
        sa.Column("org_unit_id", sa.String(length=255), nullable=False),
        sa.Column("event_date", sa.String(length=10), nullable=False),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_registry_sync_events"),
        sa.UniqueConstraint("event_id", name="uq_registry_sync_events_event_id"),
        sa.UniqueConstraint(
            "program_stage_id",
            "site_id",
            "year",
            "month",
            name="uq_registry_sync_events_scope_site_period",
        ),
    )
    op.create_index("ix_registry_sync_events_site_id", "registry_sync_events", ["site_id"], unique=False)
    op.create_index(
        "ix_registry_sync_events_year_month",
        "registry_sync_events",
        ["year", "month"],
        unique=False,
    )

    op.create_table(
        "registry_cache_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("program_stage_id", sa.String(length=255), nullable=False),
        sa.Column("cache_type", sa.String(length=32), nullable=False),
        sa.Column("cache_key", sa.String(length=500), nullable=False),
        sa.Column("cache_value", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_registry_cache_entries"),
        sa.UniqueConstraint(
            "program_stage_id",
            "cache_type",
            "cache_key",
            name="uq_registry_cache_entries_scope_type_key",
        ),
    )

    op.create_table(
        "collection_sessions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("site_id", sa.Integer(), nullable=False),
        sa.Column("collection_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("state", sa.String(length=32), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_collection_sessions"),
    )
    op.create_index("ix_collection_sessions_site_id", "collection_sessions", ["site_id"], unique=False)
    op.create_index("ix_collection_sessions_state", "collection_sessions", ["state"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_collection_sessions_state", table_name="collection_sessions")
    op.drop_index("ix_collection_sessions_site_id", table_name="collection_sessions")
    op.drop_table("collection_sessions")
    op.drop_table("registry_cache_entries")
    op.drop_index("ix_registry_sync_events_year_month", table_name="registry_sync_events")
    op.drop_index("ix_registry_sync_events_site_id", table_name="registry_sync_events")
    op.drop_table("registry_sync_events")
