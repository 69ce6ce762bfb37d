"""bot runtime schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "bot_projects",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("context", sa.Text(), nullable=True),
        sa.Column("bot_username", sa.String(length=64), nullable=True),
        sa.Column("telegram_bot_token_enc", sa.Text(), nullable=True),
        sa.Column("telegram_bot_token_hash", sa.String(length=64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("bot_status", sa.String(length=16), nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bot_projects_id", "bot_projects", ["id"])
    op.create_index("ix_bot_projects_user_id", "bot_projects", ["user_id"])
    op.create_index("ix_bot_projects_telegram_bot_token_hash", "bot_projects", ["telegram_bot_token_hash"])

    op.create_table(
        "bot_commands",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("command", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("response_type", sa.String(length=16), nullable=False, server_default="text"),
        sa.Column("response_content", sa.Text(), nullable=False, server_default=""),
        sa.Column("response_metadata", postgresql.JSONB(), nullable=True),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["bot_projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bot_commands_id", "bot_commands", ["id"])
    op.create_index("ix_bot_commands_project_id", "bot_commands", ["project_id"])
    op.create_index("ix_bot_commands_command", "bot_commands", ["command"])

    op.create_table(
        "bot_intents",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("intent_name", sa.String(length=128), nullable=False),
        sa.Column("training_phrases", postgresql.JSONB(), nullable=True),
        sa.Column("parameters", postgresql.JSONB(), nullable=True),
        sa.Column("action_type", sa.String(length=16), nullable=False, server_default="ai_response"),
        sa.Column("action_config", postgresql.JSONB(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["bot_projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bot_intents_id", "bot_intents", ["id"])
    op.create_index("ix_bot_intents_project_id", "bot_intents", ["project_id"])

    op.create_table(
        "conversation_flows",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("trigger_type", sa.String(length=16), nullable=False, server_default="command"),
        sa.Column("trigger_value", sa.String(length=512), nullable=False, server_default=""),
        sa.Column("flow_definition", postgresql.JSONB(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["bot_projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_conversation_flows_id", "conversation_flows", ["id"])
    op.create_index("ix_conversation_flows_project_id", "conversation_flows", ["project_id"])

    op.create_table(
        "conversation_states",
        sa.Column("telegram_user_id", sa.String(length=64), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("current_flow_id", sa.Integer(), nullable=False),
        sa.Column("current_step", sa.String(length=128), nullable=False),
        sa.Column("state_data", postgresql.JSONB(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["bot_projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["current_flow_id"], ["conversation_flows.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("telegram_user_id", "project_id"),
    )

    op.create_table(
        "bot_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(length=32), nullable=False),
        sa.Column("telegram_user_id", sa.String(length=64), nullable=True),
        sa.Column("event_data", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["bot_projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bot_events_id", "bot_events", ["id"])
    op.create_index("ix_bot_events_project_id", "bot_events", ["project_id"])
    op.create_index("ix_bot_events_project_type_time", "bot_events", ["project_id", "event_type", "created_at"])

    op.create_table(
        "bot_messages",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("telegram_user_id", sa.String(length=64), nullable=False),
        sa.Column("telegram_username", sa.String(length=64), nullable=True),
        sa.Column("telegram_first_name", sa.String(length=128), nullable=True),
        sa.Column("telegram_last_name", sa.String(length=128), nullable=True),
        sa.Column("message_text", sa.Text(), nullable=True),
        sa.Column("message_type", sa.String(length=16), nullable=True),
        sa.Column("bot_response", sa.Text(), nullable=True),
        sa.Column("response_time_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["bot_projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bot_messages_id", "bot_messages", ["id"])
    op.create_index("ix_bot_messages_project_id", "bot_messages", ["project_id"])
    op.create_index("ix_bot_messages_project_user", "bot_messages", ["project_id", "telegram_user_id"])

    op.create_table(
        "bot_analytics",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("metric_name", sa.String(length=128), nullable=False),
        sa.Column("metric_date", sa.Date(), nullable=False),
        sa.Column("metric_value", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["bot_projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "metric_name", "metric_date", name="uq_bot_analytics_project_metric_date"),
    )
    op.create_index("ix_bot_analytics_id", "bot_analytics", ["id"])
    op.create_index("ix_bot_analytics_project_id", "bot_analytics", ["project_id"])

    op.create_table(
        "api_integrations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("api_type", sa.String(length=16), nullable=False, server_default="rest"),
        sa.Column("endpoint_base_url", sa.Text(), nullable=False),
        sa.Column("auth_type", sa.String(length=16), nullable=False, server_default="none"),
        sa.Column("credentials", postgresql.JSONB(), nullable=True),
        sa.Column("mapping_config", postgresql.JSONB(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["bot_projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_api_integrations_id", "api_integrations", ["id"])
    op.create_index("ix_api_integrations_project_id", "api_integrations", ["project_id"])


def downgrade() -> None:
    op.drop_table("api_integrations")
    op.drop_table("bot_analytics")
    op.drop_table("bot_messages")
    op.drop_table("bot_events")
    op.drop_table("conversation_states")
    op.drop_table("conversation_flows")
    op.drop_table("bot_intents")
    op.drop_table("bot_commands")
    op.drop_table("bot_projects")
