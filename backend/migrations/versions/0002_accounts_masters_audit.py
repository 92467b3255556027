"""Pre-generated accounts, master credentials and audit_logs

Revision ID: 0002_accounts_masters_audit
Revises: 0001_initial
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

revision = "0002_accounts_masters_audit"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # -- pre_generated_accounts -----------------------------------------
    op.create_table(
        "pre_generated_accounts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(64), nullable=False, unique=True),
        sa.Column("license_key", sa.String(128), nullable=False),
        sa.Column("account_type", sa.String(16), nullable=False),
        # negative = minutes, otherwise days
        sa.Column("license_duration_days", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "used_by_profile_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_pre_generated_account_type", "pre_generated_accounts", ["account_type"])
    op.create_index("idx_pre_generated_used_by", "pre_generated_accounts", ["used_by_profile_id"])

    # -- master_credentials ---------------------------------------------
    op.create_table(
        "master_credentials",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(64), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # -- audit_logs -----------------------------------------------------
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "actor_user_id",
            sa.String(36),
            sa.ForeignKey("identity_users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "target_profile_id",
            sa.String(36),
            sa.ForeignKey("profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("request_ip", sa.String(45), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_index("idx_audit_logs_actor_user_id", "audit_logs", ["actor_user_id"])
    op.create_index("idx_audit_logs_target_profile_id", "audit_logs", ["target_profile_id"])
    op.create_index("idx_audit_logs_action", "audit_logs", ["action"])
    op.create_index("idx_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("idx_audit_logs_action", table_name="audit_logs")
    op.drop_index("idx_audit_logs_target_profile_id", table_name="audit_logs")
    op.drop_index("idx_audit_logs_actor_user_id", table_name="audit_logs")
    op.drop_table("audit_logs")
    op.drop_table("master_credentials")
    op.drop_index("idx_pre_generated_used_by", table_name="pre_generated_accounts")
    op.drop_index("idx_pre_generated_account_type", table_name="pre_generated_accounts")
    op.drop_table("pre_generated_accounts")
