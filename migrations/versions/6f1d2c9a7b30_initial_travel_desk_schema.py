"""initial_travel_desk_schema

Create users, department profiles, travel applications, approval log,
attachments, number sequences, email log and system settings tables.

Revision ID: 6f1d2c9a7b30
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "6f1d2c9a7b30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("password_hash", sa.String(length=256), nullable=True),
            sa.Column("first_name", sa.String(length=100), nullable=True),
            sa.Column("last_name", sa.String(length=100), nullable=True),
            sa.Column("department", sa.String(length=200), nullable=True),
            sa.Column("department_head_code", sa.String(length=10), nullable=True),
            sa.Column("roles", sa.JSON(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_users_email", "users", ["email"], unique=True)

    if "department_profiles" not in existing_tables:
        op.create_table(
            "department_profiles",
            sa.Column("code", sa.String(length=10), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("head_name", sa.String(length=200), nullable=True),
            sa.Column("head_email", sa.String(length=200), nullable=True),
            sa.Column("secretary_name", sa.String(length=200), nullable=True),
            sa.Column("secretary_email", sa.String(length=200), nullable=True),
            sa.Column("updated_by", sa.String(length=100), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("code"),
        )

    if "travel_applications" not in existing_tables:
        op.create_table(
            "travel_applications",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("application_number", sa.String(length=30), nullable=True),
            sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("requester_id", sa.Integer(), nullable=False),
            sa.Column("requester_email", sa.String(length=200), nullable=False),
            sa.Column("requester_first_name", sa.String(length=100), nullable=True),
            sa.Column("requester_last_name", sa.String(length=100), nullable=True),
            sa.Column("phone_number", sa.String(length=50), nullable=True),
            sa.Column("department", sa.String(length=200), nullable=False),
            sa.Column("division", sa.String(length=200), nullable=True),
            sa.Column("department_code", sa.String(length=10), nullable=True),
            sa.Column("head_of_department", sa.String(length=200), nullable=True),
            sa.Column("head_of_department_email", sa.String(length=200), nullable=True),
            sa.Column("hod_email", sa.String(length=200), nullable=True),
            sa.Column("minister_name", sa.String(length=200), nullable=True),
            sa.Column("minister_email", sa.String(length=200), nullable=True),
            sa.Column("event_title", sa.String(length=300), nullable=False),
            sa.Column("reason_for_participation", sa.Text(), nullable=True),
            sa.Column("start_date", sa.Date(), nullable=True),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("duration_days", sa.Integer(), nullable=True),
            sa.Column("number_of_travellers", sa.Integer(), nullable=True),
            sa.Column("travellers", sa.JSON(), nullable=True),
            sa.Column("expenses", sa.JSON(), nullable=True),
            sa.Column("attachments_provided", sa.JSON(), nullable=True),
            sa.Column("total_cost", sa.Float(), nullable=False, server_default="0"),
            sa.Column("status", sa.String(length=40), nullable=False, server_default="DRAFT"),
            sa.Column("current_reviewer_id", sa.Integer(), nullable=True),
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["requester_id"], ["users.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("application_number"),
        )
        op.create_index("idx_tapp_status", "travel_applications", ["status"])
        op.create_index("idx_tapp_requester", "travel_applications", ["requester_id"])

    if "approval_log_entries" not in existing_tables:
        op.create_table(
            "approval_log_entries",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("application_id", sa.String(length=36), nullable=False),
            sa.Column("sequence", sa.Integer(), nullable=False),
            sa.Column("action", sa.String(length=40), nullable=False),
            sa.Column("actor_id", sa.Integer(), nullable=False),
            sa.Column("actor_name", sa.String(length=200), nullable=True),
            sa.Column("actor_email", sa.String(length=200), nullable=True),
            sa.Column("note", sa.Text(), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["application_id"], ["travel_applications.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("application_id", "sequence", name="uq_approval_log_app_seq"),
        )
        op.create_index("ix_approval_log_entries_application_id", "approval_log_entries", ["application_id"])
        op.create_index("idx_approval_log_actor", "approval_log_entries", ["actor_id"])

    if "attachments" not in existing_tables:
        op.create_table(
            "attachments",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("application_id", sa.String(length=36), nullable=False),
            sa.Column("file_name", sa.String(length=300), nullable=False),
            sa.Column("attachment_type", sa.String(length=100), nullable=True),
            sa.Column("mime_type", sa.String(length=100), nullable=True),
            sa.Column("size", sa.Integer(), nullable=True),
            sa.Column("storage_path", sa.String(length=500), nullable=True),
            sa.Column("uploaded_by", sa.Integer(), nullable=False),
            sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_attachments_application_id", "attachments", ["application_id"])

    if "application_number_sequences" not in existing_tables:
        op.create_table(
            "application_number_sequences",
            sa.Column("department_code", sa.String(length=10), nullable=False),
            sa.Column("year", sa.Integer(), nullable=False),
            sa.Column("sequence", sa.Integer(), nullable=False, server_default="0"),
            sa.PrimaryKeyConstraint("department_code", "year"),
        )

    if "email_logs" not in existing_tables:
        op.create_table(
            "email_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("recipient_email", sa.String(length=255), nullable=False),
            sa.Column("recipient_name", sa.String(length=150), nullable=True),
            sa.Column("subject", sa.String(length=500), nullable=False),
            sa.Column("html_body", sa.Text(), nullable=True),
            sa.Column("template_key", sa.String(length=100), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=True),
            sa.Column("attempts", sa.Integer(), nullable=True),
            sa.Column("error_message", sa.Text(), nullable=True),
            sa.Column("application_id", sa.String(length=36), nullable=True),
            sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_email_logs_recipient_email", "email_logs", ["recipient_email"])
        op.create_index("ix_email_logs_application_id", "email_logs", ["application_id"])

    if "system_settings" not in existing_tables:
        op.create_table(
            "system_settings",
            sa.Column("key", sa.String(length=100), nullable=False),
            sa.Column("value", sa.JSON(), nullable=False),
            sa.Column("updated_by", sa.String(length=100), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("key"),
        )


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table in (
        "system_settings",
        "email_logs",
        "application_number_sequences",
        "attachments",
        "approval_log_entries",
        "travel_applications",
        "department_profiles",
        "users",
    ):
        if table in existing_tables:
            op.drop_table(table)
