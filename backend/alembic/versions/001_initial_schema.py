"""Initial bus pass schema

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  Creates users, pass_types, applications (+ documents, approvals),
       payments, bus_passes and pass_scans.
How:   PostgreSQL UUID keys with gen_random_uuid() defaults and
       TIMESTAMP WITH TIME ZONE columns. Status columns are VARCHAR(20) with
       CHECK constraints, matching the non-native Enum columns in the models.

Store-level invariants created here:
    uq_pass_types_name_lower       unique lower(name)
    uq_applications_user_pending   one PENDING application per user (partial)
    unique application_id on documents, approvals, payments, bus_passes
    unique bus_passes.pass_number, payments.transaction_ref

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.TIMESTAMP(timezone=True),
        server_default=None if nullable else sa.text("CURRENT_TIMESTAMP"),
        nullable=nullable,
    )


def _enum(name: str, constraint: str, values: Sequence[str], **kwargs) -> sa.Column:
    allowed = ", ".join(f"'{v}'" for v in values)
    return sa.Column(
        name,
        sa.String(20),
        sa.CheckConstraint(f"{name} IN ({allowed})", name=constraint),
        **kwargs,
    )


def _fk(name: str, target: str, ondelete: str, **kwargs) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=False,
        **kwargs,
    )


APPLICATION_STATUSES = ("PENDING", "APPROVED", "REJECTED")
PAYMENT_STATUSES = ("PENDING", "COMPLETED")


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        _enum("role", "user_role", ("ADMIN", "PASSENGER", "CONDUCTOR"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "pass_types",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("duration_days", sa.Integer(), nullable=False),
        sa.Column("per_day_limit", sa.Integer(), nullable=False, server_default=sa.text("2")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by", postgresql.UUID(as_uuid=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("price >= 0", name="ck_pass_types_price"),
        sa.CheckConstraint("duration_days >= 0", name="ck_pass_types_duration"),
        sa.CheckConstraint("per_day_limit >= 1", name="ck_pass_types_per_day_limit"),
    )
    op.create_index(
        "uq_pass_types_name_lower", "pass_types", [sa.text("lower(name)")], unique=True
    )

    op.create_table(
        "applications",
        _id(),
        _fk("user_id", "users.id", "RESTRICT"),
        _fk("pass_type_id", "pass_types.id", "RESTRICT"),
        _enum("status", "application_status", APPLICATION_STATUSES, nullable=False),
        _enum(
            "payment_status", "application_payment_status", PAYMENT_STATUSES, nullable=False
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_applications_user_pending",
        "applications",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
    )
    op.create_index("idx_applications_status", "applications", ["status"])
    op.create_index("idx_applications_created_at", "applications", ["created_at"])

    op.create_table(
        "documents",
        _id(),
        _fk("application_id", "applications.id", "CASCADE", unique=True),
        sa.Column("document_type", sa.String(50), nullable=False),
        sa.Column("document_path", sa.String(500), nullable=False),
        _timestamp("uploaded_at"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "approvals",
        _id(),
        _fk("application_id", "applications.id", "CASCADE", unique=True),
        _fk("admin_id", "users.id", "RESTRICT"),
        _enum("status", "approval_status", APPLICATION_STATUSES, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "payments",
        _id(),
        _fk("application_id", "applications.id", "RESTRICT", unique=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        _enum(
            "method",
            "payment_method",
            ("CARD", "UPI", "NET_BANKING", "WALLET", "CASH"),
            nullable=False,
        ),
        _enum("status", "payment_status", PAYMENT_STATUSES, nullable=False),
        sa.Column("transaction_ref", sa.String(64), nullable=False, unique=True),
        _timestamp("paid_at", nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "bus_passes",
        _id(),
        _fk("application_id", "applications.id", "RESTRICT", unique=True),
        sa.Column("pass_number", sa.String(32), nullable=False, unique=True),
        sa.Column("valid_from", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("valid_until", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("valid_until >= valid_from", name="ck_bus_passes_window"),
    )
    op.create_index("idx_bus_passes_valid_until", "bus_passes", ["valid_until"])

    op.create_table(
        "pass_scans",
        _id(),
        _fk("pass_id", "bus_passes.id", "RESTRICT"),
        _fk("conductor_id", "users.id", "RESTRICT"),
        _enum("scan_method", "scan_method", ("QR", "MANUAL"), nullable=False),
        sa.Column("is_valid", sa.Boolean(), nullable=False),
        sa.Column("remark", sa.String(100), nullable=False),
        _timestamp("scanned_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_pass_scans_pass_time", "pass_scans", ["pass_id", "scanned_at"])
    op.create_index(
        "idx_pass_scans_conductor_time", "pass_scans", ["conductor_id", "scanned_at"]
    )


def downgrade() -> None:
    """Drops every table, children first. Destructive: all data is lost."""
    op.drop_table("pass_scans")
    op.drop_table("bus_passes")
    op.drop_table("payments")
    op.drop_table("approvals")
    op.drop_table("documents")
    op.drop_index("uq_applications_user_pending", table_name="applications")
    op.drop_table("applications")
    op.drop_index("uq_pass_types_name_lower", table_name="pass_types")
    op.drop_table("pass_types")
    op.drop_table("users")
