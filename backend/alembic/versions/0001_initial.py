"""Initial schema: submissions, rate limits, documents, referrals, resources.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("public_id", sa.String(40), nullable=False),
        sa.Column(
            "kind", sa.Enum("CONTACT", "ENROLLMENT", name="submissionkind"), nullable=False
        ),
        sa.Column(
            "status",
            sa.Enum("PENDING", "WAITLISTED", "REJECTED", name="submissionstatus"),
            nullable=False,
        ),
        sa.Column("idempotency_key", sa.String(64), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("program", sa.String(20), nullable=True),
        sa.Column("urgency", sa.String(20), nullable=True),
        sa.Column("fields", sa.JSON(), nullable=False),
        sa.Column("locale", sa.String(5), nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("idempotency_key"),
    )
    op.create_index("ix_submissions_id", "submissions", ["id"])
    op.create_index("ix_submissions_public_id", "submissions", ["public_id"], unique=True)
    op.create_index("ix_submissions_email", "submissions", ["email"])
    op.create_index(
        "ix_submissions_kind_program_status",
        "submissions",
        ["kind", "program", "status"],
    )

    op.create_table(
        "rate_limit_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("identifier", sa.String(255), nullable=False),
        sa.Column("window_start", sa.DateTime(), nullable=False),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("blocked_until", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_rate_limit_records_identifier",
        "rate_limit_records",
        ["identifier"],
        unique=True,
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("public_id", sa.String(36), nullable=False),
        sa.Column("parent_email", sa.String(255), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("content_type", sa.String(100), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False),
        sa.Column(
            "category",
            sa.Enum(
                "ENROLLMENT",
                "MEDICAL",
                "EMERGENCY",
                "AUTHORIZATION",
                "FINANCIAL",
                "OTHER",
                name="documentcategory",
            ),
            nullable=False,
        ),
        sa.Column("child_name", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.Date(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("PENDING", "APPROVED", "REJECTED", name="documentstatus"),
            nullable=False,
        ),
        sa.Column("storage_path", sa.String(500), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_documents_public_id", "documents", ["public_id"], unique=True)
    op.create_index("ix_documents_parent_email", "documents", ["parent_email"])

    op.create_table(
        "referrals",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("referral_code", sa.String(20), nullable=False),
        sa.Column("referrer_name", sa.String(100), nullable=False),
        sa.Column("referrer_email", sa.String(255), nullable=False),
        sa.Column("referrer_phone", sa.String(30), nullable=True),
        sa.Column(
            "referrer_type",
            sa.Enum(
                "CURRENT_PARENT",
                "PAST_PARENT",
                "STAFF",
                "COMMUNITY_MEMBER",
                "OTHER",
                name="referrertype",
            ),
            nullable=False,
        ),
        sa.Column("referred_family_name", sa.String(100), nullable=False),
        sa.Column("referred_parent_name", sa.String(100), nullable=False),
        sa.Column("referred_email", sa.String(255), nullable=False),
        sa.Column("referred_phone", sa.String(30), nullable=True),
        sa.Column("referred_children_count", sa.Integer(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "PENDING",
                "CONTACTED",
                "TOURING",
                "ENROLLED",
                "DECLINED",
                "EXPIRED",
                name="referralstatus",
            ),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_referrals_referral_code", "referrals", ["referral_code"], unique=True
    )

    op.create_table(
        "resources",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("slug", sa.String(200), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column(
            "resource_type",
            sa.Enum(
                "ARTICLE",
                "GUIDE",
                "CHECKLIST",
                "VIDEO",
                "DOWNLOAD",
                "LINK",
                name="resourcetype",
            ),
            nullable=False,
        ),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("external_url", sa.String(500), nullable=True),
        sa.Column("file_url", sa.String(500), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("author", sa.String(100), nullable=True),
        sa.Column("reading_time", sa.Integer(), nullable=True),
        sa.Column("is_featured", sa.Boolean(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("view_count", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_resources_slug", "resources", ["slug"], unique=True)
    op.create_index("ix_resources_category", "resources", ["category"])
    op.create_index("ix_resources_is_active", "resources", ["is_active"])


def downgrade() -> None:
    op.drop_index("ix_resources_is_active", "resources")
    op.drop_index("ix_resources_category", "resources")
    op.drop_index("ix_resources_slug", "resources")
    op.drop_table("resources")
    op.drop_index("ix_referrals_referral_code", "referrals")
    op.drop_table("referrals")
    op.drop_index("ix_documents_parent_email", "documents")
    op.drop_index("ix_documents_public_id", "documents")
    op.drop_table("documents")
    op.drop_index("ix_rate_limit_records_identifier", "rate_limit_records")
    op.drop_table("rate_limit_records")
    op.drop_index("ix_submissions_kind_program_status", "submissions")
    op.drop_index("ix_submissions_email", "submissions")
    op.drop_index("ix_submissions_public_id", "submissions")
    op.drop_index("ix_submissions_id", "submissions")
    op.drop_table("submissions")
