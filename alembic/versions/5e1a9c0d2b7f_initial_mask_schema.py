"""initial Mask schema

Revision ID: 5e1a9c0d2b7f
Revises:
Create Date: 2026-10-18 10:12:44.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql


# revision identifiers, used by Alembic.
revision: str = '5e1a9c0d2b7f'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

REACTIONS = ("like", "love", "care", "haha", "wow", "sad", "angry")
VERDICTS = ("true", "false", "misleading", "opinion", "unverified", "outdated", "satire")
NOTIFICATION_TYPES = ("reaction", "comment", "share", "friend_request", "system", "motivation", "admin")


def _id():
    return sa.BigInteger().with_variant(mysql.BIGINT(unsigned=True), "mysql")


def _fk(target, ondelete="CASCADE"):
    return sa.ForeignKey(target, ondelete=ondelete)


def _tbl_kwargs():
    return dict(mysql_engine="InnoDB", mysql_charset="utf8mb4", mysql_collate="utf8mb4_unicode_ci")


def upgrade() -> None:
    """Create every Mask table with FKs."""
    now = sa.text("CURRENT_TIMESTAMP")

    # =======================
    # Accounts
    # =======================
    op.create_table(
        "users",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("public_id", sa.String(50), nullable=False),
        sa.Column("pseudonym", sa.String(64), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("role", sa.Enum("user", "moderator", "admin", name="user_role"), nullable=False, server_default="user"),
        sa.Column("avatar_url", sa.String(512), nullable=False, server_default=""),
        sa.Column("avatar_updated_at", sa.DateTime(), nullable=True),
        sa.Column("followers_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("ix_users_public_id", "users", ["public_id"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_deleted_at", "users", ["deleted_at"])

    op.create_table(
        "user_credentials",
        sa.Column("user_id", _id(), _fk("users.id"), primary_key=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("password_algo", sa.Enum("bcrypt", name="password_algo"), nullable=False, server_default="bcrypt"),
        sa.Column("last_password_change", sa.DateTime(), nullable=True),
        **_tbl_kwargs(),
    )

    op.create_table(
        "email_otps",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("code_hash", sa.String(255), nullable=False),
        sa.Column("purpose", sa.String(24), nullable=False, server_default="signup"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        sa.UniqueConstraint("email", "purpose", name="uq_email_otps_email_purpose"),
        **_tbl_kwargs(),
    )
    op.create_index("ix_email_otps_email", "email_otps", ["email"])

    # =======================
    # Social graph
    # =======================
    op.create_table(
        "user_follows",
        sa.Column("follower_id", _id(), _fk("users.id"), primary_key=True),
        sa.Column("followee_id", _id(), _fk("users.id"), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_user_follows_followee", "user_follows", ["followee_id", "created_at"])

    op.create_table(
        "friendships",
        sa.Column("user_id", _id(), _fk("users.id"), primary_key=True),
        sa.Column("friend_id", _id(), _fk("users.id"), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )

    op.create_table(
        "friend_requests",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("from_user_id", _id(), _fk("users.id"), nullable=False),
        sa.Column("to_user_id", _id(), _fk("users.id"), nullable=False),
        sa.Column("status", sa.Enum("pending", "accepted", "declined", name="friend_request_status"),
                  nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_friend_requests_pair", "friend_requests", ["from_user_id", "to_user_id", "status"])
    op.create_index("idx_friend_requests_to", "friend_requests", ["to_user_id", "status"])

    # =======================
    # Groups and pages
    # =======================
    op.create_table(
        "groups",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(80), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("privacy", sa.Enum("public", "private", name="group_privacy"), nullable=False, server_default="public"),
        sa.Column("avatar_url", sa.String(512), nullable=False, server_default=""),
        sa.Column("cover_url", sa.String(512), nullable=False, server_default=""),
        sa.Column("created_by", _id(), _fk("users.id", "SET NULL"), nullable=True),
        sa.Column("disabled", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("ix_groups_disabled", "groups", ["disabled"])

    op.create_table(
        "group_members",
        sa.Column("group_id", _id(), _fk("groups.id"), primary_key=True),
        sa.Column("user_id", _id(), _fk("users.id"), primary_key=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("joined_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_group_members_user", "group_members", ["user_id"])

    op.create_table(
        "pages",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(80), nullable=False, unique=True),
        sa.Column("category", sa.String(80), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("avatar_url", sa.String(512), nullable=False, server_default=""),
        sa.Column("cover_url", sa.String(512), nullable=False, server_default=""),
        sa.Column("disabled", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("ix_pages_disabled", "pages", ["disabled"])

    op.create_table(
        "page_followers",
        sa.Column("page_id", _id(), _fk("pages.id"), primary_key=True),
        sa.Column("user_id", _id(), _fk("users.id"), primary_key=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_page_followers_user", "page_followers", ["user_id"])

    # =======================
    # Posts
    # =======================
    op.create_table(
        "posts",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("author_id", _id(), _fk("users.id"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("image", sa.String(512), nullable=False, server_default=""),
        sa.Column("scope", sa.Enum("global", "group", "page", name="post_scope"), nullable=False, server_default="global"),
        sa.Column("group_id", _id(), _fk("groups.id"), nullable=True),
        sa.Column("page_id", _id(), _fk("pages.id"), nullable=True),
        sa.Column("type", sa.Enum("original", "reshare", name="post_type"), nullable=False, server_default="original"),
        sa.Column("original_post_id", _id(), _fk("posts.id", "SET NULL"), nullable=True),
        sa.Column("is_protected", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("retention", sa.Enum("normal", "extended", "permanent", name="post_retention"),
                  nullable=False, server_default="normal"),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_posts_created", "posts", ["created_at"])
    op.create_index("idx_posts_expires", "posts", ["expires_at"])
    op.create_index("idx_posts_group", "posts", ["group_id", "created_at"])
    op.create_index("idx_posts_page", "posts", ["page_id", "created_at"])
    op.create_index("idx_posts_author", "posts", ["author_id", "created_at"])

    op.create_table(
        "post_reactions",
        sa.Column("post_id", _id(), _fk("posts.id"), primary_key=True),
        sa.Column("user_id", _id(), _fk("users.id"), primary_key=True),
        sa.Column("type", sa.Enum(*REACTIONS, name="reaction_type"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )

    op.create_table(
        "post_comments",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("post_id", _id(), _fk("posts.id"), nullable=False),
        sa.Column("user_id", _id(), _fk("users.id"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_post_comments_post", "post_comments", ["post_id", "created_at"])

    op.create_table(
        "post_shares",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("post_id", _id(), _fk("posts.id"), nullable=False),
        sa.Column("user_id", _id(), _fk("users.id"), nullable=False),
        sa.Column("reshare_id", _id(), _fk("posts.id", "SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_post_shares_post", "post_shares", ["post_id"])

    op.create_table(
        "bookmarks",
        sa.Column("user_id", _id(), _fk("users.id"), primary_key=True),
        sa.Column("post_id", _id(), _fk("posts.id"), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_bookmarks_user", "bookmarks", ["user_id", "created_at"])

    # =======================
    # Messaging
    # =======================
    op.create_table(
        "conversations",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("participants_key", sa.String(64), nullable=False, unique=True),
        sa.Column("last_message_text", sa.Text(), nullable=False),
        sa.Column("last_message_at", sa.DateTime(), nullable=True),
        sa.Column("last_sender_id", _id(), _fk("users.id", "SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )

    op.create_table(
        "conversation_participants",
        sa.Column("conversation_id", _id(), _fk("conversations.id"), primary_key=True),
        sa.Column("user_id", _id(), _fk("users.id"), primary_key=True),
        **_tbl_kwargs(),
    )
    op.create_index("idx_conv_participants_user", "conversation_participants", ["user_id"])

    op.create_table(
        "messages",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("conversation_id", _id(), _fk("conversations.id"), nullable=False),
        sa.Column("sender_id", _id(), _fk("users.id"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_messages_conv_created", "messages", ["conversation_id", "created_at"])

    op.create_table(
        "message_reads",
        sa.Column("message_id", _id(), _fk("messages.id"), primary_key=True),
        sa.Column("user_id", _id(), _fk("users.id"), primary_key=True),
        sa.Column("read_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )

    # =======================
    # Motivation
    # =======================
    op.create_table(
        "motivation_quotes",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("author", sa.String(120), nullable=False, server_default=""),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("tone", sa.Enum("inspiration", "humor", name="quote_tone"), nullable=False, server_default="inspiration"),
        sa.Column("lang", sa.String(10), nullable=False, server_default="en"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )

    op.create_table(
        "motivation_prefs",
        sa.Column("user_id", _id(), _fk("users.id"), primary_key=True),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("hour_local", sa.SmallInteger(), nullable=False, server_default=sa.text("9")),
        sa.Column("tone_inspiration", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("tone_humor", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("interests", sa.JSON(), nullable=False),
        sa.Column("goals", sa.JSON(), nullable=False),
        sa.Column("role", sa.String(40), nullable=False, server_default=""),
        sa.Column("language", sa.String(10), nullable=False, server_default=""),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        **_tbl_kwargs(),
    )

    op.create_table(
        "motivation_deliveries",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("user_id", _id(), _fk("users.id"), nullable=False),
        sa.Column("quote_id", _id(), _fk("motivation_quotes.id"), nullable=False),
        sa.Column("delivered_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_motivation_deliveries_user", "motivation_deliveries", ["user_id", "delivered_at"])

    # =======================
    # Notifications and moderation
    # =======================
    op.create_table(
        "notifications",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("user_id", _id(), _fk("users.id"), nullable=False),
        sa.Column("type", sa.Enum(*NOTIFICATION_TYPES, name="notification_type"), nullable=False),
        sa.Column("actor_id", _id(), _fk("users.id", "SET NULL"), nullable=True),
        sa.Column("post_id", _id(), _fk("posts.id"), nullable=True),
        sa.Column("reaction_type", sa.Enum(*REACTIONS, name="notification_reaction_type"), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("quote_id", _id(), _fk("motivation_quotes.id", "SET NULL"), nullable=True),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_notifications_user_created", "notifications", ["user_id", "created_at"])
    op.create_index("idx_notifications_user_read", "notifications", ["user_id", "read_at"])

    op.create_table(
        "reports",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("reporter_id", _id(), _fk("users.id", "SET NULL"), nullable=True),
        sa.Column("target_type", sa.Enum("post", "comment", "user", "page", "group", name="report_target"), nullable=False),
        sa.Column("target_id", _id(), nullable=False),
        sa.Column("target_user_id", _id(), _fk("users.id", "SET NULL"), nullable=True),
        sa.Column("reason", sa.Enum("spam", "harassment", "hate", "violence", "nudity", "misinformation", "other",
                                    name="report_reason"), nullable=False, server_default="other"),
        sa.Column("note", sa.String(1000), nullable=False, server_default=""),
        sa.Column("status", sa.Enum("open", "resolved", "dismissed", name="report_status"), nullable=False, server_default="open"),
        sa.Column("resolver_id", _id(), _fk("users.id", "SET NULL"), nullable=True),
        sa.Column("resolution_note", sa.String(400), nullable=False, server_default=""),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_reports_status_created", "reports", ["status", "created_at"])
    op.create_index("idx_reports_target", "reports", ["target_type", "target_id"])

    # =======================
    # Fact-check and trust
    # =======================
    op.create_table(
        "factcheck_results",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("post_id", _id(), _fk("posts.id"), nullable=False),
        sa.Column("claim", sa.Text(), nullable=False),
        sa.Column("verdict", sa.Enum(*VERDICTS, name="factcheck_verdict"), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.Column("topic", sa.String(80), nullable=False, server_default=""),
        sa.Column("evidence", sa.JSON(), nullable=True),
        sa.Column("model", sa.String(80), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=now),
        **_tbl_kwargs(),
    )
    op.create_index("idx_factcheck_post_created", "factcheck_results", ["post_id", "created_at"])
    op.create_index("idx_factcheck_verdict", "factcheck_results", ["verdict"])

    op.create_table(
        "trust_snapshots",
        sa.Column("id", _id(), primary_key=True, autoincrement=True),
        sa.Column("subject_type", sa.Enum("user", "page", name="trust_subject"), nullable=False),
        sa.Column("subject_id", _id(), nullable=False),
        sa.Column("checks", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("good", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("bad", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("score", sa.Integer(), nullable=False, server_default=sa.text("50")),
        sa.Column("conf_low", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("conf_high", sa.Integer(), nullable=False, server_default=sa.text("100")),
        sa.Column("tier", sa.Enum("provisional", "low", "normal", "high", name="trust_tier"),
                  nullable=False, server_default="provisional"),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=now),
        sa.UniqueConstraint("subject_type", "subject_id", name="uq_trust_subject"),
        **_tbl_kwargs(),
    )


def downgrade() -> None:
    """Drop everything in reverse dependency order."""
    for table in (
        "trust_snapshots", "factcheck_results", "reports", "notifications",
        "motivation_deliveries", "motivation_prefs", "motivation_quotes",
        "message_reads", "messages", "conversation_participants", "conversations",
        "bookmarks", "post_shares", "post_comments", "post_reactions", "posts",
        "page_followers", "pages", "group_members", "groups",
        "friend_requests", "friendships", "user_follows",
        "email_otps", "user_credentials", "users",
    ):
        op.drop_table(table)
