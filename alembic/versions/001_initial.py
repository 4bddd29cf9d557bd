"""initial schema: admins, reset tokens, blog, portfolio"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None

PK = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _content_columns() -> list:
    return [
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", PK, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "admins",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(length=150), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_super_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("username", name="uq_admins_username"),
        sa.UniqueConstraint("email", name="uq_admins_email"),
    )
    op.create_index("ix_admins_username", "admins", ["username"])

    op.create_table(
        "password_reset_tokens",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("admin_id", PK, sa.ForeignKey("admins.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_password_reset_tokens_admin_id", "password_reset_tokens", ["admin_id"])
    op.create_index("ix_password_reset_tokens_token", "password_reset_tokens", ["token"], unique=True)
    op.create_index("ix_password_reset_tokens_expires_at", "password_reset_tokens", ["expires_at"])

    op.create_table(
        "blog_articles",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("excerpt", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("author", sa.String(length=150), nullable=True),
        sa.Column("read_time", sa.String(length=64), nullable=True),
        *_content_columns(),
    )
    op.create_index("ix_blog_articles_created_by", "blog_articles", ["created_by"])

    op.create_table(
        "portfolio_items",
        sa.Column("id", PK, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("stats", sa.String(length=255), nullable=True),
        *_content_columns(),
    )
    op.create_index("ix_portfolio_items_created_by", "portfolio_items", ["created_by"])


def downgrade() -> None:
    op.drop_index("ix_portfolio_items_created_by", table_name="portfolio_items")
    op.drop_table("portfolio_items")
    op.drop_index("ix_blog_articles_created_by", table_name="blog_articles")
    op.drop_table("blog_articles")
    op.drop_index("ix_password_reset_tokens_expires_at", table_name="password_reset_tokens")
    op.drop_index("ix_password_reset_tokens_token", table_name="password_reset_tokens")
    op.drop_index("ix_password_reset_tokens_admin_id", table_name="password_reset_tokens")
    op.drop_table("password_reset_tokens")
    op.drop_index("ix_admins_username", table_name="admins")
    op.drop_table("admins")
