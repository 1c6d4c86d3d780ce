from alembic import op
import sqlalchemy as sa

revision = "0001_listings"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "listings",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(length=120), nullable=False),

        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("price", sa.String(length=120), nullable=False),
        sa.Column("rooms", sa.String(length=120), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=False),
        sa.Column("city", sa.String(length=120), nullable=False),
        sa.Column("utilities", sa.String(length=200), nullable=False),
        sa.Column("parking", sa.String(length=200), nullable=False),
        sa.Column("pet_policy", sa.String(length=200), nullable=False),
        sa.Column("available", sa.String(length=200), nullable=False),
        sa.Column("note", sa.Text(), nullable=False, server_default=""),

        sa.Column("status", sa.String(length=20), nullable=False, server_default="Available"),

        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("updated_by", sa.String(), nullable=True),

        sa.CheckConstraint("status IN ('Available', 'Rented')", name="ck_listings_status"),
    )

    op.create_index("ix_listings_user_id", "listings", ["user_id"])
    op.create_index("ix_listings_user_created", "listings", ["user_id", "created_at"])


def downgrade():
    op.drop_index("ix_listings_user_created", table_name="listings")
    op.drop_index("ix_listings_user_id", table_name="listings")
    op.drop_table("listings")
