"""member and donation tables

Revision ID: 0001
Revises:
Create Date: 2026-10-19 12:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

STATUSES = ("PENDING", "ACCEPTED", "EN_ROUTE", "PICKED_UP", "CANCELLED")


def upgrade() -> None:
    op.create_table(
        "member",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tg_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lng", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_member_tg_id", "member", ["tg_id"], unique=True)

    op.create_table(
        "donation",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("donor_id", sa.Integer(), nullable=False),
        sa.Column("donor_name", sa.String(), nullable=True),
        sa.Column("donor_lat", sa.Float(), nullable=False),
        sa.Column("donor_lng", sa.Float(), nullable=False),
        sa.Column("location_text", sa.String(), nullable=False),
        sa.Column("food_type", sa.String(), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("status", sa.Enum(*STATUSES, name="donationstatus"), nullable=False),
        sa.Column("acceptor_id", sa.Integer(), nullable=True),
        sa.Column("acceptor_name", sa.String(), nullable=True),
        sa.Column("acceptor_lat", sa.Float(), nullable=True),
        sa.Column("acceptor_lng", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("revision", sa.Integer(), nullable=False),
    )
    op.create_index("ix_donation_donor_id", "donation", ["donor_id"])
    op.create_index("ix_donation_status", "donation", ["status"])
    op.create_index("ix_donation_acceptor_id", "donation", ["acceptor_id"])


def downgrade() -> None:
    op.drop_index("ix_donation_acceptor_id", table_name="donation")
    op.drop_index("ix_donation_status", table_name="donation")
    op.drop_index("ix_donation_donor_id", table_name="donation")
    op.drop_table("donation")
    op.drop_index("ix_member_tg_id", table_name="member")
    op.drop_table("member")
