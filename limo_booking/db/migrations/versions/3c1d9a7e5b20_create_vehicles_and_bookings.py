"""create vehicles and bookings

Revision ID: 3c1d9a7e5b20
Revises:
Create Date: 2026-10-19 09:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3c1d9a7e5b20"
down_revision = None
branch_labels = None
depends_on = None


vehicle_status = sa.Enum("AVAILABLE", "RESERVED", name="vehiclestatus")
service_type = sa.Enum("AIRPORT_TRANSFER", "TRIP", "RENTAL", name="servicetype")
booking_status = sa.Enum("PENDING", "CONFIRMED", "CANCELLED", name="bookingstatus")
payment_status = sa.Enum("PENDING", "PAID", "FAILED", name="paymentstatus")


def upgrade():
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("model", sa.String()),
        sa.Column("plate_number", sa.String(), unique=True),
        sa.Column("capacity", sa.Integer()),
        sa.Column("price_airport_transfer", sa.Numeric(10, 2), nullable=True),
        sa.Column("price_trip_base", sa.Numeric(10, 2), nullable=True),
        sa.Column("price_6_hours", sa.Numeric(10, 2), nullable=True),
        sa.Column("price_12_hours", sa.Numeric(10, 2), nullable=True),
        sa.Column("price_per_hour", sa.Numeric(10, 2), nullable=True),
        sa.Column("status", vehicle_status, nullable=False, server_default="AVAILABLE"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("updated_at", sa.DateTime()),
    )
    op.create_index("ix_vehicles_id", "vehicles", ["id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("vehicle_id", sa.Integer(), sa.ForeignKey("vehicles.id"), nullable=False),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("customer_email", sa.String(), nullable=False),
        sa.Column("customer_phone", sa.String()),
        sa.Column("service_type", service_type, nullable=False),
        sa.Column("pickup_location", sa.String(), nullable=False),
        sa.Column("dropoff_location", sa.String()),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("duration_hours", sa.Numeric(5, 2), nullable=True),
        sa.Column("notes", sa.Text()),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("price_breakdown", sa.JSON(), nullable=True),
        sa.Column("status", booking_status, nullable=False, server_default="PENDING"),
        sa.Column("payment_status", payment_status, nullable=False, server_default="PENDING"),
        sa.Column("stripe_session_id", sa.String(), nullable=True),
        sa.Column("stripe_payment_id", sa.String(), nullable=True),
        sa.Column("reserved_until", sa.DateTime(), nullable=True),
        sa.Column("vehicle_release_due_at", sa.DateTime(), nullable=True),
        sa.Column("vehicle_released_at", sa.DateTime(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_vehicle_id", "bookings", ["vehicle_id"])
    op.create_index("ix_bookings_customer_email", "bookings", ["customer_email"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_stripe_session_id", "bookings", ["stripe_session_id"])


def downgrade():
    op.drop_table("bookings")
    op.drop_table("vehicles")

    bind = op.get_bind()
    for enum in (payment_status, booking_status, service_type, vehicle_status):
        enum.drop(bind, checkfirst=True)
