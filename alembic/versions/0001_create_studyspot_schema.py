from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    op.create_table(
        "branches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("address", sa.String(), nullable=True),
    )

    op.create_table(
        "floors",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id", ondelete="CASCADE"), nullable=False),
        sa.Column("floor_number", sa.Integer(), nullable=False),
        sa.UniqueConstraint("branch_id", "floor_number", name="uq_floors_branch_number"),
    )
    op.create_index("ix_floors_branch_id", "floors", ["branch_id"], unique=False)

    op.create_table(
        "rooms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("floor_id", sa.Integer(), sa.ForeignKey("floors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("room_no", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("is_ac", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("price_daily", sa.Integer(), nullable=True),
        sa.Column("seats_count", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("floor_id", "room_no", name="uq_rooms_floor_room_no"),
    )
    op.create_index("ix_rooms_floor_id", "rooms", ["floor_id"], unique=False)

    op.create_table(
        "seats",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seat_no", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("is_blocked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("room_id", "seat_no", name="uq_seats_room_seat_no"),
    )
    op.create_index("ix_seats_room_id", "seats", ["room_id"], unique=False)

    op.create_table(
        "slots",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("duration_days", sa.Integer(), nullable=False),
        sa.Column("price", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "pricing_rules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_ac", sa.Boolean(), nullable=False),
        sa.Column("daily_rate", sa.Integer(), nullable=False),
        sa.UniqueConstraint("branch_id", "is_ac", name="uq_pricing_rules_branch_ac"),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("customer_phone", sa.String(), nullable=False),
        sa.Column("customer_email", sa.String(), nullable=True),
        sa.Column("slot_id", sa.String(), sa.ForeignKey("slots.id", ondelete="SET NULL"), nullable=True),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id", ondelete="SET NULL"), nullable=True),
        sa.Column("floor_id", sa.Integer(), sa.ForeignKey("floors.id", ondelete="SET NULL"), nullable=True),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey("rooms.id", ondelete="SET NULL"), nullable=True),
        sa.Column("seat_id", sa.Integer(), sa.ForeignKey("seats.id", ondelete="SET NULL"), nullable=True),
        sa.Column("floor_number", sa.Integer(), nullable=True),
        sa.Column("room_no", sa.String(), nullable=True),
        sa.Column("seat_no", sa.String(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("payment_screenshot_url", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("start_date <= end_date", name="ck_bookings_date_order"),
        sa.CheckConstraint(
            "status IN ('pending','confirmed','cancelled','rejected','revoked','expired')",
            name="ck_bookings_status",
        ),
    )
    op.create_index("ix_bookings_customer_phone", "bookings", ["customer_phone"], unique=False)
    op.create_index("ix_bookings_branch_id", "bookings", ["branch_id"], unique=False)
    op.create_index("ix_bookings_seat_id", "bookings", ["seat_id"], unique=False)
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)

    # at most one active booking per seat for any calendar day
    op.execute(
        """
        ALTER TABLE bookings ADD CONSTRAINT ex_bookings_seat_dates
        EXCLUDE USING gist (
            seat_id WITH =,
            daterange(start_date, end_date, '[]') WITH &&
        ) WHERE (status IN ('pending', 'confirmed'))
        """
    )

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("branch_id", sa.Integer(), sa.ForeignKey("branches.id", ondelete="CASCADE"), nullable=True),
        sa.Column("reason", sa.String(), nullable=True),
    )
    op.create_index("ix_holidays_date", "holidays", ["date"], unique=False)

    op.create_table(
        "settings",
        sa.Column("key", sa.String(), primary_key=True),
        sa.Column("value", sa.String(), nullable=True),
    )
    op.execute("INSERT INTO settings (key, value) VALUES ('maintenance_mode', 'false')")

    op.create_table(
        "announcements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("message", sa.String(), nullable=False),
        sa.Column("targets", sa.JSON(), nullable=False),
        sa.Column("recipient_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

def downgrade():
    op.drop_table("announcements")
    op.drop_table("settings")
    op.drop_index("ix_holidays_date", table_name="holidays")
    op.drop_table("holidays")
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_seat_dates")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_seat_id", table_name="bookings")
    op.drop_index("ix_bookings_branch_id", table_name="bookings")
    op.drop_index("ix_bookings_customer_phone", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("pricing_rules")
    op.drop_table("slots")
    op.drop_index("ix_seats_room_id", table_name="seats")
    op.drop_table("seats")
    op.drop_index("ix_rooms_floor_id", table_name="rooms")
    op.drop_table("rooms")
    op.drop_index("ix_floors_branch_id", table_name="floors")
    op.drop_table("floors")
