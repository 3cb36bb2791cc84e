"""Create zoo tables

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Initial schema: users, exhibits, animals, health_records, feedings,
       staff, visitors, visits, tickets, reports.
How:   Portable column types (sa.Uuid, sa.JSON, TIMESTAMP WITH TIME ZONE)
       so the same revision runs on PostgreSQL and SQLite.

Rollback: downgrade() drops every table in reverse dependency order.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("role", sa.String(30), nullable=False, server_default=sa.text("'visitor'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "failed_login_attempts", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        sa.Column("lock_until", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("last_login", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    # ── exhibits ──────────────────────────────────────────────────────────
    op.create_table(
        "exhibits",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column(
            "type",
            sa.String(30),
            nullable=False,
            comment="indoor, outdoor, aquatic, aviary, nocturnal, interactive, educational",
        ),
        sa.Column("theme", sa.String(100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(150), nullable=True),
        sa.Column("animal_capacity", sa.Integer(), nullable=False),
        sa.Column("visitor_capacity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "animal_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Cached number of animals referencing this exhibit",
        ),
        sa.Column("visitor_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(30), nullable=False, server_default=sa.text("'open'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("opening_time", sa.String(5), nullable=False, server_default=sa.text("'09:00'")),
        sa.Column("closing_time", sa.String(5), nullable=False, server_default=sa.text("'17:00'")),
        sa.Column("operating_days", sa.JSON(), nullable=False),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("last_inspection", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("next_inspection", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("animal_count >= 0", name="ck_exhibits_animal_count_non_negative"),
        sa.CheckConstraint(
            "animal_count <= animal_capacity",
            name="ck_exhibits_animal_count_within_capacity",
        ),
        sa.CheckConstraint(
            "animal_capacity >= 0", name="ck_exhibits_animal_capacity_non_negative"
        ),
    )
    op.create_index("idx_exhibits_type", "exhibits", ["type"])
    op.create_index("idx_exhibits_status", "exhibits", ["status"])

    # ── animals ───────────────────────────────────────────────────────────
    op.create_table(
        "animals",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("species", sa.String(100), nullable=False),
        sa.Column("scientific_name", sa.String(150), nullable=True),
        sa.Column("gender", sa.String(10), nullable=False, server_default=sa.text("'unknown'")),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("arrival_date", sa.Date(), nullable=True),
        sa.Column("origin", sa.String(20), nullable=True),
        sa.Column("exhibit_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        sa.Column("temperament", sa.String(50), nullable=True),
        sa.Column("diet_primary", sa.String(100), nullable=True),
        sa.Column("feeding_frequency", sa.String(50), nullable=True),
        sa.Column("dietary_restrictions", sa.JSON(), nullable=False),
        sa.Column("is_endangered", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("conservation_status", sa.String(50), nullable=True),
        sa.Column("microchip_id", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("last_health_check", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("next_health_check", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["exhibit_id"], ["exhibits.id"]),
        sa.UniqueConstraint("microchip_id", name="uq_animals_microchip_id"),
    )
    op.create_index("idx_animals_exhibit_id", "animals", ["exhibit_id"])
    op.create_index("idx_animals_species", "animals", ["species"])
    op.create_index("idx_animals_next_health_check", "animals", ["next_health_check"])

    # ── health_records ────────────────────────────────────────────────────
    op.create_table(
        "health_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("animal_id", sa.Uuid(), nullable=False),
        sa.Column("animal_name", sa.String(100), nullable=False),
        sa.Column("date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("veterinarian", sa.String(150), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default=sa.text("'checkup'")),
        sa.Column("diagnosis", sa.Text(), nullable=True),
        sa.Column("treatment", sa.Text(), nullable=True),
        sa.Column("medications", sa.JSON(), nullable=False),
        sa.Column("vitals", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("cost", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("follow_up_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("follow_up_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'completed'")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["animal_id"], ["animals.id"]),
    )
    op.create_index("idx_health_records_animal_date", "health_records", ["animal_id", "date"])
    op.create_index("idx_health_records_veterinarian", "health_records", ["veterinarian"])

    # ── feedings ──────────────────────────────────────────────────────────
    op.create_table(
        "feedings",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("animal_id", sa.Uuid(), nullable=False),
        sa.Column("animal_name", sa.String(100), nullable=False),
        sa.Column("exhibit_id", sa.Uuid(), nullable=False),
        sa.Column("food_type", sa.String(100), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(20), nullable=False, server_default=sa.text("'kg'")),
        sa.Column("feeding_date", sa.Date(), nullable=False),
        sa.Column("scheduled_time", sa.String(5), nullable=False, comment="HH:MM"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_by", sa.String(150), nullable=True),
        sa.Column("completed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["animal_id"], ["animals.id"]),
        sa.ForeignKeyConstraint(["exhibit_id"], ["exhibits.id"]),
    )
    op.create_index("idx_feedings_date_time", "feedings", ["feeding_date", "scheduled_time"])
    op.create_index("idx_feedings_animal_id", "feedings", ["animal_id"])
    op.create_index("idx_feedings_exhibit_id", "feedings", ["exhibit_id"])

    # ── staff ─────────────────────────────────────────────────────────────
    op.create_table(
        "staff",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("employee_id", sa.String(30), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("department", sa.String(100), nullable=False),
        sa.Column("position", sa.String(100), nullable=False),
        sa.Column("hire_date", sa.Date(), nullable=False),
        sa.Column("salary", sa.Float(), nullable=True),
        sa.Column("certifications", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("employee_id", name="uq_staff_employee_id"),
        sa.UniqueConstraint("email", name="uq_staff_email"),
    )
    op.create_index("idx_staff_role", "staff", ["role"])
    op.create_index("idx_staff_department", "staff", ["department"])

    # ── visitors ──────────────────────────────────────────────────────────
    op.create_table(
        "visitors",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, comment="Stored lower-case"),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("source", sa.String(20), nullable=False, server_default=sa.text("'walk_in'")),
        sa.Column("newsletter", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("membership_type", sa.String(20), nullable=True),
        sa.Column("membership_start", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("membership_end", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("membership_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "membership_discount", sa.Float(), nullable=False, server_default=sa.text("0")
        ),
        sa.Column("loyalty_points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_visits", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_spent", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "average_visit_duration",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Minutes",
        ),
        sa.Column("last_visit_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("vip_level", sa.String(10), nullable=False, server_default=sa.text("'bronze'")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_visitors_email"),
    )
    op.create_index("idx_visitors_vip_level", "visitors", ["vip_level"])
    op.create_index("idx_visitors_last_visit_date", "visitors", ["last_visit_date"])

    # ── visits ────────────────────────────────────────────────────────────
    op.create_table(
        "visits",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("visitor_id", sa.Uuid(), nullable=False),
        sa.Column("visit_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("entry_time", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("exit_time", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True, comment="Minutes"),
        sa.Column("group_size", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("spending_food", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("spending_souvenirs", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("spending_activities", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("spending_total", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("feedback_rating", sa.Integer(), nullable=True),
        sa.Column("feedback_comments", sa.Text(), nullable=True),
        sa.Column("exhibits_visited", sa.JSON(), nullable=False),
        sa.Column(
            "position",
            sa.Integer(),
            nullable=False,
            comment="Append order within the visitor history",
        ),
        sa.Column(
            "recorded_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["visitor_id"], ["visitors.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("visitor_id", "position", name="uq_visits_visitor_position"),
    )

    # ── tickets ───────────────────────────────────────────────────────────
    op.create_table(
        "tickets",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("ticket_id", sa.String(40), nullable=False),
        sa.Column("visitor_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column(
            "discount_applied",
            sa.Float(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Percentage 0-100",
        ),
        sa.Column("discount_code", sa.String(50), nullable=True),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("transaction_id", sa.String(100), nullable=True),
        sa.Column(
            "purchase_date",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column("visit_date", sa.Date(), nullable=False),
        sa.Column("valid_until", sa.Date(), nullable=True),
        sa.Column("is_used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("used_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("refunded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("refund_date", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("refund_amount", sa.Float(), nullable=True),
        sa.Column("refund_reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["visitor_id"], ["visitors.id"]),
        sa.UniqueConstraint("ticket_id", name="uq_tickets_ticket_id"),
        sa.CheckConstraint("price >= 0", name="ck_tickets_price_non_negative"),
        sa.CheckConstraint(
            "discount_applied >= 0 AND discount_applied <= 100",
            name="ck_tickets_discount_range",
        ),
    )
    op.create_index("idx_tickets_visitor_id", "tickets", ["visitor_id"])
    op.create_index("idx_tickets_visit_date", "tickets", ["visit_date"])

    # ── reports ───────────────────────────────────────────────────────────
    op.create_table(
        "reports",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("period", sa.String(20), nullable=False, server_default=sa.text("'custom'")),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("generated_by", sa.Uuid(), nullable=True),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'generated'")),
        sa.Column("file_path", sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["generated_by"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_reports_type_created", "reports", ["type", "created_at"])


def downgrade() -> None:
    """Drops every zoo table. Destructive: all data is lost."""
    op.drop_index("idx_reports_type_created", table_name="reports")
    op.drop_table("reports")
    op.drop_index("idx_tickets_visit_date", table_name="tickets")
    op.drop_index("idx_tickets_visitor_id", table_name="tickets")
    op.drop_table("tickets")
    op.drop_table("visits")
    op.drop_index("idx_visitors_last_visit_date", table_name="visitors")
    op.drop_index("idx_visitors_vip_level", table_name="visitors")
    op.drop_table("visitors")
    op.drop_index("idx_staff_department", table_name="staff")
    op.drop_index("idx_staff_role", table_name="staff")
    op.drop_table("staff")
    op.drop_index("idx_feedings_exhibit_id", table_name="feedings")
    op.drop_index("idx_feedings_animal_id", table_name="feedings")
    op.drop_index("idx_feedings_date_time", table_name="feedings")
    op.drop_table("feedings")
    op.drop_index("idx_health_records_veterinarian", table_name="health_records")
    op.drop_index("idx_health_records_animal_date", table_name="health_records")
    op.drop_table("health_records")
    op.drop_index("idx_animals_next_health_check", table_name="animals")
    op.drop_index("idx_animals_species", table_name="animals")
    op.drop_index("idx_animals_exhibit_id", table_name="animals")
    op.drop_table("animals")
    op.drop_index("idx_exhibits_status", table_name="exhibits")
    op.drop_index("idx_exhibits_type", table_name="exhibits")
    op.drop_table("exhibits")
    op.drop_table("users")
