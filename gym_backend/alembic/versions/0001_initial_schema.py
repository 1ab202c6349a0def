"""initial schema

Revision ID: 0001
Revises:
Create Date: 2024-01-01 00:00:00

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [sa.Column("created_at", sa.DateTime()), sa.Column("updated_at", sa.DateTime())]


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("birth_date", sa.DateTime()),
        sa.Column("gender", sa.String(10)),
        sa.Column("emergency_contact", sa.JSON()),
        sa.Column("medical_conditions", sa.JSON()),
        sa.Column("goals", sa.JSON()),
        sa.Column("status", sa.String(20), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("phone"),
    )
    op.create_index("ix_clients_status", "clients", ["status"])

    op.create_table(
        "training_plans",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("level", sa.String(20), nullable=False),
        sa.Column("goals", sa.JSON()),
        sa.Column("exercises", sa.JSON()),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_training_plans_name", "training_plans", ["name"])

    op.create_table(
        "contracts",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("client_id", sa.String(32)),
        sa.Column("plan_id", sa.String(32)),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("terms", sa.JSON()),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("payment_schedule", sa.String(20), nullable=False),
        sa.Column("cancellation_reason", sa.Text()),
        sa.Column("cancellation_date", sa.DateTime()),
        sa.Column("completion_date", sa.DateTime()),
        *_timestamps(),
    )
    op.create_index("ix_contracts_client_id", "contracts", ["client_id"])
    op.create_index("ix_contracts_plan_id", "contracts", ["plan_id"])
    op.create_index("ix_contracts_status", "contracts", ["status"])
    op.create_index("ix_contracts_period", "contracts", ["start_date", "end_date"])

    op.create_table(
        "nutrition_plans",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("client_id", sa.String(32)),
        sa.Column("contract_id", sa.String(32)),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("daily_calories", sa.Integer(), nullable=False),
        sa.Column("macros", sa.JSON()),
        sa.Column("meals", sa.JSON()),
        sa.Column("restrictions", sa.JSON()),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_nutrition_plans_client_id", "nutrition_plans", ["client_id"])

    op.create_table(
        "physical_tracking",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("client_id", sa.String(32)),
        sa.Column("contract_id", sa.String(32)),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("weight", sa.Float()),
        sa.Column("body_fat", sa.Float()),
        sa.Column("muscle_mass", sa.Float()),
        sa.Column("measurements", sa.JSON()),
        sa.Column("photos", sa.JSON()),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_physical_tracking_client_date", "physical_tracking", ["client_id", "date"])

    op.create_table(
        "financial_records",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("client_id", sa.String(32)),
        sa.Column("contract_id", sa.String(32)),
        sa.Column("payment_method", sa.String(20)),
        sa.Column("reference", sa.String(200)),
        *_timestamps(),
    )
    op.create_index("ix_financial_records_client_id", "financial_records", ["client_id"])
    op.create_index("ix_financial_records_type_date", "financial_records", ["type", "date"])


def downgrade() -> None:
    for table in (
        "financial_records",
        "physical_tracking",
        "nutrition_plans",
        "contracts",
        "training_plans",
        "clients",
    ):
        op.drop_table(table)
