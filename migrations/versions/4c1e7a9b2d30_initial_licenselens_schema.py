"""Initial LicenseLens schema

Creates the tenant, identity, inventory, derived-metrics and audit
tables.  Natural keys of the derived-metrics tables are enforced with
unique constraints so generator reruns overwrite instead of duplicate:

    license_usage         (license_id, user_id)
    gamification_score    (organization_id, department_id, period, period_type)
    environmental_impact  (organization_id, department_id, period)

The organization-wide environmental row stores NULL in department_id,
which the unique constraint does not cover on most backends; the
generator serializes that row with a locked read instead.

Revision ID: 4c1e7a9b2d30
Revises:
Create Date: 2026-10-19 09:12:44.118203

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "4c1e7a9b2d30"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # -- Tenants and identity ---------------------------------------------
    op.create_table(
        "organization",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("domain", sa.String(length=200), nullable=False),
        sa.Column("industry", sa.String(length=100), nullable=True),
        sa.Column("employee_count", sa.Integer(), nullable=True),
        sa.Column("settings", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_organization_domain", "organization", ["domain"], unique=True
    )

    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("entra_object_id", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("first_login_at", sa.DateTime(), nullable=True),
        sa.Column("last_login", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.UniqueConstraint("entra_object_id"),
    )

    op.create_table(
        "user_profile",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "role IN ('admin', 'manager', 'user')", name="CK_user_profile_role"
        ),
    )
    op.create_index("ix_user_profile_user_id", "user_profile", ["user_id"])
    op.create_index(
        "ix_user_profile_organization_id", "user_profile", ["organization_id"]
    )

    op.create_table(
        "department",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("budget", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("manager_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["manager_id"], ["user.id"]),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("budget >= 0", name="CK_department_budget"),
    )
    op.create_index(
        "ix_department_organization_id", "department", ["organization_id"]
    )

    # -- Inventory --------------------------------------------------------
    op.create_table(
        "license",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("vendor", sa.String(length=200), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("license_type", sa.String(length=20), nullable=False),
        sa.Column("total_seats", sa.Integer(), nullable=False),
        sa.Column("used_seats", sa.Integer(), nullable=False),
        sa.Column("cost_per_seat", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("total_cost", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("billing_cycle", sa.String(length=10), nullable=False),
        sa.Column("purchase_date", sa.DateTime(), nullable=False),
        sa.Column("renewal_date", sa.DateTime(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["department_id"], ["department.id"]),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "license_type IN ('per_user', 'per_device', 'enterprise')",
            name="CK_license_license_type",
        ),
        sa.CheckConstraint(
            "billing_cycle IN ('monthly', 'annual')",
            name="CK_license_billing_cycle",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'expired', 'cancelled')",
            name="CK_license_status",
        ),
        sa.CheckConstraint(
            "total_seats >= 0 AND used_seats >= 0", name="CK_license_seats"
        ),
    )
    op.create_index("ix_license_organization_id", "license", ["organization_id"])
    op.create_index("ix_license_department_id", "license", ["department_id"])
    op.create_index("ix_license_status", "license", ["status"])

    op.create_table(
        "license_usage",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("license_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("last_active_date", sa.DateTime(), nullable=False),
        sa.Column("total_usage_hours", sa.Float(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["license_id"], ["license.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "license_id", "user_id", name="UQ_license_usage_license_user"
        ),
    )
    op.create_index("ix_license_usage_license_id", "license_usage", ["license_id"])
    op.create_index("ix_license_usage_user_id", "license_usage", ["user_id"])

    # -- Derived metrics --------------------------------------------------
    op.create_table(
        "insight",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("license_id", sa.Integer(), nullable=True),
        sa.Column("department_id", sa.Integer(), nullable=True),
        sa.Column("insight_type", sa.String(length=30), nullable=False),
        sa.Column("severity", sa.String(length=10), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "potential_savings", sa.Numeric(precision=14, scale=2), nullable=True
        ),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["department_id"], ["department.id"]),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('new', 'acknowledged', 'resolved', 'dismissed')",
            name="CK_insight_status",
        ),
        sa.CheckConstraint(
            "severity IN ('low', 'medium', 'high', 'critical')",
            name="CK_insight_severity",
        ),
        sa.CheckConstraint(
            "confidence >= 0 AND confidence <= 100", name="CK_insight_confidence"
        ),
    )
    op.create_index("ix_insight_organization_id", "insight", ["organization_id"])
    op.create_index("ix_insight_license_id", "insight", ["license_id"])
    op.create_index("ix_insight_department_id", "insight", ["department_id"])
    op.create_index("ix_insight_status", "insight", ["status"])
    op.create_index("ix_insight_created_at", "insight", ["created_at"])

    op.create_table(
        "gamification_score",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=False),
        sa.Column("period", sa.String(length=10), nullable=False),
        sa.Column("period_type", sa.String(length=10), nullable=False),
        sa.Column("efficiency_score", sa.Integer(), nullable=False),
        sa.Column("utilization_rate", sa.Integer(), nullable=False),
        sa.Column("budget_adherence", sa.Integer(), nullable=False),
        sa.Column("total_spend", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column(
            "budget_allocated", sa.Numeric(precision=14, scale=2), nullable=False
        ),
        sa.Column("licenses_managed", sa.Integer(), nullable=False),
        sa.Column("active_licenses", sa.Integer(), nullable=False),
        sa.Column(
            "potential_savings", sa.Numeric(precision=14, scale=2), nullable=False
        ),
        sa.Column(
            "actual_savings", sa.Numeric(precision=14, scale=2), nullable=False
        ),
        sa.Column("rank", sa.Integer(), nullable=True),
        sa.Column("previous_rank", sa.Integer(), nullable=True),
        sa.Column("badges", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["department_id"], ["department.id"]),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "organization_id",
            "department_id",
            "period",
            "period_type",
            name="UQ_gamification_score_key",
        ),
        sa.CheckConstraint(
            "period_type IN ('monthly', 'quarterly', 'yearly')",
            name="CK_gamification_score_period_type",
        ),
    )
    op.create_index(
        "ix_gamification_score_department_id",
        "gamification_score",
        ["department_id"],
    )
    op.create_index(
        "IX_gamification_score_org_period",
        "gamification_score",
        ["organization_id", "period"],
    )
    op.create_index(
        "IX_gamification_score_org_type",
        "gamification_score",
        ["organization_id", "period_type"],
    )

    op.create_table(
        "badge",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=False),
        sa.Column("badge_type", sa.String(length=30), nullable=False),
        sa.Column("earned_date", sa.DateTime(), nullable=False),
        sa.Column("period", sa.String(length=10), nullable=False),
        sa.Column("criteria", sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(["department_id"], ["department.id"]),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_badge_organization_id", "badge", ["organization_id"])
    op.create_index("ix_badge_department_id", "badge", ["department_id"])
    op.create_index("ix_badge_badge_type", "badge", ["badge_type"])

    op.create_table(
        "environmental_impact",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("department_id", sa.Integer(), nullable=True),
        sa.Column("period", sa.String(length=10), nullable=False),
        sa.Column("unused_licenses", sa.Integer(), nullable=False),
        sa.Column("co2_saved_kg", sa.Float(), nullable=False),
        sa.Column("energy_saved_kwh", sa.Float(), nullable=False),
        sa.Column("water_saved_liters", sa.Float(), nullable=False),
        sa.Column("tree_equivalent", sa.Float(), nullable=False),
        sa.Column("car_miles_equivalent", sa.Float(), nullable=False),
        sa.Column("cumulative_co2", sa.Float(), nullable=False),
        sa.Column("optimization_actions", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["department_id"], ["department.id"]),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "organization_id",
            "department_id",
            "period",
            name="UQ_environmental_impact_key",
        ),
    )
    op.create_index(
        "ix_environmental_impact_department_id",
        "environmental_impact",
        ["department_id"],
    )
    op.create_index(
        "IX_environmental_impact_org_period",
        "environmental_impact",
        ["organization_id", "period"],
    )

    # -- Audit ------------------------------------------------------------
    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("previous_value", sa.Text(), nullable=True),
        sa.Column("new_value", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "action_type IN ('CREATE', 'UPDATE', 'DELETE', 'LOGIN', 'LOGOUT', 'GENERATE')",
            name="CK_audit_log_action_type",
        ),
    )
    op.create_index(
        "ix_audit_log_organization_id", "audit_log", ["organization_id"]
    )

    op.create_table(
        "generator_run",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("organization_id", sa.Integer(), nullable=False),
        sa.Column("triggered_by", sa.Integer(), nullable=True),
        sa.Column("run_type", sa.String(length=50), nullable=False),
        sa.Column("period", sa.String(length=10), nullable=True),
        sa.Column("records_processed", sa.Integer(), nullable=False),
        sa.Column("records_created", sa.Integer(), nullable=False),
        sa.Column("records_updated", sa.Integer(), nullable=False),
        sa.Column("records_skipped", sa.Integer(), nullable=False),
        sa.Column("records_errors", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["organization_id"], ["organization.id"]),
        sa.ForeignKeyConstraint(["triggered_by"], ["user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('started', 'completed', 'failed')",
            name="CK_generator_run_status",
        ),
    )
    op.create_index(
        "ix_generator_run_organization_id", "generator_run", ["organization_id"]
    )


def downgrade():
    op.drop_index("ix_generator_run_organization_id", table_name="generator_run")
    op.drop_table("generator_run")
    op.drop_index("ix_audit_log_organization_id", table_name="audit_log")
    op.drop_table("audit_log")

    op.drop_index(
        "IX_environmental_impact_org_period", table_name="environmental_impact"
    )
    op.drop_index(
        "ix_environmental_impact_department_id", table_name="environmental_impact"
    )
    op.drop_table("environmental_impact")
    op.drop_index("ix_badge_badge_type", table_name="badge")
    op.drop_index("ix_badge_department_id", table_name="badge")
    op.drop_index("ix_badge_organization_id", table_name="badge")
    op.drop_table("badge")
    op.drop_index("IX_gamification_score_org_type", table_name="gamification_score")
    op.drop_index(
        "IX_gamification_score_org_period", table_name="gamification_score"
    )
    op.drop_index(
        "ix_gamification_score_department_id", table_name="gamification_score"
    )
    op.drop_table("gamification_score")
    for index in (
        "ix_insight_created_at",
        "ix_insight_status",
        "ix_insight_department_id",
        "ix_insight_license_id",
        "ix_insight_organization_id",
    ):
        op.drop_index(index, table_name="insight")
    op.drop_table("insight")

    op.drop_index("ix_license_usage_user_id", table_name="license_usage")
    op.drop_index("ix_license_usage_license_id", table_name="license_usage")
    op.drop_table("license_usage")
    op.drop_index("ix_license_status", table_name="license")
    op.drop_index("ix_license_department_id", table_name="license")
    op.drop_index("ix_license_organization_id", table_name="license")
    op.drop_table("license")

    op.drop_index("ix_department_organization_id", table_name="department")
    op.drop_table("department")
    op.drop_index("ix_user_profile_organization_id", table_name="user_profile")
    op.drop_index("ix_user_profile_user_id", table_name="user_profile")
    op.drop_table("user_profile")
    op.drop_table("user")
    op.drop_index("ix_organization_domain", table_name="organization")
    op.drop_table("organization")
