"""Initial NutrIA schema: users, food catalog, meals, recipes, plans.

Revision ID: 3f1c9a7e2b10
Revises:
Create Date: 2026-10-01
"""
from alembic import op
import sqlalchemy as sa

revision = "3f1c9a7e2b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("profile_image_url", sa.String(500)),
        sa.Column("weight", sa.Float),
        sa.Column("height", sa.Integer),
        sa.Column("age", sa.Integer),
        sa.Column("activity_level", sa.String(20)),
        sa.Column("goal", sa.String(20)),
        sa.Column("daily_calories", sa.Integer),
        sa.Column("daily_protein", sa.Integer),
        sa.Column("daily_carbs", sa.Integer),
        sa.Column("daily_fat", sa.Integer),
        sa.Column("notifications_enabled", sa.Boolean),
        sa.Column("is_profile_complete", sa.Boolean),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_table(
        "revoked_tokens",
        sa.Column("jti", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False, index=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True)),
    )
    op.create_table(
        "foods",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("usda_fdc_id", sa.Integer, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("brand", sa.String(255)),
        sa.Column("category", sa.String(255)),
        sa.Column("calories_per_100g", sa.Float, nullable=False),
        sa.Column("protein_per_100g", sa.Float, nullable=False),
        sa.Column("carbs_per_100g", sa.Float, nullable=False),
        sa.Column("fat_per_100g", sa.Float, nullable=False),
        sa.Column("fiber_per_100g", sa.Float),
        sa.Column("sugar_per_100g", sa.Float),
        sa.Column("sodium_per_100g", sa.Float),
        sa.Column("is_custom", sa.Boolean),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE")),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_foods_user_name", "foods", ["user_id", "name"])
    op.create_table(
        "meal_types",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("icon", sa.String(50)),
        sa.Column("is_default", sa.Boolean),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE")),
    )
    op.create_table(
        "meals",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("meal_type_id", sa.String(36), sa.ForeignKey("meal_types.id"), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("name", sa.String(255)),
        sa.Column("total_calories", sa.Integer),
        sa.Column("total_protein", sa.Float),
        sa.Column("total_carbs", sa.Float),
        sa.Column("total_fat", sa.Float),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_meals_user_date", "meals", ["user_id", "date"])
    op.create_index("ix_meals_user_created", "meals", ["user_id", "created_at"])
    op.create_table(
        "meal_foods",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("meal_id", sa.String(36), sa.ForeignKey("meals.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("food_id", sa.String(36), sa.ForeignKey("foods.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quantity", sa.Float, nullable=False),
        sa.Column("unit", sa.String(20)),
        sa.Column("calories", sa.Float, nullable=False),
        sa.Column("protein", sa.Float, nullable=False),
        sa.Column("carbs", sa.Float, nullable=False),
        sa.Column("fat", sa.Float, nullable=False),
    )
    op.create_table(
        "daily_nutrition",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("total_calories", sa.Integer),
        sa.Column("total_protein", sa.Float),
        sa.Column("total_carbs", sa.Float),
        sa.Column("total_fat", sa.Float),
        sa.Column("goal_calories", sa.Integer),
        sa.Column("goal_protein", sa.Integer),
        sa.Column("goal_carbs", sa.Integer),
        sa.Column("goal_fat", sa.Integer),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("user_id", "date", name="uq_daily_nutrition_user_date"),
    )
    op.create_table(
        "recipes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("instructions", sa.Text),
        sa.Column("servings", sa.Integer),
        sa.Column("total_calories", sa.Integer),
        sa.Column("total_protein", sa.Float),
        sa.Column("total_carbs", sa.Float),
        sa.Column("total_fat", sa.Float),
        sa.Column("is_favorite", sa.Boolean),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_table(
        "recipe_ingredients",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("recipe_id", sa.String(36), sa.ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("food_id", sa.String(36), sa.ForeignKey("foods.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quantity", sa.Float, nullable=False),
        sa.Column("unit", sa.String(20)),
    )
    op.create_table(
        "user_plans",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("content", sa.JSON, nullable=False),
        sa.Column("daily_calories", sa.Integer),
        sa.Column("macro_carbs", sa.Integer),
        sa.Column("macro_protein", sa.Integer),
        sa.Column("macro_fat", sa.Integer),
        sa.Column("is_active", sa.Boolean),
        sa.Column("is_custom", sa.Boolean),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_user_plans_user_type_active", "user_plans", ["user_id", "type", "is_active"])
    op.create_table(
        "daily_progress",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("plan_id", sa.String(36), sa.ForeignKey("user_plans.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("diet_completed", sa.Boolean),
        sa.Column("workout_completed", sa.Boolean),
        sa.Column("notes", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("user_id", "plan_id", "date", name="uq_daily_progress_plan_date"),
    )


def downgrade() -> None:
    op.drop_table("daily_progress")
    op.drop_table("user_plans")
    op.drop_table("recipe_ingredients")
    op.drop_table("recipes")
    op.drop_table("daily_nutrition")
    op.drop_table("meal_foods")
    op.drop_table("meals")
    op.drop_table("meal_types")
    op.drop_index("ix_foods_user_name", table_name="foods")
    op.drop_table("foods")
    op.drop_table("revoked_tokens")
    op.drop_table("users")
