"""Baseline schema: catalog, certifications, issuance log and progress facts.

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_baseline"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "certification_types",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("level", sa.String(8), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "certification_criteria",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("certification_type_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(50), nullable=False),
        sa.Column("course_id", sa.String(100), nullable=True),
        sa.Column("required_value", sa.Float(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.ForeignKeyConstraint(
            ["certification_type_id"],
            ["certification_types.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_certification_criteria_type",
        "certification_criteria",
        ["certification_type_id"],
    )
    op.create_index(
        "ix_certification_criteria_course", "certification_criteria", ["course_id"]
    )

    op.create_table(
        "certifications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("dog_id", sa.String(255), nullable=True),
        sa.Column("dog_key", sa.String(255), nullable=False),
        sa.Column("certification_type_id", sa.Integer(), nullable=False),
        sa.Column("state", sa.String(9), nullable=False),
        sa.Column("completion_pct", sa.Integer(), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("storage_handle", sa.Text(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["certification_type_id"],
            ["certification_types.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id",
            "dog_key",
            "certification_type_id",
            name="uq_certification_user_dog_type",
        ),
    )
    op.create_index(
        "ix_certifications_user_dog", "certifications", ["user_id", "dog_key"]
    )

    # No FK to certifications: the log outlives purged certification rows.
    op.create_table(
        "certificate_issuances",
        sa.Column("certificate_id", sa.String(64), nullable=False),
        sa.Column("certification_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("type_name", sa.String(255), nullable=False),
        sa.Column("level", sa.String(8), nullable=False),
        sa.Column("holder_display_name", sa.String(255), nullable=False),
        sa.Column("dog_display_name", sa.String(255), nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("certificate_id"),
        sa.UniqueConstraint("certification_id", name="uq_issuance_certification"),
    )
    op.create_index(
        "ix_certificate_issuances_user_id", "certificate_issuances", ["user_id"]
    )

    op.create_table(
        "course_completions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("dog_key", sa.String(255), nullable=False),
        sa.Column("course_id", sa.String(100), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "dog_key", "course_id", name="uq_course_completion"
        ),
    )

    op.create_table(
        "quiz_best_scores",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("dog_key", sa.String(255), nullable=False),
        sa.Column("course_id", sa.String(100), nullable=False),
        sa.Column("best_score", sa.Float(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "dog_key", "course_id", name="uq_quiz_best_score"
        ),
    )

    op.create_table(
        "training_days",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("dog_key", sa.String(255), nullable=False),
        sa.Column("training_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "dog_key", "training_date", name="uq_training_day"
        ),
    )


def downgrade() -> None:
    op.drop_table("training_days")
    op.drop_table("quiz_best_scores")
    op.drop_table("course_completions")
    op.drop_index(
        "ix_certificate_issuances_user_id", table_name="certificate_issuances"
    )
    op.drop_table("certificate_issuances")
    op.drop_index("ix_certifications_user_dog", table_name="certifications")
    op.drop_table("certifications")
    op.drop_index(
        "ix_certification_criteria_course", table_name="certification_criteria"
    )
    op.drop_index(
        "ix_certification_criteria_type", table_name="certification_criteria"
    )
    op.drop_table("certification_criteria")
    op.drop_table("certification_types")
