"""create classification feedback"""

from alembic import op
import sqlalchemy as sa

revision = "0004"
down_revision = "0003"
branch_labels = None
depends_on = None


def upgrade():
	op.create_table(
		"classification_feedback",
		sa.Column("id", sa.Integer, primary_key=True),
		sa.Column("tenant_id", sa.Text, nullable=False),
		sa.Column("email_id", sa.Text, nullable=False),
		sa.Column("thread_id", sa.Text),
		sa.Column("provider", sa.Text),
		sa.Column("supersedes_id", sa.Integer,
		          sa.ForeignKey("classification_feedback.id")),

		sa.Column("original_classification", sa.JSON, nullable=False),
		sa.Column("original_primary_category", sa.Text),
		sa.Column("original_secondary_category", sa.Text),
		sa.Column("original_tertiary_category", sa.Text),
		sa.Column("original_confidence", sa.Float),
		sa.Column("original_ai_can_reply", sa.Boolean),

		sa.Column("corrected_primary_category", sa.Text, nullable=False),
		sa.Column("corrected_secondary_category", sa.Text),
		sa.Column("corrected_tertiary_category", sa.Text),
		sa.Column("corrected_ai_can_reply", sa.Boolean),
		sa.Column("correction_reason", sa.Text),

		sa.Column("email_subject", sa.Text),
		sa.Column("email_from", sa.Text),
		sa.Column("email_body_preview", sa.Text),
		sa.Column("email_metadata", sa.JSON),

		sa.Column("feedback_type", sa.Text, nullable=False, server_default="manual_correction"),
		sa.Column("quality_rating", sa.Integer, nullable=False),
		sa.Column("correction_source", sa.Text, nullable=False),

		sa.Column("training_status", sa.Text, nullable=False, server_default="pending"),
		sa.Column("reviewed_by", sa.Text),
		sa.Column("reviewed_at", sa.TIMESTAMP(timezone=True)),
		sa.Column("review_notes", sa.Text),
		sa.Column("exported_at", sa.TIMESTAMP(timezone=True)),

		sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False,
		          server_default=sa.func.now()),
		sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False,
		          server_default=sa.func.now()),

		sa.CheckConstraint("length(email_id) > 0", name="ck_classification_feedback_email_id"),
		sa.CheckConstraint("length(corrected_primary_category) > 0",
		                   name="ck_classification_feedback_corrected_primary"),
		sa.CheckConstraint("training_status IN ('pending', 'approved', 'rejected', 'used')",
		                   name="ck_classification_feedback_training_status"),
	)
	op.create_index("ix_classification_feedback_tenant_id_created_at",
	                "classification_feedback", ["tenant_id", "created_at"])
	op.create_index("ix_classification_feedback_tenant_id_email_id",
	                "classification_feedback", ["tenant_id", "email_id"])
	op.create_index("ix_classification_feedback_training_status",
	                "classification_feedback", ["training_status"])
	# Keeps each email's corrections a single chain
	op.create_index("uq_classification_feedback_supersedes_id",
	                "classification_feedback", ["supersedes_id"], unique=True,
	                postgresql_where=sa.text("supersedes_id IS NOT NULL"))


def downgrade():
	op.drop_index("uq_classification_feedback_supersedes_id", table_name="classification_feedback")
	op.drop_index("ix_classification_feedback_training_status", table_name="classification_feedback")
	op.drop_index("ix_classification_feedback_tenant_id_email_id", table_name="classification_feedback")
	op.drop_index("ix_classification_feedback_tenant_id_created_at", table_name="classification_feedback")
	op.drop_table("classification_feedback")
