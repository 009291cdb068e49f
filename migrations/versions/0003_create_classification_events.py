"""create classification events"""

from alembic import op
import sqlalchemy as sa

revision = "0003"
down_revision = "0002"
branch_labels = None
depends_on = None


def upgrade():
	op.create_table(
		"classification_events",
		sa.Column("id", sa.Integer, primary_key=True),
		sa.Column("tenant_id", sa.Text, nullable=False),
		sa.Column("email_id", sa.Text, nullable=False),
		sa.Column("primary_category", sa.Text, nullable=False),
		sa.Column("secondary_category", sa.Text),
		sa.Column("tertiary_category", sa.Text),
		sa.Column("confidence", sa.Float),
		sa.Column("ai_can_reply", sa.Boolean),
		sa.Column("raw_classification", sa.JSON),
		sa.Column("classified_at", sa.TIMESTAMP(timezone=True), nullable=False,
		          server_default=sa.func.now()),
	)
	op.create_index("ix_classification_events_tenant_id_classified_at",
	                "classification_events", ["tenant_id", "classified_at"])


def downgrade():
	op.drop_index("ix_classification_events_tenant_id_classified_at", table_name="classification_events")
	op.drop_table("classification_events")
