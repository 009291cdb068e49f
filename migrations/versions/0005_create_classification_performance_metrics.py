"""create classification performance metrics"""

from alembic import op
import sqlalchemy as sa

revision = "0005"
down_revision = "0004"
branch_labels = None
depends_on = None


def upgrade():
	op.create_table(
		"classification_performance_metrics",
		sa.Column("id", sa.Integer, primary_key=True),
		sa.Column("tenant_id", sa.Text, nullable=False),
		sa.Column("measurement_date", sa.Date, nullable=False),
		sa.Column("total_classifications", sa.Integer, nullable=False, server_default="0"),
		sa.Column("total_corrections", sa.Integer, nullable=False, server_default="0"),
		sa.Column("correction_rate", sa.Float),
		sa.Column("category_accuracy", sa.JSON, nullable=False),
		sa.Column("most_corrected_category", sa.Text),
		sa.Column("least_corrected_category", sa.Text),
		sa.Column("avg_original_confidence", sa.Float),
		sa.Column("avg_confidence_when_wrong", sa.Float),
		sa.Column("high_confidence_errors", sa.Integer, nullable=False, server_default="0"),
		sa.Column("ai_replies_sent", sa.Integer, nullable=False, server_default="0"),
		sa.Column("ai_replies_corrected", sa.Integer, nullable=False, server_default="0"),
		sa.Column("ai_reply_accuracy", sa.Float),
		sa.Column("week_number", sa.Integer),
		sa.Column("month_number", sa.Integer),
		sa.Column("year", sa.Integer),
		sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False,
		          server_default=sa.func.now()),
		sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False,
		          server_default=sa.func.now()),
		sa.UniqueConstraint("tenant_id", "measurement_date",
		                    name="uq_classification_performance_metrics_tenant_date"),
	)


def downgrade():
	op.drop_table("classification_performance_metrics")
