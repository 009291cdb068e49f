"""create business templates and version snapshots"""

from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
	op.create_table(
		"business_templates",
		sa.Column("id", sa.Integer, primary_key=True),
		sa.Column("business_type", sa.Text, nullable=False, unique=True),
		sa.Column("version", sa.Integer, nullable=False, server_default="1"),
		sa.Column("inquiry_types", sa.JSON, nullable=False),
		sa.Column("protocol_text", sa.Text, nullable=False, server_default=""),
		sa.Column("special_rules", sa.JSON, nullable=False),
		sa.Column("upsell_prompts", sa.JSON, nullable=False),
		sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
		sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False,
		          server_default=sa.func.now()),
		sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False,
		          server_default=sa.func.now()),
	)

	op.create_table(
		"template_version_snapshots",
		sa.Column("id", sa.Integer, primary_key=True),
		sa.Column("template_id", sa.Integer,
		          sa.ForeignKey("business_templates.id"), nullable=False),
		sa.Column("business_type", sa.Text, nullable=False),
		sa.Column("version", sa.Integer, nullable=False),
		sa.Column("inquiry_types", sa.JSON, nullable=False),
		sa.Column("protocol_text", sa.Text, nullable=False),
		sa.Column("special_rules", sa.JSON, nullable=False),
		sa.Column("upsell_prompts", sa.JSON, nullable=False),
		sa.Column("snapshotted_at", sa.TIMESTAMP(timezone=True), nullable=False,
		          server_default=sa.func.now()),
		sa.UniqueConstraint("template_id", "version", name="uq_template_version_snapshots_template_version"),
	)
	op.create_index("ix_template_version_snapshots_template_id_version",
	                "template_version_snapshots", ["template_id", "version"])


def downgrade():
	op.drop_index("ix_template_version_snapshots_template_id_version", table_name="template_version_snapshots")
	op.drop_table("template_version_snapshots")
	op.drop_table("business_templates")
