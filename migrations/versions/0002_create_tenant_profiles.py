"""create tenant profiles"""

from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade():
	op.create_table(
		"tenant_profiles",
		sa.Column("id", sa.Integer, primary_key=True),
		sa.Column("tenant_id", sa.Text, nullable=False, unique=True),
		sa.Column("business_types", sa.JSON, nullable=False),
		sa.Column("primary_business_type", sa.Text, nullable=False),
		sa.Column("cache_generation", sa.Integer, nullable=False, server_default="1"),
		sa.Column("created_at", sa.TIMESTAMP(timezone=True), nullable=False,
		          server_default=sa.func.now()),
		sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=False,
		          server_default=sa.func.now()),
	)


def downgrade():
	op.drop_table("tenant_profiles")
