"""create_permission_grants

Revision ID: 3b1f0c9d2a7e
Revises:
Create Date: 2026-10-18 09:12:31.204117

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b1f0c9d2a7e'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('permission_grants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('permission', sa.String(), nullable=False),
        sa.Column('granted', sa.Boolean(), nullable=False),
        sa.Column('denial_count', sa.Integer(), nullable=False),
        sa.Column('dont_ask_again', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_permission_grants_id'), 'permission_grants', ['id'], unique=False)
    op.create_index(op.f('ix_permission_grants_permission'), 'permission_grants', ['permission'], unique=True)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_permission_grants_permission'), table_name='permission_grants')
    op.drop_index(op.f('ix_permission_grants_id'), table_name='permission_grants')
    op.drop_table('permission_grants')
