"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op

from sos_ksar.infrastructure.persistence.postgresql.models import BaseModel

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Creates the user_role, report_status, report_type and inventory_item
    # enums along with users, session, account, reports and inventory.
    bind = op.get_bind()
    BaseModel.metadata.create_all(bind=bind)


def downgrade() -> None:
    bind = op.get_bind()
    BaseModel.metadata.drop_all(bind=bind)
