"""add_domain_verification_token

Store the TXT challenge token for custom-domain verification on profiles.

Revision ID: 7c4e9a1d2b3f
Revises: 0f3a7c21b9d4
Create Date: 2026-10-19 15:40:02.118305

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7c4e9a1d2b3f"
down_revision: Union[str, Sequence[str], None] = "0f3a7c21b9d4"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        "profiles",
        sa.Column("domain_verification_token", sa.String(length=64), nullable=True),
    )


def downgrade() -> None:
    op.drop_column("profiles", "domain_verification_token")
