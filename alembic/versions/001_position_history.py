# alembic/versions/001_position_history.py
"""Position history table

Revision ID: 001_position_history
Revises: 
Create Date: 2025-06-01 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001_position_history'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the position_history table."""
    
    op.create_table('position_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('session_key', sa.Integer(), nullable=False),
        sa.Column('driver_number', sa.Integer(), nullable=False),
        sa.Column('full_name', sa.String(length=200), nullable=False),
        sa.Column('team_name', sa.String(length=100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('driver_number', 'position', 'date', name='uq_position_history_driver_position_date')
    )
    op.create_index('ix_position_history_session_key', 'position_history', ['session_key'])
    op.create_index(
        'ix_position_history_session_driver_date',
        'position_history',
        ['session_key', 'driver_number', 'date']
    )


def downgrade() -> None:
    """Drop the position_history table."""
    op.drop_index('ix_position_history_session_driver_date', table_name='position_history')
    op.drop_index('ix_position_history_session_key', table_name='position_history')
    op.drop_table('position_history')
