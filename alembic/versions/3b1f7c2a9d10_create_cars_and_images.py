"""Create cars and images tables

Revision ID: 3b1f7c2a9d10
Revises:
Create Date: 2025-11-04 18:12:40.512201

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b1f7c2a9d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'cars',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('mileage', sa.Integer(), nullable=False),
        sa.Column('city', sa.String(length=32), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('vin', sa.String(length=32), nullable=True),
        sa.Column('owners', sa.Integer(), nullable=True),
        sa.Column('repuve_status', sa.String(length=32), nullable=False, server_default='No verificado'),
        sa.Column('insurance_status', sa.String(length=32), nullable=False, server_default='Normal'),
        sa.Column('title_type', sa.String(length=32), nullable=False, server_default='Factura original'),
        sa.Column('notes_history', sa.Text(), nullable=True),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('is_sold', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.CheckConstraint("city IN ('Ciudad de Mexico', 'Estado de Mexico')", name='ck_cars_city'),
        sa.CheckConstraint("repuve_status IN ('Limpio', 'Con reporte', 'No verificado')", name='ck_cars_repuve_status'),
        sa.CheckConstraint("insurance_status IN ('Normal', 'Perdida total', 'Rescatado', 'Aseguradora')", name='ck_cars_insurance_status'),
        sa.CheckConstraint("title_type IN ('Factura original', 'Refacturado', 'Aseguradora')", name='ck_cars_title_type'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_cars_id'), 'cars', ['id'], unique=False)
    op.create_index(op.f('ix_cars_slug'), 'cars', ['slug'], unique=True)

    op.create_table(
        'images',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('car_id', sa.Integer(), nullable=False),
        sa.Column('filename', sa.String(length=500), nullable=False),
        sa.Column('is_cover', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['car_id'], ['cars.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_images_id'), 'images', ['id'], unique=False)
    op.create_index(op.f('ix_images_car_id'), 'images', ['car_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_images_car_id'), table_name='images')
    op.drop_index(op.f('ix_images_id'), table_name='images')
    op.drop_table('images')
    op.drop_index(op.f('ix_cars_slug'), table_name='cars')
    op.drop_index(op.f('ix_cars_id'), table_name='cars')
    op.drop_table('cars')
