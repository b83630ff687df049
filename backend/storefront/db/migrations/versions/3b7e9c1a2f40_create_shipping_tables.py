"""create provinces, cities, shipping_rules, shipping_settings, users

Revision ID: 3b7e9c1a2f40
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3b7e9c1a2f40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'provinces',
        sa.Column('code', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint('code', name=op.f('pk_provinces')),
    )

    op.create_table(
        'cities',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('province_code', sa.String(length=16), nullable=False),
        sa.ForeignKeyConstraint(['province_code'], ['provinces.code'], name=op.f('fk_cities_province_code_provinces')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_cities')),
    )
    op.create_index(op.f('ix_cities_province_code'), 'cities', ['province_code'], unique=False)

    op.create_table(
        'shipping_rules',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('province_code', sa.String(length=16), nullable=True),
        sa.Column('city_id', sa.Integer(), nullable=True),
        sa.Column('enabled', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('priority', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('mode', sa.String(length=16), nullable=False),
        sa.Column('flat_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('per_item_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('base_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('per_kg_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('min_subtotal', sa.Numeric(12, 2), nullable=True),
        sa.Column('coupon_code', sa.String(length=64), nullable=True),
        sa.Column('eta_days', sa.Integer(), nullable=True),
        sa.Column('active_from', sa.DateTime(timezone=True), nullable=True),
        sa.Column('active_to', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['city_id'], ['cities.id'], name=op.f('fk_shipping_rules_city_id_cities')),
        sa.ForeignKeyConstraint(['province_code'], ['provinces.code'], name=op.f('fk_shipping_rules_province_code_provinces')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_shipping_rules')),
    )
    op.create_index(op.f('ix_shipping_rules_product_id'), 'shipping_rules', ['product_id'], unique=False)
    op.create_index('ix_shipping_rules_product_enabled', 'shipping_rules', ['product_id', 'enabled'], unique=False)

    op.create_table(
        'shipping_settings',
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('enable_province_rates', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('enable_city_rates', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('fallback_mode', sa.String(length=16), nullable=False),
        sa.Column('fallback_flat_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('fallback_per_item_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('fallback_base_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('fallback_per_kg_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('free_over_subtotal', sa.Numeric(12, 2), nullable=True),
        sa.Column('cod_fee', sa.Numeric(12, 2), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('product_id', name=op.f('pk_shipping_settings')),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=128), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('is_superuser', sa.Boolean(), server_default=sa.text('false'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_users')),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)


def downgrade() -> None:
    op.drop_index(op.f('ix_users_username'), table_name='users')
    op.drop_index(op.f('ix_users_id'), table_name='users')
    op.drop_table('users')
    op.drop_table('shipping_settings')
    op.drop_index('ix_shipping_rules_product_enabled', table_name='shipping_rules')
    op.drop_index(op.f('ix_shipping_rules_product_id'), table_name='shipping_rules')
    op.drop_table('shipping_rules')
    op.drop_index(op.f('ix_cities_province_code'), table_name='cities')
    op.drop_table('cities')
    op.drop_table('provinces')
