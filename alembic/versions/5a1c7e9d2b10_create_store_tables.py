"""create store tables

Revision ID: 5a1c7e9d2b10
Revises:
Create Date: 2026-10-19 09:12:41.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5a1c7e9d2b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('password', sa.String(), nullable=False),
        sa.Column('role', sa.String(), nullable=False, server_default='user'),
        sa.Column('can_login', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_user_email', 'user', ['email'], unique=True)

    op.create_table(
        'product',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'cart',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_cart_user_id', 'cart', ['user_id'], unique=True)

    op.create_table(
        'order',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('order_number', sa.String(), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('subtotal', sa.Float(), nullable=False),
        sa.Column('delivery_cost', sa.Float(), nullable=False),
        sa.Column('total', sa.Float(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('payment_method', sa.String(), nullable=False),
        sa.Column('payment_status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('shipping_address', sa.JSON(), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('tracking_number', sa.String(), nullable=True),
        sa.Column('admin_notes', sa.JSON(), nullable=False),
        sa.Column('cancel_reason', sa.String(), nullable=True),
        sa.Column('cancelled_date', sa.DateTime(), nullable=True),
        sa.Column('delivered_date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    # global uniqueness of order numbers; placement retries on conflict
    op.create_index('ix_order_order_number', 'order', ['order_number'], unique=True)
    op.create_index('ix_order_user_id', 'order', ['user_id'])
    op.create_index('ix_order_status', 'order', ['status'])
    op.create_index('ix_order_payment_status', 'order', ['payment_status'])
    op.create_index('ix_order_created_at', 'order', ['created_at'])

    op.create_table(
        'order_event',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('order.id'), nullable=False),
        sa.Column('event_type', sa.String(), nullable=False),
        sa.Column('label', sa.String(), nullable=False),
        sa.Column('meta', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('created_by', sa.String(), nullable=False, server_default='system'),
    )
    op.create_index('ix_order_event_order_id', 'order_event', ['order_id'])
    op.create_index('ix_order_event_event_type', 'order_event', ['event_type'])

    op.create_table(
        'payment_proof',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('order.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('transaction_id', sa.String(), nullable=False),
        sa.Column('payment_method', sa.String(), nullable=False),
        sa.Column('amount', sa.Float(), nullable=False),
        sa.Column('screenshot', sa.Text(), nullable=False),
        sa.Column('sender_number', sa.String(), nullable=False),
        sa.Column('sender_name', sa.String(), nullable=False),
        sa.Column('payment_date', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('verified_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('verified_at', sa.DateTime(), nullable=True),
        sa.Column('admin_notes', sa.String(), nullable=True),
        sa.Column('submitted_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    # one proof per order
    op.create_index('ix_payment_proof_order_id', 'payment_proof', ['order_id'], unique=True)
    op.create_index('ix_payment_proof_user_id', 'payment_proof', ['user_id'])
    op.create_index('ix_payment_proof_status', 'payment_proof', ['status'])

    op.create_table(
        'delivery_cost',
        sa.Column('id', sa.Integer(), primary_key=True, nullable=False),
        sa.Column('dhaka_inside', sa.Float(), nullable=False),
        sa.Column('dhaka_outside', sa.Float(), nullable=False),
        sa.Column('updated_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('delivery_cost')
    op.drop_index('ix_payment_proof_status', table_name='payment_proof')
    op.drop_index('ix_payment_proof_user_id', table_name='payment_proof')
    op.drop_index('ix_payment_proof_order_id', table_name='payment_proof')
    op.drop_table('payment_proof')
    op.drop_index('ix_order_event_event_type', table_name='order_event')
    op.drop_index('ix_order_event_order_id', table_name='order_event')
    op.drop_table('order_event')
    op.drop_index('ix_order_created_at', table_name='order')
    op.drop_index('ix_order_payment_status', table_name='order')
    op.drop_index('ix_order_status', table_name='order')
    op.drop_index('ix_order_user_id', table_name='order')
    op.drop_index('ix_order_order_number', table_name='order')
    op.drop_table('order')
    op.drop_index('ix_cart_user_id', table_name='cart')
    op.drop_table('cart')
    op.drop_table('product')
    op.drop_index('ix_user_email', table_name='user')
    op.drop_table('user')
