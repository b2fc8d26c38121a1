"""Create marketplace negotiation tables

Revision ID: m001_negotiation_core
Revises:
Create Date: 2026-10-19

This migration creates the tables for offer negotiation:
- accounts, contractors, contractor_roles, contractor_member_roles: parties and permissions
- services, market_listings, auction_details, market_bids: what offers refer to
- offer_sessions, order_offers, offer_market_listings: negotiation threads and revisions
- orders, market_listing_orders: materialized orders
- public_contracts, public_contract_offers: open jobs and the sessions answering them
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'm001_negotiation_core'
down_revision = None
branch_labels = None
depends_on = None

CAPABILITY_COLUMNS = (
    'manage_orders',
    'manage_roles',
    'manage_market',
    'manage_recruiting',
    'manage_webhooks',
    'manage_invites',
    'manage_org_details',
    'manage_stock',
    'kick_members',
)


def upgrade() -> None:
    op.create_table(
        'accounts',
        sa.Column('user_id', sa.String(), primary_key=True),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('banned', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('rsi_confirmed', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_accounts_username', 'accounts', ['username'], unique=True)

    op.create_table(
        'contractors',
        sa.Column('contractor_id', sa.String(), primary_key=True),
        sa.Column('spectrum_id', sa.String(50), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        # Plain columns: roles reference the contractor, not the other way round
        sa.Column('default_role', sa.String(), nullable=True),
        sa.Column('owner_role', sa.String(), nullable=True),
        sa.Column('archived', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_contractors_spectrum_id', 'contractors', ['spectrum_id'], unique=True)

    op.create_table(
        'contractor_roles',
        sa.Column('role_id', sa.String(), primary_key=True),
        sa.Column('contractor_id', sa.String(), sa.ForeignKey('contractors.contractor_id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(50), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        *[
            sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.text('false'))
            for name in CAPABILITY_COLUMNS
        ],
    )
    op.create_index('ix_contractor_roles_contractor_id', 'contractor_roles', ['contractor_id'])

    op.create_table(
        'contractor_member_roles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('contractor_id', sa.String(), sa.ForeignKey('contractors.contractor_id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(), sa.ForeignKey('accounts.user_id'), nullable=False),
        sa.Column('role_id', sa.String(), sa.ForeignKey('contractor_roles.role_id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('user_id', 'role_id', name='uq_contractor_member_role'),
    )
    op.create_index('ix_contractor_member_roles_contractor_id', 'contractor_member_roles', ['contractor_id'])
    op.create_index('ix_contractor_member_roles_user_id', 'contractor_member_roles', ['user_id'])

    op.create_table(
        'services',
        sa.Column('service_id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('accounts.user_id'), nullable=True),
        sa.Column('contractor_id', sa.String(), sa.ForeignKey('contractors.contractor_id'), nullable=True),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )

    op.create_table(
        'market_listings',
        sa.Column('listing_id', sa.String(), primary_key=True),
        sa.Column('sale_type', sa.String(20), nullable=False, server_default='sale'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('user_seller_id', sa.String(), sa.ForeignKey('accounts.user_id'), nullable=True),
        sa.Column('contractor_seller_id', sa.String(), sa.ForeignKey('contractors.contractor_id'), nullable=True),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('price', sa.String(32), nullable=False),
        sa.Column('quantity_available', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('expiration', sa.DateTime(timezone=True), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_market_listings_user_seller_id', 'market_listings', ['user_seller_id'])
    op.create_index('ix_market_listings_contractor_seller_id', 'market_listings', ['contractor_seller_id'])
    op.create_index('ix_market_listings_expiration', 'market_listings', ['expiration'])

    op.create_table(
        'auction_details',
        sa.Column('listing_id', sa.String(), sa.ForeignKey('market_listings.listing_id', ondelete='CASCADE'), primary_key=True),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('minimum_bid_increment', sa.String(32), nullable=False, server_default='1'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
    )
    op.create_index('ix_auction_details_end_time', 'auction_details', ['end_time'])

    op.create_table(
        'market_bids',
        sa.Column('bid_id', sa.String(), primary_key=True),
        sa.Column('listing_id', sa.String(), sa.ForeignKey('market_listings.listing_id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_bidder_id', sa.String(), sa.ForeignKey('accounts.user_id'), nullable=False),
        sa.Column('bid', sa.String(32), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_market_bids_listing_id', 'market_bids', ['listing_id'])

    op.create_table(
        'offer_sessions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('customer_id', sa.String(), sa.ForeignKey('accounts.user_id'), nullable=False),
        sa.Column('assigned_id', sa.String(), sa.ForeignKey('accounts.user_id'), nullable=True),
        sa.Column('contractor_id', sa.String(), sa.ForeignKey('contractors.contractor_id'), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('current_offer_id', sa.String(), nullable=True),
        sa.Column('merged_into_id', sa.String(), sa.ForeignKey('offer_sessions.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_offer_sessions_customer_id', 'offer_sessions', ['customer_id'])
    op.create_index('ix_offer_sessions_assigned_id', 'offer_sessions', ['assigned_id'])
    op.create_index('ix_offer_sessions_contractor_id', 'offer_sessions', ['contractor_id'])

    op.create_check_constraint(
        'check_offer_session_status',
        'offer_sessions',
        "status IN ('active', 'accepted', 'rejected', 'cancelled')"
    )

    op.create_table(
        'order_offers',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('session_id', sa.String(), sa.ForeignKey('offer_sessions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.String(), sa.ForeignKey('accounts.user_id'), nullable=False),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('kind', sa.String(50), nullable=False),
        sa.Column('cost', sa.String(32), nullable=False),
        sa.Column('collateral', sa.String(32), nullable=False, server_default='0'),
        sa.Column('payment_type', sa.String(20), nullable=False, server_default='one-time'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('departure', sa.String(), nullable=True),
        sa.Column('destination', sa.String(), nullable=True),
        sa.Column('service_id', sa.String(), sa.ForeignKey('services.service_id'), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        # Two concurrent appends to one session cannot both land
        sa.UniqueConstraint('session_id', 'sequence', name='uq_order_offers_session_sequence'),
    )
    op.create_index('ix_order_offers_session_id', 'order_offers', ['session_id'])

    op.create_table(
        'offer_market_listings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('offer_id', sa.String(), sa.ForeignKey('order_offers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('listing_id', sa.String(), sa.ForeignKey('market_listings.listing_id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_offer_market_listings_offer_id', 'offer_market_listings', ['offer_id'])

    op.create_table(
        'orders',
        sa.Column('order_id', sa.String(), primary_key=True),
        sa.Column('offer_session_id', sa.String(), sa.ForeignKey('offer_sessions.id'), nullable=True),
        sa.Column('customer_id', sa.String(), sa.ForeignKey('accounts.user_id'), nullable=False),
        sa.Column('assigned_id', sa.String(), sa.ForeignKey('accounts.user_id'), nullable=True),
        sa.Column('contractor_id', sa.String(), sa.ForeignKey('contractors.contractor_id'), nullable=True),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('kind', sa.String(50), nullable=False),
        sa.Column('cost', sa.String(32), nullable=False),
        sa.Column('collateral', sa.String(32), nullable=False, server_default='0'),
        sa.Column('payment_type', sa.String(20), nullable=False),
        sa.Column('departure', sa.String(), nullable=True),
        sa.Column('destination', sa.String(), nullable=True),
        sa.Column('service_id', sa.String(), sa.ForeignKey('services.service_id'), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='not-started'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
        # One order per negotiation
        sa.UniqueConstraint('offer_session_id', name='uq_orders_offer_session_id'),
    )
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_assigned_id', 'orders', ['assigned_id'])
    op.create_index('ix_orders_contractor_id', 'orders', ['contractor_id'])

    op.create_check_constraint(
        'check_order_status',
        'orders',
        "status IN ('not-started', 'in-progress', 'fulfilled', 'cancelled')"
    )

    op.create_table(
        'market_listing_orders',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('order_id', sa.String(), sa.ForeignKey('orders.order_id', ondelete='CASCADE'), nullable=False),
        sa.Column('listing_id', sa.String(), sa.ForeignKey('market_listings.listing_id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
    )
    op.create_index('ix_market_listing_orders_order_id', 'market_listing_orders', ['order_id'])

    op.create_table(
        'public_contracts',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('customer_id', sa.String(), sa.ForeignKey('accounts.user_id'), nullable=False),
        sa.Column('title', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('kind', sa.String(50), nullable=False),
        sa.Column('cost', sa.String(32), nullable=False),
        sa.Column('collateral', sa.String(32), nullable=False, server_default='0'),
        sa.Column('payment_type', sa.String(20), nullable=False),
        sa.Column('departure', sa.String(), nullable=True),
        sa.Column('destination', sa.String(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('expiration', sa.DateTime(timezone=True), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_public_contracts_customer_id', 'public_contracts', ['customer_id'])

    op.create_table(
        'public_contract_offers',
        sa.Column('contract_id', sa.String(), sa.ForeignKey('public_contracts.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('session_id', sa.String(), sa.ForeignKey('offer_sessions.id', ondelete='CASCADE'), primary_key=True),
    )


def downgrade() -> None:
    op.drop_table('public_contract_offers')
    op.drop_index('ix_public_contracts_customer_id', table_name='public_contracts')
    op.drop_table('public_contracts')
    op.drop_index('ix_market_listing_orders_order_id', table_name='market_listing_orders')
    op.drop_table('market_listing_orders')
    op.drop_constraint('check_order_status', 'orders', type_='check')
    op.drop_index('ix_orders_contractor_id', table_name='orders')
    op.drop_index('ix_orders_assigned_id', table_name='orders')
    op.drop_index('ix_orders_customer_id', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_offer_market_listings_offer_id', table_name='offer_market_listings')
    op.drop_table('offer_market_listings')
    op.drop_index('ix_order_offers_session_id', table_name='order_offers')
    op.drop_table('order_offers')
    op.drop_constraint('check_offer_session_status', 'offer_sessions', type_='check')
    op.drop_index('ix_offer_sessions_contractor_id', table_name='offer_sessions')
    op.drop_index('ix_offer_sessions_assigned_id', table_name='offer_sessions')
    op.drop_index('ix_offer_sessions_customer_id', table_name='offer_sessions')
    op.drop_table('offer_sessions')
    op.drop_index('ix_market_bids_listing_id', table_name='market_bids')
    op.drop_table('market_bids')
    op.drop_index('ix_auction_details_end_time', table_name='auction_details')
    op.drop_table('auction_details')
    op.drop_index('ix_market_listings_expiration', table_name='market_listings')
    op.drop_index('ix_market_listings_contractor_seller_id', table_name='market_listings')
    op.drop_index('ix_market_listings_user_seller_id', table_name='market_listings')
    op.drop_table('market_listings')
    op.drop_table('services')
    op.drop_index('ix_contractor_member_roles_user_id', table_name='contractor_member_roles')
    op.drop_index('ix_contractor_member_roles_contractor_id', table_name='contractor_member_roles')
    op.drop_table('contractor_member_roles')
    op.drop_index('ix_contractor_roles_contractor_id', table_name='contractor_roles')
    op.drop_table('contractor_roles')
    op.drop_index('ix_contractors_spectrum_id', table_name='contractors')
    op.drop_table('contractors')
    op.drop_index('ix_accounts_username', table_name='accounts')
    op.drop_table('accounts')
