from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

shipment_type = sa.Enum('LOCAL', 'NATIONAL', 'INTERNATIONAL', name='shipment_type')
shipment_mode = sa.Enum('LAND', 'AIR', 'WATER', name='shipment_mode')


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.Text, nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('users_email_idx', 'users', ['email'])
    op.create_index('users_phone_idx', 'users', ['phone'])

    op.create_table(
        'customers',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(20), nullable=False),
        sa.Column('address', sa.Text, nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('user_id', 'phone', name='customers_user_phone_key'),
    )
    op.create_index('customers_user_id_idx', 'customers', ['user_id'])
    op.create_index('customers_phone_idx', 'customers', ['phone'])
    op.create_index('customers_email_idx', 'customers', ['email'])

    op.create_table(
        'shipments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('customer_id', sa.String(36), nullable=False),
        sa.Column('type', shipment_type, nullable=False),
        sa.Column('mode', shipment_mode, nullable=False),
        sa.Column('start_location', sa.String(500), nullable=False),
        sa.Column('end_location', sa.String(500), nullable=False),
        sa.Column('cost', sa.Numeric(10, 2), nullable=False),
        sa.Column('calculated_total', sa.Numeric(10, 2), nullable=False),
        sa.Column('is_delivered', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('delivery_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('estimated_delivery_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('shipments_user_id_idx', 'shipments', ['user_id'])
    op.create_index('shipments_customer_id_idx', 'shipments', ['customer_id'])
    op.create_index('shipments_type_idx', 'shipments', ['type'])
    op.create_index('shipments_is_delivered_idx', 'shipments', ['is_delivered'])
    op.create_index('shipments_created_at_idx', 'shipments', ['created_at'])
    op.create_index('shipments_user_delivery_status_idx', 'shipments', ['user_id', 'is_delivered'])
    op.create_index('shipments_user_type_idx', 'shipments', ['user_id', 'type'])
    op.create_index('shipments_customer_delivery_idx', 'shipments', ['customer_id', 'is_delivered'])

    # Tenant rows go with their user; a customer with shipments cannot be deleted
    op.create_foreign_key(
        'fk_customers_user_id_users',
        source_table='customers',
        referent_table='users',
        local_cols=['user_id'],
        remote_cols=['id'],
        ondelete='CASCADE'
    )
    op.create_foreign_key(
        'fk_shipments_user_id_users',
        source_table='shipments',
        referent_table='users',
        local_cols=['user_id'],
        remote_cols=['id'],
        ondelete='CASCADE'
    )
    op.create_foreign_key(
        'fk_shipments_customer_id_customers',
        source_table='shipments',
        referent_table='customers',
        local_cols=['customer_id'],
        remote_cols=['id'],
        ondelete='RESTRICT'
    )


def downgrade():
    op.drop_constraint('fk_shipments_customer_id_customers', 'shipments', type_='foreignkey')
    op.drop_constraint('fk_shipments_user_id_users', 'shipments', type_='foreignkey')
    op.drop_constraint('fk_customers_user_id_users', 'customers', type_='foreignkey')
    op.drop_table('shipments')
    op.drop_table('customers')
    op.drop_table('users')
    shipment_mode.drop(op.get_bind(), checkfirst=True)
    shipment_type.drop(op.get_bind(), checkfirst=True)
