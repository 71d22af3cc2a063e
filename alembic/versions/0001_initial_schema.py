"""initial schema: suppliers, identifiers, segments, links, intents, supplier_view

Revision ID: 0001
Revises:
"""
from alembic import op
import sqlalchemy as sa

from supplier_directory.domain.supplier_view import (
    DROP_VIEW_SQL,
    POSTGRES_VIEW_SQL,
    SQLITE_VIEW_SQL,
)

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade():
    op.create_table(
        'suppliers',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('logo', sa.String(2048), nullable=True),
        _created_at(),
    )
    op.create_index('ix_suppliers_name', 'suppliers', ['name'])

    op.create_table(
        'segments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(100), nullable=False),
        _created_at(),
    )
    op.create_index('ix_segments_name', 'segments', ['name'])

    op.create_table(
        'supplier_identifiers',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('identifier', sa.String(18), nullable=False),
        _created_at(),
    )
    op.create_index('ix_supplier_identifiers_supplier_id', 'supplier_identifiers', ['supplier_id'])

    op.create_table(
        'supplier_segments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('segment_id', sa.Integer(), sa.ForeignKey('segments.id', ondelete='RESTRICT'), nullable=False),
        _created_at(),
    )
    op.create_index('ix_supplier_segments_supplier_id', 'supplier_segments', ['supplier_id'])
    op.create_index('ix_supplier_segments_segment_id', 'supplier_segments', ['segment_id'])

    op.create_table(
        'reconcile_intents',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('operation', sa.String(20), nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('completed_step', sa.String(50), nullable=True),
        _created_at(),
    )
    op.create_index('ix_reconcile_intents_supplier_id', 'reconcile_intents', ['supplier_id'])

    if op.get_bind().dialect.name == 'postgresql':
        op.execute(POSTGRES_VIEW_SQL)
    else:
        op.execute(SQLITE_VIEW_SQL)


def downgrade():
    op.execute(DROP_VIEW_SQL)
    op.drop_table('reconcile_intents')
    op.drop_table('supplier_segments')
    op.drop_table('supplier_identifiers')
    op.drop_table('segments')
    op.drop_table('suppliers')
