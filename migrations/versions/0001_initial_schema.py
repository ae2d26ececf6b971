"""initial schema: users, documents, form_fields, signatures, storage_intents

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email')
    )

    op.create_table(
        'documents',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('created_by', sa.String(length=36), nullable=False),
        sa.Column('file_path', sa.String(length=500), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['created_by'], ['users.id'], name='fk_documents_created_by'),
        sa.PrimaryKeyConstraint('id', name='pk_documents'),
        sa.CheckConstraint("status IN ('draft', 'sent', 'completed')", name='ck_documents_status')
    )
    op.create_index('ix_documents_created_by', 'documents', ['created_by'])

    op.create_table(
        'form_fields',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('document_id', sa.String(length=36), nullable=False),
        sa.Column('field_type', sa.String(length=20), nullable=False),
        sa.Column('x_position', sa.Float(), nullable=False),
        sa.Column('y_position', sa.Float(), nullable=False),
        sa.Column('width', sa.Float(), nullable=False),
        sa.Column('height', sa.Float(), nullable=False),
        sa.Column('page', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('assigned_to', sa.String(length=255), nullable=True),
        sa.Column('assignee_type', sa.String(length=10), nullable=False, server_default='user'),
        sa.Column('render_width', sa.Float(), nullable=True),
        sa.Column('render_height', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['document_id'], ['documents.id'], name='fk_form_fields_document_id', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_form_fields'),
        sa.CheckConstraint("field_type IN ('signature', 'text', 'date')", name='ck_form_fields_field_type')
    )
    op.create_index('ix_form_fields_document_id', 'form_fields', ['document_id'])

    op.create_table(
        'signatures',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('file_path', sa.String(length=500), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], name='fk_signatures_user_id', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_signatures')
    )
    op.create_index('ix_signatures_user_id', 'signatures', ['user_id'])
    # At most one default signature per user
    op.create_index(
        'uq_signatures_one_default_per_user', 'signatures', ['user_id'],
        unique=True,
        postgresql_where=sa.text('is_default'),
        sqlite_where=sa.text('is_default')
    )

    op.create_table(
        'storage_intents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bucket', sa.String(length=63), nullable=False),
        sa.Column('path', sa.String(length=500), nullable=False),
        sa.Column('action', sa.String(length=20), nullable=False, server_default='delete'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id', name='pk_storage_intents')
    )
    op.create_index('ix_storage_intents_status', 'storage_intents', ['status'])


def downgrade():
    op.drop_index('ix_storage_intents_status', table_name='storage_intents')
    op.drop_table('storage_intents')
    op.drop_index('uq_signatures_one_default_per_user', table_name='signatures')
    op.drop_index('ix_signatures_user_id', table_name='signatures')
    op.drop_table('signatures')
    op.drop_index('ix_form_fields_document_id', table_name='form_fields')
    op.drop_table('form_fields')
    op.drop_index('ix_documents_created_by', table_name='documents')
    op.drop_table('documents')
    op.drop_table('users')
