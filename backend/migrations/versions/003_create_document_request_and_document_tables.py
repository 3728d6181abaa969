"""Create document_request, status history and document tables

Revision ID: 003
Revises: 002
Create Date: 2026-03-02 11:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '003'
down_revision = '002'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'document_request',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email_account_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('recipient_email', sa.Text(), nullable=False),
        sa.Column('subject', sa.Text(), nullable=False),
        sa.Column('message_body', sa.Text(), nullable=True),
        sa.Column('request_type', sa.Text(), nullable=True),
        sa.Column('status', sa.Text(), server_default='pending', nullable=False),
        sa.Column('due_date', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('sent_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('completed_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('document_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('expected_document_count', sa.Integer(), nullable=True),
        sa.Column('last_status_change', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['org_id'], ['org.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['email_account_id'], ['email_account.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by'], ['profile.id'], ondelete='SET NULL'),
        sa.CheckConstraint(
            "status IN ('pending', 'sent', 'received', 'missing_files', 'completed', 'expired', 'verifying')",
            name='ck_document_request_status',
        ),
    )
    op.create_index('ix_document_request_org_status', 'document_request', ['org_id', 'status'])
    op.create_index('ix_document_request_recipient', 'document_request', ['recipient_email'])

    op.create_table(
        'document_request_status_history',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('document_request_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('old_status', sa.Text(), nullable=True),
        sa.Column('new_status', sa.Text(), nullable=False),
        sa.Column('changed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['document_request_id'], ['document_request.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['changed_by'], ['profile.id'], ondelete='SET NULL'),
    )
    op.create_index(
        'ix_document_request_history_request', 'document_request_status_history', ['document_request_id', 'created_at'],
    )

    op.create_table(
        'document',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('org_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('document_request_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('storage_config_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('routing_rule_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('email_account_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('sender_email', sa.Text(), nullable=False),
        sa.Column('original_filename', sa.Text(), nullable=False),
        sa.Column('stored_filename', sa.Text(), nullable=True),
        sa.Column('storage_path', sa.Text(), nullable=False),
        sa.Column('storage_provider', sa.Text(), nullable=False),
        sa.Column('file_type', sa.Text(), nullable=True),
        sa.Column('file_size', sa.BigInteger(), nullable=True),
        sa.Column('mime_type', sa.Text(), nullable=True),
        sa.Column('metadata_json', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column('status', sa.Text(), server_default='received', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['org_id'], ['org.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['document_request_id'], ['document_request.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['storage_config_id'], ['storage_config.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['routing_rule_id'], ['routing_rule.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['email_account_id'], ['email_account.id'], ondelete='SET NULL'),
        sa.CheckConstraint(
            "status IN ('received', 'processed', 'verified', 'rejected')",
            name='ck_document_status',
        ),
    )
    op.create_index('ix_document_org_id', 'document', ['org_id'])
    op.create_index('ix_document_request', 'document', ['document_request_id'])

    for table in ('document_request', 'document'):
        op.execute(f"""
            CREATE TRIGGER update_{table}_updated_at
            BEFORE UPDATE ON {table}
            FOR EACH ROW
            EXECUTE FUNCTION update_updated_at_column();
        """)


def downgrade():
    for table in ('document', 'document_request'):
        op.execute(f'DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}')

    op.drop_index('ix_document_request', table_name='document')
    op.drop_index('ix_document_org_id', table_name='document')
    op.drop_table('document')

    op.drop_index('ix_document_request_history_request', table_name='document_request_status_history')
    op.drop_table('document_request_status_history')

    op.drop_index('ix_document_request_recipient', table_name='document_request')
    op.drop_index('ix_document_request_org_status', table_name='document_request')
    op.drop_table('document_request')
