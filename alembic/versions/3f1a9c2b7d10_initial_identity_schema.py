"""initial identity schema

Revision ID: 3f1a9c2b7d10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2b7d10'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'roles',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Role ID (UUID)'),
        sa.Column('name', sa.String(length=50), nullable=False, comment="Role name (e.g., 'SuperAdmin', 'Editor')"),
        sa.Column('permissions', sa.JSON(), nullable=False, comment='Resource -> allowed actions'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_roles_name'), 'roles', ['name'], unique=True)

    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False, comment='User ID (identity provider UUID)'),
        sa.Column('email', sa.String(length=255), nullable=False, comment='User email address'),
        sa.Column('display_name', sa.String(length=100), nullable=False, comment='Display name'),
        sa.Column('role_id', sa.String(length=36), nullable=False, comment='Foreign key to roles table'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_role_id'), 'users', ['role_id'], unique=False)

    op.create_table(
        'verification_codes',
        sa.Column('id', sa.String(length=36), nullable=False, comment='Code ID (UUID)'),
        sa.Column('user_id', sa.String(length=36), nullable=False, comment='Owning user ID (not a foreign key, codes outlive users)'),
        sa.Column('code_hash', sa.String(length=255), nullable=False, comment='Argon2id hash of the verification code'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when the code expires'),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True, comment='Timestamp when the code was used or invalidated'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when the code was issued'),
        sa.Column('failed_attempts', sa.Integer(), server_default='0', nullable=False, comment='Wrong guesses made while the code was live'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_verification_codes_user_id'), 'verification_codes', ['user_id'], unique=False)
    op.create_index(op.f('ix_verification_codes_expires_at'), 'verification_codes', ['expires_at'], unique=False)
    op.create_index(op.f('ix_verification_codes_used_at'), 'verification_codes', ['used_at'], unique=False)
    op.create_index(op.f('ix_verification_codes_created_at'), 'verification_codes', ['created_at'], unique=False)

    op.create_table(
        'audit_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('actor_id', sa.String(length=36), nullable=True, comment='ID of the acting user (NULL for system actions)'),
        sa.Column('action', sa.String(length=20), nullable=False, comment='Audit action'),
        sa.Column('entity', sa.String(length=100), nullable=False, comment='Affected entity name'),
        sa.Column('entity_id', sa.String(length=36), nullable=True, comment='ID of the affected record'),
        sa.Column('diff', sa.JSON(), nullable=False, comment='Old and/or new values'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='Timestamp when the entry was written (UTC)'),
        sa.Column('checksum', sa.String(length=64), nullable=True, comment='SHA-256 hash of this audit entry'),
        sa.Column('previous_hash', sa.String(length=64), nullable=True, comment='Checksum of the previous audit entry'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_log_actor_id'), 'audit_log', ['actor_id'], unique=False)
    op.create_index(op.f('ix_audit_log_action'), 'audit_log', ['action'], unique=False)
    op.create_index(op.f('ix_audit_log_entity_id'), 'audit_log', ['entity_id'], unique=False)
    op.create_index(op.f('ix_audit_log_created_at'), 'audit_log', ['created_at'], unique=False)

    if op.get_bind().dialect.name == 'postgresql':
        op.execute(
            """
            CREATE OR REPLACE FUNCTION prevent_audit_log_change() RETURNS trigger AS $$
            BEGIN
                RAISE EXCEPTION 'Audit log entries are immutable and cannot be %', lower(TG_OP) || 'd';
            END;
            $$ LANGUAGE plpgsql;
            """
        )
        op.execute(
            """
            CREATE TRIGGER prevent_audit_log_change
            BEFORE UPDATE OR DELETE ON audit_log
            FOR EACH ROW EXECUTE FUNCTION prevent_audit_log_change();
            """
        )
    else:
        op.execute(
            """
            CREATE TRIGGER IF NOT EXISTS prevent_audit_log_update
            BEFORE UPDATE ON audit_log
            BEGIN
                SELECT RAISE(ABORT, 'Audit log entries are immutable and cannot be updated');
            END;
            """
        )
        op.execute(
            """
            CREATE TRIGGER IF NOT EXISTS prevent_audit_log_delete
            BEFORE DELETE ON audit_log
            BEGIN
                SELECT RAISE(ABORT, 'Audit log entries are immutable and cannot be deleted');
            END;
            """
        )


def downgrade() -> None:
    """Downgrade schema."""
    if op.get_bind().dialect.name == 'postgresql':
        op.execute("DROP TRIGGER IF EXISTS prevent_audit_log_change ON audit_log")
        op.execute("DROP FUNCTION IF EXISTS prevent_audit_log_change()")
    else:
        op.execute("DROP TRIGGER IF EXISTS prevent_audit_log_update")
        op.execute("DROP TRIGGER IF EXISTS prevent_audit_log_delete")

    op.drop_table('audit_log')
    op.drop_table('verification_codes')
    op.drop_table('users')
    op.drop_table('roles')
