"""create inspection and report tables

Revision ID: 3b7d9e2a1c40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3b7d9e2a1c40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns():
    return [
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('operators',
    sa.Column('operator_name', sa.String(), nullable=False),
    sa.Column('operator_address', sa.String(), nullable=True),
    sa.Column('operator_ico', sa.String(), nullable=True),
    sa.Column('operator_statutory_body', sa.String(), nullable=True),
    sa.Column('operator_phone', sa.String(), nullable=True),
    sa.Column('operator_email', sa.String(), nullable=True),
    *_audit_columns(),
    sa.PrimaryKeyConstraint('id')
    )

    op.create_table('premises',
    sa.Column('operator_id', sa.UUID(), nullable=False),
    sa.Column('premise_name', sa.String(), nullable=False),
    sa.Column('premise_address', sa.String(), nullable=True),
    sa.Column('premise_responsible_person', sa.String(), nullable=True),
    sa.Column('premise_phone', sa.String(), nullable=True),
    sa.Column('premise_email', sa.String(), nullable=True),
    *_audit_columns(),
    sa.ForeignKeyConstraint(['operator_id'], ['operators.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_premises_operator_id'), 'premises', ['operator_id'], unique=False)

    op.create_table('inspection_types',
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('active', sa.Boolean(), nullable=False),
    sa.Column('structure', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('report_text_no_non_compliances', sa.String(), nullable=True),
    sa.Column('report_text_with_non_compliances', sa.String(), nullable=True),
    *_audit_columns(),
    sa.PrimaryKeyConstraint('id')
    )

    op.create_table('inspections',
    sa.Column('premise_id', sa.UUID(), nullable=False),
    sa.Column('inspection_type_id', sa.UUID(), nullable=True),
    sa.Column('status', sa.Enum('DRAFT', 'IN_PROGRESS', 'COMPLETED', 'REVISED', name='inspectionstatus'), nullable=False),
    sa.Column('header_values', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('answers', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column('completed_at', sa.DateTime(), nullable=True),
    *_audit_columns(),
    sa.ForeignKeyConstraint(['inspection_type_id'], ['inspection_types.id'], ),
    sa.ForeignKeyConstraint(['premise_id'], ['premises.id'], ),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_inspections_premise_id'), 'inspections', ['premise_id'], unique=False)

    op.create_table('auditor_profiles',
    sa.Column('name', sa.String(), nullable=False),
    sa.Column('phone', sa.String(), nullable=True),
    sa.Column('email', sa.String(), nullable=True),
    sa.Column('web', sa.String(), nullable=True),
    sa.Column('stamp_url', sa.String(), nullable=True),
    *_audit_columns(),
    sa.PrimaryKeyConstraint('id')
    )

    # No FK to inspections: reports of a deleted inspection are flagged by the scheduler
    op.create_table('reports',
    sa.Column('inspection_id', sa.UUID(), nullable=False),
    sa.Column('version_number', sa.Integer(), nullable=False),
    sa.Column('is_latest', sa.Boolean(), nullable=False),
    sa.Column('created_by_name', sa.String(), nullable=True),
    sa.Column('status', sa.Enum('PENDING', 'GENERATING', 'DONE', 'ERROR', name='reportstatus'), nullable=False),
    sa.Column('generated_at', sa.DateTime(), nullable=True),
    sa.Column('error', sa.String(), nullable=True),
    sa.Column('report_data', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('usage', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('header_values_snapshot', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('auditor_snapshot', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('answers_snapshot', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column('editor_state', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    *_audit_columns(),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('inspection_id', 'version_number', name='uq_reports_inspection_version')
    )
    op.create_index(op.f('ix_reports_inspection_id'), 'reports', ['inspection_id'], unique=False)
    op.create_index(op.f('ix_reports_status'), 'reports', ['status'], unique=False)

    op.create_table('ai_usage_logs',
    sa.Column('model', sa.String(), nullable=False),
    sa.Column('operation', sa.String(), nullable=False),
    sa.Column('source', sa.String(), nullable=False),
    sa.Column('prompt_tokens', sa.Integer(), nullable=False),
    sa.Column('completion_tokens', sa.Integer(), nullable=False),
    sa.Column('total_tokens', sa.Integer(), nullable=False),
    sa.Column('cost_usd', sa.Float(), nullable=False),
    *_audit_columns(),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_ai_usage_logs_model'), 'ai_usage_logs', ['model'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index(op.f('ix_ai_usage_logs_model'), table_name='ai_usage_logs')
    op.drop_table('ai_usage_logs')
    op.drop_index(op.f('ix_reports_status'), table_name='reports')
    op.drop_index(op.f('ix_reports_inspection_id'), table_name='reports')
    op.drop_table('reports')
    op.drop_table('auditor_profiles')
    op.drop_index(op.f('ix_inspections_premise_id'), table_name='inspections')
    op.drop_table('inspections')
    op.drop_table('inspection_types')
    op.drop_index(op.f('ix_premises_operator_id'), table_name='premises')
    op.drop_table('premises')
    op.drop_table('operators')
    sa.Enum(name='reportstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='inspectionstatus').drop(op.get_bind(), checkfirst=True)
