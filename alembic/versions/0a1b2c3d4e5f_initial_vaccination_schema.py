"""Esquema inicial: niños, catálogo de vacunas, dosis y notificaciones

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-18

- Crea tablas children, vaccines, schedule_entries, administered_doses, notifications
- Crea enums notificationtype y notificationstate
- Índice único parcial: una notificación activa por (niño, vacuna, dosis)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0a1b2c3d4e5f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. Crear enums ───────────────────────────────
    op.execute("CREATE TYPE notificationtype AS ENUM ('recordatorio', 'proxima', 'vencida')")
    op.execute(
        "CREATE TYPE notificationstate AS ENUM ('pendiente', 'enviada', 'leida', 'aplicada')"
    )

    notificationtype_enum = postgresql.ENUM(
        'recordatorio', 'proxima', 'vencida',
        name='notificationtype', create_type=False,
    )
    notificationstate_enum = postgresql.ENUM(
        'pendiente', 'enviada', 'leida', 'aplicada',
        name='notificationstate', create_type=False,
    )

    # ── 2. children ──────────────────────────────────
    op.create_table(
        'children',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('birth_date', sa.Date(), nullable=False),
        sa.Column('guardian_name', sa.String(200), nullable=True),
        sa.Column('guardian_phone', sa.String(20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── 3. vaccines ──────────────────────────────────
    op.create_table(
        'vaccines',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('code', sa.String(20), nullable=False, unique=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ── 4. schedule_entries ──────────────────────────
    op.create_table(
        'schedule_entries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('vaccine_id', sa.Uuid(), sa.ForeignKey('vaccines.id'), nullable=False),
        sa.Column('dose_number', sa.Integer(), nullable=False),
        sa.Column('target_age_days', sa.Integer(), nullable=False),
        sa.Column('min_age_days', sa.Integer(), nullable=True),
        sa.Column('max_age_days', sa.Integer(), nullable=True),
        sa.Column('min_interval_days', sa.Integer(), nullable=True),
        sa.Column('is_booster', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('age_description', sa.String(50), nullable=True),
        sa.Column('catalog_version', sa.String(20), nullable=False, server_default='2024'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            'vaccine_id', 'dose_number', 'catalog_version',
            name='uq_schedule_vaccine_dose_version',
        ),
    )
    op.create_index(
        'idx_schedule_version_active', 'schedule_entries', ['catalog_version', 'is_active']
    )

    # ── 5. administered_doses ────────────────────────
    op.create_table(
        'administered_doses',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('child_id', sa.Uuid(), sa.ForeignKey('children.id'), nullable=False),
        sa.Column('vaccine_id', sa.Uuid(), sa.ForeignKey('vaccines.id'), nullable=False),
        sa.Column('dose_number', sa.Integer(), nullable=False),
        sa.Column('application_date', sa.Date(), nullable=False),
        sa.Column('lot_number', sa.String(50), nullable=True),
        sa.Column('health_center', sa.String(200), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            'child_id', 'vaccine_id', 'dose_number',
            name='uq_dose_child_vaccine_number',
        ),
    )
    op.create_index('idx_dose_child', 'administered_doses', ['child_id'])

    # ── 6. notifications ─────────────────────────────
    op.create_table(
        'notifications',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('child_id', sa.Uuid(), sa.ForeignKey('children.id'), nullable=False),
        sa.Column('vaccine_id', sa.Uuid(), sa.ForeignKey('vaccines.id'), nullable=False),
        sa.Column('dose_number', sa.Integer(), nullable=False),
        sa.Column('notification_type', notificationtype_enum, nullable=False),
        sa.Column('state', notificationstate_enum, nullable=False, server_default='pendiente'),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('blocked_by_previous_dose', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        'uq_notification_active_dose', 'notifications',
        ['child_id', 'vaccine_id', 'dose_number'],
        unique=True,
        postgresql_where=sa.text("state <> 'aplicada'"),
    )
    op.create_index('idx_notification_child', 'notifications', ['child_id'])
    op.create_index('idx_notification_state_date', 'notifications', ['state', 'scheduled_date'])


def downgrade() -> None:
    op.drop_index('idx_notification_state_date', table_name='notifications')
    op.drop_index('idx_notification_child', table_name='notifications')
    op.drop_index('uq_notification_active_dose', table_name='notifications')
    op.drop_table('notifications')

    op.drop_index('idx_dose_child', table_name='administered_doses')
    op.drop_table('administered_doses')

    op.drop_index('idx_schedule_version_active', table_name='schedule_entries')
    op.drop_table('schedule_entries')

    op.drop_table('vaccines')
    op.drop_table('children')

    op.execute("DROP TYPE IF EXISTS notificationstate CASCADE")
    op.execute("DROP TYPE IF EXISTS notificationtype CASCADE")
