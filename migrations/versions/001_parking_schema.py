"""Parking spots, shifts and reservations.

Revision ID: 001_parking_schema
Revises:
Create Date: 2024-01-15
"""

from __future__ import annotations

from pathlib import Path

from alembic import op


revision = "001_parking_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    sql_path = Path(__file__).resolve().parents[1] / "sql" / "001_parking_schema.sql"
    sql = sql_path.read_text(encoding="utf-8")
    conn = op.get_bind()
    conn.exec_driver_sql(sql)


def downgrade() -> None:
    conn = op.get_bind()
    conn.exec_driver_sql(
        """
        DROP TABLE IF EXISTS par_reservacion;
        DROP TABLE IF EXISTS par_jornada;
        DROP TABLE IF EXISTS par_parqueo;
        DROP TABLE IF EXISTS par_estado_reservacion;
        DROP TABLE IF EXISTS par_estado_jornada;
        """
    )
