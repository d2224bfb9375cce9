"""Create materials and file processing jobs tables.

Revision ID: 4a1c7e9d2b30
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "4a1c7e9d2b30"
down_revision = None
branch_labels = None
depends_on = None

_UTC_NOW = sa.text("""to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')""")
_EMPTY_JSONB = sa.text("'{}'::jsonb")


def upgrade() -> None:
  """Upgrade schema."""
  op.create_table(
    "materials",
    sa.Column("material_id", sa.String(), nullable=False),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("kind", sa.String(), nullable=False),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("content", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("source_file_name", sa.String(), nullable=True),
    sa.Column("source_text", sa.Text(), nullable=True),
    sa.Column("storage_path", sa.String(), nullable=True),
    sa.Column("generation_params", postgresql.JSONB(astext_type=sa.Text()), server_default=_EMPTY_JSONB, nullable=False),
    sa.Column("created_at", sa.String(), server_default=_UTC_NOW, nullable=False),
    sa.Column("updated_at", sa.String(), server_default=_UTC_NOW, nullable=False),
    sa.CheckConstraint("kind IN ('test', 'flashcards', 'notes')", name="ck_materials_kind"),
    sa.CheckConstraint(
      "status IN ('PENDING_EXTRACTION', 'PENDING_AI_GENERATION', 'COMPLETED', 'EXTRACTION_FAILED', 'EXTRACTION_UNSUPPORTED', 'AI_PROCESSING_FAILED')",
      name="ck_materials_status",
    ),
    sa.CheckConstraint("(content IS NOT NULL) = (status = 'COMPLETED')", name="ck_materials_content_completed"),
    sa.PrimaryKeyConstraint("material_id"),
  )
  op.create_index(op.f("ix_materials_user_id"), "materials", ["user_id"], unique=False)
  op.create_index(op.f("ix_materials_status"), "materials", ["status"], unique=False)

  op.create_table(
    "file_processing_jobs",
    sa.Column("job_id", sa.String(), nullable=False),
    sa.Column("material_id", sa.String(), nullable=False),
    sa.Column("user_id", sa.String(), nullable=False),
    sa.Column("original_file_name", sa.String(), nullable=False),
    sa.Column("file_type", sa.String(), nullable=True),
    sa.Column("storage_path", sa.String(), nullable=True),
    sa.Column("status", sa.String(), nullable=False),
    sa.Column("extracted_text", sa.Text(), nullable=True),
    sa.Column("error_message", sa.Text(), nullable=True),
    sa.Column("generation_params", postgresql.JSONB(astext_type=sa.Text()), server_default=_EMPTY_JSONB, nullable=False),
    sa.Column("created_at", sa.String(), server_default=_UTC_NOW, nullable=False),
    sa.Column("updated_at", sa.String(), server_default=_UTC_NOW, nullable=False),
    sa.CheckConstraint(
      "status IN ('PENDING_EXTRACTION', 'EXTRACTING', 'TEXT_EXTRACTED_PENDING_AI', 'EXTRACTION_FAILED', 'EXTRACTION_UNSUPPORTED')",
      name="ck_file_processing_jobs_status",
    ),
    sa.CheckConstraint("extracted_text IS NULL OR status = 'TEXT_EXTRACTED_PENDING_AI'", name="ck_file_processing_jobs_text_status"),
    sa.CheckConstraint("error_message IS NULL OR status IN ('EXTRACTION_FAILED', 'EXTRACTION_UNSUPPORTED')", name="ck_file_processing_jobs_error_status"),
    sa.ForeignKeyConstraint(["material_id"], ["materials.material_id"], ondelete="CASCADE"),
    sa.PrimaryKeyConstraint("job_id"),
  )
  op.create_index(op.f("ix_file_processing_jobs_material_id"), "file_processing_jobs", ["material_id"], unique=False)
  op.create_index("ix_file_processing_jobs_user_status", "file_processing_jobs", ["user_id", "status"], unique=False)


def downgrade() -> None:
  """Downgrade schema."""
  op.drop_index("ix_file_processing_jobs_user_status", table_name="file_processing_jobs")
  op.drop_index(op.f("ix_file_processing_jobs_material_id"), table_name="file_processing_jobs")
  op.drop_table("file_processing_jobs")
  op.drop_index(op.f("ix_materials_status"), table_name="materials")
  op.drop_index(op.f("ix_materials_user_id"), table_name="materials")
  op.drop_table("materials")
