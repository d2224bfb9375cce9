from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base

_UTC_NOW = text("""to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')""")


class FileProcessingJob(Base):
  __tablename__ = "file_processing_jobs"
  __table_args__ = (
    CheckConstraint(
      "status IN ('PENDING_EXTRACTION', 'EXTRACTING', 'TEXT_EXTRACTED_PENDING_AI', 'EXTRACTION_FAILED', 'EXTRACTION_UNSUPPORTED')",
      name="ck_file_processing_jobs_status",
    ),
    # Extracted text and error message never coexist, and each belongs to its own terminal status.
    CheckConstraint("extracted_text IS NULL OR status = 'TEXT_EXTRACTED_PENDING_AI'", name="ck_file_processing_jobs_text_status"),
    CheckConstraint("error_message IS NULL OR status IN ('EXTRACTION_FAILED', 'EXTRACTION_UNSUPPORTED')", name="ck_file_processing_jobs_error_status"),
    Index("ix_file_processing_jobs_user_status", "user_id", "status"),
  )

  job_id: Mapped[str] = mapped_column(String, primary_key=True)
  material_id: Mapped[str] = mapped_column(ForeignKey("materials.material_id", ondelete="CASCADE"), nullable=False, index=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False)
  original_file_name: Mapped[str] = mapped_column(String, nullable=False)
  file_type: Mapped[str | None] = mapped_column(String, nullable=True)
  storage_path: Mapped[str | None] = mapped_column(String, nullable=True)
  status: Mapped[str] = mapped_column(String, nullable=False)
  extracted_text: Mapped[str | None] = mapped_column(Text, nullable=True)
  error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
  generation_params: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
  created_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_UTC_NOW)
  updated_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_UTC_NOW)
