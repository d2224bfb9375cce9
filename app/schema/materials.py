from __future__ import annotations

from sqlalchemy import CheckConstraint, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base

_UTC_NOW = text("""to_char((now() AT TIME ZONE 'UTC'), 'YYYY-MM-DD"T"HH24:MI:SS"Z"')""")


class Material(Base):
  __tablename__ = "materials"
  __table_args__ = (
    CheckConstraint("kind IN ('test', 'flashcards', 'notes')", name="ck_materials_kind"),
    CheckConstraint(
      "status IN ('PENDING_EXTRACTION', 'PENDING_AI_GENERATION', 'COMPLETED', 'EXTRACTION_FAILED', 'EXTRACTION_UNSUPPORTED', 'AI_PROCESSING_FAILED')",
      name="ck_materials_status",
    ),
    CheckConstraint("(content IS NOT NULL) = (status = 'COMPLETED')", name="ck_materials_content_completed"),
  )

  material_id: Mapped[str] = mapped_column(String, primary_key=True)
  user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
  kind: Mapped[str] = mapped_column(String, nullable=False)
  title: Mapped[str] = mapped_column(String, nullable=False)
  status: Mapped[str] = mapped_column(String, nullable=False, index=True)
  # None must reach Postgres as SQL NULL, not the JSON null literal, for the content check to hold.
  content: Mapped[dict | None] = mapped_column(JSONB(none_as_null=True), nullable=True)
  source_file_name: Mapped[str | None] = mapped_column(String, nullable=True)
  source_text: Mapped[str | None] = mapped_column(Text, nullable=True)
  storage_path: Mapped[str | None] = mapped_column(String, nullable=True)
  generation_params: Mapped[dict] = mapped_column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
  created_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_UTC_NOW)
  updated_at: Mapped[str] = mapped_column(String, nullable=False, server_default=_UTC_NOW)
