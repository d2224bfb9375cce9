from __future__ import annotations

from sqlalchemy import insert, update
from sqlalchemy.dialects.postgresql.asyncpg import PGDialect_asyncpg

from app.schema.materials import Material


def _content_bind(dialect: PGDialect_asyncpg):
  content_type = Material.__table__.c.content.type.dialect_impl(dialect)
  return content_type.bind_processor(dialect)


def test_missing_content_is_bound_as_sql_null() -> None:
  """The content check needs SQL NULL; a JSON 'null' literal would count as present."""
  dialect = PGDialect_asyncpg()
  process = _content_bind(dialect)

  assert Material.__table__.c.content.type.none_as_null
  assert process is None or process(None) is None
  assert process is None or process({"title": "Notes", "notesContent": "# Cells"}) is not None


def test_status_update_without_content_renders_null() -> None:
  dialect = PGDialect_asyncpg()
  process = _content_bind(dialect)

  compiled = update(Material).where(Material.material_id == "mat-1").values(status="EXTRACTION_FAILED", content=None).compile(dialect=dialect)

  bound = compiled.params.get("content")
  assert bound is None
  assert process is None or process(bound) is None


def test_placeholder_insert_renders_null_content() -> None:
  dialect = PGDialect_asyncpg()
  process = _content_bind(dialect)

  compiled = insert(Material).values(material_id="mat-1", user_id="user-1", kind="test", title="lecture.pdf", status="PENDING_EXTRACTION", content=None).compile(dialect=dialect)

  bound = compiled.params.get("content")
  assert bound is None
  assert process is None or process(bound) is None
