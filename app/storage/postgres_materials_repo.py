"""Postgres-backed repository for study materials using SQLAlchemy."""

from __future__ import annotations

from collections.abc import Collection
from typing import Any

from sqlalchemy import select, update

from app.core.database import get_session_factory
from app.materials.models import MaterialKind, MaterialRecord, MaterialStatus
from app.schema.materials import Material
from app.storage.materials_repo import MaterialsRepository
from app.utils.ids import utc_timestamp


class PostgresMaterialsRepository(MaterialsRepository):
  """Persist materials to Postgres using SQLAlchemy."""

  def __init__(self) -> None:
    self._session_factory = get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create_material(self, record: MaterialRecord) -> None:
    async with self._session_factory() as session:
      material = Material(
        material_id=record.material_id,
        user_id=record.user_id,
        kind=MaterialKind(record.kind).value,
        title=record.title,
        status=MaterialStatus(record.status).value,
        content=record.content,
        source_file_name=record.source_file_name,
        source_text=record.source_text,
        storage_path=record.storage_path,
        generation_params=record.generation_params,
        created_at=record.created_at,
        updated_at=record.updated_at,
      )
      session.add(material)
      await session.commit()

  async def get_material(self, material_id: str) -> MaterialRecord | None:
    async with self._session_factory() as session:
      row = await session.get(Material, material_id)
      if row is None:
        return None
      return self._model_to_record(row)

  async def list_materials(self, user_id: str) -> list[MaterialRecord]:
    stmt = select(Material).where(Material.user_id == user_id).order_by(Material.created_at.desc(), Material.material_id.desc())
    async with self._session_factory() as session:
      rows = (await session.execute(stmt)).scalars().all()
      return [self._model_to_record(row) for row in rows]

  async def update_material_if_status_in(
    self,
    material_id: str,
    expected: Collection[MaterialStatus],
    *,
    status: MaterialStatus,
    content: dict[str, Any] | None = None,
    title: str | None = None,
    source_text: str | None = None,
  ) -> MaterialRecord | None:
    values: dict[str, Any] = {"status": MaterialStatus(status).value, "content": content, "updated_at": utc_timestamp()}
    if title is not None:
      values["title"] = title
    if source_text is not None:
      values["source_text"] = source_text

    stmt = (
      update(Material)
      .where(Material.material_id == material_id, Material.status.in_([MaterialStatus(value).value for value in expected]))
      .values(**values)
      .returning(Material)
      .execution_options(synchronize_session=False)
    )
    async with self._session_factory() as session:
      row = (await session.execute(stmt)).scalar_one_or_none()
      await session.commit()
      if row is None:
        return None
      return self._model_to_record(row)

  @staticmethod
  def _model_to_record(row: Material) -> MaterialRecord:
    return MaterialRecord(
      material_id=row.material_id,
      user_id=row.user_id,
      kind=MaterialKind(row.kind),
      title=row.title,
      status=MaterialStatus(row.status),
      content=row.content,
      source_file_name=row.source_file_name,
      source_text=row.source_text,
      storage_path=row.storage_path,
      generation_params=dict(row.generation_params or {}),
      created_at=row.created_at,
      updated_at=row.updated_at,
    )
