"""Storage interfaces for study materials."""

from __future__ import annotations

from collections.abc import Collection
from typing import Any, Protocol

from app.materials.models import MaterialRecord, MaterialStatus


class MaterialsRepository(Protocol):
  """Repository contract for material persistence."""

  async def create_material(self, record: MaterialRecord) -> None:
    """Persist a new material row."""

  async def get_material(self, material_id: str) -> MaterialRecord | None:
    """Fetch a material by identifier."""

  async def list_materials(self, user_id: str) -> list[MaterialRecord]:
    """Return the owner's materials, newest first."""

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
    """Conditionally move a material to `status`; None when the guard refused the write.

    `content` is written as given (None clears it). `title` and `source_text`
    are only written when provided.
    """
