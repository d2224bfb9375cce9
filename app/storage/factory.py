"""Repository factories, patched out in tests."""

from __future__ import annotations

from app.config import Settings
from app.storage.jobs_repo import JobsRepository
from app.storage.materials_repo import MaterialsRepository


def _get_jobs_repo(settings: Settings) -> JobsRepository:
  """Return the jobs repository for the configured database."""
  from app.storage.postgres_jobs_repo import PostgresJobsRepository

  _ = settings
  return PostgresJobsRepository()


def _get_materials_repo(settings: Settings) -> MaterialsRepository:
  """Return the materials repository for the configured database."""
  from app.storage.postgres_materials_repo import PostgresMaterialsRepository

  _ = settings
  return PostgresMaterialsRepository()
