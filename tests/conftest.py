"""Shared test configuration: required settings and in-memory repositories."""

from __future__ import annotations

import os
from collections.abc import Callable, Collection
from dataclasses import replace
from typing import Any

# Ensure required settings are available before importing the app.
os.environ.setdefault("STUDYKIT_ALLOWED_ORIGINS", "http://localhost")
os.environ.setdefault("STUDYKIT_TASK_SECRET", "test-task-secret")
os.environ.setdefault("STUDYKIT_JOBS_AUTO_PROCESS", "0")

import pytest  # noqa: E402

from app.jobs.models import JobRecord, JobStatus  # noqa: E402
from app.materials.models import MaterialKind, MaterialRecord, MaterialStatus  # noqa: E402

_CREATED_AT = "2024-01-01T00:00:00Z"
_UPDATED_AT = "2024-01-01T00:00:05Z"


class InMemoryJobsRepo:
  """Jobs repository double that honors the status-guarded update contract."""

  def __init__(self) -> None:
    self.jobs: dict[str, JobRecord] = {}
    self.writes: list[tuple[str, JobStatus]] = []

  async def create_job(self, record: JobRecord) -> None:
    self.jobs[record.job_id] = record

  async def get_job(self, job_id: str) -> JobRecord | None:
    return self.jobs.get(job_id)

  async def update_job_if_status_in(self, job_id: str, expected: Collection[JobStatus], *, status: JobStatus, extracted_text: str | None = None, error_message: str | None = None) -> JobRecord | None:
    record = self.jobs.get(job_id)

    # Refuse the write when the row is gone or has already moved on.
    if record is None or record.status not in expected:
      return None

    updated = replace(record, status=status, extracted_text=extracted_text, error_message=error_message, updated_at=_UPDATED_AT)
    self.jobs[job_id] = updated
    self.writes.append((job_id, status))
    return updated


class InMemoryMaterialsRepo:
  """Materials repository double that honors the status-guarded update contract."""

  def __init__(self) -> None:
    self.materials: dict[str, MaterialRecord] = {}

  async def create_material(self, record: MaterialRecord) -> None:
    self.materials[record.material_id] = record

  async def get_material(self, material_id: str) -> MaterialRecord | None:
    return self.materials.get(material_id)

  async def list_materials(self, user_id: str) -> list[MaterialRecord]:
    owned = [record for record in self.materials.values() if record.user_id == user_id]
    return sorted(owned, key=lambda record: (record.created_at, record.material_id), reverse=True)

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
    record = self.materials.get(material_id)
    if record is None or record.status not in expected:
      return None

    changes: dict[str, Any] = {"status": status, "content": content, "updated_at": _UPDATED_AT}
    if title is not None:
      changes["title"] = title
    if source_text is not None:
      changes["source_text"] = source_text
    updated = replace(record, **changes)
    self.materials[material_id] = updated
    return updated


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def jobs_repo() -> InMemoryJobsRepo:
  return InMemoryJobsRepo()


@pytest.fixture
def materials_repo() -> InMemoryMaterialsRepo:
  return InMemoryMaterialsRepo()


@pytest.fixture
def patched_repos(monkeypatch: pytest.MonkeyPatch, jobs_repo: InMemoryJobsRepo, materials_repo: InMemoryMaterialsRepo) -> tuple[InMemoryJobsRepo, InMemoryMaterialsRepo]:
  """Route the service layer to the in-memory repositories."""
  monkeypatch.setattr("app.services.jobs._get_jobs_repo", lambda _settings: jobs_repo)
  monkeypatch.setattr("app.services.jobs._get_materials_repo", lambda _settings: materials_repo)
  monkeypatch.setattr("app.services.materials._get_materials_repo", lambda _settings: materials_repo)
  return jobs_repo, materials_repo


@pytest.fixture
def make_material() -> Callable[..., MaterialRecord]:
  def _make(**overrides: Any) -> MaterialRecord:
    values: dict[str, Any] = {
      "material_id": "mat-1",
      "user_id": "user-1",
      "kind": MaterialKind.TEST,
      "title": "lecture.pdf",
      "status": MaterialStatus.PENDING_EXTRACTION,
      "created_at": _CREATED_AT,
      "updated_at": _CREATED_AT,
      "generation_params": {"question_type": "multipleChoice", "number_of_questions": 5, "bloom_level": None},
      "source_file_name": "lecture.pdf",
      "storage_path": "studykit-uploads/user-1/lecture.pdf",
    }
    values.update(overrides)
    return MaterialRecord(**values)

  return _make


@pytest.fixture
def make_job() -> Callable[..., JobRecord]:
  def _make(**overrides: Any) -> JobRecord:
    values: dict[str, Any] = {
      "job_id": "job-1",
      "material_id": "mat-1",
      "user_id": "user-1",
      "original_file_name": "lecture.pdf",
      "file_type": "application/pdf",
      "storage_path": "studykit-uploads/user-1/lecture.pdf",
      "status": JobStatus.PENDING_EXTRACTION,
      "created_at": _CREATED_AT,
      "updated_at": _CREATED_AT,
    }
    values.update(overrides)
    return JobRecord(**values)

  return _make
