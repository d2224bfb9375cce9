from __future__ import annotations

from dataclasses import replace

import httpx
import pytest

from app.api.models import FileDescriptor
from app.client.api import PipelineApiClient, PipelineApiError
from app.client.poller import ClientPhase, ClientPoller, PollerSession
from app.config import get_settings
from app.core.security import get_current_user_id
from app.extraction.registry import PDF_MIME, ExtractorRegistry
from app.jobs.extraction_worker import ExtractionWorker
from app.jobs.models import JobStatus
from app.main import app
from app.materials.models import MaterialKind, MaterialStatus

_FILE = FileDescriptor(original_file_name="photosynthesis.pdf", file_type=PDF_MIME, storage_path="studykit-uploads/user-1/photosynthesis.pdf", size_bytes=1024)


class _Blobs:
  async def download(self, path: str) -> bytes:
    return b"%PDF-1.4"


class _Extractor:
  async def extract(self, data: bytes, *, mime_type: str) -> str:
    return "Photosynthesis turns light into chemical energy."


class _Generator:
  def __init__(self) -> None:
    self.texts: list[str] = []

  async def generate(self, kind, text, params=None, *, source_name=None):
    self.texts.append(text)
    return {"title": "Photosynthesis", "flashcards": [{"front": "What does photosynthesis produce?", "back": "Glucose and oxygen"}]}


@pytest.fixture
def api_client(patched_repos, monkeypatch: pytest.MonkeyPatch):
  settings = replace(get_settings.__wrapped__(), jobs_auto_process=False)
  app.dependency_overrides[get_settings] = lambda: settings
  app.dependency_overrides[get_current_user_id] = lambda: "user-1"
  generator = _Generator()
  monkeypatch.setattr("app.api.routes.generation.build_artifact_generator", lambda _settings: generator)
  client = PipelineApiClient("http://test", "fake-id-token", transport=httpx.ASGITransport(app=app))
  yield client, generator
  app.dependency_overrides.clear()


@pytest.mark.anyio
async def test_file_upload_runs_to_completed_material(api_client, patched_repos) -> None:
  client, generator = api_client
  jobs_repo, materials_repo = patched_repos
  worker = ExtractionWorker(jobs_repo=jobs_repo, materials_repo=materials_repo, blob_store=_Blobs(), registry=ExtractorRegistry({PDF_MIME: _Extractor()}))

  async def _sleep_and_extract(_seconds: float) -> None:
    # The worker runs between the first and second poll.
    await worker.run_extraction(next(iter(jobs_repo.jobs)))

  poller = ClientPoller(PollerSession(), client, client, client, sleep=_sleep_and_extract)
  async with client:
    job = await poller.submit_file(client, MaterialKind.FLASHCARDS, _FILE, generation_params={"number_of_flashcards": 1})

  assert job.phase == ClientPhase.COMPLETED_AI_PROCESSED
  assert generator.texts == ["Photosynthesis turns light into chemical energy."]
  stored_job = await jobs_repo.get_job(job.job_id)
  assert stored_job.status == JobStatus.TEXT_EXTRACTED_PENDING_AI
  material = await materials_repo.get_material(job.material_id)
  assert material.status == MaterialStatus.COMPLETED
  assert material.title == "Photosynthesis"
  assert material.content["flashcards"] == [{"front": "What does photosynthesis produce?", "back": "Glucose and oxygen"}]


@pytest.mark.anyio
async def test_inline_text_generates_without_a_job(api_client, patched_repos) -> None:
  client, generator = api_client
  jobs_repo, materials_repo = patched_repos

  async with client:
    material = await client.create_material(MaterialKind.FLASHCARDS, source_text="Chlorophyll absorbs light.")
    job = await ClientPoller(PollerSession(), client, client, client).run_inline(material.material_id, MaterialKind.FLASHCARDS, material.source_text, generation_params=material.generation_params)

  assert job.phase == ClientPhase.COMPLETED_AI_PROCESSED
  assert jobs_repo.jobs == {}
  assert (await materials_repo.get_material(material.material_id)).status == MaterialStatus.COMPLETED


@pytest.mark.anyio
async def test_client_surfaces_server_detail(api_client) -> None:
  client, _ = api_client

  async with client:
    with pytest.raises(PipelineApiError) as excinfo:
      await client.fetch_job("job-missing")

  assert excinfo.value.status_code == 404
  assert str(excinfo.value) == "Job not found."


@pytest.mark.anyio
async def test_client_lists_saved_materials(api_client) -> None:
  client, _ = api_client

  async with client:
    created = await client.create_material(MaterialKind.NOTES, source_text="Osmosis moves water across membranes.")
    listed = await client.list_materials()

  assert [material.material_id for material in listed] == [created.material_id]
