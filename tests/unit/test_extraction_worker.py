from __future__ import annotations

import asyncio

import pytest

from app.core.errors import BlobNotFoundError, ExtractionError
from app.extraction.registry import DOCX_MIME, PDF_MIME, PPTX_MIME, ExtractorRegistry
from app.jobs.extraction_worker import EMPTY_TEXT_MESSAGE, MISSING_DETAILS_MESSAGE, ExtractionWorker
from app.jobs.models import JobStatus
from app.materials.models import MaterialStatus


class FakeBlobStore:
  def __init__(self, blobs: dict[str, bytes] | None = None) -> None:
    self.blobs = blobs or {}
    self.downloads: list[str] = []

  async def download(self, path: str) -> bytes:
    self.downloads.append(path)
    if path not in self.blobs:
      raise BlobNotFoundError(f"Object not found: {path}")
    return self.blobs[path]


class FakeExtractor:
  def __init__(self, text: str = "", error: Exception | None = None) -> None:
    self.text = text
    self.error = error
    self.calls: list[tuple[bytes, str]] = []

  async def extract(self, data: bytes, *, mime_type: str) -> str:
    self.calls.append((data, mime_type))
    if self.error is not None:
      raise self.error
    return self.text


_PATH = "studykit-uploads/user-1/lecture.pdf"


async def _seed(jobs_repo, materials_repo, make_job, make_material, **job_overrides):
  await materials_repo.create_material(make_material())
  job = make_job(**job_overrides)
  await jobs_repo.create_job(job)
  return job


def _worker(jobs_repo, materials_repo, blob_store, extractor=None) -> ExtractionWorker:
  registry = ExtractorRegistry({PDF_MIME: extractor or FakeExtractor("unused"), DOCX_MIME: extractor or FakeExtractor("unused")})
  return ExtractionWorker(jobs_repo=jobs_repo, materials_repo=materials_repo, blob_store=blob_store, registry=registry)


@pytest.mark.anyio
async def test_successful_extraction_stores_text_and_mirrors_material(jobs_repo, materials_repo, make_job, make_material) -> None:
  await _seed(jobs_repo, materials_repo, make_job, make_material)
  extractor = FakeExtractor("  Photosynthesis converts light to energy.  ")
  worker = _worker(jobs_repo, materials_repo, FakeBlobStore({_PATH: b"%PDF"}), extractor)

  result = await worker.run_extraction("job-1")

  assert result is not None
  job = await jobs_repo.get_job("job-1")
  assert job.status == JobStatus.TEXT_EXTRACTED_PENDING_AI
  assert job.extracted_text == "Photosynthesis converts light to energy."
  assert job.error_message is None
  material = await materials_repo.get_material("mat-1")
  assert material.status == MaterialStatus.PENDING_AI_GENERATION
  assert material.source_text == "Photosynthesis converts light to energy."
  assert material.content is None
  assert extractor.calls == [(b"%PDF", PDF_MIME)]
  assert jobs_repo.writes == [("job-1", JobStatus.EXTRACTING), ("job-1", JobStatus.TEXT_EXTRACTED_PENDING_AI)]


@pytest.mark.anyio
async def test_presentation_short_circuits_without_download(jobs_repo, materials_repo, make_job, make_material) -> None:
  await _seed(jobs_repo, materials_repo, make_job, make_material, file_type=PPTX_MIME, original_file_name="deck.pptx")
  blob_store = FakeBlobStore({_PATH: b"pk"})
  worker = _worker(jobs_repo, materials_repo, blob_store)

  await worker.run_extraction("job-1")

  job = await jobs_repo.get_job("job-1")
  assert job.status == JobStatus.EXTRACTION_UNSUPPORTED
  assert job.error_message == "PPTX file processing is not yet supported."
  assert job.extracted_text is None
  assert blob_store.downloads == []
  material = await materials_repo.get_material("mat-1")
  assert material.status == MaterialStatus.EXTRACTION_UNSUPPORTED


@pytest.mark.anyio
async def test_unknown_mime_type_is_unsupported(jobs_repo, materials_repo, make_job, make_material) -> None:
  await _seed(jobs_repo, materials_repo, make_job, make_material, file_type="application/zip")
  worker = _worker(jobs_repo, materials_repo, FakeBlobStore())

  await worker.run_extraction("job-1")

  job = await jobs_repo.get_job("job-1")
  assert job.status == JobStatus.EXTRACTION_UNSUPPORTED
  assert "application/zip" in job.error_message


@pytest.mark.anyio
async def test_empty_text_is_a_failure(jobs_repo, materials_repo, make_job, make_material) -> None:
  await _seed(jobs_repo, materials_repo, make_job, make_material)
  worker = _worker(jobs_repo, materials_repo, FakeBlobStore({_PATH: b"%PDF"}), FakeExtractor("   \n\t "))

  await worker.run_extraction("job-1")

  job = await jobs_repo.get_job("job-1")
  assert job.status == JobStatus.EXTRACTION_FAILED
  assert job.error_message == EMPTY_TEXT_MESSAGE
  assert job.extracted_text is None
  material = await materials_repo.get_material("mat-1")
  assert material.status == MaterialStatus.EXTRACTION_FAILED
  assert material.source_text is None


@pytest.mark.anyio
async def test_download_failure_is_recorded(jobs_repo, materials_repo, make_job, make_material) -> None:
  await _seed(jobs_repo, materials_repo, make_job, make_material)
  worker = _worker(jobs_repo, materials_repo, FakeBlobStore())

  await worker.run_extraction("job-1")

  job = await jobs_repo.get_job("job-1")
  assert job.status == JobStatus.EXTRACTION_FAILED
  assert job.error_message.startswith("File download failed:")


@pytest.mark.anyio
async def test_missing_storage_details_fail_the_job(jobs_repo, materials_repo, make_job, make_material) -> None:
  await _seed(jobs_repo, materials_repo, make_job, make_material, storage_path=None)
  worker = _worker(jobs_repo, materials_repo, FakeBlobStore())

  await worker.run_extraction("job-1")

  job = await jobs_repo.get_job("job-1")
  assert job.status == JobStatus.EXTRACTION_FAILED
  assert job.error_message == MISSING_DETAILS_MESSAGE


@pytest.mark.anyio
async def test_extractor_errors_become_stored_messages(jobs_repo, materials_repo, make_job, make_material) -> None:
  await _seed(jobs_repo, materials_repo, make_job, make_material)
  worker = _worker(jobs_repo, materials_repo, FakeBlobStore({_PATH: b"junk"}), FakeExtractor(error=ExtractionError("Failed to parse PDF: EOF marker not found")))

  await worker.run_extraction("job-1")

  job = await jobs_repo.get_job("job-1")
  assert job.status == JobStatus.EXTRACTION_FAILED
  assert job.error_message == "Failed to parse PDF: EOF marker not found"


@pytest.mark.anyio
async def test_unexpected_extractor_crash_does_not_escape(jobs_repo, materials_repo, make_job, make_material) -> None:
  await _seed(jobs_repo, materials_repo, make_job, make_material)
  worker = _worker(jobs_repo, materials_repo, FakeBlobStore({_PATH: b"junk"}), FakeExtractor(error=RuntimeError("boom")))

  await worker.run_extraction("job-1")

  job = await jobs_repo.get_job("job-1")
  assert job.status == JobStatus.EXTRACTION_FAILED
  assert job.error_message == "Unexpected error during extraction: boom"


@pytest.mark.anyio
async def test_missing_job_is_a_silent_no_op(jobs_repo, materials_repo) -> None:
  worker = _worker(jobs_repo, materials_repo, FakeBlobStore())

  assert await worker.run_extraction("job-missing") is None
  assert jobs_repo.writes == []


@pytest.mark.anyio
async def test_duplicate_invocation_leaves_rows_untouched(jobs_repo, materials_repo, make_job, make_material) -> None:
  await _seed(jobs_repo, materials_repo, make_job, make_material)
  extractor = FakeExtractor("Some text")
  blob_store = FakeBlobStore({_PATH: b"%PDF"})
  worker = _worker(jobs_repo, materials_repo, blob_store, extractor)

  await worker.run_extraction("job-1")
  first = await jobs_repo.get_job("job-1")
  assert await worker.run_extraction("job-1") is None

  assert await jobs_repo.get_job("job-1") == first
  assert len(extractor.calls) == 1
  assert len(blob_store.downloads) == 1


@pytest.mark.anyio
async def test_job_already_extracting_is_not_reclaimed(jobs_repo, materials_repo, make_job, make_material) -> None:
  await _seed(jobs_repo, materials_repo, make_job, make_material, status=JobStatus.EXTRACTING)
  blob_store = FakeBlobStore({_PATH: b"%PDF"})
  worker = _worker(jobs_repo, materials_repo, blob_store)

  assert await worker.run_extraction("job-1") is None
  assert blob_store.downloads == []
  assert (await jobs_repo.get_job("job-1")).status == JobStatus.EXTRACTING


@pytest.mark.anyio
async def test_late_mirror_does_not_overwrite_advanced_material(jobs_repo, materials_repo, make_job, make_material) -> None:
  await materials_repo.create_material(make_material(status=MaterialStatus.COMPLETED, content={"testTitle": "Done", "questions": []}))
  await jobs_repo.create_job(make_job())
  worker = _worker(jobs_repo, materials_repo, FakeBlobStore({_PATH: b"%PDF"}), FakeExtractor("Late text"))

  await worker.run_extraction("job-1")

  assert (await jobs_repo.get_job("job-1")).status == JobStatus.TEXT_EXTRACTED_PENDING_AI
  material = await materials_repo.get_material("mat-1")
  assert material.status == MaterialStatus.COMPLETED
  assert material.content == {"testTitle": "Done", "questions": []}


@pytest.mark.anyio
async def test_crash_after_claim_records_failure(jobs_repo, materials_repo, make_job, make_material) -> None:
  await _seed(jobs_repo, materials_repo, make_job, make_material)

  class ExplodingStore:
    async def download(self, path: str) -> bytes:
      return b"%PDF"

  class BrokenRegistry(ExtractorRegistry):
    def resolve(self, mime_type: str):
      raise LookupError("registry exploded")

  worker = ExtractionWorker(jobs_repo=jobs_repo, materials_repo=materials_repo, blob_store=ExplodingStore(), registry=BrokenRegistry({}))

  result = await worker.run_extraction("job-1")

  assert result is not None
  job = await jobs_repo.get_job("job-1")
  assert job.status == JobStatus.EXTRACTION_FAILED
  assert job.error_message == "Unexpected error during extraction: registry exploded"


@pytest.mark.anyio
async def test_concurrent_duplicate_workers_converge(jobs_repo, materials_repo, make_job, make_material) -> None:
  await _seed(jobs_repo, materials_repo, make_job, make_material)

  class YieldingStore(FakeBlobStore):
    async def download(self, path: str) -> bytes:
      # Hand control to the other worker mid-run.
      await asyncio.sleep(0)
      return await super().download(path)

  extractor = FakeExtractor("Concurrent text")
  first = _worker(jobs_repo, materials_repo, YieldingStore({_PATH: b"%PDF"}), extractor)
  second = _worker(jobs_repo, materials_repo, YieldingStore({_PATH: b"%PDF"}), extractor)

  results = await asyncio.gather(first.run_extraction("job-1"), second.run_extraction("job-1"))

  winners = [result for result in results if result is not None]
  assert len(winners) == 1
  assert winners[0].status == JobStatus.TEXT_EXTRACTED_PENDING_AI
  assert len(extractor.calls) == 1
  assert jobs_repo.writes == [("job-1", JobStatus.EXTRACTING), ("job-1", JobStatus.TEXT_EXTRACTED_PENDING_AI)]
  assert (await jobs_repo.get_job("job-1")).status == JobStatus.TEXT_EXTRACTED_PENDING_AI
  assert (await materials_repo.get_material("mat-1")).status == MaterialStatus.PENDING_AI_GENERATION
