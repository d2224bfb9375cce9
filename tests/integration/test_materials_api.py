from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.config import get_settings
from app.core.security import get_current_user_id
from app.main import app
from app.materials.models import MaterialStatus

_PDF = {"original_file_name": "lecture.pdf", "file_type": "application/pdf", "storage_path": "studykit-uploads/user-1/lecture.pdf", "size_bytes": 2048}


@pytest.fixture
def client(patched_repos):
  # Settings come from the env vars set in conftest; bypass the cache so each test sees them fresh.
  app.dependency_overrides[get_settings] = lambda: get_settings.__wrapped__()
  app.dependency_overrides[get_current_user_id] = lambda: "user-1"
  yield TestClient(app)
  app.dependency_overrides.clear()


def test_file_upload_creates_placeholder(client, materials_repo) -> None:
  response = client.post("/v1/materials", json={"kind": "test", "file": _PDF, "generation_params": {"number_of_questions": 3}})

  assert response.status_code == 201
  body = response.json()
  assert body["status"] == "PENDING_EXTRACTION"
  assert body["title"] == "lecture.pdf"
  assert body["content"] is None
  assert body["generation_params"] == {"question_type": "multipleChoice", "number_of_questions": 3, "bloom_level": None}

  stored = materials_repo.materials[body["material_id"]]
  assert stored.user_id == "user-1"
  assert stored.storage_path == _PDF["storage_path"]
  assert stored.is_placeholder


def test_inline_text_skips_extraction(client) -> None:
  response = client.post("/v1/materials", json={"kind": "notes", "title": "Mitosis", "source_text": "  Mitosis is cell division.  "})

  assert response.status_code == 201
  body = response.json()
  assert body["status"] == "PENDING_AI_GENERATION"
  assert body["source_text"] == "Mitosis is cell division."
  assert body["generation_params"] == {"note_length": "medium"}


@pytest.mark.parametrize(
  "payload",
  [
    {"kind": "test"},
    {"kind": "test", "file": _PDF, "source_text": "both"},
    {"kind": "test", "source_text": "   "},
  ],
)
def test_exactly_one_source_is_required(client, payload) -> None:
  response = client.post("/v1/materials", json=payload)

  assert response.status_code == 422


def test_invalid_generation_params_are_rejected(client) -> None:
  response = client.post("/v1/materials", json={"kind": "flashcards", "source_text": "text", "generation_params": {"number_of_flashcards": 500}})

  assert response.status_code == 400
  assert response.json()["detail"].startswith("Invalid generation params:")


def test_oversized_upload_is_rejected(client) -> None:
  response = client.post("/v1/materials", json={"kind": "test", "file": {**_PDF, "size_bytes": 21 * 1024 * 1024}})

  assert response.status_code == 400
  assert response.json()["detail"] == "File is too large. Maximum size is 20MB."


@pytest.mark.anyio
async def test_other_users_material_is_forbidden(client, materials_repo, make_material) -> None:
  await materials_repo.create_material(make_material(user_id="user-2"))

  assert client.get("/v1/materials/mat-1").status_code == 403
  assert client.get("/v1/materials/mat-missing").status_code == 404


@pytest.mark.anyio
async def test_complete_saves_validated_content_and_title(client, materials_repo, make_material) -> None:
  await materials_repo.create_material(make_material(status=MaterialStatus.PENDING_AI_GENERATION, source_text="text"))
  content = {
    "testTitle": "Cell Biology Quiz",
    "questions": [
      {"questionText": "What is ATP?", "options": ["Energy carrier", "Protein"], "correctOptionIndex": 0},
      {"questionText": "Broken", "options": ["only one"], "correctOptionIndex": 3},
    ],
  }

  response = client.post("/v1/materials/mat-1/complete", json={"content": content})

  assert response.status_code == 200
  body = response.json()
  assert body["status"] == "COMPLETED"
  assert body["title"] == "Cell Biology Quiz"
  assert len(body["content"]["questions"]) == 1
  assert (await materials_repo.get_material("mat-1")).status == MaterialStatus.COMPLETED


@pytest.mark.anyio
async def test_explicit_title_wins_over_artifact_title(client, materials_repo, make_material) -> None:
  await materials_repo.create_material(make_material(status=MaterialStatus.PENDING_AI_GENERATION))

  response = client.post("/v1/materials/mat-1/complete", json={"title": "My quiz", "content": {"testTitle": "AI title", "questions": [{"questionText": "Explain osmosis."}]}})

  assert response.status_code == 200
  assert response.json()["title"] == "My quiz"


@pytest.mark.anyio
async def test_complete_without_body_is_rejected(client, materials_repo, make_material) -> None:
  await materials_repo.create_material(make_material(status=MaterialStatus.PENDING_AI_GENERATION))

  response = client.post("/v1/materials/mat-1/complete", json={"content": {"testTitle": "Empty", "questions": []}})

  assert response.status_code == 422
  assert (await materials_repo.get_material("mat-1")).status == MaterialStatus.PENDING_AI_GENERATION


@pytest.mark.anyio
@pytest.mark.parametrize("status", [MaterialStatus.PENDING_EXTRACTION, MaterialStatus.COMPLETED, MaterialStatus.EXTRACTION_FAILED])
async def test_complete_refused_outside_generation_phase(client, materials_repo, make_material, status) -> None:
  await materials_repo.create_material(make_material(status=status))

  response = client.post("/v1/materials/mat-1/complete", json={"content": {"title": "Notes", "questions": [{"questionText": "Q?"}]}})

  assert response.status_code == 409
  assert (await materials_repo.get_material("mat-1")).status == status


@pytest.mark.anyio
async def test_fail_marks_generation_failure(client, materials_repo, make_material) -> None:
  await materials_repo.create_material(make_material(status=MaterialStatus.PENDING_AI_GENERATION))

  response = client.post("/v1/materials/mat-1/fail", json={"error_message": "AI processing quota exceeded."})

  assert response.status_code == 200
  body = response.json()
  assert body["status"] == "AI_PROCESSING_FAILED"
  assert body["content"] is None
  # A second failure report finds the material already terminal.
  assert client.post("/v1/materials/mat-1/fail", json={"error_message": "again"}).status_code == 409


@pytest.mark.anyio
async def test_list_returns_own_materials_newest_first(client, materials_repo, make_material) -> None:
  await materials_repo.create_material(make_material(material_id="mat-old", created_at="2024-01-01T00:00:00Z"))
  await materials_repo.create_material(make_material(material_id="mat-new", created_at="2024-03-01T00:00:00Z", status=MaterialStatus.COMPLETED, content={"testTitle": "Quiz", "questions": [{"questionText": "Q?"}]}))
  await materials_repo.create_material(make_material(material_id="mat-other", user_id="user-2", created_at="2024-05-01T00:00:00Z"))

  response = client.get("/v1/materials")

  assert response.status_code == 200
  body = response.json()
  assert [item["material_id"] for item in body] == ["mat-new", "mat-old"]
  assert body[0]["status"] == "COMPLETED"


def test_list_is_empty_for_new_user(client) -> None:
  response = client.get("/v1/materials")

  assert response.status_code == 200
  assert response.json() == []
