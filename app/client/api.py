"""HTTP client for the pipeline endpoints, used by the poller and by scripts."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.api.models import FileDescriptor, JobCreateResponse, JobStatusResponse, MaterialResponse
from app.materials.models import MaterialKind

logger = logging.getLogger(__name__)


class PipelineApiError(RuntimeError):
  """Non-2xx response from the pipeline API, carrying the server's detail message."""

  def __init__(self, message: str, *, status_code: int | None = None) -> None:
    super().__init__(message)
    self.status_code = status_code


def _detail_message(response: httpx.Response) -> str:
  try:
    payload = response.json()
  except ValueError:
    return response.text or f"HTTP {response.status_code}"
  detail = payload.get("detail") if isinstance(payload, dict) else None
  if isinstance(detail, str) and detail:
    return detail
  return f"HTTP {response.status_code}"


class PipelineApiClient:
  """Authenticated wrapper over the materials, jobs and generation endpoints."""

  def __init__(self, base_url: str, id_token: str, *, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
    self._client = httpx.AsyncClient(base_url=base_url.rstrip("/"), headers={"Authorization": f"Bearer {id_token}"}, timeout=timeout, transport=transport)

  async def __aenter__(self) -> PipelineApiClient:
    return self

  async def __aexit__(self, *exc_info: Any) -> None:
    await self.aclose()

  async def aclose(self) -> None:
    await self._client.aclose()

  async def _request(self, method: str, path: str, *, json: dict[str, Any] | None = None) -> Any:
    response = await self._client.request(method, path, json=json)
    if response.is_error:
      message = _detail_message(response)
      logger.warning("Pipeline API %s %s failed status=%s: %s", method, path, response.status_code, message)
      raise PipelineApiError(message, status_code=response.status_code)
    return response.json()

  async def create_material(self, kind: MaterialKind, *, title: str | None = None, file: FileDescriptor | None = None, source_text: str | None = None, generation_params: dict[str, Any] | None = None) -> MaterialResponse:
    body: dict[str, Any] = {"kind": kind.value, "generation_params": generation_params or {}}
    if title:
      body["title"] = title
    if file is not None:
      body["file"] = file.model_dump(mode="json", exclude_none=True)
    if source_text is not None:
      body["source_text"] = source_text
    return MaterialResponse.model_validate(await self._request("POST", "/v1/materials", json=body))

  async def list_materials(self) -> list[MaterialResponse]:
    return [MaterialResponse.model_validate(item) for item in await self._request("GET", "/v1/materials")]

  async def start_job(self, material_id: str, file: FileDescriptor, generation_params: dict[str, Any] | None = None) -> str:
    body = {"material_id": material_id, "file": file.model_dump(mode="json", exclude_none=True), "generation_params": generation_params or {}}
    created = JobCreateResponse.model_validate(await self._request("POST", "/v1/jobs", json=body))
    return created.job_id

  async def fetch_job(self, job_id: str) -> JobStatusResponse:
    return JobStatusResponse.model_validate(await self._request("GET", f"/v1/jobs/{job_id}"))

  async def generate(self, kind: MaterialKind, text: str, params: dict[str, Any] | None = None, *, source_name: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"kind": kind.value, "text": text, "params": params or {}}
    if source_name:
      body["source_name"] = source_name[:255]
    payload = await self._request("POST", "/v1/generate", json=body)
    return payload["artifact"]

  async def complete_material(self, material_id: str, content: dict[str, Any], *, title: str | None = None) -> MaterialResponse:
    body: dict[str, Any] = {"content": content}
    if title:
      body["title"] = title[:200]
    return MaterialResponse.model_validate(await self._request("POST", f"/v1/materials/{material_id}/complete", json=body))

  async def fail_material(self, material_id: str, error_message: str) -> MaterialResponse:
    body = {"error_message": error_message[:2000]}
    return MaterialResponse.model_validate(await self._request("POST", f"/v1/materials/{material_id}/fail", json=body))
