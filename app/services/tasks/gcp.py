from __future__ import annotations

import json
import logging
from typing import Any

from google.cloud import tasks_v2
from starlette.concurrency import run_in_threadpool

from app.config import Settings
from app.services.tasks.interface import TaskEnqueuer, worker_path

logger = logging.getLogger(__name__)


class CloudTasksEnqueuer(TaskEnqueuer):
  """Invokes workers through Google Cloud Tasks HTTP targets."""

  def __init__(self, settings: Settings) -> None:
    self.settings = settings
    self.client = tasks_v2.CloudTasksClient()

  def _build_task(self, worker_name: str, payload: dict[str, Any]) -> dict[str, Any]:
    url = f"{self.settings.base_url.rstrip('/')}{worker_path(worker_name)}"
    headers = {"Content-Type": "application/json"}
    # Cloud Run reserves Authorization for OIDC, so the shared secret rides in its own header.
    if self.settings.task_secret:
      headers["X-StudyKit-Task-Secret"] = self.settings.task_secret
    http_request: dict[str, Any] = {"http_method": tasks_v2.HttpMethod.POST, "url": url, "headers": headers, "body": json.dumps(payload).encode()}
    if self.settings.cloud_run_invoker_service_account:
      http_request["oidc_token"] = {"service_account_email": self.settings.cloud_run_invoker_service_account}
    return {"http_request": http_request}

  async def enqueue(self, worker_name: str, payload: dict[str, Any]) -> None:
    """Create one Cloud Task targeting the worker endpoint."""
    if not self.settings.cloud_tasks_queue_path:
      raise RuntimeError("Cloud Tasks queue path not configured.")
    if not self.settings.base_url:
      raise RuntimeError("Base URL not configured.")

    task = self._build_task(worker_name, payload)
    response = await run_in_threadpool(self.client.create_task, request={"parent": self.settings.cloud_tasks_queue_path, "task": task})
    logger.info("Enqueued task %s for %s", response.name, worker_name)
