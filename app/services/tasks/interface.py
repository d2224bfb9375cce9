from __future__ import annotations

from typing import Any, Protocol

EXTRACT_TEXT_WORKER = "extract-text"

# Internal endpoint path per worker name.
WORKER_ROUTES: dict[str, str] = {EXTRACT_TEXT_WORKER: "/internal/tasks/extract-text"}


def worker_path(worker_name: str) -> str:
  path = WORKER_ROUTES.get(worker_name)
  if path is None:
    raise ValueError(f"Unknown worker: {worker_name}")
  return path


class TaskEnqueuer(Protocol):
  """Interface for fire-and-forget worker invocation."""

  async def enqueue(self, worker_name: str, payload: dict[str, Any]) -> None:
    """Start `worker_name` with `payload`; raises if the invocation could not be started."""
    ...
