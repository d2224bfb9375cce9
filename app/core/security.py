from __future__ import annotations

import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from app.config import Settings, get_settings
from app.core.firebase import verify_id_token

security_scheme = HTTPBearer()


async def get_current_user_id(credentials: Annotated[HTTPAuthorizationCredentials, Depends(security_scheme)]) -> str:
  """Resolve the caller's owner id (Firebase uid) from a bearer ID token."""
  # verify_id_token may fetch signing certificates, so keep it off the event loop.
  decoded = await run_in_threadpool(verify_id_token, credentials.credentials)
  if not decoded or not decoded.get("uid"):
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authentication credentials", headers={"WWW-Authenticate": "Bearer"})
  return str(decoded["uid"])


def require_task_secret(
  settings: Annotated[Settings, Depends(get_settings)],
  authorization: Annotated[str | None, Header()] = None,
  x_studykit_task_secret: Annotated[str | None, Header()] = None,
) -> None:
  """Guard internal task endpoints with the shared task secret (deny-by-default)."""
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  # Cloud Tasks OIDC occupies Authorization on Cloud Run, so the dedicated header is checked first.
  shared_secret_valid = secrets.compare_digest(x_studykit_task_secret or "", settings.task_secret)
  bearer_valid = secrets.compare_digest(authorization or "", f"Bearer {settings.task_secret}")
  if not shared_secret_valid and not bearer_valid:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")
