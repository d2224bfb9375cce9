import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import (
  ArtifactValidationError,
  BlobNotFoundError,
  GenerationError,
  MaterialNotFoundError,
  MaterialOwnershipError,
  MaterialStateError,
  PipelineError,
  UnsupportedFormatError,
)

logger = logging.getLogger("uvicorn.error")

# Most specific first; the first isinstance match wins.
_PIPELINE_STATUS_CODES: tuple[tuple[type[PipelineError], int], ...] = (
  (MaterialNotFoundError, status.HTTP_404_NOT_FOUND),
  (BlobNotFoundError, status.HTTP_404_NOT_FOUND),
  (MaterialOwnershipError, status.HTTP_403_FORBIDDEN),
  (MaterialStateError, status.HTTP_409_CONFLICT),
  (UnsupportedFormatError, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE),
  (ArtifactValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
  (GenerationError, status.HTTP_502_BAD_GATEWAY),
)


def _coerce_json_safe(value: Any) -> Any:
  """Convert unsupported values into JSON-safe primitives for error responses."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    return f"{type(value).__name__}: {value}" if str(value) else type(value).__name__
  return str(value)


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  payload: dict[str, Any] = {"detail": detail}
  # Attach a request id so support can correlate client reports to server logs.
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Return validation errors without raw input payloads."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if isinstance(scrubbed.get("ctx"), dict):
      scrubbed["ctx"] = {key: value for key, value in scrubbed["ctx"].items() if key != "input"}
    sanitized.append(_coerce_json_safe(scrubbed))
  return sanitized


def pipeline_status_code(exc: PipelineError) -> int:
  for error_type, status_code in _PIPELINE_STATUS_CODES:
    if isinstance(exc, error_type):
      return status_code
  return status.HTTP_400_BAD_REQUEST


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  """Global exception handler to catch unhandled errors."""
  request_id = getattr(request.state, "request_id", None)
  logger.error("Global exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  """Log request validation errors without leaking payloads."""
  request_id = getattr(request.state, "request_id", None)
  sanitized_errors = _sanitize_validation_errors(exc.errors())
  logger.warning("Request validation failed request_id=%s path=%s method=%s errors=%s", request_id, request.url.path, request.method, sanitized_errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(sanitized_errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Handle HTTPExceptions while keeping 5xx details out of responses."""
  from app.config import get_settings

  request_id = getattr(request.state, "request_id", None)
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id), headers=exc.headers)

  if get_settings().log_http_4xx:
    logger.warning("HTTPException request_id=%s path=%s status_code=%s detail=%s", request_id, request.url.path, exc.status_code, exc.detail)
  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=exc.headers)


async def pipeline_exception_handler(request: Request, exc: PipelineError) -> JSONResponse:
  """Pipeline errors carry user-facing messages, so they are returned verbatim."""
  request_id = getattr(request.state, "request_id", None)
  status_code = pipeline_status_code(exc)
  logger.warning("Pipeline error request_id=%s path=%s status_code=%s error_type=%s message=%s", request_id, request.url.path, status_code, type(exc).__name__, exc)
  return JSONResponse(status_code=status_code, content=_error_payload(str(exc), request_id=request_id))
