"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from app.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_TWENTY_MEGABYTES = 20 * 1024 * 1024
_TASK_SERVICE_PROVIDERS = {"local-http", "gcp"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the StudyKit service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  upload_bucket: str
  gcs_storage_host: str | None
  pg_dsn: str | None
  pg_connect_timeout: int
  gcp_project_id: str | None
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None
  cloud_tasks_queue_path: str | None
  task_service_provider: str
  base_url: str | None
  task_secret: str | None
  cloud_run_invoker_service_account: str | None
  gemini_api_key: str | None
  ocr_model: str
  generation_model: str
  max_upload_bytes: int
  poll_interval_seconds: float
  poll_timeout_seconds: float
  poll_request_timeout_seconds: float
  jobs_auto_process: bool


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("STUDYKIT_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("STUDYKIT_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("STUDYKIT_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return default

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("STUDYKIT_ENV", "development").lower()

  # Toggle verbose error output and diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("STUDYKIT_DEBUG"))

  log_max_bytes = int(os.getenv("STUDYKIT_LOG_MAX_BYTES", "5242880"))  # 5MB default
  if log_max_bytes <= 0:
    raise ValueError("STUDYKIT_LOG_MAX_BYTES must be a positive integer.")

  log_backup_count = int(os.getenv("STUDYKIT_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("STUDYKIT_LOG_BACKUP_COUNT must be zero or a positive integer.")

  task_service_provider = os.getenv("STUDYKIT_TASK_SERVICE_PROVIDER", "local-http").strip().lower()
  if task_service_provider not in _TASK_SERVICE_PROVIDERS:
    raise ValueError("STUDYKIT_TASK_SERVICE_PROVIDER must be 'local-http' or 'gcp'.")

  max_upload_bytes = int(os.getenv("STUDYKIT_MAX_UPLOAD_BYTES", str(_TWENTY_MEGABYTES)))
  if max_upload_bytes <= 0:
    raise ValueError("STUDYKIT_MAX_UPLOAD_BYTES must be a positive integer.")

  # Client-side polling knobs; the ceiling must leave room for at least one tick.
  poll_interval_seconds = _positive_float("STUDYKIT_POLL_INTERVAL_SECONDS", "5")
  poll_timeout_seconds = _positive_float("STUDYKIT_POLL_TIMEOUT_SECONDS", "300")
  poll_request_timeout_seconds = _positive_float("STUDYKIT_POLL_REQUEST_TIMEOUT_SECONDS", "10")
  if poll_timeout_seconds < poll_interval_seconds:
    raise ValueError("STUDYKIT_POLL_TIMEOUT_SECONDS must not be shorter than the poll interval.")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("STUDYKIT_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("STUDYKIT_LOG_HTTP_4XX")),
    upload_bucket=os.getenv("STUDYKIT_UPLOAD_BUCKET", "studykit-uploads"),
    gcs_storage_host=_optional_str(os.getenv("GCS_STORAGE_HOST")),
    pg_dsn=os.getenv("STUDYKIT_PG_DSN") or os.getenv("DATABASE_URL"),
    pg_connect_timeout=int(os.getenv("STUDYKIT_PG_CONNECT_TIMEOUT", "5")),
    gcp_project_id=_optional_str(os.getenv("GCP_PROJECT_ID")),
    firebase_project_id=_optional_str(os.getenv("FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
    cloud_tasks_queue_path=_optional_str(os.getenv("STUDYKIT_CLOUD_TASKS_QUEUE_PATH")),
    task_service_provider=task_service_provider,
    base_url=_optional_str(os.getenv("STUDYKIT_BASE_URL")),
    task_secret=_optional_str(os.getenv("STUDYKIT_TASK_SECRET")),
    cloud_run_invoker_service_account=_optional_str(os.getenv("STUDYKIT_CLOUD_RUN_INVOKER_SERVICE_ACCOUNT")),
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    ocr_model=os.getenv("STUDYKIT_OCR_MODEL", "gemini-2.0-flash"),
    generation_model=os.getenv("STUDYKIT_GENERATION_MODEL", "gemini-2.0-flash"),
    max_upload_bytes=max_upload_bytes,
    poll_interval_seconds=poll_interval_seconds,
    poll_timeout_seconds=poll_timeout_seconds,
    poll_request_timeout_seconds=poll_request_timeout_seconds,
    jobs_auto_process=_parse_bool(os.getenv("STUDYKIT_JOBS_AUTO_PROCESS"), default=True),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Keep database configuration isolated so migrations don't require unrelated env vars.
  debug = _parse_bool(os.getenv("STUDYKIT_DEBUG"))
  pg_connect_timeout = int(os.getenv("STUDYKIT_PG_CONNECT_TIMEOUT", "5"))
  if pg_connect_timeout <= 0:
    raise ValueError("STUDYKIT_PG_CONNECT_TIMEOUT must be a positive integer.")

  pg_dsn = os.getenv("STUDYKIT_PG_DSN") or os.getenv("DATABASE_URL")

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value
