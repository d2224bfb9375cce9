"""Identifier utilities."""

from __future__ import annotations

import time
import uuid

_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def generate_material_id() -> str:
  """Return a new material identifier."""
  return str(uuid.uuid4())


def generate_job_id() -> str:
  """Return a new extraction job identifier."""
  return str(uuid.uuid4())


def utc_timestamp() -> str:
  """Return the current UTC time in the ISO format stored on rows."""
  return time.strftime(_DATE_FORMAT, time.gmtime())
