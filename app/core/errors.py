"""Domain exceptions raised inside the extraction and generation pipeline."""

from __future__ import annotations


class PipelineError(Exception):
  """Base class for pipeline failures that carry a user-facing message."""


class MaterialNotFoundError(PipelineError):
  pass


class MaterialOwnershipError(PipelineError):
  pass


class MaterialStateError(PipelineError):
  """Raised when a material is not in the status an operation requires."""


class BlobNotFoundError(PipelineError):
  pass


class UnsupportedFormatError(PipelineError):
  """The file type has no extractor; maps to EXTRACTION_UNSUPPORTED."""


class ExtractionError(PipelineError):
  """An extractor ran and failed; maps to EXTRACTION_FAILED."""


class GenerationError(PipelineError):
  """The language model call failed or was refused."""


class ArtifactValidationError(GenerationError):
  """The model returned an artifact without a usable body."""
