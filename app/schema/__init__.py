"""Schema package exports."""

from .jobs import FileProcessingJob
from .materials import Material

__all__ = ["FileProcessingJob", "Material"]
