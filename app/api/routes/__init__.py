from . import generation, jobs, materials, tasks

__all__ = ["generation", "jobs", "materials", "tasks"]
