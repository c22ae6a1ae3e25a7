"""ORM models for tracked sources, jobs, runs, and exclusions."""

from .base import Base, create_db_engine, create_session_factory, init_db
from .job import Job
from .job_exclusion import JobExclusion
from .job_run import JobRun
from .source import STATUS_ERROR, STATUS_OK, STATUS_PENDING, Source

__all__ = [
    "Base",
    "create_db_engine",
    "create_session_factory",
    "init_db",
    "Source",
    "Job",
    "JobRun",
    "JobExclusion",
    "STATUS_PENDING",
    "STATUS_OK",
    "STATUS_ERROR",
]
