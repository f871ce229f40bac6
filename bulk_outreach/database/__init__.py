"""Persistence for bulk jobs."""

from .connection import DatabaseConfig, DatabaseManager, init_database
from .models import Base, BulkJob, JobStatus
from .services import BulkJobStore

__all__ = [
    "Base",
    "BulkJob",
    "BulkJobStore",
    "DatabaseConfig",
    "DatabaseManager",
    "JobStatus",
    "init_database",
]
