"""
Database Services for Bulk Outreach

Persistence layer for bulk jobs. Every write after creation is conditional on
the job's version column, so a stale writer gets a ConflictError instead of
silently overwriting newer progress.
"""

from typing import Optional, List, Dict, Any
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
import logging

from .models import BulkJob, JobStatus, utc_now
from .connection import DatabaseManager
from ..errors import ConflictError, JobNotFoundError, StoreError

logger = logging.getLogger(__name__)

UPDATABLE_COLUMNS = frozenset(
    name for name in BulkJob.__table__.columns.keys()
    if name not in ("id", "version", "created_at", "updated_at")
)


class BulkJobStore:
    """Service for reading and writing bulk jobs"""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def create_job(
        self,
        sender_url: str,
        sender_what_we_do: str,
        sender_intent: str,
        style_slug: str,
        prospects_data: str,
        total_prospects: int,
        attached_file_content: Optional[str] = None,
        sender_facts: Optional[str] = None,
        transformed_value_proposition: Optional[str] = None
    ) -> BulkJob:
        """Create a new pending job record"""
        try:
            with self.db_manager.session_scope() as session:
                job = BulkJob(
                    status=JobStatus.PENDING,
                    version=1,
                    sender_url=sender_url,
                    sender_what_we_do=sender_what_we_do,
                    sender_intent=sender_intent,
                    style_slug=style_slug,
                    attached_file_content=attached_file_content,
                    sender_facts=sender_facts,
                    transformed_value_proposition=transformed_value_proposition,
                    total_prospects=total_prospects,
                    processed_count=0,
                    success_count=0,
                    failed_count=0,
                    prospects_data=prospects_data
                )
                session.add(job)
                session.flush()
                logger.info(f"Created bulk job {job.id} with {total_prospects} prospects")
                return job
        except SQLAlchemyError as e:
            logger.error(f"Failed to create bulk job: {e}")
            raise StoreError(f"Failed to create job: {e}")

    def get_job(self, job_id: str) -> BulkJob:
        """Get job by ID"""
        try:
            with self.db_manager.session_scope() as session:
                job = session.get(BulkJob, job_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load job {job_id}: {e}")
            raise StoreError(f"Failed to load job: {e}")

        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(self, limit: int = 50, status: Optional[str] = None) -> List[BulkJob]:
        """Most recent jobs first, optionally filtered by status"""
        try:
            with self.db_manager.session_scope() as session:
                query = session.query(BulkJob)
                if status:
                    query = query.filter(BulkJob.status == status)
                return query.order_by(desc(BulkJob.created_at)).limit(limit).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list jobs: {e}")
            raise StoreError(f"Failed to list jobs: {e}")

    def update_job(self, job_id: str, expected_version: int, **changes: Any) -> BulkJob:
        """
        Apply changes to a job if its version still matches

        Args:
            job_id: Job to update
            expected_version: Version the caller read the job at
            **changes: Column values to write

        Returns:
            BulkJob: The job as stored after the update

        Raises:
            JobNotFoundError: If the job does not exist
            ConflictError: If the job was updated by someone else
            StoreError: On any database failure
        """
        unknown = set(changes) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")

        values: Dict[Any, Any] = {getattr(BulkJob, name): value for name, value in changes.items()}
        values[BulkJob.version] = BulkJob.version + 1
        values[BulkJob.updated_at] = utc_now()

        try:
            with self.db_manager.session_scope() as session:
                updated = (
                    session.query(BulkJob)
                    .filter(BulkJob.id == job_id, BulkJob.version == expected_version)
                    .update(values, synchronize_session=False)
                )
                if updated == 0:
                    current = session.get(BulkJob, job_id)
                    if current is None:
                        raise JobNotFoundError(job_id)
                    raise ConflictError(
                        f"Job {job_id} was modified concurrently (expected version {expected_version}, found {current.version})",
                        {"job_id": job_id, "expected_version": expected_version, "current_version": current.version}
                    )
                return session.get(BulkJob, job_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to update job {job_id}: {e}")
            raise StoreError(f"Failed to update job: {e}")

