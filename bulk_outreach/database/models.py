"""
Database Models for Bulk Outreach

SQLAlchemy models for bulk jobs. Generic column types are used so the same
schema runs on PostgreSQL and on SQLite.
"""

from sqlalchemy import Column, Integer, String, Text, TIMESTAMP, Index
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone
import uuid

Base = declarative_base()


def utc_now() -> datetime:
    """Naive UTC timestamp, matching the TIMESTAMP columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class JobStatus:
    """Bulk job lifecycle states"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    TERMINAL = (COMPLETED, FAILED, CANCELLED)
    ALL = (PENDING, PROCESSING, COMPLETED, FAILED, CANCELLED)


class BulkJob(Base):
    """
    One bulk outreach job: configuration, counters and the serialized row payload
    """
    __tablename__ = "bulk_jobs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Status tracking
    status = Column(String(20), nullable=False, default=JobStatus.PENDING, index=True)
    version = Column(Integer, nullable=False, default=1)

    # Job configuration
    sender_url = Column(String(2048), nullable=False)
    sender_what_we_do = Column(Text, nullable=False)
    sender_intent = Column(Text, nullable=False)
    style_slug = Column(String(100), nullable=False)
    attached_file_content = Column(Text)

    # Job-wide enrichment captured at creation
    sender_facts = Column(Text)
    transformed_value_proposition = Column(Text)

    # Counters
    total_prospects = Column(Integer, nullable=False)
    processed_count = Column(Integer, nullable=False, default=0)
    success_count = Column(Integer, nullable=False, default=0)
    failed_count = Column(Integer, nullable=False, default=0)

    # Versioned row payload
    prospects_data = Column(Text, nullable=False)

    # Timing
    created_at = Column(TIMESTAMP, default=utc_now, index=True)
    updated_at = Column(TIMESTAMP, default=utc_now, onupdate=utc_now)
    completed_at = Column(TIMESTAMP)

    __table_args__ = (
        Index("idx_bulk_jobs_status_created", "status", "created_at"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in JobStatus.TERMINAL

    @property
    def remaining_count(self) -> int:
        return max(self.total_prospects - self.processed_count, 0)

    def __repr__(self):
        return f"<BulkJob {self.id} status={self.status} {self.processed_count}/{self.total_prospects}>"
