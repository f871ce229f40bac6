"""
Bulk Job Processor

Job lifecycle controller for bulk outreach jobs. A job's rows are processed in
small chunks, one chunk per process_next_chunk() call, so the work fits inside
short-lived request handlers. The caller keeps calling until the result says the
job is complete.

Each chunk call:
1. Loads the job and returns immediately if it is already terminal
2. Decodes the row payload and moves a pending job to processing
3. Takes the next CHUNK_SIZE pending rows and runs them in concurrent
   sub-batches of PARALLEL_BATCH_SIZE
4. Merges every row outcome back by row_index and updates the counters
5. Persists rows, counters and status in one conditional write

Rows that already finished are never selected again, so a failed or repeated
call is safe to retry.
"""

import asyncio
import json
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import ProcessingConfig
from .csv_processor import export_prospects_csv, validate_prospect_count
from .database.models import BulkJob, JobStatus, utc_now
from .database.services import BulkJobStore
from .email_generator import GenerationContext, ProspectPipeline, RowOutcome
from .errors import (
    JobStateError,
    PayloadError,
    RowProcessingError,
    SingleGenerationError,
    StoreError,
    ValidationError,
)
from .prospects import (
    Prospect,
    ProspectStatus,
    count_by_status,
    decode_prospects,
    encode_prospects,
    prospects_from_records,
)
from .scraper import CompanyFacts, placeholder_facts
from .styles import fallback_style, get_style
from .utils import create_batches, truncate

logger = logging.getLogger(__name__)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class ChunkResult:
    """Outcome of one process_next_chunk call"""
    status: str
    processed_count: int
    success_count: int
    failed_count: int
    total_prospects: int
    remaining_count: int
    is_complete: bool
    message: str
    integrity_warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "message": self.message,
            "status": self.status,
            "processedCount": self.processed_count,
            "successCount": self.success_count,
            "failedCount": self.failed_count,
            "totalProspects": self.total_prospects,
            "remainingCount": self.remaining_count,
            "isComplete": self.is_complete,
        }
        if self.integrity_warning:
            data["integrityWarning"] = self.integrity_warning
        return data


@dataclass
class JobSummary:
    """Job metadata and counters without the row payload"""
    id: str
    status: str
    style_slug: str
    total_prospects: int
    processed_count: int
    success_count: int
    failed_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def remaining_count(self) -> int:
        return max(self.total_prospects - self.processed_count, 0)

    @property
    def is_complete(self) -> bool:
        return self.status in JobStatus.TERMINAL

    @classmethod
    def from_job(cls, job: BulkJob) -> "JobSummary":
        return cls(
            id=job.id,
            status=job.status,
            style_slug=job.style_slug,
            total_prospects=job.total_prospects,
            processed_count=job.processed_count,
            success_count=job.success_count,
            failed_count=job.failed_count,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status,
            "styleSlug": self.style_slug,
            "totalProspects": self.total_prospects,
            "processedCount": self.processed_count,
            "successCount": self.success_count,
            "failedCount": self.failed_count,
            "remainingCount": self.remaining_count,
            "isComplete": self.is_complete,
            "createdAt": _isoformat(self.created_at),
            "updatedAt": _isoformat(self.updated_at),
            "completedAt": _isoformat(self.completed_at),
        }


class BulkJobController:
    """
    Owns bulk job state transitions, chunk selection, dispatch and aggregation

    Args:
        store: Job persistence
        researcher: Website research collaborator (async fetch(url))
        generator: Draft generation collaborator (async generate(prompt))
        config: Chunking and limit settings
        pipeline: Per-row pipeline, built from researcher and generator if omitted
        styles_dir: Extra style definitions directory
    """

    def __init__(
        self,
        store: BulkJobStore,
        researcher,
        generator,
        config: Optional[ProcessingConfig] = None,
        pipeline: Optional[ProspectPipeline] = None,
        styles_dir: Optional[str] = None
    ):
        self.store = store
        self.researcher = researcher
        self.generator = generator
        self.config = config or ProcessingConfig()
        self.pipeline = pipeline or ProspectPipeline(researcher, generator)
        self.styles_dir = styles_dir

    # Job creation

    async def create_job(
        self,
        records: List[Dict[str, Any]],
        sender_url: str,
        what_we_do: str,
        intent: str,
        style_slug: str,
        attachment_text: Optional[str] = None
    ) -> JobSummary:
        """
        Validate inputs, enrich the sender once and persist a new pending job

        Args:
            records: Prospect rows in source order
            sender_url: Sender company website
            what_we_do: Sender value proposition
            intent: What the outreach should achieve
            style_slug: Writing style identifier
            attachment_text: Optional extra context, truncated before storage

        Returns:
            JobSummary: The new job

        Raises:
            ValidationError: On missing fields, bad row count, bad rows or unknown style
        """
        required = {
            "sender_url": sender_url,
            "what_we_do": what_we_do,
            "intent": intent,
            "style_slug": style_slug,
        }
        missing = [name for name, value in required.items() if not (value or "").strip()]
        if missing or records is None:
            raise ValidationError(f"Missing required fields: {', '.join(missing or ['prospects'])}")

        validate_prospect_count(len(records), self.config.max_prospects)

        if get_style(style_slug, self.styles_dir) is None:
            raise ValidationError(f"Style not found: {style_slug}")

        try:
            prospects = prospects_from_records(records)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid prospects data: {e}")

        sender_facts = await self._research_sender(sender_url)
        value_proposition = await self._transform_value_proposition(what_we_do)

        job = self.store.create_job(
            sender_url=sender_url.strip(),
            sender_what_we_do=what_we_do.strip(),
            sender_intent=intent.strip(),
            style_slug=style_slug,
            prospects_data=encode_prospects(prospects),
            total_prospects=len(prospects),
            attached_file_content=truncate(attachment_text, self.config.attachment_max_chars) or None,
            sender_facts=json.dumps(sender_facts.to_dict()),
            transformed_value_proposition=value_proposition,
        )
        return JobSummary.from_job(job)

    async def _research_sender(self, sender_url: str) -> CompanyFacts:
        fallback = placeholder_facts(sender_url, "Company")
        try:
            facts = await self.researcher.fetch(sender_url)
        except Exception as e:
            logger.warning(f"Sender research failed for {sender_url}: {e}")
            return fallback
        return facts or fallback

    async def _transform_value_proposition(self, what_we_do: str) -> str:
        transform = getattr(self.generator, "transform_value_proposition", None)
        if transform is None:
            return what_we_do
        try:
            return (await transform(what_we_do)) or what_we_do
        except Exception as e:
            logger.warning(f"Value proposition transform failed, using original: {e}")
            return what_we_do

    # Single prospect generation

    async def generate_single(
        self,
        record: Dict[str, Any],
        sender_url: str,
        what_we_do: str,
        intent: str,
        style_slug: str,
        attachment_text: Optional[str] = None
    ) -> RowOutcome:
        """
        Generate drafts for one prospect right away, without creating a job

        Args:
            record: One prospect row, same keys as a bulk row; website is required
            sender_url: Sender company website
            what_we_do: Sender value proposition
            intent: What the outreach should achieve
            style_slug: Writing style identifier
            attachment_text: Optional extra context

        Returns:
            RowOutcome: Completed outcome with three drafts and any fabrication warnings

        Raises:
            ValidationError: On missing fields, a bad row or unknown style
            SingleGenerationError: If the generator failed for this prospect
        """
        required = {
            "sender_url": sender_url,
            "intent": intent,
            "style_slug": style_slug,
        }
        missing = [name for name, value in required.items() if not (value or "").strip()]
        if not isinstance(record, dict) or not str(record.get("website") or "").strip():
            missing.append("website")
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        style = get_style(style_slug, self.styles_dir)
        if style is None:
            raise ValidationError(f"Style not found: {style_slug}")

        try:
            prospect = prospects_from_records([record])[0]
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid prospect data: {e}")

        sender = await self._research_sender(sender_url.strip())
        value_proposition = ""
        if (what_we_do or "").strip():
            value_proposition = await self._transform_value_proposition(what_we_do.strip())
        context = GenerationContext(
            sender=sender,
            value_proposition=value_proposition,
            intent=intent.strip(),
            style=style,
            additional_info=truncate(attachment_text, self.config.attachment_max_chars) or None,
        )

        try:
            outcome = await self.pipeline.process(prospect, context)
        except RowProcessingError as e:
            logger.warning(f"Single generation failed for {prospect.website}: {e}")
            raise SingleGenerationError(f"Failed to generate emails: {e}") from e

        logger.info(
            f"Generated drafts for {prospect.company_name or prospect.website} "
            f"in {outcome.processing_time_seconds:.2f}s"
        )
        return outcome

    # Chunk processing

    async def process_next_chunk(self, job_id: str) -> ChunkResult:
        """
        Advance a job by one chunk of pending rows

        Args:
            job_id: Job to advance

        Returns:
            ChunkResult: Counters after this call; is_complete once no rows are pending

        Raises:
            JobNotFoundError: Unknown job
            PayloadError: Stored rows could not be decoded (the job is marked failed)
            ConflictError: Another caller advanced the job concurrently
            StoreError: Persistence failed; the job keeps its prior state
        """
        job = self.store.get_job(job_id)

        if job.is_terminal:
            return self._result(job, job.remaining_count, f"Job already {job.status}")

        try:
            prospects = decode_prospects(job.prospects_data)
        except PayloadError as e:
            logger.error(f"Job {job_id}: {e}")
            self._mark_failed(job)
            raise

        integrity_warning = self._check_integrity(job, prospects)

        if job.status != JobStatus.PROCESSING:
            job = self.store.update_job(job.id, job.version, status=JobStatus.PROCESSING)

        chunk = self._select_chunk(prospects)
        if not chunk:
            job = self.store.update_job(
                job.id, job.version, status=JobStatus.COMPLETED, completed_at=utc_now()
            )
            logger.info(f"Job {job_id}: no pending rows left, marked completed")
            return self._result(job, 0, "Processing complete", integrity_warning)

        context = await self._build_context(job)
        rows_by_index: Dict[int, List[Prospect]] = defaultdict(list)
        for prospect in prospects:
            rows_by_index[prospect.row_index].append(prospect)

        processed = job.processed_count
        success = job.success_count
        failed = job.failed_count

        batches = create_batches(chunk, self.config.parallel_batch_size)
        loop = asyncio.get_running_loop()
        chunk_start = loop.time()
        for batch_number, batch in enumerate(batches, start=1):
            batch_start = loop.time()
            outcomes = await self._run_batch(batch, context)
            for outcome in outcomes:
                for prospect in rows_by_index[outcome.row_index]:
                    outcome.apply_to(prospect)
                processed += 1
                if outcome.status == ProspectStatus.COMPLETED:
                    success += 1
                else:
                    failed += 1
            logger.info(
                f"Job {job_id}: batch {batch_number}/{len(batches)} ({len(batch)} rows) "
                f"completed in {loop.time() - batch_start:.2f}s"
            )
            if self.config.batch_delay_seconds and batch_number < len(batches):
                await asyncio.sleep(self.config.batch_delay_seconds)

        remaining = count_by_status(prospects)[ProspectStatus.PENDING.value]
        is_complete = remaining == 0

        changes: Dict[str, Any] = {
            "status": JobStatus.COMPLETED if is_complete else JobStatus.PROCESSING,
            "processed_count": processed,
            "success_count": success,
            "failed_count": failed,
            "prospects_data": encode_prospects(prospects),
        }
        if is_complete:
            changes["completed_at"] = utc_now()
        job = self.store.update_job(job.id, job.version, **changes)

        logger.info(
            f"Job {job_id}: chunk of {len(chunk)} rows done in {loop.time() - chunk_start:.2f}s - "
            f"processed {processed}, remaining {remaining}, complete {is_complete}"
        )
        return self._result(
            job,
            remaining,
            "Processing complete" if is_complete else "Chunk processed",
            integrity_warning,
        )

    def _select_chunk(self, prospects: List[Prospect]) -> List[Prospect]:
        """Next CHUNK_SIZE pending rows, at most one per row_index"""
        chunk: List[Prospect] = []
        seen = set()
        for prospect in prospects:
            if not prospect.is_pending or prospect.row_index in seen:
                continue
            seen.add(prospect.row_index)
            chunk.append(prospect)
            if len(chunk) >= self.config.chunk_size:
                break
        return chunk

    async def _run_batch(self, batch: List[Prospect], context: GenerationContext) -> List[RowOutcome]:
        """Run one sub-batch concurrently; a failing row never affects its siblings"""
        results = await asyncio.gather(
            *(self.pipeline.process(prospect, context) for prospect in batch),
            return_exceptions=True
        )

        outcomes = []
        for prospect, result in zip(batch, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                logger.warning(f"Row {prospect.row_index} failed: {result}")
                outcomes.append(RowOutcome.failed(prospect.row_index, str(result)))
            elif isinstance(result, RowOutcome):
                result.row_index = prospect.row_index
                outcomes.append(result)
            else:
                outcomes.append(RowOutcome.failed(prospect.row_index, "No result"))
        return outcomes

    async def _build_context(self, job: BulkJob) -> GenerationContext:
        sender = None
        if job.sender_facts:
            try:
                sender = CompanyFacts.from_dict(json.loads(job.sender_facts))
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Job {job.id}: unreadable sender facts, researching again: {e}")
        if sender is None:
            sender = await self._research_sender(job.sender_url)

        style = get_style(job.style_slug, self.styles_dir)
        if style is None:
            logger.warning(f"Job {job.id}: style {job.style_slug} not found, using bare style")
            style = fallback_style(job.style_slug)

        return GenerationContext(
            sender=sender,
            value_proposition=job.transformed_value_proposition or job.sender_what_we_do,
            intent=job.sender_intent,
            style=style,
            additional_info=job.attached_file_content,
        )

    def _check_integrity(self, job: BulkJob, prospects: List[Prospect]) -> Optional[str]:
        """Log row-count and duplicate-index problems; never fatal"""
        problems = []
        if len(prospects) != job.total_prospects:
            problems.append(f"payload has {len(prospects)} rows but job declares {job.total_prospects}")
        indices = [p.row_index for p in prospects]
        duplicates = len(indices) - len(set(indices))
        if duplicates:
            problems.append(f"{duplicates} duplicate row index(es)")
        if not problems:
            return None

        warning = f"Job {job.id} integrity warning: {'; '.join(problems)}"
        logger.warning(warning)
        return warning

    def _mark_failed(self, job: BulkJob):
        try:
            self.store.update_job(job.id, job.version, status=JobStatus.FAILED)
        except StoreError as e:
            logger.error(f"Job {job.id}: could not mark job failed: {e}")

    @staticmethod
    def _result(job: BulkJob, remaining: int, message: str, integrity_warning: Optional[str] = None) -> ChunkResult:
        return ChunkResult(
            status=job.status,
            processed_count=job.processed_count,
            success_count=job.success_count,
            failed_count=job.failed_count,
            total_prospects=job.total_prospects,
            remaining_count=remaining,
            is_complete=job.is_terminal,
            message=message,
            integrity_warning=integrity_warning,
        )

    # Read-only and administrative operations

    def get_status(self, job_id: str) -> JobSummary:
        return JobSummary.from_job(self.store.get_job(job_id))

    def list_jobs(self, limit: int = 50, status: Optional[str] = None) -> List[JobSummary]:
        if status is not None and status not in JobStatus.ALL:
            raise ValidationError(f"Unknown status: {status}")
        return [JobSummary.from_job(job) for job in self.store.list_jobs(limit=limit, status=status)]

    def reset_job(self, job_id: str, style_slug: str) -> JobSummary:
        """
        Clear every row result so the job can be regenerated in another style

        Raises:
            ValidationError: Unknown style
            JobNotFoundError: Unknown job
        """
        if not (style_slug or "").strip() or get_style(style_slug, self.styles_dir) is None:
            raise ValidationError(f"Style not found: {style_slug}")

        job = self.store.get_job(job_id)
        prospects = decode_prospects(job.prospects_data)
        for prospect in prospects:
            prospect.reset()

        job = self.store.update_job(
            job.id,
            job.version,
            status=JobStatus.PENDING,
            style_slug=style_slug,
            processed_count=0,
            success_count=0,
            failed_count=0,
            completed_at=None,
            prospects_data=encode_prospects(prospects),
        )
        logger.info(f"Job {job_id}: reset for regeneration with style {style_slug}")
        return JobSummary.from_job(job)

    def cancel_job(self, job_id: str) -> JobSummary:
        """
        Administrative stop; in-flight chunk calls are not interrupted

        Raises:
            JobStateError: If the job is already terminal
        """
        job = self.store.get_job(job_id)
        if job.is_terminal:
            raise JobStateError(f"Job {job_id} is already {job.status}")
        job = self.store.update_job(job.id, job.version, status=JobStatus.CANCELLED)
        logger.info(f"Job {job_id}: cancelled")
        return JobSummary.from_job(job)

    def export_results(self, job_id: str) -> str:
        """Render the job's rows as CSV; allowed at any status"""
        job = self.store.get_job(job_id)
        return export_prospects_csv(decode_prospects(job.prospects_data))
