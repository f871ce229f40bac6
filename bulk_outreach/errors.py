"""
Error Taxonomy

Exceptions raised by the bulk job processor and the structured JSON payload
used to report them over HTTP.
"""

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


def build_error_payload(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


class BulkJobError(Exception):
    """Base class for errors that reach the caller of a job operation"""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def payload(self) -> Dict[str, Any]:
        return build_error_payload(self.code, self.message, self.details)


class ValidationError(BulkJobError):
    """Bad creation or reset input; message is shown to the caller as-is"""

    status_code = 400
    code = "validation_error"


class JobNotFoundError(BulkJobError):
    status_code = 404
    code = "job_not_found"

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} not found", {"job_id": job_id})
        self.job_id = job_id


class JobStateError(BulkJobError):
    """Requested transition is not allowed from the job's current status"""

    status_code = 409
    code = "invalid_job_state"


class StoreError(BulkJobError):
    """Persistence failure. The job keeps its prior persisted state, so retrying is safe."""

    status_code = 503
    code = "store_error"


class ConflictError(StoreError):
    """Another writer updated the job since it was read"""

    status_code = 409
    code = "write_conflict"


class PayloadError(StoreError):
    """Persisted row payload could not be decoded"""

    status_code = 500
    code = "payload_error"


class SingleGenerationError(BulkJobError):
    """One-off generation for a single prospect produced no drafts"""

    status_code = 502
    code = "generation_failed"


class GenerationError(Exception):
    """Draft generator failed or returned no usable text"""

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


class RowProcessingError(Exception):
    """A single prospect row failed; recorded on the row, never raised to the caller"""

    def __init__(self, row_index: int, message: str):
        super().__init__(message)
        self.row_index = row_index


async def bulk_job_error_handler(_: Request, exc: BulkJobError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)
