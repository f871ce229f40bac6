"""
Progress Client

Drives a bulk job to completion by calling "process next chunk" until the job
reports it is complete, then downloads the results.

BulkJobClient talks to the HTTP API; drive_job() runs the same loop directly
against a BulkJobController in the current process.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx

from .errors import PayloadError, StoreError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]

TERMINAL_STATUSES = ("completed", "failed", "cancelled")
RETRYABLE_STATUS_CODES = (409, 502, 503, 504)


class BulkJobClientError(Exception):
    """Error response from the bulk API"""

    def __init__(self, status_code: int, message: str, code: Optional[str] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.code = code


class ChunkInFlightError(RuntimeError):
    """A chunk call for this job is already running on this client"""


async def _notify(callback: Optional[ProgressCallback], payload: Dict[str, Any]):
    if callback is None:
        return
    result = callback(payload)
    if asyncio.iscoroutine(result):
        await result


class BulkJobClient:
    """
    Async HTTP client for the bulk job API

    Args:
        base_url: API root, e.g. http://localhost:8000
        transport: Optional httpx transport (tests use ASGI or mock transports)
        timeout: Per-request timeout; chunk calls can take minutes
        poll_delay: Pause between chunk calls
        max_retries: Consecutive retryable failures tolerated per chunk call
        retry_delay: Pause before retrying a failed chunk call
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 300.0,
        poll_delay: float = 0.0,
        max_retries: int = 3,
        retry_delay: float = 2.0
    ):
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)
        self.poll_delay = poll_delay
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._in_flight = set()

    async def __aenter__(self) -> "BulkJobClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    @staticmethod
    def _raise_for_error(response: httpx.Response):
        if response.status_code < 400:
            return
        try:
            error = response.json().get("error", {})
            message = error.get("message") or response.text
            code = error.get("code")
        except (ValueError, AttributeError):
            message, code = response.text, None
        raise BulkJobClientError(response.status_code, message, code)

    async def start_job(
        self,
        prospects: List[Dict[str, Any]],
        sender_url: str,
        what_we_do: str,
        intent: str,
        style_slug: str,
        attachment: Optional[tuple] = None
    ) -> Dict[str, Any]:
        """
        Create a job

        Args:
            prospects: Row dictionaries
            attachment: Optional (filename, bytes) tuple

        Returns:
            dict: {jobId, status, totalProspects}
        """
        data = {
            "prospects": json.dumps(prospects),
            "sender_url": sender_url,
            "what_we_do": what_we_do,
            "intent": intent,
            "style_slug": style_slug,
        }
        files = {"attached_file": attachment} if attachment else None
        response = await self._client.post("/bulk/start", data=data, files=files)
        self._raise_for_error(response)
        return response.json()

    async def process_next_chunk(self, job_id: str) -> Dict[str, Any]:
        """One chunk call; refuses to overlap with another call for the same job"""
        if job_id in self._in_flight:
            raise ChunkInFlightError(f"Chunk call already in flight for job {job_id}")
        self._in_flight.add(job_id)
        try:
            response = await self._client.post("/bulk/process", json={"jobId": job_id})
            self._raise_for_error(response)
            return response.json()
        finally:
            self._in_flight.discard(job_id)

    async def get_status(self, job_id: str) -> Dict[str, Any]:
        response = await self._client.get("/bulk/status", params={"jobId": job_id})
        self._raise_for_error(response)
        return response.json()

    async def download_results(self, job_id: str) -> str:
        response = await self._client.get("/bulk/download", params={"jobId": job_id})
        self._raise_for_error(response)
        return response.text

    async def regenerate(self, job_id: str, style_slug: str) -> Dict[str, Any]:
        response = await self._client.post("/bulk/regenerate", json={"jobId": job_id, "styleSlug": style_slug})
        self._raise_for_error(response)
        return response.json()["job"]

    async def cancel(self, job_id: str) -> Dict[str, Any]:
        response = await self._client.post("/bulk/cancel", json={"jobId": job_id})
        self._raise_for_error(response)
        return response.json()["job"]

    async def run_until_complete(
        self,
        job_id: str,
        on_progress: Optional[ProgressCallback] = None,
        max_chunks: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Call process-next-chunk until the job is complete

        Retryable failures (conflicts, store errors, gateway errors, transport errors) are
        retried up to max_retries times in a row; anything else is raised.

        Returns:
            dict: The final chunk response
        """
        chunks = 0
        failures = 0
        while True:
            try:
                result = await self.process_next_chunk(job_id)
            except BulkJobClientError as e:
                if e.status_code not in RETRYABLE_STATUS_CODES or failures >= self.max_retries:
                    raise
                failures += 1
                logger.warning(f"Job {job_id}: chunk call failed ({e}), retry {failures}/{self.max_retries}")
                await asyncio.sleep(self.retry_delay)
                continue
            except httpx.TransportError as e:
                if failures >= self.max_retries:
                    raise
                failures += 1
                logger.warning(f"Job {job_id}: transport error ({e}), retry {failures}/{self.max_retries}")
                await asyncio.sleep(self.retry_delay)
                continue

            failures = 0
            chunks += 1
            await _notify(on_progress, result)
            if result.get("isComplete") or result.get("status") in TERMINAL_STATUSES:
                return result
            if max_chunks is not None and chunks >= max_chunks:
                return result
            if self.poll_delay:
                await asyncio.sleep(self.poll_delay)


async def drive_job(
    controller,
    job_id: str,
    on_progress: Optional[ProgressCallback] = None,
    max_chunks: Optional[int] = None,
    max_retries: int = 3,
    retry_delay: float = 0.0
):
    """
    In-process equivalent of BulkJobClient.run_until_complete

    Args:
        controller: BulkJobController
        job_id: Job to drive

    Returns:
        ChunkResult: The final chunk result
    """
    chunks = 0
    failures = 0
    while True:
        try:
            result = await controller.process_next_chunk(job_id)
        except PayloadError:
            raise
        except StoreError as e:
            if failures >= max_retries:
                raise
            failures += 1
            logger.warning(f"Job {job_id}: chunk call failed ({e}), retry {failures}/{max_retries}")
            await asyncio.sleep(retry_delay)
            continue

        failures = 0
        chunks += 1
        await _notify(on_progress, result.to_dict())
        if result.is_complete:
            return result
        if max_chunks is not None and chunks >= max_chunks:
            return result
