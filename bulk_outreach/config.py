"""
Processing Configuration

Chunking and input limits for the bulk job processor, read from the environment.
"""

import os
from typing import Optional


class ProcessingConfig:
    """Bulk processing configuration management"""

    def __init__(self):
        # Rows taken per process-next-chunk call
        self.chunk_size = int(os.getenv("CHUNK_SIZE", "10"))
        # Rows run concurrently inside a chunk
        self.parallel_batch_size = int(os.getenv("PARALLEL_BATCH_SIZE", "5"))
        self.batch_delay_seconds = float(os.getenv("BATCH_DELAY_SECONDS", "0"))

        # Input limits
        self.max_prospects = int(os.getenv("MAX_PROSPECTS", "5000"))
        self.attachment_max_chars = int(os.getenv("ATTACHMENT_MAX_CHARS", "10000"))

    def validate_config(self) -> tuple[bool, Optional[str]]:
        """Validate processing configuration"""
        if self.chunk_size <= 0:
            return False, f"Invalid CHUNK_SIZE: {self.chunk_size}"
        if self.parallel_batch_size <= 0:
            return False, f"Invalid PARALLEL_BATCH_SIZE: {self.parallel_batch_size}"
        if self.max_prospects <= 0:
            return False, f"Invalid MAX_PROSPECTS: {self.max_prospects}"
        if self.batch_delay_seconds < 0:
            return False, f"Invalid BATCH_DELAY_SECONDS: {self.batch_delay_seconds}"

        return True, None

    def as_dict(self) -> dict:
        return {
            "chunk_size": self.chunk_size,
            "parallel_batch_size": self.parallel_batch_size,
            "max_prospects": self.max_prospects,
            "attachment_max_chars": self.attachment_max_chars,
        }
