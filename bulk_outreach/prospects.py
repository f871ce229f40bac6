"""
Prospect Rows and Payload Codec

Defines the per-row data model of a bulk job, the confidence scoring applied at
ingestion, and the versioned JSON payload the rows are persisted as.

Payload format (schema_version 1):
    {"schema_version": 1, "prospects": [{"row_index": 1, ...}, ...]}

A bare JSON list is read as a legacy (version 0) payload with camelCase keys.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .errors import PayloadError

logger = logging.getLogger(__name__)

PAYLOAD_SCHEMA_VERSION = 1
DRAFTS_PER_PROSPECT = 3

INPUT_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "job_title",
    "company_name",
    "website",
    "linkedin_url",
    "company_linkedin_url",
    "city",
    "country",
)

# camelCase keys written by older payloads and JSON clients
LEGACY_KEYS = {
    "rowIndex": "row_index",
    "firstName": "first_name",
    "lastName": "last_name",
    "jobTitle": "job_title",
    "companyName": "company_name",
    "linkedinUrl": "linkedin_url",
    "companyLinkedinUrl": "company_linkedin_url",
}


class ProspectStatus(str, Enum):
    """Per-row processing status"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ConfidenceTier(str, Enum):
    """Input completeness tier, informational only"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class EmailDraft:
    """One generated email candidate"""
    subject: str = ""
    body: str = ""

    def is_empty(self) -> bool:
        return not self.subject and not self.body

    def render(self) -> str:
        """Render as exported text, empty string for a missing draft"""
        if self.is_empty():
            return ""
        return f"Subject: {self.subject}\n\n{self.body}"

    @classmethod
    def from_rendered(cls, text: Optional[str]) -> "EmailDraft":
        """Parse the 'Subject: ...' text form used by legacy payloads"""
        if not text:
            return cls()
        head, _, body = text.partition("\n\n")
        if head.lower().startswith("subject:"):
            return cls(subject=head[len("subject:"):].strip(), body=body.strip())
        return cls(body=text.strip())


@dataclass
class Prospect:
    """A single input row of a bulk job and its generated outputs"""
    row_index: int
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    job_title: str = ""
    company_name: str = ""
    website: str = ""
    linkedin_url: str = ""
    company_linkedin_url: str = ""
    city: str = ""
    country: str = ""
    confidence: ConfidenceTier = ConfidenceTier.LOW
    status: ProspectStatus = ProspectStatus.PENDING
    drafts: List[EmailDraft] = field(default_factory=list)
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def is_pending(self) -> bool:
        return self.status == ProspectStatus.PENDING

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def location(self) -> str:
        return ", ".join(part for part in (self.city, self.country) if part)

    def mark_completed(self, drafts: List[EmailDraft], warnings: Optional[List[str]] = None):
        self.status = ProspectStatus.COMPLETED
        self.drafts = list(drafts)
        self.error = None
        self.warnings = list(warnings or [])

    def mark_failed(self, error: str):
        self.status = ProspectStatus.FAILED
        self.drafts = []
        self.error = error
        self.warnings = []

    def reset(self):
        """Return the row to pending and drop every output"""
        self.status = ProspectStatus.PENDING
        self.drafts = []
        self.error = None
        self.warnings = []

    def to_dict(self) -> Dict[str, Any]:
        data = {"row_index": self.row_index}
        for name in INPUT_FIELDS:
            data[name] = getattr(self, name)
        data.update({
            "confidence": self.confidence.value,
            "status": self.status.value,
            "drafts": [{"subject": d.subject, "body": d.body} for d in self.drafts],
            "error": self.error,
            "warnings": list(self.warnings),
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Prospect":
        """
        Build a prospect from a stored row, accepting legacy camelCase keys

        A missing or unknown status is coerced to pending.
        """
        data = {LEGACY_KEYS.get(key, key): value for key, value in data.items()}

        prospect = cls(row_index=int(data["row_index"]))
        for name in INPUT_FIELDS:
            setattr(prospect, name, _clean(data.get(name)))

        try:
            prospect.status = ProspectStatus(data.get("status") or ProspectStatus.PENDING.value)
        except ValueError:
            prospect.status = ProspectStatus.PENDING

        try:
            prospect.confidence = ConfidenceTier(data.get("confidence"))
        except ValueError:
            prospect.confidence = calculate_confidence(data)

        if isinstance(data.get("drafts"), list):
            prospect.drafts = [
                EmailDraft(subject=_clean(d.get("subject")), body=_clean(d.get("body")))
                for d in data["drafts"]
            ]
        else:
            legacy = [data.get(f"generatedEmail{i}") for i in range(1, DRAFTS_PER_PROSPECT + 1)]
            if any(legacy):
                prospect.drafts = [EmailDraft.from_rendered(text) for text in legacy]

        prospect.error = data.get("error") or None
        prospect.warnings = list(data.get("warnings") or [])
        return prospect


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def calculate_confidence(fields: Dict[str, Any]) -> ConfidenceTier:
    """
    Score input completeness and map it onto a confidence tier

    Args:
        fields: Row fields keyed by snake_case field name

    Returns:
        ConfidenceTier: high for 8+ points, medium for 5+, otherwise low
    """
    def present(name: str) -> bool:
        return bool(_clean(fields.get(name)))

    score = 0
    for name in ("first_name", "last_name", "email", "job_title", "company_name"):
        if present(name):
            score += 1
    if present("website"):
        score += 2
    if present("linkedin_url"):
        score += 2
    if present("company_linkedin_url"):
        score += 1
    if present("city") or present("country"):
        score += 1

    if score >= 8:
        return ConfidenceTier.HIGH
    if score >= 5:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def prospects_from_records(records: Iterable[Dict[str, Any]]) -> List[Prospect]:
    """
    Turn raw input records into pending prospects with stable row indices

    Args:
        records: Row dictionaries in source order, snake_case or camelCase keys

    Returns:
        List of Prospect objects numbered from 1 in source order
    """
    prospects = []
    for position, record in enumerate(records, start=1):
        if not isinstance(record, dict):
            raise TypeError(f"Prospect {position} is not an object")
        fields = {LEGACY_KEYS.get(key, key): value for key, value in record.items()}
        prospect = Prospect(row_index=position)
        for name in INPUT_FIELDS:
            setattr(prospect, name, _clean(fields.get(name)))
        prospect.confidence = calculate_confidence(fields)
        prospects.append(prospect)
    return prospects


def encode_prospects(prospects: List[Prospect]) -> str:
    """Serialize rows into the versioned payload blob"""
    return json.dumps({
        "schema_version": PAYLOAD_SCHEMA_VERSION,
        "prospects": [p.to_dict() for p in prospects],
    })


def decode_prospects(blob: Optional[str]) -> List[Prospect]:
    """
    Deserialize a stored payload blob, migrating legacy payloads

    Raises:
        PayloadError: If the blob is not a readable payload
    """
    if not blob:
        raise PayloadError("Job has no prospect payload")

    try:
        data = json.loads(blob)
    except (TypeError, ValueError) as e:
        raise PayloadError(f"Failed to parse prospect payload: {e}")

    if isinstance(data, list):
        rows = data
        logger.info("Migrating legacy prospect payload with %d rows", len(rows))
    elif isinstance(data, dict):
        version = data.get("schema_version")
        if not isinstance(version, int) or version > PAYLOAD_SCHEMA_VERSION:
            raise PayloadError(f"Unsupported prospect payload version: {version!r}")
        rows = data.get("prospects")
        if not isinstance(rows, list):
            raise PayloadError("Prospect payload has no prospects list")
    else:
        raise PayloadError("Prospect payload must be a list or an object")

    prospects = []
    for position, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            raise PayloadError(f"Prospect entry {position} is not an object")
        if row.get("row_index") is None and row.get("rowIndex") is None:
            row = dict(row, row_index=position)
        try:
            prospects.append(Prospect.from_dict(row))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise PayloadError(f"Invalid prospect entry {position}: {e}")
    return prospects


def count_by_status(prospects: List[Prospect]) -> Dict[str, int]:
    counts = {status.value: 0 for status in ProspectStatus}
    for prospect in prospects:
        counts[prospect.status.value] += 1
    return counts
