"""
Website Research Module

Fetches a company website as plain text through a reader endpoint and extracts
best-effort company facts from it.

Features:
- URL normalization and plain-text fetch via httpx
- Company name, description and key point extraction
- Keyword-based business type detection
- Verified case study and testimonial extraction
- Placeholder facts on any failure; fetch() never raises
"""

import logging
import os
import re
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

DEFAULT_READER_API_URL = "https://r.jina.ai/"
RAW_CONTENT_MAX_CHARS = 3000
DESCRIPTION_MAX_CHARS = 500
MAX_KEY_POINTS = 5

BUSINESS_TYPE_INDICATORS = {
    "saas": ["saas", "software as a service", "cloud platform", "subscription"],
    "agency": ["agency", "studio", "creative services", "marketing agency"],
    "ecommerce": ["shop", "store", "buy now", "add to cart", "checkout"],
    "consulting": ["consulting", "consultancy", "advisory", "consulting services"],
    "fintech": ["fintech", "financial technology", "payments", "banking"],
    "healthtech": ["health tech", "healthcare", "medical", "patient"],
    "edtech": ["education", "learning", "courses", "training platform"],
    "marketplace": ["marketplace", "buyers and sellers", "platform connecting"],
    "enterprise": ["enterprise", "fortune 500", "large organizations"],
    "startup": ["startup", "early stage", "seed", "series a"],
    "manufacturing": ["manufacturing", "factory", "production", "industrial"],
    "professional services": ["law firm", "accounting", "legal", "professional services"],
}

CASE_STUDY_HEADING = re.compile(r"case stud|success stor|results|customer stor", re.IGNORECASE)
CASE_STUDY_LINE = re.compile(r"^\s*(?:[-*•]|\d+\.)?\s*\**([A-Z][\w&.' ]{1,60}?)\**\s*(?::|\s[-–—]\s)\s*(.{10,200})$")
TESTIMONIAL = re.compile(r"[\"“]([^\"”]{20,400})[\"”]\s*(?:[-–—~]\s*([A-Z][^\n]{1,80}))")


@dataclass
class CaseStudy:
    company: str
    result: str


@dataclass
class CompanyFacts:
    """Structured facts about a company website"""
    url: str
    company_name: str
    description: str
    key_points: List[str] = field(default_factory=list)
    business_type: str = "b2b company"
    raw_content: str = ""
    case_studies: List[CaseStudy] = field(default_factory=list)
    testimonials: List[str] = field(default_factory=list)
    fetched: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CompanyFacts":
        return cls(
            url=data.get("url", ""),
            company_name=data.get("company_name") or data.get("companyName") or "Company",
            description=data.get("description", ""),
            key_points=list(data.get("key_points") or data.get("keyPoints") or []),
            business_type=data.get("business_type") or data.get("businessType") or "b2b company",
            raw_content=data.get("raw_content") or data.get("rawContent") or "",
            case_studies=[
                CaseStudy(company=cs.get("company", ""), result=cs.get("result", ""))
                for cs in (data.get("case_studies") or data.get("caseStudies") or [])
            ],
            testimonials=list(data.get("testimonials") or []),
            fetched=bool(data.get("fetched", True)),
        )

    def verified_text(self) -> str:
        """All text the sender can back up, used to exempt claims from fabrication checks"""
        parts = [f"{cs.company} {cs.result}" for cs in self.case_studies]
        parts.extend(self.testimonials)
        return "\n".join(parts)


def normalize_url(url: str) -> str:
    normalized = (url or "").strip()
    if not normalized.startswith(("http://", "https://")):
        normalized = "https://" + normalized
    return normalized


def company_name_from_url(url: str) -> str:
    """Hostname without www and TLD, capitalized"""
    hostname = urlparse(url).hostname or ""
    name = hostname.removeprefix("www.").split(".")[0] if hostname else ""
    return name[:1].upper() + name[1:] if name else "Company"


def placeholder_facts(
    url: str,
    company_name: Optional[str] = None,
    description: str = "No description available",
    business_type: str = "b2b company"
) -> CompanyFacts:
    """Facts used when research is unavailable for a row"""
    return CompanyFacts(
        url=url or "",
        company_name=company_name or "Company",
        description=description,
        business_type=business_type,
        fetched=False,
    )


def detect_business_type(content: str, url: str) -> str:
    lower_content = content.lower()
    lower_url = url.lower()
    for business_type, indicators in BUSINESS_TYPE_INDICATORS.items():
        for indicator in indicators:
            if indicator in lower_content or indicator in lower_url:
                return business_type
    return "b2b company"


def extract_case_studies(content: str, limit: int = 5) -> List[CaseStudy]:
    """'Company: result' lines found under case study or results headings"""
    case_studies: List[CaseStudy] = []
    in_section = False
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("#"):
            in_section = bool(CASE_STUDY_HEADING.search(stripped))
            continue
        if not in_section or not stripped:
            continue
        match = CASE_STUDY_LINE.match(stripped)
        if match:
            case_studies.append(CaseStudy(company=match.group(1).strip(), result=match.group(2).strip()))
            if len(case_studies) >= limit:
                break
    return case_studies


def extract_testimonials(content: str, limit: int = 5) -> List[str]:
    """Quoted statements followed by an attribution"""
    return [
        f"\"{quote.strip()}\" - {author.strip()}"
        for quote, author in TESTIMONIAL.findall(content)[:limit]
    ]


def parse_company_content(url: str, content: str) -> CompanyFacts:
    """
    Extract company facts from reader output

    Args:
        url: Normalized site URL
        content: Markdown-ish plain text of the site

    Returns:
        CompanyFacts: Parsed facts
    """
    company_name = company_name_from_url(url)
    title_match = re.search(r"^#\s*(.+?)$", content, re.MULTILINE) or re.search(r"Title:\s*(.+?)$", content, re.MULTILINE | re.IGNORECASE)
    if title_match:
        title = title_match.group(1).strip()
        title = re.sub(r"\s*[-|–—]\s*.+$", "", title)
        title = re.sub(r"\s*Home\s*$", "", title, flags=re.IGNORECASE).strip()
        company_name = title or company_name

    lines = [line for line in content.split("\n") if line.strip() and not line.startswith("#")]
    description = " ".join(lines[:3])[:DESCRIPTION_MAX_CHARS].strip() or "No description available"

    key_points = []
    for header in re.findall(r"^##?\s+(.+)$", content, re.MULTILINE)[:MAX_KEY_POINTS]:
        cleaned = header.strip()
        if 3 < len(cleaned) < 100:
            key_points.append(cleaned)

    return CompanyFacts(
        url=url,
        company_name=company_name,
        description=description,
        key_points=key_points,
        business_type=detect_business_type(content, url),
        raw_content=content[:RAW_CONTENT_MAX_CHARS],
        case_studies=extract_case_studies(content),
        testimonials=extract_testimonials(content),
    )


class WebsiteResearcher:
    """
    Best-effort company research over an HTTP text-extraction endpoint
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, reader_api_url: Optional[str] = None):
        self.reader_api_url = reader_api_url or os.getenv("READER_API_URL", DEFAULT_READER_API_URL)
        self.timeout = float(os.getenv("SCRAPER_TIMEOUT_SECONDS", "30"))
        self.api_key = os.getenv("READER_API_KEY")
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def fetch(self, url: str) -> CompanyFacts:
        """
        Research a website, never raising

        Args:
            url: Site URL, scheme optional

        Returns:
            CompanyFacts: Parsed facts, or placeholder facts when the fetch fails
        """
        normalized = normalize_url(url)
        headers = {"Accept": "text/plain"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = await self.client.get(f"{self.reader_api_url}{normalized}", headers=headers)
            response.raise_for_status()
            return parse_company_content(normalized, response.text)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.warning(f"Research failed for {normalized}: {e}")
            return placeholder_facts(
                normalized,
                company_name_from_url(normalized),
                description="Unable to fetch company details",
                business_type="unknown",
            )

    async def aclose(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
