"""
Email Generation Pipeline

Per-prospect processing for bulk jobs: research the prospect's website, build
the prompt, generate, parse three drafts and run the advisory fabrication check.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .email_validator import validate_emails
from .errors import GenerationError, RowProcessingError
from .prompt_builder import build_bulk_prompt, parse_three_emails
from .prospects import EmailDraft, Prospect, ProspectStatus
from .scraper import CompanyFacts, placeholder_facts
from .styles import EmailStyle

logger = logging.getLogger(__name__)


@dataclass
class GenerationContext:
    """Job-wide inputs shared by every row of a bulk job"""
    sender: CompanyFacts
    value_proposition: str
    intent: str
    style: EmailStyle
    additional_info: Optional[str] = None


@dataclass
class RowOutcome:
    """Result of processing one prospect"""
    row_index: int
    status: ProspectStatus
    drafts: List[EmailDraft] = field(default_factory=list)
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    processing_time_seconds: float = 0.0

    @classmethod
    def failed(cls, row_index: int, error: str) -> "RowOutcome":
        return cls(row_index=row_index, status=ProspectStatus.FAILED, error=error or "Processing failed")

    def apply_to(self, prospect: Prospect):
        """Write this outcome onto the matching row"""
        if self.status == ProspectStatus.COMPLETED:
            prospect.mark_completed(self.drafts, self.warnings)
        else:
            prospect.mark_failed(self.error or "Processing failed")


class ProspectPipeline:
    """
    Turns one prospect row into three email drafts

    Args:
        researcher: Object with an async fetch(url) -> CompanyFacts
        generator: Object with an async generate(prompt) -> str
    """

    def __init__(self, researcher, generator):
        self.researcher = researcher
        self.generator = generator

    async def research(self, prospect: Prospect) -> CompanyFacts:
        """Research the prospect's website, substituting placeholder facts on any failure"""
        fallback = placeholder_facts(prospect.website, prospect.company_name or "Company")
        if not prospect.website:
            return fallback
        try:
            facts = await self.researcher.fetch(prospect.website)
        except Exception as e:
            logger.warning(f"Research failed for row {prospect.row_index} ({prospect.website}): {e}")
            return fallback
        return facts or fallback

    async def process(self, prospect: Prospect, context: GenerationContext) -> RowOutcome:
        """
        Process one prospect

        Args:
            prospect: Row to generate for
            context: Job-wide generation inputs

        Returns:
            RowOutcome: Completed outcome with three drafts

        Raises:
            RowProcessingError: If generation failed for this row
        """
        start_time = asyncio.get_running_loop().time()

        target = await self.research(prospect)
        prompt = build_bulk_prompt(
            prospect=prospect,
            target=target,
            sender=context.sender,
            style=context.style,
            intent=context.intent,
            value_proposition=context.value_proposition,
            additional_info=context.additional_info,
        )

        try:
            response = await self.generator.generate(prompt)
            if not isinstance(response, str) or not response.strip():
                raise GenerationError("No text content in response")
        except GenerationError as e:
            raise RowProcessingError(prospect.row_index, str(e)) from e

        drafts = parse_three_emails(response)
        warnings = self.review(prospect, drafts, context.sender)

        return RowOutcome(
            row_index=prospect.row_index,
            status=ProspectStatus.COMPLETED,
            drafts=drafts,
            warnings=warnings,
            processing_time_seconds=asyncio.get_running_loop().time() - start_time,
        )

    def review(self, prospect: Prospect, drafts: List[EmailDraft], sender: CompanyFacts) -> List[str]:
        """Advisory fabrication check; findings are logged, never fatal"""
        results = validate_emails([draft.body for draft in drafts], [sender.verified_text()])
        warnings = []
        for number, result in enumerate(results, start=1):
            warnings.extend(f"Email {number}: {warning}" for warning in result.warnings)

        if warnings:
            logger.warning(
                f"Row {prospect.row_index} ({prospect.email or prospect.company_name}): "
                f"{len(warnings)} possible fabricated claim(s): {'; '.join(warnings)}"
            )
        return warnings
