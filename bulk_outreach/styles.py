"""
Email Style Repository

Writing styles a bulk job can be generated in. Built-in styles ship with the
package; extra styles can be dropped into STYLES_DIR as JSON files using the
same fields (camelCase keys are accepted).
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class EmailStyle:
    """A named outreach writing style"""
    slug: str
    name: str
    description: str = ""
    tone: str = "professional"
    best_for: List[str] = field(default_factory=list)
    structure: List[str] = field(default_factory=list)
    guidelines: List[str] = field(default_factory=list)
    prompt_template: str = ""
    is_active: bool = True

    def summary(self) -> dict:
        return {
            "slug": self.slug,
            "name": self.name,
            "description": self.description,
            "tone": self.tone,
            "best_for": self.best_for,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EmailStyle":
        return cls(
            slug=data["slug"],
            name=data.get("name") or data["slug"],
            description=data.get("description", ""),
            tone=data.get("tone", "professional"),
            best_for=list(data.get("best_for") or data.get("bestFor") or []),
            structure=list(data.get("structure") or []),
            guidelines=list(data.get("guidelines") or []),
            prompt_template=data.get("prompt_template") or data.get("promptTemplate") or "",
            is_active=bool(data.get("is_active", data.get("isActive", True))),
        )


BUILT_IN_STYLES: Dict[str, EmailStyle] = {
    style.slug: style for style in (
        EmailStyle(
            slug="show-me-you-know-me",
            name="Show Me You Know Me",
            description="Opens with an observation only someone who did their homework could make.",
            tone="warm",
            best_for=["high-value accounts", "executive outreach"],
            structure=["personal observation", "bridge", "problem", "better way", "soft cta"],
            guidelines=[
                "The first line must reference something specific to the prospect or their company",
                "Never open with 'I hope this finds you well' or an introduction of yourself",
                "Connect the observation to the problem in one sentence",
            ],
            prompt_template="Write like someone who clearly researched this person. Lead with a specific observation, then tie it to a challenge they likely face.",
        ),
        EmailStyle(
            slug="poke-the-bear",
            name="Poke the Bear",
            description="Asks a neutral question that makes the prospect question the status quo.",
            tone="curious",
            best_for=["competitive displacement", "status quo buyers"],
            structure=["observation", "neutral question", "implication", "soft cta"],
            guidelines=[
                "Ask questions that surface a gap without telling them they are wrong",
                "Stay neutral; no hype words",
                "End with a low-pressure question",
            ],
            prompt_template="Use a calm, curious tone. Pose one question that exposes a hidden cost of how they work today.",
        ),
        EmailStyle(
            slug="the-research-rabbit-hole",
            name="The Research Rabbit Hole",
            description="Leans on a detail found deep in the prospect's own website content.",
            tone="analytical",
            best_for=["technical buyers", "founders"],
            structure=["specific finding", "inference", "relevance", "soft cta"],
            guidelines=[
                "Quote or paraphrase a concrete detail from the target research",
                "Draw one reasonable inference from it",
                "Do not overstate what you know",
            ],
            prompt_template="Pull one specific detail from the target company research and build the email around what it implies for them.",
        ),
        EmailStyle(
            slug="the-one-liner",
            name="The One-Liner",
            description="Extremely short; the whole pitch fits in a sentence or two.",
            tone="casual",
            best_for=["busy executives", "mobile readers"],
            structure=["hook", "one-line offer", "question"],
            guidelines=[
                "Say the point in as few words as possible while keeping the required length",
                "No filler sentences",
                "One clear question at the end",
            ],
            prompt_template="Be ruthlessly concise. Every sentence must earn its place.",
        ),
        EmailStyle(
            slug="the-challenger",
            name="The Challenger",
            description="Teaches the prospect something about their market and reframes the problem.",
            tone="bold",
            best_for=["complex sales", "category creation"],
            structure=["insight", "reframe", "better way", "soft cta"],
            guidelines=[
                "Lead with an insight, not a product",
                "Reframe a common assumption in their industry",
                "Back claims only with verified sender facts",
            ],
            prompt_template="Challenge a common assumption in the prospect's industry and offer a better way to think about it.",
        ),
        EmailStyle(
            slug="the-helpful-expert",
            name="The Helpful Expert",
            description="Gives away a useful idea up front with no strings attached.",
            tone="friendly",
            best_for=["services", "consultative sales"],
            structure=["helpful idea", "why it matters", "offer to share more"],
            guidelines=[
                "Offer one actionable idea the prospect could use without replying",
                "Keep the ask small",
            ],
            prompt_template="Open with a genuinely useful tip relevant to their role, then offer to share more.",
        ),
    )
}

DEFAULT_STYLE_SLUG = "show-me-you-know-me"


def load_styles_from_directory(styles_dir: str) -> Dict[str, EmailStyle]:
    """
    Load style definitions from *.json files in a directory

    Files that cannot be parsed are logged and skipped.
    """
    styles: Dict[str, EmailStyle] = {}
    directory = Path(styles_dir)
    if not directory.is_dir():
        logger.warning(f"Styles directory not found: {styles_dir}")
        return styles

    for path in sorted(directory.glob("*.json")):
        try:
            style = EmailStyle.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Error loading style {path.name}: {e}")
            continue
        styles[style.slug] = style
    return styles


def _catalog(styles_dir: Optional[str] = None) -> Dict[str, EmailStyle]:
    catalog = dict(BUILT_IN_STYLES)
    styles_dir = styles_dir or os.getenv("STYLES_DIR")
    if styles_dir:
        catalog.update(load_styles_from_directory(styles_dir))
    return catalog


def get_all_styles(styles_dir: Optional[str] = None) -> List[EmailStyle]:
    """Active styles, built-in ones first in their declared order, then by name"""
    priority = list(BUILT_IN_STYLES)
    active = [style for style in _catalog(styles_dir).values() if style.is_active]
    return sorted(
        active,
        key=lambda s: (0, priority.index(s.slug), "") if s.slug in priority else (1, 0, s.name.lower())
    )


def get_style(slug: str, styles_dir: Optional[str] = None) -> Optional[EmailStyle]:
    """Look up an active style by slug"""
    style = _catalog(styles_dir).get(slug)
    if style is None or not style.is_active:
        return None
    return style


def fallback_style(slug: str) -> EmailStyle:
    """Bare style used when a stored job references a slug that no longer exists"""
    return EmailStyle(slug=slug, name=slug, description="", tone="professional")


def get_styles_summary(styles_dir: Optional[str] = None) -> List[dict]:
    return [style.summary() for style in get_all_styles(styles_dir)]
