"""
Fabrication Check

Flags generated email text that looks like an invented claim. Findings are
advisory: they are logged and stored on the row but never fail it.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List

FABRICATION_PATTERNS = [
    (re.compile(r"\b\d{1,3}%\s*(increase|decrease|growth|improvement|boost|reduction|more|less|higher|lower)", re.IGNORECASE),
     "Unverified percentage claim"),
    (re.compile(r"\b(increased|decreased|grew|improved|boosted|reduced)\s*(by\s*)?\d{1,3}%", re.IGNORECASE),
     "Unverified percentage claim"),
    (re.compile(r"\$\d{1,3}(,\d{3})*(\.\d{2})?\s*(million|billion|k|m|b)?", re.IGNORECASE),
     "Specific dollar amount - verify if from case study"),
    (re.compile(r"\b(in|within|after)\s*(just\s*)?\d+\s*(days?|weeks?|months?)\s*(we|they|clients?|companies?)\s*(saw|achieved|got|generated)", re.IGNORECASE),
     "Specific timeframe claim"),
    (re.compile(r"companies\s*(like|such as|including)\s*[A-Z][a-z]+(\s*,\s*[A-Z][a-z]+)+", re.IGNORECASE),
     "Company name list - verify these are real clients"),
    (re.compile(r"\"[^\"]{20,}\"\s*[-–—]\s*[A-Z][a-z]+\s+[A-Z][a-z]+"),
     "Quote with attribution - verify this is real"),
    (re.compile(r"\b(helped|enabled|allowed)\s+[A-Z][a-z]+\s+(to\s+)?(achieve|generate|increase|grow|save)", re.IGNORECASE),
     "Specific client claim - verify company name"),
    (re.compile(r"\b\d{2,}\+?\s*(clients?|customers?|companies?|businesses?)\s*(have\s*)?(seen|achieved|use|trust)", re.IGNORECASE),
     "Client count claim - verify if accurate"),
    (re.compile(r"\b\d+x\s*(ROI|return|ROAS)", re.IGNORECASE),
     "ROI multiplier claim - verify if from case study"),
]

SUSPICIOUS_PHRASES = [
    "studies show",
    "research indicates",
    "according to",
    "statistics show",
    "data shows",
    "proven to",
    "guaranteed to",
    "always results in",
    "never fails",
    "100% of our clients",
    "all of our clients",
    "every single client",
]


@dataclass
class ValidationResult:
    is_valid: bool = True
    warnings: List[str] = field(default_factory=list)
    flagged_content: List[str] = field(default_factory=list)


def validate_email(body: str, verified_sources: Iterable[str] = ()) -> ValidationResult:
    """
    Check one email body for likely fabricated content

    Args:
        body: Email body text
        verified_sources: Case study and testimonial text the sender can back up

    Returns:
        ValidationResult: Warnings for every unverified match
    """
    sources = [source.lower() for source in verified_sources if source]
    result = ValidationResult()

    for pattern, reason in FABRICATION_PATTERNS:
        for match in pattern.finditer(body or ""):
            text = match.group(0)
            if any(text.lower() in source for source in sources):
                continue
            result.flagged_content.append(text)
            result.warnings.append(f"{reason}: \"{text}\"")

    lower_body = (body or "").lower()
    for phrase in SUSPICIOUS_PHRASES:
        if phrase in lower_body:
            result.flagged_content.append(phrase)
            result.warnings.append(f"Suspicious phrase that may indicate fabrication: \"{phrase}\"")

    result.is_valid = not result.flagged_content
    return result


def validate_emails(bodies: Iterable[str], verified_sources: Iterable[str] = ()) -> List[ValidationResult]:
    sources = list(verified_sources)
    return [validate_email(body, sources) for body in bodies]
