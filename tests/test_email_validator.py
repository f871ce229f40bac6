"""
Tests for the advisory fabrication check.
"""

import pytest

from bulk_outreach.email_validator import validate_email, validate_emails

pytestmark = [pytest.mark.unit]


def test_clean_email_passes():
    result = validate_email("Noticed your team is hiring analysts. Open to a different approach?")

    assert result.is_valid
    assert result.warnings == []


def test_unverified_percentage_is_flagged():
    result = validate_email("We helped a client see a 40% increase in replies.")

    assert not result.is_valid
    assert any("percentage" in warning for warning in result.warnings)


def test_claim_backed_by_verified_source_is_exempt():
    body = "Acme saw a 40% increase in replies."

    result = validate_email(body, ["Acme 40% increase in replies within a quarter"])

    assert result.is_valid


def test_suspicious_phrase_is_flagged():
    result = validate_email("Studies show that most teams waste time.")

    assert "studies show" in result.flagged_content


def test_validate_emails_checks_each_body():
    results = validate_emails(["All good here.", "Guaranteed to work."])
    assert [r.is_valid for r in results] == [True, False]
