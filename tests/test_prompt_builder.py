"""
Tests for prompt rendering and response parsing.
"""

import pytest

from bulk_outreach.prompt_builder import (
    build_bulk_prompt,
    build_value_proposition_prompt,
    clean_subject,
    clean_value_proposition,
    parse_three_emails,
)
from bulk_outreach.prospects import EmailDraft, Prospect
from bulk_outreach.scraper import CaseStudy, CompanyFacts, placeholder_facts
from bulk_outreach.styles import get_style

pytestmark = [pytest.mark.unit]


def sender_facts(**overrides):
    fields = dict(url="https://sender.com", company_name="Sender Co", description="Invoice tooling")
    fields.update(overrides)
    return CompanyFacts(**fields)


def test_bulk_prompt_includes_prospect_sender_and_style():
    prospect = Prospect(row_index=1, first_name="Ada", company_name="Analytical", city="London")
    target = CompanyFacts(
        url="https://analytical.com",
        company_name="Analytical",
        description="Engines",
        raw_content="x" * 5000,
    )

    prompt = build_bulk_prompt(
        prospect=prospect,
        target=target,
        sender=sender_facts(),
        style=get_style("poke-the-bear"),
        intent="Book a call",
        value_proposition="Close books faster",
        additional_info="y" * 3000,
    )

    assert "- First Name: Ada" in prompt
    assert "- Location: London" in prompt
    assert "STYLE: Poke the Bear" in prompt
    assert "- Value Proposition: Close books faster" in prompt
    assert "- Intent: Book a call" in prompt
    assert "x" * 1000 in prompt and "x" * 1001 not in prompt
    assert "y" * 1000 in prompt and "y" * 1001 not in prompt
    assert "VERIFIED CASE STUDIES" not in prompt


def test_bulk_prompt_lists_verified_case_studies():
    sender = sender_facts(
        case_studies=[CaseStudy("Acme", "cut close time in half")],
        testimonials=['"Great tool for our finance team" - Jo Smith'],
    )

    prompt = build_bulk_prompt(
        prospect=Prospect(row_index=1),
        target=placeholder_facts("https://t.com"),
        sender=sender,
        style=get_style("the-one-liner"),
        intent="Intro",
        value_proposition="Value",
    )

    assert "1. Acme: cut close time in half" in prompt
    assert "Jo Smith" in prompt
    assert "- Location" not in prompt


def test_value_proposition_prompt_and_cleanup():
    assert '"We do accounting"' in build_value_proposition_prompt("We do accounting")
    assert clean_value_proposition('  "Close your books in days"  ') == "Close your books in days"


@pytest.mark.parametrize("raw,expected", [
    ("Quick Idea", "quick idea"),
    ('"Your Finance Team Today"', "your finance team"),
    ("", "quick question"),
    (None, "quick question"),
])
def test_clean_subject(raw, expected):
    assert clean_subject(raw) == expected


def test_parse_three_emails():
    response = """EMAIL 1:
SUBJECT: First One
BODY:
Body one line.
---

EMAIL 2:
SUBJECT: second
BODY:
Body two.

EMAIL 3:
SUBJECT: third
BODY:
Body three."""

    drafts = parse_three_emails(response)

    assert drafts == [
        EmailDraft("first one", "Body one line."),
        EmailDraft("second", "Body two."),
        EmailDraft("third", "Body three."),
    ]


def test_parse_pads_missing_and_bodiless_sections():
    response = "EMAIL 1:\nSUBJECT: only subject\n\nEMAIL 2:\nSUBJECT: real\nBODY:\nHello"

    drafts = parse_three_emails(response)

    assert len(drafts) == 3
    assert drafts[0] == EmailDraft("real", "Hello")
    assert drafts[1].is_empty() and drafts[2].is_empty()


def test_parse_skips_preamble_before_first_email():
    response = (
        "Here are three emails tailored to this prospect.\n\n"
        "EMAIL 1:\nSUBJECT: one\nBODY:\nBody one.\n\n"
        "EMAIL 2:\nSUBJECT: two\nBODY:\nBody two.\n\n"
        "EMAIL 3:\nSUBJECT: three\nBODY:\nBody three."
    )

    drafts = parse_three_emails(response)

    assert [d.body for d in drafts] == ["Body one.", "Body two.", "Body three."]


def test_parse_unstructured_text_yields_empty_drafts():
    assert all(d.is_empty() for d in parse_three_emails("Sorry, I can't help with that."))
