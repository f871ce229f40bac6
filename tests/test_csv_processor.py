"""
Tests for prospect CSV ingestion and results export.
"""

import csv
import io

import pytest

from bulk_outreach.csv_processor import (
    EXPORT_COLUMNS,
    OUTPUT_COLUMNS,
    export_prospects_csv,
    find_column_match,
    read_prospects_csv,
)
from bulk_outreach.errors import ValidationError
from bulk_outreach.prospects import EmailDraft, prospects_from_records

pytestmark = [pytest.mark.unit]


@pytest.mark.parametrize("header,field_name", [
    ("First Name", "first_name"),
    ("Target Prospect Email", "email"),
    ("Company", "company_name"),
    ("Company LinkedIn URL", "company_linkedin_url"),
    ("LinkedIn", "linkedin_url"),
    ("Work Email Address", "email"),
    ("favourite colour", None),
])
def test_find_column_match(header, field_name):
    assert find_column_match(header) == field_name


def test_read_prospects_csv_maps_headers_and_warns():
    content = (
        "First Name,Email,Company,Website,Notes\n"
        "Ada,ada@analytical.com,Analytical,https://analytical.com,x\n"
        "Grace,,Compilers,https://compilers.com,y\n"
    ).encode("utf-8")

    records, warnings = read_prospects_csv(content, max_prospects=10)

    assert records[0] == {
        "first_name": "Ada",
        "email": "ada@analytical.com",
        "company_name": "Analytical",
        "website": "https://analytical.com",
    }
    assert records[1]["email"] == ""
    assert any(w.startswith("Optional columns not found") for w in warnings)
    assert "Row 2: Missing Target Prospect Email" in warnings


def test_read_prospects_csv_requires_columns():
    with pytest.raises(ValidationError, match="Missing required columns"):
        read_prospects_csv("First Name,Email\nAda,a@b.com\n", max_prospects=10)


def test_read_prospects_csv_enforces_limits():
    header = "First Name,Email,Company,Website\n"
    with pytest.raises(ValidationError, match="No prospects provided"):
        read_prospects_csv(header, max_prospects=10)
    with pytest.raises(ValidationError, match="Maximum 1 prospects allowed"):
        read_prospects_csv(header + "a,a@a.com,A,a.com\nb,b@b.com,B,b.com\n", max_prospects=1)
    with pytest.raises(ValidationError, match="empty"):
        read_prospects_csv("", max_prospects=10)


def test_export_quotes_multiline_drafts_and_keeps_row_order():
    prospects = prospects_from_records([
        {"first_name": "Ada", "company_name": "Analytical, Ltd", "email": "ada@a.com"},
        {"first_name": "Grace", "company_name": "Compilers", "email": "grace@c.com"},
    ])
    prospects[0].mark_completed([EmailDraft("hi", 'Line one\nSaid "hello"')])
    prospects[1].mark_failed("timeout")

    text = export_prospects_csv(list(reversed(prospects)))
    rows = list(csv.DictReader(io.StringIO(text)))

    assert list(rows[0]) == list(EXPORT_COLUMNS.values()) + ["Status", "Error"] + OUTPUT_COLUMNS
    assert [row["Target Prospect First Name"] for row in rows] == ["Ada", "Grace"]
    assert rows[0]["Target Prospect Company Name"] == "Analytical, Ltd"
    assert rows[0]["Generated Email 1"] == 'Subject: hi\n\nLine one\nSaid "hello"'
    assert rows[0]["Generated Email 2"] == ""
    assert rows[1]["Status"] == "failed"
    assert rows[1]["Error"] == "timeout"
    assert '""hello""' in text
