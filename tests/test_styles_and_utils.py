"""
Tests for the style repository and shared helpers.
"""

import io
import json
import zlib

import docx
import pytest

from bulk_outreach.config import ProcessingConfig
from bulk_outreach.styles import (
    DEFAULT_STYLE_SLUG,
    fallback_style,
    get_all_styles,
    get_style,
    get_styles_summary,
)
from bulk_outreach.utils import create_batches, extract_attachment_text, truncate

pytestmark = [pytest.mark.unit]

CASE_STUDY = "Acme Logistics cut invoice matching time by 60 percent in one quarter"


def docx_bytes(document) -> bytes:
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def build_pdf(text: str) -> bytes:
    """Single-page PDF whose content stream is FlateDecode-compressed"""
    content = zlib.compress(f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1"))
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d /Filter /FlateDecode >>\nstream\n" % len(content) + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    pdf = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(pdf))
        pdf += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(pdf)
    pdf += b"xref\n0 %d\n" % (len(objects) + 1)
    pdf += b"0000000000 65535 f \n"
    for offset in offsets:
        pdf += b"%010d 00000 n \n" % offset
    pdf += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_offset)
    return bytes(pdf)


def test_built_in_styles_are_available():
    slugs = [style.slug for style in get_all_styles()]

    assert slugs[0] == DEFAULT_STYLE_SLUG
    assert "the-one-liner" in slugs
    assert get_style("poke-the-bear").name == "Poke the Bear"
    assert get_style("missing") is None


def test_styles_directory_adds_and_deactivates_styles(tmp_path):
    (tmp_path / "custom.json").write_text(json.dumps({
        "slug": "the-custom",
        "name": "A Custom Style",
        "promptTemplate": "Be brief.",
        "bestFor": ["testing"],
    }))
    (tmp_path / "off.json").write_text(json.dumps({"slug": "the-one-liner", "name": "Off", "isActive": False}))
    (tmp_path / "broken.json").write_text("{nope")

    custom = get_style("the-custom", str(tmp_path))

    assert custom.prompt_template == "Be brief."
    assert custom.best_for == ["testing"]
    assert get_style("the-one-liner", str(tmp_path)) is None
    summary = get_styles_summary(str(tmp_path))
    assert summary[-1]["slug"] == "the-custom"


def test_fallback_style_uses_slug():
    style = fallback_style("retired-style")
    assert style.name == "retired-style"
    assert style.guidelines == []


def test_create_batches():
    assert create_batches([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert create_batches([], 3) == []
    with pytest.raises(ValueError):
        create_batches([1], 0)


def test_truncate():
    assert truncate(None, 5) == ""
    assert truncate("abcdefgh", 3) == "abc"


def test_extract_plain_text_attachment():
    assert extract_attachment_text("notes.txt", b"plain notes") == "plain notes"
    assert extract_attachment_text("unknown.bin", b"raw bytes") == "raw bytes"


def test_extract_word_attachment():
    document = docx.Document()
    document.add_paragraph(CASE_STUDY)
    document.add_paragraph("")
    document.add_paragraph("Second paragraph with the onboarding timeline.")

    text = extract_attachment_text("case-studies.docx", docx_bytes(document))

    assert CASE_STUDY in text
    assert text.endswith("onboarding timeline.")


def test_extract_word_attachment_is_capped():
    document = docx.Document()
    for _ in range(200):
        document.add_paragraph(CASE_STUDY)

    text = extract_attachment_text("long.docx", docx_bytes(document))

    assert len(text) == 5000


def test_extract_compressed_pdf_attachment():
    text = extract_attachment_text("case-studies.pdf", build_pdf(CASE_STUDY))

    assert CASE_STUDY in text


def test_extract_attachment_drops_short_or_unreadable_files():
    assert extract_attachment_text("tiny.pdf", build_pdf("Too short")) == ""
    assert extract_attachment_text("broken.pdf", b"not a pdf at all") == ""
    assert extract_attachment_text("broken.docx", b"not a zip archive") == ""


def test_processing_config_from_environment(monkeypatch):
    monkeypatch.setenv("CHUNK_SIZE", "25")
    monkeypatch.setenv("PARALLEL_BATCH_SIZE", "0")

    config = ProcessingConfig()

    assert config.chunk_size == 25
    assert config.validate_config() == (False, "Invalid PARALLEL_BATCH_SIZE: 0")
