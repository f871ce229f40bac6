"""
Prompt Builder Module

Jinja2 prompt templates for bulk draft generation and the parser that turns a
model response back into exactly three drafts.
"""

import re
from typing import List, Optional

from jinja2 import Template

from .prospects import DRAFTS_PER_PROSPECT, EmailDraft, Prospect

DEFAULT_SUBJECT = "quick question"
MAX_SUBJECT_WORDS = 3
TARGET_EXCERPT_CHARS = 1000
ADDITIONAL_INFO_CHARS = 1000

BULK_PROMPT_TEMPLATE = Template("""
You are an expert cold email copywriter. Write 3 DIFFERENT hyper-personalized cold emails.

CRITICAL CONSTRAINTS:
1. EMAIL BODY MUST BE 80-100 WORDS EXACTLY (no more, no less - count carefully!)
2. SUBJECT LINE: 1-3 words only, lowercase, no punctuation
3. Personalization in the FIRST LINE - reference something specific about them
4. Call out a challenge they face, then offer a perspective on "a better way"
5. Each email should have a DIFFERENT angle/hook
6. Interest-based, low friction CTA (e.g., "Open to learning more?" - don't ask for time!)

STYLE RULES:
- Minimize "I, we, our" language - focus on THEM
- Zero marketing jargon - write the way you speak
- Professional but not overly formal
- Plenty of white space (no big chunks of text)

STYLE: {{ style.name }}
{% if style.prompt_template %}
{{ style.prompt_template }}
{% endif %}
{% if style.guidelines %}
Style guidelines:
{% for guideline in style.guidelines %}
- {{ guideline }}
{% endfor %}
{% endif %}

TARGET PROSPECT:
- First Name: {{ prospect.first_name }}
- Last Name: {{ prospect.last_name }}
- Job Title: {{ prospect.job_title }}
- Company: {{ prospect.company_name }}
- Website: {{ prospect.website }}
{% if prospect.location %}
- Location: {{ prospect.location }}
{% endif %}

TARGET COMPANY RESEARCH:
- Company: {{ target.company_name }}
- What they do: {{ target.description }}
- Key details: {{ target.key_points | join(', ') if target.key_points else 'None found' }}
- Business type: {{ target.business_type }}
{% if target_excerpt %}

Website excerpt:
{{ target_excerpt }}
{% endif %}

SENDER (what you're pitching):
- Company: {{ sender.company_name }}
- Value Proposition: {{ value_proposition }}
- Intent: {{ intent }}
{% if sender.case_studies %}

VERIFIED CASE STUDIES (use only these, don't invent):
{% for cs in sender.case_studies %}
{{ loop.index }}. {{ cs.company }}: {{ cs.result }}
{% endfor %}
{% endif %}
{% if sender.testimonials %}

VERIFIED TESTIMONIALS (quote only these, word for word):
{% for testimonial in sender.testimonials %}
- {{ testimonial }}
{% endfor %}
{% endif %}
{% if additional_info %}

Additional context:
{{ additional_info }}
{% endif %}

CRITICAL: If no case studies provided, DO NOT invent any. Focus on value proposition instead.
Never invent statistics, client names, testimonials or results.

Generate 3 emails in this EXACT format (each 80-100 words):
{% for n in range(1, 4) %}

EMAIL {{ n }}:
SUBJECT: [1-3 word subject, lowercase]
BODY:
[80-100 words - personalized first line, challenge + better way, soft CTA]
{% endfor %}
""", trim_blocks=True, lstrip_blocks=True)

VALUE_PROPOSITION_TEMPLATE = Template("""
Transform this generic service description into a specific, outcome-focused value proposition.

INPUT: "{{ what_we_do }}"

RULES:
- Convert what they ARE into what they DO (specific outcomes)
- Describe concrete benefits without inventing numbers or clients
- Keep it to 1-2 sentences max
- Make it compelling and specific

OUTPUT only the transformed statement, nothing else:
""", trim_blocks=True, lstrip_blocks=True)

EMAIL_SPLIT = re.compile(r"EMAIL\s*\d+:", re.IGNORECASE)
SUBJECT_LINE = re.compile(r"SUBJECT:\s*(.+?)(?:\n|$)", re.IGNORECASE)
BODY_BLOCK = re.compile(r"BODY:\s*\n?([\s\S]+?)(?=EMAIL\s*\d+:|$)", re.IGNORECASE)
RULE_LINE = re.compile(r"^---+\s*$", re.MULTILINE)
SURROUNDING_QUOTES = re.compile(r"^[\"']|[\"']$")


def build_bulk_prompt(
    prospect: Prospect,
    target,
    sender,
    style,
    intent: str,
    value_proposition: str,
    additional_info: Optional[str] = None
) -> str:
    """
    Build the three-email generation prompt for one prospect

    Args:
        prospect: Row being generated for
        target: CompanyFacts for the prospect's website
        sender: CompanyFacts for the sender's website
        style: EmailStyle to write in
        intent: What the sender wants from the outreach
        value_proposition: Transformed sender value proposition
        additional_info: Optional attachment text

    Returns:
        str: Rendered prompt
    """
    return BULK_PROMPT_TEMPLATE.render(
        prospect=prospect,
        target=target,
        sender=sender,
        style=style,
        intent=intent,
        value_proposition=value_proposition,
        target_excerpt=(target.raw_content or "")[:TARGET_EXCERPT_CHARS],
        additional_info=(additional_info or "")[:ADDITIONAL_INFO_CHARS],
    ).strip()


def build_value_proposition_prompt(what_we_do: str) -> str:
    return VALUE_PROPOSITION_TEMPLATE.render(what_we_do=what_we_do).strip()


def clean_value_proposition(text: str) -> str:
    return SURROUNDING_QUOTES.sub("", text.strip()).strip()


def clean_subject(subject: Optional[str]) -> str:
    """Strip quotes, lowercase and cap at three words"""
    subject = (subject or "").strip() or DEFAULT_SUBJECT
    subject = SURROUNDING_QUOTES.sub("", subject).lower()
    return " ".join(subject.split()[:MAX_SUBJECT_WORDS])


def parse_three_emails(response: str) -> List[EmailDraft]:
    """
    Split a model response into exactly three drafts

    Sections without a body, such as a preamble before the first marker, are
    skipped before counting; the result is padded with empty drafts so it
    always has three entries.
    """
    drafts: List[EmailDraft] = []
    sections = [s for s in EMAIL_SPLIT.split(response or "") if s.strip()]

    for section in sections:
        if len(drafts) == DRAFTS_PER_PROSPECT:
            break
        subject_match = SUBJECT_LINE.search(section)
        body_match = BODY_BLOCK.search(section)

        subject = clean_subject(subject_match.group(1) if subject_match else None)
        body = body_match.group(1).strip() if body_match else ""
        body = RULE_LINE.sub("", body).strip()

        if body:
            drafts.append(EmailDraft(subject=subject, body=body))

    while len(drafts) < DRAFTS_PER_PROSPECT:
        drafts.append(EmailDraft())
    return drafts
