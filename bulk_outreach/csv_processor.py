"""
CSV Processing Module

Prospect CSV ingestion (with flexible header matching) and results export for
bulk jobs.
"""

import io
import logging
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd

from .errors import ValidationError
from .prospects import DRAFTS_PER_PROSPECT, Prospect

logger = logging.getLogger(__name__)

# Export header for each input field, in column order
EXPORT_COLUMNS = {
    "first_name": "Target Prospect First Name",
    "last_name": "Target Prospect Last Name",
    "email": "Target Prospect Email",
    "job_title": "Target Prospect Job Title",
    "company_name": "Target Prospect Company Name",
    "website": "Target Prospect Website",
    "linkedin_url": "Target Prospect Linkedin URL",
    "company_linkedin_url": "Target Prospect Company Linkedin URL",
    "city": "Target Prospect City",
    "country": "Target Prospect Country",
}
OUTPUT_COLUMNS = [f"Generated Email {n}" for n in range(1, DRAFTS_PER_PROSPECT + 1)]
STATUS_COLUMN = "Status"
ERROR_COLUMN = "Error"

REQUIRED_CSV_FIELDS = ["first_name", "email", "company_name", "website"]

COLUMN_ALIASES = {
    "first_name": ["first name", "firstname", "fname"],
    "last_name": ["last name", "lastname", "lname", "surname"],
    "email": ["email", "email address", "emailaddress", "e mail"],
    "job_title": ["job title", "jobtitle", "title", "position", "role"],
    "company_name": ["company name", "companyname", "company", "organization", "org"],
    "website": ["website", "company website", "url", "site", "domain", "web"],
    "linkedin_url": ["linkedin", "linkedin url", "li url", "linkedin profile"],
    "company_linkedin_url": ["company linkedin", "company linkedin url", "company li", "org linkedin"],
    "city": ["city", "location city", "town"],
    "country": ["country", "location country", "nation"],
}


def normalize_column_name(name: str) -> str:
    return " ".join(str(name).lower().replace("_", " ").replace("-", " ").split())


def find_column_match(header: str) -> Optional[str]:
    """
    Map a CSV header onto a prospect field name

    Exact matches against the export header or an alias win; otherwise the
    longest alias contained in the header is used.
    """
    normalized = normalize_column_name(header)
    for field_name, aliases in COLUMN_ALIASES.items():
        if normalized == normalize_column_name(EXPORT_COLUMNS[field_name]) or normalized in aliases:
            return field_name

    best: Optional[Tuple[int, str]] = None
    for field_name, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias in normalized and (best is None or len(alias) > best[0]):
                best = (len(alias), field_name)
    return best[1] if best else None


def validate_prospect_count(count: int, max_prospects: int) -> None:
    """
    Validate the number of prospects in a job

    Raises:
        ValidationError: If there are no prospects or too many
    """
    if count == 0:
        raise ValidationError("No prospects provided")
    if count > max_prospects:
        raise ValidationError(f"Maximum {max_prospects} prospects allowed")


def map_prospect_columns(df: pd.DataFrame) -> Dict[str, str]:
    """Column name in the DataFrame -> prospect field name, first match wins"""
    column_map: Dict[str, str] = {}
    found = set()
    for column in df.columns:
        field_name = find_column_match(column)
        if field_name and field_name not in found:
            column_map[column] = field_name
            found.add(field_name)
    return column_map


def read_prospects_csv(content: Union[str, bytes], max_prospects: int) -> Tuple[List[dict], List[str]]:
    """
    Parse a prospect CSV into row records

    Args:
        content: Raw CSV text or bytes
        max_prospects: Maximum allowed data rows

    Returns:
        Tuple of (records keyed by field name, warnings)

    Raises:
        ValidationError: If the CSV is empty, unparseable, too large or missing required columns
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("File encoding not supported. Please use UTF-8 encoded CSV")

    try:
        df = pd.read_csv(io.StringIO(content), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        raise ValidationError("CSV file is empty or has no headers")
    except pd.errors.ParserError as e:
        raise ValidationError(f"Invalid CSV format: {e}")

    column_map = map_prospect_columns(df)
    missing = [EXPORT_COLUMNS[f] for f in REQUIRED_CSV_FIELDS if f not in column_map.values()]
    if missing:
        raise ValidationError(f"Missing required columns: {', '.join(missing)}")

    validate_prospect_count(len(df), max_prospects)

    warnings = []
    missing_optional = [
        EXPORT_COLUMNS[f] for f in EXPORT_COLUMNS
        if f not in REQUIRED_CSV_FIELDS and f not in column_map.values()
    ]
    if missing_optional:
        warnings.append(f"Optional columns not found (will be skipped): {', '.join(missing_optional)}")

    df = df[list(column_map)].rename(columns=column_map)
    records = [
        {key: str(value).strip() for key, value in row.items()}
        for row in df.to_dict(orient="records")
    ]

    row_issues = []
    for position, record in enumerate(records, start=1):
        absent = [EXPORT_COLUMNS[f] for f in REQUIRED_CSV_FIELDS if not record.get(f)]
        if absent:
            row_issues.append(f"Row {position}: Missing {', '.join(absent)}")
    warnings.extend(row_issues[:10])
    if len(row_issues) > 10:
        warnings.append(f"... and {len(row_issues) - 10} more row issues")

    return records, warnings


def build_export_dataframe(prospects: List[Prospect]) -> pd.DataFrame:
    """One row per prospect in row order: input columns, status, error, generated emails"""
    rows = []
    for prospect in sorted(prospects, key=lambda p: p.row_index):
        row = {header: getattr(prospect, field_name) for field_name, header in EXPORT_COLUMNS.items()}
        row[STATUS_COLUMN] = prospect.status.value
        row[ERROR_COLUMN] = prospect.error or ""
        drafts = prospect.drafts + [None] * DRAFTS_PER_PROSPECT
        for header, draft in zip(OUTPUT_COLUMNS, drafts):
            row[header] = draft.render() if draft else ""
        rows.append(row)

    columns = list(EXPORT_COLUMNS.values()) + [STATUS_COLUMN, ERROR_COLUMN] + OUTPUT_COLUMNS
    return pd.DataFrame(rows, columns=columns)


def export_prospects_csv(prospects: List[Prospect]) -> str:
    """
    Render prospects as CSV text

    Fields containing a comma, quote or newline are quoted with embedded
    quotes doubled.
    """
    output = io.StringIO()
    build_export_dataframe(prospects).to_csv(output, index=False, lineterminator="\n")
    return output.getvalue()
