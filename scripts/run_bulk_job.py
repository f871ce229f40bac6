#!/usr/bin/env python3
"""
Bulk Job Runner

Starts a bulk outreach job from a prospect CSV and keeps calling "process next
chunk" until the job completes, then writes the results CSV.

By default the job runs against a running API server. With --local the job is
created and driven in this process against the configured database.
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

from bulk_outreach.config import ProcessingConfig
from bulk_outreach.csv_processor import read_prospects_csv
from bulk_outreach.errors import BulkJobError
from bulk_outreach.progress_client import BulkJobClient, BulkJobClientError, drive_job
from bulk_outreach.styles import DEFAULT_STYLE_SLUG


def print_progress(result: dict):
    total = result["totalProspects"]
    processed = result["processedCount"]
    percent = (processed / total * 100) if total else 100.0
    print(
        f"  {processed:,}/{total:,} ({percent:.1f}%) - "
        f"success {result['successCount']:,}, failed {result['failedCount']:,}, "
        f"remaining {result['remainingCount']:,} [{result['status']}]"
    )
    if result.get("integrityWarning"):
        print(f"  WARNING: {result['integrityWarning']}")


async def run_remote(args, records, attachment) -> str:
    """Create and drive the job through the HTTP API"""
    async with BulkJobClient(args.base_url, poll_delay=args.poll_delay) as client:
        started = await client.start_job(
            prospects=records,
            sender_url=args.sender_url,
            what_we_do=args.what_we_do,
            intent=args.intent,
            style_slug=args.style,
            attachment=attachment,
        )
        job_id = started["jobId"]
        print(f"Job {job_id} created with {started['totalProspects']:,} prospects")

        final = await client.run_until_complete(job_id, on_progress=print_progress)
        print(f"Job finished: {final['status']}")
        return await client.download_results(job_id)


async def run_local(args, records, attachment) -> str:
    """Create and drive the job in this process"""
    from bulk_outreach.main import build_services
    from bulk_outreach.utils import extract_attachment_text

    services = build_services()
    try:
        controller = services.controller
        attachment_text = extract_attachment_text(*attachment) if attachment else None
        summary = await controller.create_job(
            records=records,
            sender_url=args.sender_url,
            what_we_do=args.what_we_do,
            intent=args.intent,
            style_slug=args.style,
            attachment_text=attachment_text,
        )
        print(f"Job {summary.id} created with {summary.total_prospects:,} prospects")

        final = await drive_job(controller, summary.id, on_progress=print_progress)
        print(f"Job finished: {final.status}")
        return controller.export_results(summary.id)
    finally:
        await services.aclose()


def main():
    """Main CLI interface"""
    parser = argparse.ArgumentParser(
        description="Run a bulk outreach job from a prospect CSV",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_bulk_job.py uploads/prospects_100.csv --sender-url https://acme.io \\
      --what-we-do "We automate invoice matching" --intent "Book a 15 minute demo"
  python scripts/run_bulk_job.py prospects.csv --sender-url https://acme.io \\
      --what-we-do "..." --intent "..." --style the-one-liner --local
        """
    )
    parser.add_argument("csv_path", help="Prospect CSV file")
    parser.add_argument("--sender-url", required=True, help="Your company website")
    parser.add_argument("--what-we-do", required=True, help="What your company does")
    parser.add_argument("--intent", required=True, help="What the outreach should achieve")
    parser.add_argument("--style", default=DEFAULT_STYLE_SLUG, help=f"Writing style (default: {DEFAULT_STYLE_SLUG})")
    parser.add_argument("--attachment", help="Optional PDF, DOCX or text file with extra context")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API server URL")
    parser.add_argument("--poll-delay", type=float, default=0.0, help="Seconds between chunk calls")
    parser.add_argument("--output", help="Results CSV path (default: <csv_path>_results.csv)")
    parser.add_argument("--local", action="store_true", help="Run in this process instead of via the API")

    args = parser.parse_args()
    load_dotenv()

    csv_path = Path(args.csv_path)
    if not csv_path.exists():
        print(f"Error: {csv_path} not found")
        sys.exit(1)

    try:
        records, warnings = read_prospects_csv(csv_path.read_bytes(), ProcessingConfig().max_prospects)
    except BulkJobError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    print(f"Loaded {len(records):,} prospects from {csv_path}")
    for warning in warnings:
        print(f"  Note: {warning}")

    attachment = None
    if args.attachment:
        attachment_path = Path(args.attachment)
        attachment = (attachment_path.name, attachment_path.read_bytes())

    runner = run_local if args.local else run_remote
    try:
        csv_content = asyncio.run(runner(args, records, attachment))
    except (BulkJobError, BulkJobClientError) as e:
        print(f"Job failed: {e}")
        sys.exit(1)

    output = Path(args.output) if args.output else csv_path.with_name(f"{csv_path.stem}_results.csv")
    output.write_text(csv_content, encoding="utf-8")
    print(f"Results written to {output}")


if __name__ == "__main__":
    main()
