#!/usr/bin/env python3
"""
Prospect CSV Test Data Generator for the Bulk Outreach Generator

Writes a prospect list using the same column headers the results export uses,
so the file can be fed straight to /bulk/start or scripts/run_bulk_job.py.

Usage:
    python scripts/generate_test_data.py [number_of_entries] [output_filename] [--missing-percent N]

Examples:
    python scripts/generate_test_data.py 100                          # 100 prospects
    python scripts/generate_test_data.py 25 chunk_demo.csv            # 25 prospects, custom name
    python scripts/generate_test_data.py 500 --missing-percent 10     # 10% rows lack a website
"""

import csv
import random
import sys
import os
from pathlib import Path

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
from bulk_outreach.csv_processor import EXPORT_COLUMNS

FIRST_NAMES = [
    "James", "Mary", "John", "Patricia", "Robert", "Jennifer", "Michael", "Linda",
    "William", "Elizabeth", "David", "Barbara", "Richard", "Susan", "Joseph", "Jessica",
    "Thomas", "Sarah", "Christopher", "Karen", "Daniel", "Lisa", "Matthew", "Amy",
    "Anthony", "Helen", "Mark", "Sandra", "Steven", "Carol", "Paul", "Ruth",
    "Andrew", "Sharon", "Joshua", "Michelle", "Kevin", "Laura", "Brian", "Kimberly",
    "Priya", "Wei", "Sofia", "Mateo", "Aisha", "Kenji", "Fatima", "Lars",
]

LAST_NAMES = [
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis",
    "Rodriguez", "Martinez", "Hernandez", "Lopez", "Gonzalez", "Wilson", "Anderson", "Thomas",
    "Taylor", "Moore", "Jackson", "Martin", "Lee", "Perez", "Thompson", "White",
    "Harris", "Sanchez", "Clark", "Ramirez", "Lewis", "Robinson", "Walker", "Young",
    "Patel", "Chen", "Nakamura", "Okafor", "Larsen", "Novak", "Kowalski", "Singh",
]

COMPANY_PREFIXES = [
    "Tech", "Digital", "Smart", "Cloud", "Data", "Cyber", "Quantum", "Global",
    "Advanced", "Future", "Dynamic", "Strategic", "Precision", "Velocity", "Apex", "Nexus",
    "Pinnacle", "Summit", "Vertex", "Core", "Prime", "Edge", "Spark", "Bridge",
]

COMPANY_SUFFIXES = [
    "Solutions", "Technologies", "Systems", "Labs", "Group", "Analytics",
    "Consulting", "Partners", "Ventures", "Networks", "Platforms", "Studios",
]

JOB_TITLES = [
    "CEO", "CTO", "VP of Sales", "Head of Marketing", "Director of Operations",
    "Founder", "Head of Growth", "VP Engineering", "Chief Revenue Officer",
    "Marketing Manager", "Sales Director", "COO",
]

LOCATIONS = [
    ("San Francisco", "USA"), ("New York", "USA"), ("Austin", "USA"),
    ("London", "UK"), ("Manchester", "UK"), ("Berlin", "Germany"),
    ("Toronto", "Canada"), ("Sydney", "Australia"), ("Amsterdam", "Netherlands"),
    ("Bangalore", "India"), ("Singapore", "Singapore"), ("", ""),
]


def generate_name():
    """Generate a random (first, last) name pair"""
    return random.choice(FIRST_NAMES), random.choice(LAST_NAMES)


def generate_company():
    """Generate a random company name"""
    patterns = [
        lambda: f"{random.choice(COMPANY_PREFIXES)} {random.choice(COMPANY_SUFFIXES)}",
        lambda: f"{random.choice(LAST_NAMES)} {random.choice(COMPANY_SUFFIXES)}",
        lambda: f"{random.choice(COMPANY_PREFIXES)}{random.choice(COMPANY_PREFIXES).lower()}",
    ]
    return random.choice(patterns)()


def company_slug(company):
    return "".join(ch for ch in company.lower() if ch.isalnum())


def generate_linkedin_url(first, last):
    """Generate a plausible LinkedIn profile URL for a person"""
    base = f"{first}{last}".lower()
    variations = [
        base,
        f"{first}-{last}".lower(),
        base + str(random.randint(1, 999)),
        f"{first[0]}{last}".lower(),
    ]
    return f"https://linkedin.com/in/{random.choice(variations)}"


def generate_row(missing_percent=0):
    """One prospect row keyed by export header"""
    first, last = generate_name()
    company = generate_company()
    slug = company_slug(company)
    city, country = random.choice(LOCATIONS)

    row = {
        "first_name": first,
        "last_name": last,
        "email": f"{first.lower()}.{last.lower()}@{slug}.com",
        "job_title": random.choice(JOB_TITLES),
        "company_name": company,
        "website": f"https://www.{slug}.com",
        "linkedin_url": generate_linkedin_url(first, last),
        "company_linkedin_url": f"https://linkedin.com/company/{slug}",
        "city": city,
        "country": country,
    }
    # Exercise the per-row failure path
    if random.random() < missing_percent / 100.0:
        row["website"] = ""
    return {EXPORT_COLUMNS[field]: value for field, value in row.items()}


def generate_test_csv(filename, num_entries=100, missing_percent=0):
    """Generate a prospect CSV under uploads/"""
    print(f"Generating {num_entries:,} fake prospects...")

    uploads_dir = Path("uploads")
    uploads_dir.mkdir(exist_ok=True)

    filepath = uploads_dir / filename

    with open(filepath, 'w', newline='', encoding='utf-8') as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=list(EXPORT_COLUMNS.values()))
        writer.writeheader()

        progress_interval = max(1, num_entries // 20)
        missing = 0

        for i in range(num_entries):
            row = generate_row(missing_percent)
            if not row[EXPORT_COLUMNS["website"]]:
                missing += 1
            writer.writerow(row)

            if (i + 1) % progress_interval == 0:
                progress = ((i + 1) / num_entries) * 100
                print(f"Progress: {i + 1:,}/{num_entries:,} entries ({progress:.1f}%)")

    file_size = filepath.stat().st_size
    file_size_mb = file_size / (1024 * 1024)

    print(f"Successfully generated {filepath}")
    print(f"File size: {file_size_mb:.2f} MB ({file_size:,} bytes)")
    print(f"Total entries: {num_entries:,} + header = {num_entries + 1:,} lines")
    print(f"Rows without a website: {missing:,}")

    return str(filepath)


def main():
    """Main function to handle command-line arguments"""
    default_entries = 100
    missing_percent = 0

    args = sys.argv[1:]

    missing_index = None
    for i, arg in enumerate(args):
        if arg.startswith('--missing-percent'):
            if '=' in arg:
                try:
                    missing_percent = int(arg.split('=')[1])
                    args.remove(arg)
                except (ValueError, IndexError):
                    print("Error: --missing-percent must be followed by a valid integer (0-100)")
                    print_usage()
                    sys.exit(1)
            else:
                missing_index = i
            break

    if missing_index is not None:
        try:
            missing_percent = int(args[missing_index + 1])
            args.pop(missing_index + 1)
            args.pop(missing_index)
        except (IndexError, ValueError):
            print("Error: --missing-percent must be followed by a valid integer (0-100)")
            print_usage()
            sys.exit(1)

    if not 0 <= missing_percent <= 100:
        print("Error: Missing percentage must be between 0 and 100")
        sys.exit(1)

    if len(args) == 0:
        num_entries = default_entries
        filename = f"prospects_{num_entries}.csv"
    elif len(args) in (1, 2):
        try:
            num_entries = int(args[0])
        except ValueError:
            print("Error: Number of entries must be a valid integer")
            print_usage()
            sys.exit(1)
        filename = args[1] if len(args) == 2 else f"prospects_{num_entries}.csv"
        if not filename.endswith('.csv'):
            filename += '.csv'
    else:
        print("Error: Too many arguments")
        print_usage()
        sys.exit(1)

    if num_entries <= 0:
        print("Error: Number of entries must be positive")
        sys.exit(1)

    print(f"Target: {num_entries:,} entries -> uploads/{filename}")
    generate_test_csv(filename, num_entries, missing_percent)

    print("\nChunk calls needed per CHUNK_SIZE:")
    for chunk_size in [5, 10, 25, 50]:
        chunks = (num_entries + chunk_size - 1) // chunk_size
        print(f"   CHUNK_SIZE={chunk_size:3d} -> {chunks:4d} calls")


def print_usage():
    """Print usage information"""
    print("""
Usage: python scripts/generate_test_data.py [number_of_entries] [output_filename] [--missing-percent N]

Arguments:
    number_of_entries    Number of prospects to generate (default: 100)
    output_filename      Output filename (default: prospects_[number].csv)
    --missing-percent N  Percentage of rows written without a website (0-100, default: 0)
    """)


if __name__ == "__main__":
    main()
