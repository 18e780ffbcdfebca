#!/usr/bin/env python3
"""Walmart Weekly Performance Report — Runner Script

One-command execution: find the workbook, archive the last report, generate a
new one, and check that every report section made it into the HTML.
"""

import os
import sys
import shutil
import subprocess
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT / "scripts"))

from parse_excel import DATA_DIR, LEGACY_FILENAME, PREFERRED_FILENAME, get_data_file_path  # noqa: E402

# ── Paths ──────────────────────────────────────────────────────────────
OUTPUT_DIR = ROOT / "output"
ARCHIVE_DIR = OUTPUT_DIR / "archive"
GENERATOR = OUTPUT_DIR / "generate_weekly_report.py"
REPORT = OUTPUT_DIR / "weekly-report.html"

# Section headings the generator always writes, even for an empty week
REQUIRED_SECTIONS = {
    "scorecard": "Weekly Scorecard",
    "sales trend": "Weekly Sales Trend",
    "brand breakdown": "Brand Breakdown",
    "SEM campaigns": "SEM Campaigns",
    "wins & alerts": "Wins &amp; Alerts",
}


def banner(title):
    print("=" * 60)
    print(title)
    print("=" * 60)


def print_indented(text):
    for line in text.strip().splitlines():
        print(f"  {line}")


def validate(data_dir=None):
    """Resolve the workbook the generator will read. Exits 1 if it is missing."""
    banner("STEP 1: Validate inputs")
    data_dir = Path(data_dir) if data_dir is not None else DATA_DIR
    data_file = get_data_file_path(data_dir)

    if not data_file.is_file():
        print(f"  FAIL  Workbook: NOT FOUND (looked for {PREFERRED_FILENAME} "
              f"and {LEGACY_FILENAME} in {data_dir})")
        print("\nAborted: no workbook to report on.")
        sys.exit(1)

    size_kb = data_file.stat().st_size / 1024
    which = "latest export" if data_file.name == PREFERRED_FILENAME else "legacy export"
    print(f"  OK  Workbook: {data_file.name} ({which}, {size_kb:.0f} KB)\n")
    return data_file


def archive(report=None, archive_dir=None):
    """Copy the existing report into archive/, stamped with the time it was generated.

    Returns the archive path, or None when there is no previous report.
    """
    banner("STEP 2: Archive previous report")
    report = Path(report) if report is not None else REPORT
    archive_dir = Path(archive_dir) if archive_dir is not None else ARCHIVE_DIR

    if not report.is_file():
        print("  No existing report to archive.\n")
        return None

    generated = datetime.fromtimestamp(report.stat().st_mtime)
    archive_dir.mkdir(parents=True, exist_ok=True)
    dest = archive_dir / f"{report.stem}_{generated:%Y-%m-%d_%H%M%S}.html"
    shutil.copy2(report, dest)
    print(f"  Archived: {dest.name}\n")
    return dest


def generate(data_file, report=None):
    """Run the HTML generator on data_file. Exits 1 if it fails."""
    banner("STEP 3: Generate new report")
    report = Path(report) if report is not None else REPORT
    result = subprocess.run(
        [sys.executable, str(GENERATOR), "--data-file", str(data_file), "--output", str(report)],
        capture_output=True,
        text=True,
    )
    if result.stdout:
        print_indented(result.stdout)
    if result.returncode != 0:
        print(f"\n  ERROR: Generator exited with code {result.returncode}")
        if result.stderr:
            print_indented(result.stderr)
        sys.exit(1)
    print()


def missing_sections(html: str) -> list[str]:
    return [name for name, marker in REQUIRED_SECTIONS.items() if marker not in html]


def verify(report=None):
    """Check the report exists and contains every required section. Exits 1 otherwise."""
    banner("STEP 4: Verify output")
    report = Path(report) if report is not None else REPORT
    if not report.is_file():
        print(f"  FAIL: Report not found at {report}")
        sys.exit(1)

    html = report.read_text(encoding="utf-8")
    missing = missing_sections(html)
    for name in REQUIRED_SECTIONS:
        print(f"  {'FAIL' if name in missing else 'OK  '}  Section: {name}")
    if missing:
        print(f"\n  FAIL: Report is missing {len(missing)} section(s): {', '.join(missing)}")
        sys.exit(1)

    print(f"  OK  Report: {report} ({len(html) / 1024:.0f} KB)\n")


def summary(data_file):
    banner("DONE")
    print(f"  Workbook: {data_file}")
    print(f"  Report:   {REPORT}")
    if ARCHIVE_DIR.is_dir():
        print(f"  Archive:  {len(os.listdir(ARCHIVE_DIR))} previous report(s)")


if __name__ == "__main__":
    data_file = validate()
    archive()
    generate(data_file)
    verify()
    summary(data_file)
