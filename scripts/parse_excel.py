#!/usr/bin/env python3
"""
Workbook Parser — Fixed-layout extraction of the weekly Walmart export.

Reads two sheets from the weekly workbook and turns them into plain dict records:
- Weekly reporting sheet -> week summary rows with nested per-brand rows
- SEM campaigns sheet    -> week summary rows with nested per-campaign rows

The sheets are maintained by hand, so columns are read by position (see
WEEKLY_COLUMNS / SEM_COLUMNS) and every cell goes through safe_num / safe_rate.
Brand and campaign rows sit above the week summary row that totals them; a row
whose label cell contains "week" closes the group collected so far.

Usage:
    python scripts/parse_excel.py                      # summarize data/latest.xlsx
    python scripts/parse_excel.py path/to/file.xlsx    # summarize a specific workbook
    python scripts/parse_excel.py --json               # dump parsed records as JSON
"""

import argparse
import json
import re
import sys
from io import BytesIO
from pathlib import Path

import numpy as np
import pandas as pd

# Resolve paths relative to project root
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
DATA_DIR = PROJECT_ROOT / "data"

# Prefer latest.xlsx; fall back to the legacy export filename
PREFERRED_FILENAME = "latest.xlsx"
LEGACY_FILENAME = "Ideal_Living___Walmart_Sales_and_Advertising.xlsx"

WEEKLY_SHEET = "WALMART_weekly_reporting_2026-B"
SEM_SHEET = "SEM Campaigns Data 2026"

# Rows 0-10 are title/header rows; data starts after the header at row 10
DATA_START_ROW = 11

CURRENT_WEEK_LABEL = "Current Week"
PREVIOUS_WEEK_LABEL = "Previous Week"
WEEK_MARKER = "week"

# Weekly sheet has an extra col[4] ("Average Sales Price by Brand") that shifts
# every later column one to the right compared to the SEM sheet.
WEEKLY_COLUMNS = {
    "label": 1,          # DATE / week label
    "brand": 2,          # BRAND
    "sales": 3,          # SALES
    "units": 5,          # UNITS SOLD
    "ordered_items": 6,  # ORDERED ITEMS
    "ad_spend": 10,      # SP AD SPEND
    "ad_unit_sales": 12,  # UNIT SALES
    "ad_sales": 13,      # AD SALES
    "acos": 14,          # ACoS
    "roas": 15,          # ROAS
    "organic_sales": 18,  # ORGANIC SALES
}

SEM_COLUMNS = {
    "label": 1,
    "campaign": 2,       # Campaign Name
    "ad_spend": 9,       # SP AD SPEND
    "impressions": 10,   # IMPRESSIONS
    "ad_sales": 12,      # AD SALES
    "acos": 13,          # ACoS
    "roas": 14,          # ROAS
}

# "Dielon - AquaTru - Highly Recommended" -> "AquaTru - Highly Recommended"
SEM_CAMPAIGN_PREFIX = re.compile(r"^Dielon\s*-\s*", re.IGNORECASE)

# Leading decimal number of a string cell, e.g. "12.5 units" -> 12.5
NUMERIC_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class ReportDataError(Exception):
    """The workbook cannot produce a report."""


class MissingSheetError(ReportDataError):
    def __init__(self, sheet_name: str):
        super().__init__(f'Sheet "{sheet_name}" not found in Excel file')
        self.sheet_name = sheet_name


class MissingRequiredWeek(ReportDataError):
    def __init__(self, label: str):
        super().__init__(f'Could not find "{label}" in Excel data')
        self.label = label


# ─────────────────────────────────────────────
# CELL COERCION
# ─────────────────────────────────────────────

def safe_num(val):
    """Coerce a raw cell to a finite number. Anything unusable becomes 0.

    Error markers (#DIV/0!, #REF!), blanks and the stray "to" label found in
    the export all count as 0.
    """
    if isinstance(val, (bool, np.bool_)):
        return 0
    if isinstance(val, (int, float, np.integer, np.floating)):
        if not np.isfinite(val):
            return 0
        return val.item() if isinstance(val, np.generic) else val
    if val is None:
        return 0
    if isinstance(val, str):
        if "#" in val or val.strip() == "" or val.strip().lower() == "to":
            return 0
        match = NUMERIC_PREFIX.match(val)
        if not match:
            return 0
        n = float(match.group(0))
        return n if np.isfinite(n) else 0
    return 0


def safe_rate(val):
    """Coerce a rate cell (ACoS, ROAS). Error markers mean "not applicable" -> None."""
    if isinstance(val, str) and "#" in val:
        return None
    if val is None:
        return None
    return safe_num(val)


def _cell(row, index):
    return row[index] if index < len(row) else None


def _week_label(row, columns) -> str | None:
    label = _cell(row, columns["label"])
    if isinstance(label, str) and WEEK_MARKER in label.lower():
        return label.strip()
    return None


def _group_name(row, column: int) -> str | None:
    name = _cell(row, column)
    if isinstance(name, str) and name.strip() != "":
        return name.strip()
    return None


# ─────────────────────────────────────────────
# WEEKLY REPORTING SHEET
# ─────────────────────────────────────────────

def build_brand_record(row, brand: str) -> dict:
    c = WEEKLY_COLUMNS
    return {
        "brand": brand,
        "sales": safe_num(_cell(row, c["sales"])),
        "units": safe_num(_cell(row, c["units"])),
        "ordered_items": safe_num(_cell(row, c["ordered_items"])),
        "ad_spend": safe_num(_cell(row, c["ad_spend"])),
        "ad_unit_sales": safe_num(_cell(row, c["ad_unit_sales"])),
        "ad_sales": safe_num(_cell(row, c["ad_sales"])),
        "acos": safe_rate(_cell(row, c["acos"])),
        "roas": safe_rate(_cell(row, c["roas"])),
        "organic_sales": safe_num(_cell(row, c["organic_sales"])),
    }


def build_week_record(row, label: str, brands: list[dict]) -> dict:
    c = WEEKLY_COLUMNS
    return {
        "label": label,
        "sales": safe_num(_cell(row, c["sales"])),
        "units": safe_num(_cell(row, c["units"])),
        "ordered_items": safe_num(_cell(row, c["ordered_items"])),
        "ad_spend": safe_num(_cell(row, c["ad_spend"])),
        "ad_sales": safe_num(_cell(row, c["ad_sales"])),
        "acos": safe_rate(_cell(row, c["acos"])),
        "roas": safe_rate(_cell(row, c["roas"])),
        "organic_sales": safe_num(_cell(row, c["organic_sales"])),
        "brands": brands,
    }


def parse_weekly_rows(rows) -> dict:
    """Scan the weekly reporting grid into week records.

    Returns:
        {
            "weeks": [week, ...],          # every week summary row, sheet order
            "current_week": week,          # label == "Current Week"
            "previous_week": week,         # label == "Previous Week"
        }

    Raises MissingRequiredWeek when either reserved week row is absent.
    """
    weeks = []
    pending_brands = []

    for row in rows[DATA_START_ROW:]:
        if not isinstance(row, (list, tuple)):
            continue

        label = _week_label(row, WEEKLY_COLUMNS)
        if label is not None:
            weeks.append(build_week_record(row, label, pending_brands))
            pending_brands = []
            continue

        brand = _group_name(row, WEEKLY_COLUMNS["brand"])
        if brand is not None:
            pending_brands.append(build_brand_record(row, brand))

    # Brands after the last week row have no totals row and are dropped
    current_week = next((w for w in weeks if w["label"] == CURRENT_WEEK_LABEL), None)
    previous_week = next((w for w in weeks if w["label"] == PREVIOUS_WEEK_LABEL), None)

    if current_week is None:
        raise MissingRequiredWeek(CURRENT_WEEK_LABEL)
    if previous_week is None:
        raise MissingRequiredWeek(PREVIOUS_WEEK_LABEL)

    return {"weeks": weeks, "current_week": current_week, "previous_week": previous_week}


# ─────────────────────────────────────────────
# SEM CAMPAIGNS SHEET
# ─────────────────────────────────────────────

def campaign_display_name(campaign: str) -> str:
    return SEM_CAMPAIGN_PREFIX.sub("", campaign)


def build_campaign_record(row, campaign: str) -> dict:
    c = SEM_COLUMNS
    return {
        "campaign": campaign,
        "display_name": campaign_display_name(campaign),
        "ad_spend": safe_num(_cell(row, c["ad_spend"])),
        "ad_sales": safe_num(_cell(row, c["ad_sales"])),
        "acos": safe_rate(_cell(row, c["acos"])),
        "roas": safe_rate(_cell(row, c["roas"])),
        "impressions": safe_num(_cell(row, c["impressions"])),
    }


def build_sem_week_record(row, label: str, campaigns: list[dict]) -> dict:
    c = SEM_COLUMNS
    return {
        "label": label,
        "ad_spend": safe_num(_cell(row, c["ad_spend"])),
        "ad_sales": safe_num(_cell(row, c["ad_sales"])),
        "acos": safe_rate(_cell(row, c["acos"])),
        "roas": safe_rate(_cell(row, c["roas"])),
        "impressions": safe_num(_cell(row, c["impressions"])),
        "campaigns": campaigns,
    }


def empty_sem_week(label: str) -> dict:
    """Placeholder used when the SEM sheet or one of its week rows is missing."""
    return {
        "label": label,
        "ad_spend": 0,
        "ad_sales": 0,
        "acos": None,
        "roas": None,
        "impressions": 0,
        "campaigns": [],
    }


def empty_sem_data() -> dict:
    return {
        "weeks": [],
        "current_week": empty_sem_week(CURRENT_WEEK_LABEL),
        "previous_week": empty_sem_week(PREVIOUS_WEEK_LABEL),
    }


def parse_sem_rows(rows) -> dict:
    """Scan the SEM campaigns grid. Same shape as parse_weekly_rows, but a
    missing "Current Week" / "Previous Week" row falls back to empty_sem_week
    instead of raising: SEM data is optional for the report."""
    weeks = []
    pending_campaigns = []

    for row in rows[DATA_START_ROW:]:
        if not isinstance(row, (list, tuple)):
            continue

        label = _week_label(row, SEM_COLUMNS)
        if label is not None:
            weeks.append(build_sem_week_record(row, label, pending_campaigns))
            pending_campaigns = []
            continue

        campaign = _group_name(row, SEM_COLUMNS["campaign"])
        if campaign is not None:
            pending_campaigns.append(build_campaign_record(row, campaign))

    current_week = next((w for w in weeks if w["label"] == CURRENT_WEEK_LABEL), None)
    previous_week = next((w for w in weeks if w["label"] == PREVIOUS_WEEK_LABEL), None)

    return {
        "weeks": weeks,
        "current_week": current_week or empty_sem_week(CURRENT_WEEK_LABEL),
        "previous_week": previous_week or empty_sem_week(PREVIOUS_WEEK_LABEL),
    }


# ─────────────────────────────────────────────
# WORKBOOK LOADING
# ─────────────────────────────────────────────

def get_data_file_path(data_dir: Path | None = None) -> Path:
    """Return data/latest.xlsx if present, otherwise the legacy export path."""
    data_dir = Path(data_dir) if data_dir is not None else DATA_DIR
    latest = data_dir / PREFERRED_FILENAME
    if latest.exists():
        return latest
    return data_dir / LEGACY_FILENAME


def sheet_to_rows(df: pd.DataFrame) -> list[list]:
    """Convert a header-less sheet DataFrame to row lists, empty cells as None."""
    frame = df.astype(object).where(df.notna(), None)
    return frame.values.tolist()


def read_sheet_rows(path: Path, sheet_name: str) -> list[list] | None:
    """Read one sheet as a grid of raw cells. Returns None if the sheet is absent.

    The file is read into memory and closed before pandas parses it.
    """
    with open(path, "rb") as fh:
        buffer = BytesIO(fh.read())

    with pd.ExcelFile(buffer, engine="openpyxl") as workbook:
        if sheet_name not in workbook.sheet_names:
            return None
        # only truly empty cells are missing; text such as "NA" stays a string
        df = workbook.parse(sheet_name, header=None, keep_default_na=False, na_values=[""])

    return sheet_to_rows(df)


def parse_dashboard_data(path: Path | None = None) -> dict:
    """Parse the weekly reporting sheet. Missing sheet or week rows raise."""
    path = Path(path) if path is not None else get_data_file_path()
    rows = read_sheet_rows(path, WEEKLY_SHEET)
    if rows is None:
        raise MissingSheetError(WEEKLY_SHEET)
    return parse_weekly_rows(rows)


def parse_sem_data(path: Path | None = None) -> dict:
    """Parse the SEM campaigns sheet. A missing sheet yields empty placeholders."""
    path = Path(path) if path is not None else get_data_file_path()
    rows = read_sheet_rows(path, SEM_SHEET)
    if rows is None:
        return empty_sem_data()
    return parse_sem_rows(rows)


def main():
    parser = argparse.ArgumentParser(description="Parse the weekly Walmart sales workbook")
    parser.add_argument("file", nargs="?", help="Workbook to parse (default: data/latest.xlsx or legacy file)")
    parser.add_argument("--json", action="store_true", help="Output parsed records as JSON")
    args = parser.parse_args()

    path = Path(args.file).resolve() if args.file else get_data_file_path()

    try:
        dashboard = parse_dashboard_data(path)
    except (FileNotFoundError, ReportDataError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    sem = parse_sem_data(path)

    if args.json:
        print(json.dumps({"dashboard": dashboard, "sem": sem}, indent=2))
        return

    print(f"Workbook: {path.name}")
    print(f"  Weeks: {len(dashboard['weeks'])}")
    for week in dashboard["weeks"]:
        print(f"    {week['label']}: sales={week['sales']:,.2f}, brands={len(week['brands'])}")
    print(f"  SEM campaigns (current week): {len(sem['current_week']['campaigns'])}")


if __name__ == "__main__":
    main()
