#!/usr/bin/env python3
"""
Derived Metrics — Week-over-week math, ACoS bands, formatting and wins/alerts.

Pure functions over the records produced by parse_excel.py. Threshold values
default to DEFAULT_THRESHOLDS and can be overridden in config/thresholds.yaml.
"""

from pathlib import Path

import yaml

# Resolve paths relative to project root
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
CONFIG_DIR = PROJECT_ROOT / "config"

DEFAULT_THRESHOLDS = {
    # ACoS colour bands: good < 35%, warning 35-55%, critical > 55%
    "acos_good_below": 0.35,
    "acos_warning_max": 0.55,
    # Wins
    "win_sales_growth": 0.20,
    "win_acos_below": 0.25,
    # Alerts
    "alert_acos_above": 0.70,
    "alert_sales_decline": -0.30,
}

NOT_AVAILABLE = "—"


def load_config(filename: str) -> dict:
    """Load a YAML config file."""
    path = CONFIG_DIR / filename
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_thresholds() -> dict:
    """DEFAULT_THRESHOLDS with any overrides from config/thresholds.yaml."""
    thresholds = dict(DEFAULT_THRESHOLDS)
    overrides = load_config("thresholds.yaml")
    # unknown keys and empty values keep the default
    thresholds.update({
        k: float(v) for k, v in overrides.items()
        if k in DEFAULT_THRESHOLDS and v is not None
    })
    return thresholds


# ── Week-over-week ─────────────────────────────────────────────────────

def wow_pct(current, previous):
    """Week-over-week change as a decimal. None when previous is 0."""
    if previous == 0:
        return None
    return (current - previous) / abs(previous)


def rate_delta(current, previous):
    """Change between two optional rates, in rate points (0.40 -> 0.35 is -0.05)."""
    if current is None or previous is None:
        return None
    return current - previous


def acos_class(acos, thresholds: dict | None = None) -> str:
    t = thresholds or DEFAULT_THRESHOLDS
    if acos is None:
        return "unknown"
    if acos < t["acos_good_below"]:
        return "good"
    if acos <= t["acos_warning_max"]:
        return "warning"
    return "critical"


# ── Formatting ─────────────────────────────────────────────────────────

def fmt_pct(val, decimals: int = 1) -> str:
    """0.44 -> "44.0%"."""
    if val is None:
        return NOT_AVAILABLE
    return f"{val * 100:.{decimals}f}%"


def fmt_dollar(val, decimals: int = 0) -> str:
    """18720 -> "$18,720"."""
    if val < 0:
        return f"-${abs(val):,.{decimals}f}"
    return f"${val:,.{decimals}f}"


def fmt_roas(val) -> str:
    """2.27 -> "2.27x"."""
    if val is None or val == 0:
        return NOT_AVAILABLE
    return f"{val:.2f}x"


def format_number(n) -> str:
    return f"{int(round(n)):,}"


# ── Wins & alerts ──────────────────────────────────────────────────────

def generate_wins_alerts(curr_brands: list[dict], prev_brands: list[dict],
                         thresholds: dict | None = None) -> dict:
    """Rule-based narrative items for the current week's brands.

    Each brand is joined to its previous-week row by name (missing -> $0
    baseline) and checked against every rule, so one brand can produce several
    items. Returns {"wins": [...], "alerts": [...]} with {"brand", "message"} items.
    """
    t = thresholds or DEFAULT_THRESHOLDS
    wins = []
    alerts = []

    prev_map = {b["brand"]: b for b in prev_brands}

    for curr in curr_brands:
        brand = curr["brand"]
        prev = prev_map.get(brand)
        prev_sales = prev["sales"] if prev else 0
        sales_wow = wow_pct(curr["sales"], prev_sales)
        acos = curr["acos"]

        if sales_wow is not None and sales_wow > t["win_sales_growth"]:
            wins.append({
                "brand": brand,
                "message": (f"Sales up {sales_wow * 100:.0f}% WoW "
                            f"({fmt_dollar(prev_sales)} → {fmt_dollar(curr['sales'])})"),
            })

        if acos is not None and 0 < acos < t["win_acos_below"]:
            wins.append({
                "brand": brand,
                "message": f"Efficient ACoS of {acos * 100:.1f}%, ROAS {fmt_roas(curr['roas'])}",
            })

        if acos is not None and acos > t["alert_acos_above"]:
            alerts.append({
                "brand": brand,
                "message": f"ACoS at {acos * 100:.0f}%, review bids in Intentwise",
            })

        if sales_wow is not None and sales_wow < t["alert_sales_decline"]:
            alerts.append({
                "brand": brand,
                "message": (f"Sales down {abs(sales_wow * 100):.0f}% WoW "
                            f"({fmt_dollar(prev_sales)} → {fmt_dollar(curr['sales'])}), investigate"),
            })

        if curr["ad_spend"] > 0 and curr["sales"] == 0:
            alerts.append({
                "brand": brand,
                "message": f"{fmt_dollar(curr['ad_spend'])} ad spend with $0 sales, pause or review campaigns",
            })

    return {"wins": wins, "alerts": alerts}


def build_brand_breakdown(curr_brands: list[dict], prev_brands: list[dict],
                          thresholds: dict | None = None) -> list[dict]:
    """One row per brand seen in either week, sorted by current sales (desc)."""
    t = thresholds or DEFAULT_THRESHOLDS
    curr_map = {b["brand"]: b for b in curr_brands}
    prev_map = {b["brand"]: b for b in prev_brands}

    names = list(dict.fromkeys([b["brand"] for b in curr_brands] + [b["brand"] for b in prev_brands]))

    rows = []
    for name in names:
        curr = curr_map.get(name)
        prev = prev_map.get(name)
        curr_sales = curr["sales"] if curr else 0
        prev_sales = prev["sales"] if prev else 0
        acos = curr["acos"] if curr else None
        flag_acos = acos is not None and acos > t["alert_acos_above"]
        flag_spend = (curr["ad_spend"] if curr else 0) > 0 and curr_sales == 0
        rows.append({
            "name": name,
            "curr": curr,
            "prev": prev,
            "sales_wow": wow_pct(curr_sales, prev_sales),
            "flagged": flag_acos or flag_spend,
        })

    rows.sort(key=lambda r: r["curr"]["sales"] if r["curr"] else 0, reverse=True)
    return rows
