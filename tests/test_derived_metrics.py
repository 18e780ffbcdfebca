"""Tests for scripts/derived_metrics.py WoW math, ACoS bands, formatting and wins/alerts."""

import sys
import tempfile
from pathlib import Path

import pytest
import yaml

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(PROJECT_ROOT / "scripts"))

import derived_metrics
from derived_metrics import (
    CONFIG_DIR,
    DEFAULT_THRESHOLDS,
    acos_class,
    build_brand_breakdown,
    fmt_dollar,
    fmt_pct,
    fmt_roas,
    format_number,
    generate_wins_alerts,
    load_thresholds,
    rate_delta,
    wow_pct,
)
from parse_excel import parse_weekly_rows
from sheet_rows import basic_weekly_grid


def _brand(name, sales=0, ad_spend=0, acos=None, roas=None):
    return {
        "brand": name,
        "sales": sales,
        "units": 0,
        "ordered_items": 0,
        "ad_spend": ad_spend,
        "ad_unit_sales": 0,
        "ad_sales": 0,
        "acos": acos,
        "roas": roas,
        "organic_sales": 0,
    }


# ── Week-over-week ───────────────────────────────────────────────────


def test_wow_pct_basic():
    assert wow_pct(120, 100) == 0.2
    assert wow_pct(50, 100) == -0.5


@pytest.mark.parametrize("current", [0, 1, -5, 1000.5])
def test_wow_pct_zero_previous_is_none(current):
    assert wow_pct(current, 0) is None


def test_wow_pct_uses_absolute_previous():
    assert wow_pct(-50, -100) == 0.5


def test_rate_delta():
    assert rate_delta(0.35, 0.40) == pytest.approx(-0.05)
    assert rate_delta(0.5, 0.25) == pytest.approx(0.25)


def test_rate_delta_none_propagates():
    assert rate_delta(None, 0.4) is None
    assert rate_delta(0.4, None) is None
    assert rate_delta(None, None) is None


# ── ACoS bands ───────────────────────────────────────────────────────


@pytest.mark.parametrize("acos, expected", [
    (0.0, "good"),
    (0.349, "good"),
    (0.35, "warning"),
    (0.45, "warning"),
    (0.55, "warning"),
    (0.551, "critical"),
    (1.2, "critical"),
    (None, "unknown"),
])
def test_acos_class(acos, expected):
    assert acos_class(acos) == expected


def test_acos_class_custom_thresholds():
    thresholds = dict(DEFAULT_THRESHOLDS, acos_good_below=0.2, acos_warning_max=0.3)
    assert acos_class(0.25, thresholds) == "warning"
    assert acos_class(0.31, thresholds) == "critical"


# ── Formatting ───────────────────────────────────────────────────────


def test_fmt_pct():
    assert fmt_pct(0.44) == "44.0%"
    assert fmt_pct(0.4449, decimals=2) == "44.49%"
    assert fmt_pct(None) == "—"


def test_fmt_dollar():
    assert fmt_dollar(18720) == "$18,720"
    assert fmt_dollar(1234.5, decimals=2) == "$1,234.50"
    assert fmt_dollar(-5) == "-$5"
    assert fmt_dollar(0) == "$0"


def test_fmt_roas():
    assert fmt_roas(2.27) == "2.27x"
    assert fmt_roas(None) == "—"
    assert fmt_roas(0) == "—"


def test_format_number():
    assert format_number(1234.6) == "1,235"
    assert format_number(0) == "0"


# ── Wins & alerts ────────────────────────────────────────────────────


def test_sales_growth_produces_single_win():
    result = generate_wins_alerts([_brand("AquaTru", sales=130)], [_brand("AquaTru", sales=100)])
    assert result["alerts"] == []
    assert len(result["wins"]) == 1
    assert result["wins"][0]["brand"] == "AquaTru"
    assert "30%" in result["wins"][0]["message"]
    assert "$100 → $130" in result["wins"][0]["message"]


def test_growth_at_threshold_is_not_a_win():
    result = generate_wins_alerts([_brand("Dash", sales=120)], [_brand("Dash", sales=100)])
    assert result["wins"] == []


def test_high_acos_produces_alert():
    result = generate_wins_alerts([_brand("Dash", sales=100, acos=0.75)], [_brand("Dash", sales=100)])
    assert result["wins"] == []
    assert len(result["alerts"]) == 1
    assert "75%" in result["alerts"][0]["message"]


def test_low_positive_acos_produces_win():
    result = generate_wins_alerts([_brand("Dash", sales=100, acos=0.20, roas=5.0)], [_brand("Dash", sales=100)])
    assert len(result["wins"]) == 1
    assert "20.0%" in result["wins"][0]["message"]
    assert "5.00x" in result["wins"][0]["message"]


def test_zero_or_missing_acos_is_not_a_win():
    curr = [_brand("A", sales=100, acos=0), _brand("B", sales=100, acos=None)]
    prev = [_brand("A", sales=100), _brand("B", sales=100)]
    assert generate_wins_alerts(curr, prev)["wins"] == []


def test_sales_decline_produces_alert():
    result = generate_wins_alerts([_brand("Dash", sales=60)], [_brand("Dash", sales=100)])
    assert len(result["alerts"]) == 1
    assert "down 40%" in result["alerts"][0]["message"]


def test_spend_without_sales_produces_alert():
    result = generate_wins_alerts([_brand("NuWave", sales=0, ad_spend=25)], [])
    assert len(result["alerts"]) == 1
    assert "$25 ad spend with $0 sales" in result["alerts"][0]["message"]


def test_missing_previous_brand_is_zero_baseline():
    result = generate_wins_alerts([_brand("New", sales=500)], [_brand("Other", sales=100)])
    assert result == {"wins": [], "alerts": []}


def test_rules_fire_independently_in_fixed_order():
    curr = [
        _brand("A", sales=200, acos=0.1),
        _brand("B", sales=0, ad_spend=10, acos=0.9),
    ]
    prev = [_brand("A", sales=100), _brand("B", sales=100)]
    result = generate_wins_alerts(curr, prev)
    assert [w["brand"] for w in result["wins"]] == ["A", "A"]
    assert "Sales up" in result["wins"][0]["message"]
    assert "Efficient ACoS" in result["wins"][1]["message"]
    assert [a["brand"] for a in result["alerts"]] == ["B", "B", "B"]
    assert "ACoS at 90%" in result["alerts"][0]["message"]
    assert "Sales down" in result["alerts"][1]["message"]
    assert "ad spend with $0 sales" in result["alerts"][2]["message"]


def test_wins_alerts_from_parsed_sheet():
    data = parse_weekly_rows(basic_weekly_grid())
    result = generate_wins_alerts(data["current_week"]["brands"], data["previous_week"]["brands"])
    assert [w["brand"] for w in result["wins"]] == ["AquaTru"]
    assert [a["brand"] for a in result["alerts"]] == ["Dash", "NuWave"]


# ── Brand breakdown ──────────────────────────────────────────────────


def test_brand_breakdown_union_sorted_by_current_sales():
    curr = [_brand("A", sales=50), _brand("B", sales=300)]
    prev = [_brand("A", sales=40), _brand("Gone", sales=999)]
    rows = build_brand_breakdown(curr, prev)
    assert [r["name"] for r in rows] == ["B", "A", "Gone"]
    assert rows[2]["curr"] is None
    assert rows[1]["sales_wow"] == pytest.approx(0.25)
    assert rows[0]["sales_wow"] is None


def test_brand_breakdown_flags():
    curr = [_brand("HighAcos", sales=10, acos=0.8), _brand("NoSales", ad_spend=5), _brand("Fine", sales=5, acos=0.3)]
    rows = {r["name"]: r for r in build_brand_breakdown(curr, [])}
    assert rows["HighAcos"]["flagged"] is True
    assert rows["NoSales"]["flagged"] is True
    assert rows["Fine"]["flagged"] is False


# ── Threshold config ─────────────────────────────────────────────────


def test_thresholds_yaml_keys_are_known():
    with open(CONFIG_DIR / "thresholds.yaml") as f:
        config = yaml.safe_load(f)
    unknown = set(config) - set(DEFAULT_THRESHOLDS)
    assert not unknown, f"Unknown keys in thresholds.yaml: {unknown}"


def test_thresholds_yaml_matches_defaults():
    assert load_thresholds() == DEFAULT_THRESHOLDS


def test_thresholds_yaml_overrides_merge_over_defaults():
    original = derived_metrics.CONFIG_DIR
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "thresholds.yaml").write_text(
            "alert_acos_above: 0.8\n"
            "win_sales_growth: '0.1'\n"
            "acos_good_below:\n"
            "not_a_threshold: 5\n"
        )
        derived_metrics.CONFIG_DIR = Path(tmpdir)
        try:
            thresholds = load_thresholds()
        finally:
            derived_metrics.CONFIG_DIR = original
    assert thresholds["alert_acos_above"] == 0.8
    assert thresholds["win_sales_growth"] == 0.1
    assert thresholds["acos_good_below"] == DEFAULT_THRESHOLDS["acos_good_below"]
    assert "not_a_threshold" not in thresholds
    assert set(thresholds) == set(DEFAULT_THRESHOLDS)


def test_alert_message_points_to_bid_tool():
    result = generate_wins_alerts([_brand("Dash", sales=100, acos=0.9)], [_brand("Dash", sales=100)])
    assert result["alerts"][0]["message"] == "ACoS at 90%, review bids in Intentwise"
