#!/usr/bin/env python3
"""Walmart Weekly Performance Report — Dashboard Generator

Renders the parsed weekly workbook into a single static HTML page:
scorecard, weekly trend, brand breakdown, SEM campaigns, wins & alerts,
campaign notes.

Usage:
    python output/generate_weekly_report.py
    python output/generate_weekly_report.py --data-file data/latest.xlsx --output /tmp/report.html
"""

import argparse
import sys
from datetime import datetime
from html import escape
from pathlib import Path

# ── Paths ──────────────────────────────────────────────────────────────
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent
OUTPUT = PROJECT_ROOT / "output"
HTML_OUT = OUTPUT / "weekly-report.html"

sys.path.insert(0, str(PROJECT_ROOT / "scripts"))

from derived_metrics import (  # noqa: E402
    NOT_AVAILABLE,
    acos_class,
    build_brand_breakdown,
    fmt_dollar,
    fmt_pct,
    fmt_roas,
    format_number,
    generate_wins_alerts,
    load_config,
    load_thresholds,
    rate_delta,
    wow_pct,
)
from parse_excel import (  # noqa: E402
    CURRENT_WEEK_LABEL,
    PREVIOUS_WEEK_LABEL,
    ReportDataError,
    get_data_file_path,
    parse_dashboard_data,
    parse_sem_data,
)

# ── Constants ──────────────────────────────────────────────────────────
ACOS_CSS = {"good": "pos", "warning": "warn", "critical": "neg", "unknown": "muted"}
TOP_COLORS = {"pos": "#22C55E", "neg": "#EF4444", "warn": "#F59E0B", "muted": "#374151"}

CSS = """
*, *::before, *::after { box-sizing: border-box; margin:0; padding:0; }
:root {
  --bg: #0A0F1C; --card: #111827; --card2: #0f172a; --border: #1e293b;
  --blue: #3b82f6; --green: #22C55E; --red: #EF4444; --orange: #F59E0B; --yellow: #FFC220;
  --text: #E8EDF5; --muted: #94a3b8; --white: #fff;
}
body { font-family: 'DM Sans', sans-serif; background: var(--bg); color: var(--text); min-height: 100vh; }
.content { padding: 40px 24px; max-width: 1100px; margin: 0 auto; }
.header { display: flex; justify-content: space-between; gap: 16px; padding-bottom: 24px; margin-bottom: 40px; border-bottom: 1px solid var(--border); }
.header h1 { font-size: 1.5rem; font-weight: 700; color: var(--white); }
.header .subtitle { color: var(--muted); font-size: 0.85rem; }
.header .meta { text-align: right; font-family: 'DM Mono', monospace; font-size: 0.75rem; color: var(--muted); }
.badge { display: inline-block; margin-top: 8px; padding: 4px 10px; border-radius: 4px; font-size: 0.7rem;
  font-family: 'DM Mono', monospace; color: var(--blue); background: rgba(59,130,246,0.1); border: 1px solid rgba(59,130,246,0.3); }
.section-title { font-size: 0.7rem; font-weight: 700; text-transform: uppercase; letter-spacing: 1.5px; color: var(--yellow); margin: 36px 0 16px; }
.grid { display: grid; gap: 12px; }
.g2 { grid-template-columns: repeat(2, 1fr); }
.g4 { grid-template-columns: repeat(4, 1fr); }
.card { background: var(--card); border: 1px solid var(--border); border-radius: 8px; padding: 16px; }
.card h3 { font-size: 0.65rem; font-weight: 500; text-transform: uppercase; letter-spacing: 0.8px; color: var(--muted); margin-bottom: 8px; }
.card .big { font-family: 'DM Mono', monospace; font-size: 1.4rem; font-weight: 700; color: var(--white); }
.card .wow { font-family: 'DM Mono', monospace; font-size: 0.7rem; margin-top: 6px; }
.card .sub { font-family: 'DM Mono', monospace; font-size: 0.65rem; color: var(--muted); margin-top: 2px; }
.table-wrap { overflow-x: auto; border-radius: 8px; border: 1px solid var(--border); background: var(--card); }
table { width: 100%; border-collapse: collapse; font-size: 0.75rem; font-family: 'DM Mono', monospace; }
th { text-align: right; padding: 10px 14px; border-bottom: 1px solid var(--border); color: var(--muted); background: var(--card2);
  font-weight: 600; font-size: 0.7rem; text-transform: uppercase; letter-spacing: 0.8px; white-space: nowrap; }
td { text-align: right; padding: 10px 14px; border-bottom: 1px solid var(--border); white-space: nowrap; }
th:first-child, td:first-child { text-align: left; font-family: 'DM Sans', sans-serif; }
tr.current td { background: rgba(59,130,246,0.1); color: #bfdbfe; font-weight: 600; }
tr.previous td { background: rgba(255,255,255,0.02); }
.pos { color: var(--green); } .neg { color: var(--red); } .warn { color: var(--orange); } .muted { color: var(--muted); }
.callout { padding: 20px; border-radius: 8px; background: var(--card); border: 1px solid var(--border); border-left: 3px solid; }
.callout.green { border-left-color: var(--green); }
.callout.red { border-left-color: var(--red); }
.callout.blue { border-left-color: var(--blue); }
.callout h4 { font-size: 0.7rem; font-weight: 700; text-transform: uppercase; letter-spacing: 0.8px; margin-bottom: 16px; }
.callout ul { list-style: none; }
.callout li { font-size: 0.8rem; line-height: 1.6; margin-bottom: 10px; color: #C8D5E8; }
.callout li strong { color: var(--white); }
.footer { margin-top: 48px; padding-top: 20px; border-top: 1px solid var(--border); display: flex; justify-content: space-between;
  font-family: 'DM Mono', monospace; font-size: 0.7rem; color: var(--muted); }
@media (max-width: 900px) { .g4 { grid-template-columns: repeat(2, 1fr); } }
@media (max-width: 640px) { .g2, .g4 { grid-template-columns: 1fr; } .header { flex-direction: column; } .header .meta { text-align: left; } }
"""


# ── WoW arrows ─────────────────────────────────────────────────────────

def wow_arrow(pct, invert_good: bool = False) -> dict:
    """Arrow, signed label and colour class for a WoW change.

    invert_good flips the colour for metrics where lower is better (ad spend).
    """
    if pct is None:
        return {"symbol": NOT_AVAILABLE, "label": "N/A", "cls": "muted"}
    up = pct >= 0
    good = not up if invert_good else up
    return {
        "symbol": "↑" if up else "↓",
        "label": f"{'+' if up else ''}{pct * 100:.1f}%",
        "cls": "pos" if good else "neg",
    }


def acos_wow_arrow(current, previous) -> dict:
    # ACoS going up is bad; a flat ACoS still counts as good
    delta = rate_delta(current, previous)
    if delta is None:
        return {"symbol": NOT_AVAILABLE, "label": NOT_AVAILABLE, "cls": "muted"}
    pct_change = delta / previous if previous != 0 else None
    label = f"{'+' if delta >= 0 else ''}{pct_change * 100:.1f}%" if pct_change is not None else NOT_AVAILABLE
    return {
        "symbol": "↑" if delta >= 0 else "↓",
        "label": label,
        "cls": "pos" if delta <= 0 else "warn",
    }


# ── Sections ───────────────────────────────────────────────────────────

# (label, field, formatter, higher_is_better)
SCORECARD_FIELDS = [
    ("Total Sales", "sales", fmt_dollar, True),
    ("Total Orders", "ordered_items", format_number, True),
    ("Units Sold", "units", format_number, True),
    ("Ad Sales", "ad_sales", fmt_dollar, True),
    ("Ad Spend", "ad_spend", fmt_dollar, False),
    ("ACoS", "acos", fmt_pct, False),
    ("ROAS", "roas", fmt_roas, True),
    ("Organic Sales", "organic_sales", fmt_dollar, True),
]


def build_scorecards(curr: dict, prev: dict, thresholds: dict) -> list[dict]:
    cards = []
    for label, field, fmt, higher_is_better in SCORECARD_FIELDS:
        if field == "acos":
            wow = acos_wow_arrow(curr["acos"], prev["acos"])
            top = TOP_COLORS[ACOS_CSS[acos_class(curr["acos"], thresholds)]]
        else:
            value, prev_value = curr[field] or 0, prev[field] or 0
            wow = wow_arrow(wow_pct(value, prev_value), invert_good=not higher_is_better)
            improved = value >= prev_value if higher_is_better else value <= prev_value
            top = TOP_COLORS["pos" if improved else "neg"]
        cards.append({
            "label": label,
            "value": fmt(curr[field]),
            "prev": fmt(prev[field]),
            "wow": wow,
            "top": top,
        })
    return cards


def render_scorecards(cards: list[dict]) -> str:
    parts = []
    for c in cards:
        wow = c["wow"]
        parts.append(f'''<div class="card" style="border-top:2px solid {c['top']};">
  <h3>{escape(c['label'])}</h3>
  <div class="big">{escape(c['value'])}</div>
  <div class="wow {wow['cls']}">{wow['symbol']} {escape(wow['label'])} WoW</div>
  <div class="sub">Prev: {escape(c['prev'])}</div>
</div>''')
    return '<div class="grid g4">\n' + "\n".join(parts) + "\n</div>"


def render_trend_table(weeks: list[dict], thresholds: dict) -> str:
    rows = []
    for week in weeks:
        label = week["label"]
        if label == CURRENT_WEEK_LABEL:
            row_cls, shown = "current", "▶ Current Week"
        elif label == PREVIOUS_WEEK_LABEL:
            row_cls, shown = "previous", label
        else:
            row_cls, shown = "", label
        acos_cls = ACOS_CSS[acos_class(week["acos"], thresholds)]
        rows.append(f'''<tr class="{row_cls}">
  <td>{escape(shown)}</td>
  <td>{fmt_dollar(week['sales'])}</td>
  <td>{format_number(week['units'])}</td>
  <td>{fmt_dollar(week['ad_spend'])}</td>
  <td>{fmt_dollar(week['ad_sales'])}</td>
  <td class="{acos_cls}">{fmt_pct(week['acos'])}</td>
  <td>{fmt_roas(week['roas'])}</td>
  <td>{fmt_dollar(week['organic_sales'])}</td>
</tr>''')
    header = ("<tr><th>Week</th><th>Total Sales</th><th>Units</th><th>Ad Spend</th>"
              "<th>Ad Sales</th><th>ACoS</th><th>ROAS</th><th>Organic Sales</th></tr>")
    return f'<div class="table-wrap"><table><thead>{header}</thead><tbody>\n' + "\n".join(rows) + "\n</tbody></table></div>"


def render_brand_table(breakdown: list[dict], thresholds: dict) -> str:
    rows = []
    for r in breakdown:
        curr = r["curr"] or {}
        prev = r["prev"] or {}
        wow = wow_arrow(r["sales_wow"])
        wow_text = NOT_AVAILABLE if r["sales_wow"] is None else f"{wow['symbol']} {abs(r['sales_wow'] * 100):.0f}%"
        acos = curr.get("acos")
        acos_text = fmt_pct(acos) if acos is not None and acos > 0 else NOT_AVAILABLE
        ad_sales = curr.get("ad_sales", 0)
        flag = '<span class="warn" title="Needs attention">⚠️</span> ' if r["flagged"] else ""
        rows.append(f'''<tr>
  <td>{flag}{escape(r['name'])}</td>
  <td>{fmt_dollar(curr.get('sales', 0))}</td>
  <td class="muted">{fmt_dollar(prev.get('sales', 0))}</td>
  <td class="{wow['cls']}">{wow_text}</td>
  <td>{format_number(curr.get('units', 0))}</td>
  <td>{fmt_dollar(curr.get('ad_spend', 0))}</td>
  <td>{fmt_dollar(ad_sales) if ad_sales else NOT_AVAILABLE}</td>
  <td class="{ACOS_CSS[acos_class(acos, thresholds)]}">{acos_text}</td>
  <td>{fmt_roas(curr.get('roas'))}</td>
  <td>{fmt_dollar(curr.get('organic_sales', 0))}</td>
</tr>''')
    header = ("<tr><th>Brand</th><th>Curr Sales</th><th>Prev Sales</th><th>WoW Δ%</th><th>Units</th>"
              "<th>Ad Spend</th><th>Ad Sales</th><th>ACoS</th><th>ROAS</th><th>Organic</th></tr>")
    return f'<div class="table-wrap"><table><thead>{header}</thead><tbody>\n' + "\n".join(rows) + "\n</tbody></table></div>"


def render_sem_table(sem: dict, thresholds: dict) -> str:
    curr_week = sem["current_week"]
    prev_week = sem["previous_week"]
    if not curr_week["campaigns"] and not prev_week["campaigns"]:
        return '<div class="card"><div class="sub">No SEM campaign data for this week.</div></div>'

    prev_map = {c["campaign"]: c for c in prev_week["campaigns"]}
    rows = []
    for c in curr_week["campaigns"] + [curr_week]:
        is_total = c is curr_week
        name = "Total SEM" if is_total else c["display_name"]
        prev = prev_week if is_total else prev_map.get(c["campaign"], {})
        wow = wow_arrow(wow_pct(c["ad_sales"], prev.get("ad_sales", 0)))
        rows.append(f'''<tr class="{'current' if is_total else ''}">
  <td>{escape(name)}</td>
  <td>{format_number(c['impressions'])}</td>
  <td>{fmt_dollar(c['ad_spend'])}</td>
  <td>{fmt_dollar(c['ad_sales'])}</td>
  <td class="muted">{fmt_dollar(prev.get('ad_sales', 0))}</td>
  <td class="{wow['cls']}">{wow['symbol']} {escape(wow['label'])}</td>
  <td class="{ACOS_CSS[acos_class(c['acos'], thresholds)]}">{fmt_pct(c['acos'])}</td>
  <td>{fmt_roas(c['roas'])}</td>
</tr>''')
    header = ("<tr><th>Campaign</th><th>Impressions</th><th>Ad Spend</th><th>Ad Sales</th>"
              "<th>Prev Ad Sales</th><th>WoW</th><th>ACoS</th><th>ROAS</th></tr>")
    return f'<div class="table-wrap"><table><thead>{header}</thead><tbody>\n' + "\n".join(rows) + "\n</tbody></table></div>"


def render_items(items: list[dict], empty_text: str) -> str:
    if not items:
        return f'<p class="muted">{escape(empty_text)}</p>'
    lis = "\n".join(f"<li><strong>{escape(i['brand'])}</strong> · {escape(i['message'])}</li>" for i in items)
    return f"<ul>\n{lis}\n</ul>"


def render_wins_alerts(wins_alerts: dict) -> str:
    return f'''<div class="grid g2">
<div class="callout green"><h4 class="pos">🟢 Wins This Week</h4>
{render_items(wins_alerts['wins'], 'No wins detected this week.')}
</div>
<div class="callout red"><h4 class="neg">🔴 Watch / Action Required</h4>
{render_items(wins_alerts['alerts'], 'No alerts detected this week.')}
</div>
</div>'''


def render_notes(notes: list[str]) -> str:
    lis = "\n".join(f"<li>{escape(str(n))}</li>" for n in notes)
    return f'<div class="callout blue"><h4 style="color:var(--blue);">Actions Taken</h4>\n<ul>\n{lis}\n</ul>\n</div>'


def build_html(dashboard: dict, sem: dict, settings: dict | None = None,
               thresholds: dict | None = None, generated: datetime | None = None) -> str:
    settings = settings or {}
    thresholds = thresholds or load_thresholds()
    generated = generated or datetime.now()
    today = generated.strftime("%b %-d, %Y")

    curr = dashboard["current_week"]
    prev = dashboard["previous_week"]

    title = settings.get("title", "Weekly Performance Report")
    subtitle = settings.get("subtitle", "")
    badge = settings.get("data_badge", "")
    notes = settings.get("campaign_notes") or []
    sources = settings.get("footer_sources", "")

    scorecards = render_scorecards(build_scorecards(curr, prev, thresholds))
    trend = render_trend_table(dashboard["weeks"], thresholds)
    brands = render_brand_table(build_brand_breakdown(curr["brands"], prev["brands"], thresholds), thresholds)
    sem_table = render_sem_table(sem, thresholds)
    wins_alerts = render_wins_alerts(generate_wins_alerts(curr["brands"], prev["brands"], thresholds))
    notes_html = (f'<div class="section-title">⚙️ Campaign Activity This Week</div>\n{render_notes(notes)}'
                  if notes else "")

    return f'''<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{escape(title)} · Weekly Performance Report</title>
<link href="https://fonts.googleapis.com/css2?family=DM+Sans:wght@300;400;500;700&family=DM+Mono:wght@400;500&display=swap" rel="stylesheet">
<style>{CSS}</style>
</head>
<body>
<div class="content">

<div class="header">
  <div>
    <h1>★ {escape(title)}</h1>
    <div class="subtitle">{escape(subtitle)}</div>
    {f'<div class="badge">⚡ {escape(badge)}</div>' if badge else ''}
  </div>
  <div class="meta">
    <div style="color:var(--text);font-weight:600;">Current Week Report</div>
    <div>Generated: {today}</div>
    <div>PPC + SEM Combined</div>
  </div>
</div>

<div class="section-title">📊 Weekly Scorecard · Current vs. Previous Week</div>
{scorecards}

<div class="section-title">📈 Weekly Sales Trend (All Brands Combined)</div>
{trend}

<div class="section-title">🏷️ Brand Breakdown · Current Week vs. Previous Week</div>
{brands}

<div class="section-title">🔎 SEM Campaigns · Current Week</div>
{sem_table}

<div class="section-title">🔍 Wins &amp; Alerts</div>
{wins_alerts}

{notes_html}

<div class="footer">
  <span>{escape(title)} · Walmart Ads Report · Generated {today}</span>
  <span>Sources: {escape(sources)}</span>
</div>

</div>
</body>
</html>'''


def main():
    parser = argparse.ArgumentParser(description="Generate the weekly Walmart performance report")
    parser.add_argument("--data-file", type=str, help="Workbook to read (default: data/latest.xlsx or legacy file)")
    parser.add_argument("--output", type=str, help=f"HTML output path (default: {HTML_OUT})")
    args = parser.parse_args()

    data_file = Path(args.data_file).resolve() if args.data_file else get_data_file_path()
    html_out = Path(args.output).resolve() if args.output else HTML_OUT

    print("Loading data...")
    print(f"  Workbook: {data_file.name}")
    try:
        dashboard = parse_dashboard_data(data_file)
    except (FileNotFoundError, ReportDataError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    sem = parse_sem_data(data_file)
    print(f"  Weeks: {len(dashboard['weeks'])}, "
          f"brands (current): {len(dashboard['current_week']['brands'])}, "
          f"SEM campaigns (current): {len(sem['current_week']['campaigns'])}")

    print("Generating HTML...")
    html = build_html(dashboard, sem, settings=load_config("report.yaml"), thresholds=load_thresholds())

    html_out.parent.mkdir(parents=True, exist_ok=True)
    with open(html_out, "w", encoding="utf-8") as f:
        f.write(html)

    print(f"\nHTML report saved to: {html_out}")
    print(f"File size: {len(html)/1024:.0f} KB")
    print("Done!")


if __name__ == "__main__":
    main()
