import html
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import plotly.graph_objects as go

from .static_figures import get_colors, group_name

logger = logging.getLogger(__name__)


def generate_html_report(
    records: List[Dict[str, Any]],
    output_dir: Path,
    groups: Optional[List[Dict[str, Any]]] = None,
) -> Path:
    """Generate an interactive HTML report using Plotly."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    report_path = output_dir / "report.html"

    figures_html = []
    for fig in (
        _create_category_chart(records),
        _create_group_chart(groups or []),
        _create_neutral_histogram(records),
    ):
        if fig is not None:
            figures_html.append(fig.to_html(full_html=False, include_plotlyjs=False))

    report_path.write_text(_wrap_html(figures_html, records, groups or []), encoding="utf-8")
    logger.info(f"Generated HTML report: {report_path}")
    return report_path


def _create_category_chart(records: List[Dict]) -> Optional[go.Figure]:
    """Donut chart of matches per category."""
    totals: Counter = Counter()
    for record in records:
        totals.update(record.get("counts", {}))
    if not any(totals.values()):
        return None

    fig = go.Figure(
        [
            go.Pie(
                labels=list(totals.keys()),
                values=list(totals.values()),
                hole=0.4,
                marker_colors=get_colors(len(totals)),
            )
        ]
    )
    fig.update_layout(title="Dictionary Matches by Category", height=400)
    return fig


def _create_group_chart(groups: List[Dict]) -> Optional[go.Figure]:
    """Grouped bars of category proportions per group."""
    if not groups:
        return None
    columns = [k for k in groups[0].get("scores", {}) if k.startswith("prop_")]
    if not columns:
        return None

    names = [group_name(g) for g in groups]
    colors = get_colors(len(columns))
    fig = go.Figure(
        [
            go.Bar(
                name=column[5:],
                x=names,
                y=[g["scores"].get(column) for g in groups],
                marker_color=color,
            )
            for column, color in zip(columns, colors)
        ]
    )
    fig.update_layout(
        title="Category Proportions by Group",
        barmode="group",
        xaxis_title="Group",
        yaxis_title="Proportion",
        height=400,
    )
    return fig


def _create_neutral_histogram(records: List[Dict]) -> Optional[go.Figure]:
    values = [
        r["scores"]["neutral"]
        for r in records
        if r.get("scores", {}).get("neutral") is not None
    ]
    if not values:
        return None
    fig = go.Figure([go.Histogram(x=values, marker_color="#2E86AB")])
    fig.update_layout(
        title="Neutral Fraction per Document",
        xaxis_title="Neutral fraction",
        yaxis_title="Documents",
        height=350,
    )
    return fig


def _format_score(value: Any) -> str:
    if value is None:
        return "&mdash;"
    if isinstance(value, float):
        return f"{value:.3f}"
    return html.escape(str(value))


def _group_table(groups: List[Dict]) -> str:
    if not groups:
        return ""
    score_cols = list(groups[0].get("scores", {}))
    header = "".join(f"<th>{html.escape(c)}</th>" for c in ["group", "docs"] + score_cols)
    rows = []
    for g in groups:
        cells = [html.escape(group_name(g)), str(g.get("n_docs", 0))]
        cells += [_format_score(g["scores"].get(c)) for c in score_cols]
        rows.append("<tr>" + "".join(f"<td>{c}</td>" for c in cells) + "</tr>")
    return (
        '<div class="figure-container"><h2>Groups</h2><table>'
        f"<tr>{header}</tr>{''.join(rows)}</table></div>"
    )


def _compute_summary_stats(records: List[Dict]) -> Dict[str, int]:
    return {
        "total_docs": len(records),
        "total_tokens": sum(r.get("n_tokens", 0) for r in records),
        "total_terms": sum(r.get("n_terms", 0) for r in records),
        "matched": sum(sum(r.get("counts", {}).values()) for r in records),
        "empty_docs": sum(1 for r in records if r.get("n_terms", 0) == 0),
    }


def _wrap_html(figures_html: List[str], records: List[Dict], groups: List[Dict]) -> str:
    """Wrap figure HTML in a complete HTML document."""
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    figures_section = "\n".join(
        f'<div class="figure-container">{fig}</div>' for fig in figures_html
    )
    stats = _compute_summary_stats(records)
    cards = "".join(
        f'<div class="stat-card"><div class="stat-value">{value:,}</div>'
        f'<div class="stat-label">{label}</div></div>'
        for label, value in [
            ("Documents", stats["total_docs"]),
            ("Tokens", stats["total_tokens"]),
            ("Terms", stats["total_terms"]),
            ("Dictionary Matches", stats["matched"]),
            ("Empty Documents", stats["empty_docs"]),
        ]
    )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>leximiner Report</title>
    <script src="https://cdn.plot.ly/plotly-2.27.0.min.js"></script>
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            max-width: 1200px;
            margin: 0 auto;
            padding: 20px;
            background: #f5f5f5;
        }}
        h1 {{ color: #2E86AB; border-bottom: 2px solid #2E86AB; padding-bottom: 10px; }}
        .summary, .figure-container {{
            background: white;
            padding: 20px;
            border-radius: 8px;
            margin-bottom: 20px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
        }}
        .summary-grid {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(180px, 1fr));
            gap: 15px;
        }}
        .stat-card {{ background: #f8f9fa; padding: 15px; border-radius: 6px; text-align: center; }}
        .stat-value {{ font-size: 2em; font-weight: bold; color: #2E86AB; }}
        .stat-label {{ color: #666; font-size: 0.9em; }}
        table {{ border-collapse: collapse; width: 100%; }}
        th, td {{ border: 1px solid #ddd; padding: 6px; text-align: left; }}
        th {{ background: #2E86AB; color: white; }}
        .timestamp {{ color: #666; font-size: 0.9em; }}
    </style>
</head>
<body>
    <h1>leximiner Report</h1>
    <p class="timestamp">Generated: {timestamp}</p>

    <div class="summary">
        <h2>Summary Statistics</h2>
        <div class="summary-grid">{cards}</div>
    </div>

    {figures_section}
    {_group_table(groups)}
</body>
</html>"""
