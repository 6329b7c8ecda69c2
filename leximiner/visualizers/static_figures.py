import logging
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def generate_figures(
    records: List[Dict[str, Any]],
    output_dir: Path,
    groups: Optional[List[Dict[str, Any]]] = None,
    dpi: int = 300,
) -> List[Path]:
    """
    Generate static figures with matplotlib.

    records: document records from Pipeline.score
    groups:  optional grouped records from Pipeline.aggregate
    """
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    plt.style.use("seaborn-v0_8-whitegrid")

    figures = [
        ("category_totals", _create_category_totals_figure(records)),
        ("group_proportions", _create_group_proportions_figure(groups or [])),
        ("score_distribution", _create_score_distribution_figure(records)),
    ]

    generated = []
    for name, fig in figures:
        if fig is None:
            continue
        for ext in ["png", "pdf"]:
            path = output_dir / f"{name}.{ext}"
            fig.savefig(path, dpi=dpi, bbox_inches="tight", facecolor="white")
            generated.append(path)
        plt.close(fig)

    logger.info(f"Generated {len(generated)} figure files")
    return generated


def _create_category_totals_figure(records: List[Dict]) -> Any:
    """Bar chart of summed category counts."""
    import matplotlib.pyplot as plt

    totals: Counter = Counter()
    for record in records:
        totals.update(record.get("counts", {}))

    if not totals or not any(totals.values()):
        return None

    categories = list(totals.keys())
    values = [totals[c] for c in categories]

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.bar(range(len(categories)), values, color=get_colors(len(categories)))
    ax.set_xticks(range(len(categories)))
    ax.set_xticklabels(categories, rotation=30, ha="right")
    ax.set_ylabel("Matches")
    ax.set_title("Dictionary Matches by Category")

    for spine in ax.spines.values():
        spine.set_visible(False)

    plt.tight_layout()
    return fig


def group_name(group: Dict[str, Any]) -> str:
    label = group.get("group") or {}
    return " / ".join(str(v) for v in label.values()) or "all"


def _create_group_proportions_figure(groups: List[Dict]) -> Any:
    """Line chart of category proportions across groups (e.g. years)."""
    import matplotlib.pyplot as plt

    if len(groups) < 2:
        return None

    def sort_key(g):
        # None keys (documents missing the grouping field) sort last.
        return [(v is None, str(v)) for v in (g.get("group") or {}).values()]

    groups = sorted(groups, key=sort_key)
    names = [group_name(g) for g in groups]
    columns = [k for k in groups[0].get("scores", {}) if k.startswith("prop_")]
    if not columns:
        return None

    fig, ax = plt.subplots(figsize=(10, 5))
    colors = get_colors(len(columns))
    for column, color in zip(columns, colors):
        # Undefined proportions are plotted as gaps, not zeros.
        values = [
            g["scores"].get(column) if g["scores"].get(column) is not None else float("nan")
            for g in groups
        ]
        ax.plot(range(len(names)), values, marker="o", color=color, label=column[5:])

    ax.set_xticks(range(len(names)))
    ax.set_xticklabels(names, rotation=45, ha="right")
    ax.set_ylabel("Proportion")
    ax.set_title("Category Proportions by Group")
    ax.legend(frameon=False)

    plt.tight_layout()
    return fig


def _create_score_distribution_figure(records: List[Dict]) -> Any:
    """Histograms of the composite and neutral scores across documents."""
    import matplotlib.pyplot as plt

    if not records:
        return None

    columns = [
        k for k in records[0].get("scores", {}) if not k.startswith("prop_")
    ]
    series = {
        c: [r["scores"][c] for r in records if r.get("scores", {}).get(c) is not None]
        for c in columns
    }
    series = {c: v for c, v in series.items() if v}
    if not series:
        return None

    fig, axes = plt.subplots(1, len(series), figsize=(5 * len(series), 4), squeeze=False)
    colors = get_colors(len(series))
    for ax, (column, values), color in zip(axes[0], series.items(), colors):
        ax.hist(values, bins=min(20, max(5, len(values))), color=color, alpha=0.85)
        ax.set_title(column)
        ax.set_xlabel("Score")
        ax.set_ylabel("Documents")

    plt.tight_layout()
    return fig


def get_colors(n: int) -> List[str]:
    base_colors = [
        "#2E86AB",
        "#A23B72",
        "#F18F01",
        "#C73E1D",
        "#3B1F2B",
        "#95C623",
        "#1B998B",
        "#ED217C",
    ]
    return (base_colors * ((n // len(base_colors)) + 1))[:n]
