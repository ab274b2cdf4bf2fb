# src/axebatch/analysis/charts.py
import base64
import io
from typing import Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import seaborn as sns

from ..utils.config_manager import get_config_manager
from ..utils.logging_config import get_logger
from .summary import ExecutiveSummary

config_manager = get_config_manager()
logger = get_logger("exporters", config_manager.get_logging_config()["components"]["exporters"])


def _apply_style() -> None:
    plt.style.use('seaborn-v0_8-whitegrid')
    sns.set_style("whitegrid")
    plt.rcParams['font.family'] = 'sans-serif'
    plt.rcParams['font.sans-serif'] = ['Arial', 'Helvetica', 'DejaVu Sans']
    plt.rcParams['axes.titlesize'] = 14
    plt.rcParams['legend.fontsize'] = 9


def severity_donut(summary: ExecutiveSummary) -> Optional[str]:
    """
    Donut chart of affected elements per impact, as a base64 PNG.

    Returns None when there is nothing to plot.
    """
    items = [(impact, count) for impact, count in summary.severity_items if count > 0]
    if not items:
        return None

    _apply_style()
    sizes = [count for _, count in items]
    total = sum(sizes)
    fig, ax = plt.subplots(figsize=(6, 4.5))
    try:
        wedges, _, autotexts = ax.pie(
            sizes,
            autopct=lambda pct: f"{pct:.1f}%" if pct > 2 else '',
            startangle=90,
            wedgeprops={'width': 0.4, 'edgecolor': 'w', 'linewidth': 1},
            colors=[impact.style.hex for impact, _ in items],
            pctdistance=0.8,
        )
        for text in autotexts:
            text.set_color('white')
            text.set_fontweight('bold')
            text.set_fontsize(8)

        ax.text(0, 0, f"{total}\nAffected\nElements", ha='center', va='center', fontsize=11, fontweight='bold')
        ax.legend(
            wedges,
            [f"{impact.value.capitalize()} ({count})" for impact, count in items],
            title="Impact Level",
            loc="center left",
            bbox_to_anchor=(1, 0, 0.5, 1),
        )
        ax.set_title('Affected Elements by Impact Level')
        ax.axis('equal')

        buffer = io.BytesIO()
        fig.savefig(buffer, format="png", dpi=120, bbox_inches='tight')
    finally:
        plt.close(fig)

    logger.debug(f"Severity chart rendered ({total} elements)")
    return base64.b64encode(buffer.getvalue()).decode("ascii")
