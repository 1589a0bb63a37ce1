"""Chart generation for monthly sponsor snapshots."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import matplotlib.pyplot as plt
from matplotlib.ticker import MaxNLocator

from sponsor_report.models.sponsorship import SponsorSnapshot

plt.switch_backend("Agg")

logger = logging.getLogger(__name__)

INCOME_CHART = "estimated_income_dollar.svg"
SPONSORS_CHART = "sponsors_count.svg"

# 1024x800 px at 100 dpi
FIGSIZE = (10.24, 8.0)
DPI = 100
CONTINUOUS_COLOR = "#4C78A8"
NEW_COLOR = "#F58518"


def render_charts(items: Sequence[SponsorSnapshot], img_dir: Path) -> list[Path]:
    img_dir = Path(img_dir)
    img_dir.mkdir(parents=True, exist_ok=True)
    paths = [
        income_chart(items, img_dir / INCOME_CHART),
        sponsors_chart(items, img_dir / SPONSORS_CHART),
    ]
    logger.info("Rendered charts", extra={"files": [path.name for path in paths]})
    return paths


def income_chart(items: Sequence[SponsorSnapshot], output_path: Path) -> Path:
    months = [item.month for item in items]
    income = [item.estimated_income_dollar for item in items]

    fig, ax = plt.subplots(figsize=FIGSIZE)
    ax.bar(months, income, color=CONTINUOUS_COLOR)
    ax.set_xlabel("month")
    ax.set_ylabel("estimatedIncomeDollar")
    ax.set_title("Estimated Income Dollar")
    ax.yaxis.set_major_locator(MaxNLocator(integer=True))
    fig.autofmt_xdate(rotation=90)

    fig.tight_layout()
    fig.savefig(output_path, format="svg", dpi=DPI)
    plt.close(fig)
    return output_path


def sponsors_chart(items: Sequence[SponsorSnapshot], output_path: Path) -> Path:
    """Stacked bars: continuing sponsors at the bottom, new sponsors on top."""

    months = [item.month for item in items]
    continuous = [item.sponsor_count - item.new_sponsors_count for item in items]
    new = [item.new_sponsors_count for item in items]

    fig, ax = plt.subplots(figsize=FIGSIZE)
    ax.bar(months, continuous, color=CONTINUOUS_COLOR, label="continuous_sponsors")
    ax.bar(months, new, bottom=continuous, color=NEW_COLOR, label="new_sponsors")
    ax.set_xlabel("month")
    ax.set_ylabel("sponsor_count")
    ax.set_title("Sponsors count")
    ax.yaxis.set_major_locator(MaxNLocator(integer=True))
    ax.legend(title="type")
    fig.autofmt_xdate(rotation=90)

    fig.tight_layout()
    fig.savefig(output_path, format="svg", dpi=DPI)
    plt.close(fig)
    return output_path
