from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def plot_counts(
    *,
    counts: Dict[str, int],
    out_png: str | Path,
    title: str = "Records",
    ylabel: str = "Record count",
) -> None:
    """Bar chart of named counters (e.g. kept / discarded / skipped)."""
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    labels = [k.replace("_", " ") for k in counts]
    values = [int(v) for v in counts.values()]

    plt.figure()
    plt.bar(labels, values)
    plt.ylabel(ylabel)
    plt.title(title)
    plt.xticks(rotation=20, ha="right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_gap_hist(
    *,
    bin_edges: List[int],
    counts: List[int],
    out_png: str | Path,
    title: str = "Gap to previous variant",
) -> None:
    """Plot the binned same-chromosome gaps seen by the proximity filter.

    Bins are irregular, so bars are drawn at equal width and labelled by range.
    """
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    if len(bin_edges) != len(counts) + 1:
        raise ValueError("gap histogram must contain bin_edges of length len(counts)+1")

    labels = []
    for i in range(len(counts)):
        lo, hi = int(bin_edges[i]), int(bin_edges[i + 1]) - 1
        labels.append(str(lo) if lo == hi else f"{lo}..{hi}")

    plt.figure()
    plt.bar(range(len(counts)), counts)
    plt.xlabel("start(b) - max end so far (bp)")
    plt.ylabel("Pair count")
    plt.title(title)
    plt.xticks(range(len(counts)), labels, rotation=45, ha="right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_hrun_hist(
    *,
    hrun_hist: Dict[int, int],
    out_png: str | Path,
    title: str = "Homopolymer run length",
    max_bin: int = 20,
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    # Collapse tail into max_bin+
    xs = list(range(0, max_bin + 1))
    ys = [0] * len(xs)
    tail = 0
    for k, v in hrun_hist.items():
        k = int(k)
        if k <= max_bin:
            ys[k] += int(v)
        else:
            tail += int(v)

    xticklabels = [str(x) for x in range(0, max_bin + 1)]
    if tail > 0:
        xs.append(max_bin + 1)
        ys.append(tail)
        xticklabels.append(f"{max_bin + 1}+")

    plt.figure()
    plt.bar(range(len(xs)), ys)
    plt.xlabel("HRun (bp)")
    plt.ylabel("Indel count")
    plt.title(title)
    plt.xticks(range(len(xs)), xticklabels, rotation=0)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
