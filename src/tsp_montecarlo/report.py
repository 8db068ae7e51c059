"""Summaries, result files and plots of a simulation."""
from __future__ import annotations

import json
import logging
import math
import os
from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.figure import Figure

from .stats import StatCollector

logger = logging.getLogger(__name__)


def summary_record(stat: StatCollector, level: float) -> Dict[str, float]:
    half = stat.confidence_interval_half_width(level) if stat.count >= 2 else math.nan
    history = stat.history
    return {
        'runs': stat.count,
        'mean': stat.mean,
        'std': stat.standard_deviation,
        'min': min(history) if history else math.nan,
        'max': max(history) if history else math.nan,
        'level': level,
        'half_width': half,
        'ci_low': stat.mean - half,
        'ci_high': stat.mean + half,
    }


def json_record(stat: StatCollector, level: float) -> Dict[str, Optional[float]]:
    """summary_record with NaN replaced by None."""
    return {k: (None if isinstance(v, float) and math.isnan(v) else v)
            for k, v in summary_record(stat, level).items()}


def summarize(stat: StatCollector, level: float) -> pd.DataFrame:
    """One-row DataFrame with the simulation statistics."""
    return pd.DataFrame([summary_record(stat, level)])


def observations_frame(stat: StatCollector) -> pd.DataFrame:
    """Per-run observations with the running mean (needs keep_history=True)."""
    history = stat.history
    if history is None:
        raise ValueError("StatCollector was created without keep_history=True")
    df = pd.DataFrame({'run': np.arange(1, len(history) + 1), 'length': history})
    df['running_mean'] = df['length'].expanding().mean()
    return df


def write_results(stat: StatCollector, level: float, out_dir: str) -> Dict[str, str]:
    """Write trials.csv (when history is kept), summary.csv and summary.json to out_dir."""
    os.makedirs(out_dir, exist_ok=True)
    paths = {}
    if stat.history is not None:
        paths['trials'] = os.path.join(out_dir, 'trials.csv')
        observations_frame(stat).to_csv(paths['trials'], index=False)
    paths['summary_csv'] = os.path.join(out_dir, 'summary.csv')
    summarize(stat, level).to_csv(paths['summary_csv'], index=False)
    paths['summary'] = os.path.join(out_dir, 'summary.json')
    record = json_record(stat, level)
    with open(paths['summary'], 'w') as f:
        json.dump(record, f, indent=2)
    logger.info("Results written to %s", out_dir)
    return paths


def plot_convergence(observations: Sequence[float], level: float, path: str,
                     title: Optional[str] = None) -> str:
    """Plot the running mean of the observations with its confidence band."""
    collector = StatCollector()
    means, halves = [], []
    for value in observations:
        collector.add(value)
        means.append(collector.mean)
        halves.append(collector.confidence_interval_half_width(level) if collector.count >= 2 else np.nan)
    runs = np.arange(1, len(means) + 1)
    means = np.array(means)
    halves = np.array(halves)

    fig = Figure(figsize=(10, 6))
    FigureCanvasAgg(fig)
    ax = fig.add_subplot()
    ax.scatter(runs, observations, s=8, alpha=0.4, color='gray', label='Tour length')
    ax.plot(runs, means, color='blue', label='Running mean')
    ax.fill_between(runs, means - halves, means + halves, color='blue', alpha=0.2,
                    label=f'{level:.0%} C.I.')
    ax.set_xlabel('Number of runs')
    ax.set_ylabel('Tour length')
    ax.set_title(title or 'Monte Carlo estimate of the tour length')
    ax.legend()
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    fig.savefig(path, dpi=150, bbox_inches='tight')
    logger.info("Convergence plot saved to %s", path)
    return path
