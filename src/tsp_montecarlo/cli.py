"""Monte Carlo estimation of heuristic TSP tour lengths over random city samples.

Each run samples the cities of a data set around a depot, builds a tour with
the Nearest Neighbor From Both Ends heuristic, improves it with 2-Opt-Best
and records its length.

Modes:
 - fixed       --runs N trials (default)
 - sequential  --precision H runs until the confidence interval half width < H

CLI examples:
    tsp-montecarlo --file resources/att532.dat --runs 10
    tsp-montecarlo --file resources/att532.dat --precision 50 --level 0.95 --out-dir results --plot
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from typing import List, Optional

import numpy as np

from .config import SimulationConfig
from .data import load_tsp_data
from .errors import TspError
from .experiment import TspExperiment
from .montecarlo import run_fixed, run_until_precision
from .report import json_record, plot_convergence, write_results
from .stats import StatCollector

defaults = SimulationConfig()


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Monte Carlo estimation of NND + 2-Opt-Best tour lengths")
    ap.add_argument('--file', default=defaults.file, help='City data file (<n> then <city number> <x> <y> records)')
    ap.add_argument('--depot', type=int, default=defaults.depot, help='Index of the depot city (always sampled)')
    ap.add_argument('--sampling-prob', type=float, default=defaults.sampling_prob,
                    help='Probability of selecting each non-depot city')
    ap.add_argument('--seed', type=int, default=defaults.seed)
    ap.add_argument('--runs', type=int, default=defaults.runs, help='Number of runs in fixed mode')
    ap.add_argument('--precision', type=float, help='Target C.I. half width; switches to sequential mode')
    ap.add_argument('--level', type=float, default=defaults.level, help='Confidence level')
    ap.add_argument('--initial-runs', type=int, default=defaults.initial_runs)
    ap.add_argument('--batch-size', type=int, default=defaults.batch_size,
                    help='Additional runs performed while the C.I. is too wide')
    ap.add_argument('--max-runs', type=int, help='Hard cap on the number of runs in sequential mode')
    ap.add_argument('--no-improve', dest='improve', action='store_false', help='Skip 2-Opt-Best')
    ap.add_argument('--lazy', dest='dense', action='store_const', const=False, default=None,
                    help='Recompute distances instead of precomputing the distance table')
    ap.add_argument('--max-table-cities', type=int, help='Use lazy distances above this number of cities')
    ap.add_argument('--out-dir', help='Write trials.csv and summary.json here')
    ap.add_argument('--plot', action='store_true', help='Save a convergence plot in --out-dir')
    ap.add_argument('--json', action='store_true', help='Emit the summary as JSON on stdout')
    ap.add_argument('-v', '--verbose', action='store_true')
    return ap


def simulate(config: SimulationConfig) -> StatCollector:
    """Run the simulation described by ``config`` and return its statistics."""
    data = load_tsp_data(config.file, dense=config.dense, max_table_cities=config.max_table_cities)
    experiment = TspExperiment(data, config.depot, config.sampling_prob, improve=config.improve)
    stat = StatCollector(keep_history=bool(config.out_dir))
    rng = np.random.default_rng(config.seed)
    if config.sequential:
        run_until_precision(experiment, config.level, config.precision, config.initial_runs,
                            config.batch_size, rng, stat, max_runs=config.max_runs)
    else:
        run_fixed(experiment, config.runs, rng, stat)
    return stat


def print_report(stat: StatCollector, level: float) -> None:
    print("**********************\n  Simulation results\n**********************")
    print(f"Nb of runs : {stat.count}")
    print(f"Mean : {stat.mean:.2f}")
    if stat.count >= 2:
        print(f"C.I. : {stat.mean:.2f} +/- {stat.confidence_interval_half_width(level):.2f}")
    else:
        print("[warn] C.I. needs at least 2 runs")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    try:
        config = SimulationConfig.from_args(args).validate()
        start_t = time.time()
        stat = simulate(config)
        runtime = time.time() - start_t
    except (TspError, OSError) as e:
        print(f"[error] {e}", file=sys.stderr)
        return 1

    if config.json:
        record = json_record(stat, config.level)
        record['runtime'] = runtime
        print(json.dumps(record))
    else:
        print_report(stat, config.level)
        print(f"[info] {runtime:.2f}s")

    if config.out_dir:
        paths = write_results(stat, config.level, config.out_dir)
        if config.plot:
            paths['plot'] = plot_convergence(stat.history, config.level,
                                             os.path.join(config.out_dir, 'convergence.png'))
        if not config.json:
            for path in paths.values():
                print(f"✓ {path}")
    return 0


if __name__ == '__main__':  # pragma: no cover
    sys.exit(main())
