"""Simulation settings shared by the command line and programmatic runs."""
from __future__ import annotations

import argparse
from dataclasses import dataclass, fields
from typing import Optional

from .errors import InvalidArgumentError


@dataclass
class SimulationConfig:
    file: str = 'resources/att532.dat'
    depot: int = 0
    sampling_prob: float = 0.6
    seed: int = 20200525
    runs: int = 10                    # fixed mode
    precision: Optional[float] = None  # max half width; enables sequential mode
    level: float = 0.95
    initial_runs: int = 10
    batch_size: int = 10
    max_runs: Optional[int] = None
    improve: bool = True
    dense: Optional[bool] = None      # None: table when memory allows
    max_table_cities: Optional[int] = None
    out_dir: Optional[str] = None
    plot: bool = False
    json: bool = False
    verbose: bool = False

    @property
    def sequential(self) -> bool:
        return self.precision is not None

    def validate(self) -> 'SimulationConfig':
        if self.depot < 0:
            raise InvalidArgumentError(f"Depot index should be non negative (got {self.depot}).")
        if not 0.0 <= self.sampling_prob <= 1.0:
            raise InvalidArgumentError(f"Sampling probability should be between 0 and 1 (got {self.sampling_prob}).")
        if not 0.0 < self.level < 1.0:
            raise InvalidArgumentError(f"Confidence level should be strictly between 0 and 1 (got {self.level}).")
        if self.sequential:
            if self.precision <= 0:
                raise InvalidArgumentError(f"Precision should be positive (got {self.precision}).")
            if self.initial_runs < 2:
                raise InvalidArgumentError(f"At least 2 initial runs are needed (got {self.initial_runs}).")
            if self.batch_size < 1:
                raise InvalidArgumentError(f"Batch size should be at least 1 (got {self.batch_size}).")
            if self.max_runs is not None and self.max_runs < self.initial_runs:
                raise InvalidArgumentError("max_runs should not be smaller than initial_runs.")
        elif self.runs < 1:
            raise InvalidArgumentError(f"Number of runs should be at least 1 (got {self.runs}).")
        if self.plot and not self.out_dir:
            raise InvalidArgumentError("--plot requires --out-dir.")
        return self

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> 'SimulationConfig':
        values = {f.name: getattr(args, f.name) for f in fields(cls) if hasattr(args, f.name)}
        return cls(**values)
