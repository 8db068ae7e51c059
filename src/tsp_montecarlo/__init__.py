"""Monte Carlo estimation of near-optimal TSP tour lengths."""
from .data import DistanceTable, LazyDistances, TspData, build_oracle, load_tsp_data, parse_tsp_data
from .errors import (InsufficientDataError, InvalidArgumentError, OutOfRangeError, TspError,
                     TspParsingError)
from .experiment import TspExperiment
from .montecarlo import run_fixed, run_until_precision
from .sampling import SampledData
from .stats import StatCollector
from .tour import End, Exchange, Tour, choose_end

__version__ = '1.0.0'
