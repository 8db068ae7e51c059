"""Error types raised by the TSP Monte Carlo package.

 - TspParsingError       malformed city data (fatal to that load)
 - OutOfRangeError       city index, tour position or depot out of bounds
 - InvalidArgumentError  probabilities, confidence levels or run counts out of range
 - InsufficientDataError confidence interval requested with fewer than 2 observations
"""


class TspError(Exception):
    """Base class of every error raised by this package."""


class TspParsingError(TspError, ValueError):
    pass


class OutOfRangeError(TspError, IndexError):
    pass


class InvalidArgumentError(TspError, ValueError):
    pass


class InsufficientDataError(TspError, RuntimeError):
    pass
