"""Exceptions raised by the simulation core."""


class SimulationError(Exception):
    """Base class for errors raised by the simulation core."""


class PreconditionError(SimulationError, ValueError):
    """A call was made with arguments or in a state the caller must never produce.

    These are programming errors: striker or bowler unset, an empty bowling
    pool, a bowler from the batting side. They are never corrected silently.
    """


class MatchDataError(SimulationError):
    """Roster data cannot support the match, e.g. no batter left to walk in."""
