"""Exceptions raised by the engine."""


class GameError(Exception):
    """Base class for engine errors."""


class InvariantViolation(GameError):
    """Programmer error: internal state reached an impossible configuration."""


class UnknownEffectError(GameError, ValueError):
    """Catalogue content referenced an effect or condition tag that does not exist."""


class ReplayError(GameError):
    """A recorded action was rejected while replaying a run."""
