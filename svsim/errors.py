# svsim/errors.py
"""Error kinds raised by the simulator core."""


class SimulationError(Exception):
    """Base class for every error raised by svsim."""


class InvalidQubitIndex(SimulationError, IndexError):
    """A target or control index is outside the register, repeated, or overlaps."""


class NonUnitaryGate(SimulationError, ValueError):
    """A gate matrix fails U^dagger U = I within tolerance."""


class DimensionMismatch(SimulationError, ValueError):
    """Matrix size, target count or register size disagree."""


class NoMarkedState(SimulationError, ValueError):
    """Grover search was asked to amplify an empty set of states."""


class NormalizationDrift(SimulationError, ArithmeticError):
    """The state norm left 1 beyond tolerance after an operation."""


class BackendError(SimulationError, RuntimeError):
    """An acceleration backend failed; the engine recovers on the CPU path."""
