# svsim/measure.py
"""
Born-rule sampling.

Measurement is non-destructive unless collapse is asked for explicitly: the
simulator is used for statistics over one prepared state, so sampling leaves
the amplitudes alone.
"""
from collections import Counter
from typing import Dict, NamedTuple, Optional
import numpy as np

from .errors import InvalidQubitIndex, NormalizationDrift
from .state import State


class Outcome(NamedTuple):
    index: int
    probability: float
    bits: str  # qubit n-1 first, like |q_{n-1} ... q_0>


def bitstring(index: int, n: int) -> str:
    return format(index, f"0{n}b")


def _rng(rng) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


def probabilities(state: State) -> np.ndarray:
    p = np.abs(state.psi) ** 2
    return p.astype(np.float64)


def _distribution(state: State) -> np.ndarray:
    p = probabilities(state)
    # absorb float rounding so Generator.choice accepts p
    return p / p.sum()


def sample(state: State, rng: Optional[np.random.Generator] = None) -> int:
    """Draw one basis index with probability |psi[i]|^2."""
    return int(_rng(rng).choice(state.dim, p=_distribution(state)))


def sample_counts(state: State, shots: int, rng: Optional[np.random.Generator] = None) -> Dict[str, int]:
    if shots < 1:
        raise ValueError(f"shots must be >= 1, got {shots}")
    draws = _rng(rng).choice(state.dim, size=shots, p=_distribution(state))
    counts = Counter(int(i) for i in draws)
    return {bitstring(i, state.n): c for i, c in sorted(counts.items())}


def collapse(state: State, index: int) -> State:
    """Project onto basis state `index` in place and renormalize."""
    if not 0 <= index < state.dim:
        raise InvalidQubitIndex(f"basis index {index} outside [0, {state.dim})")
    amp = state.psi[index]
    if abs(amp) == 0:
        raise NormalizationDrift(f"cannot collapse onto |{bitstring(index, state.n)}>: zero amplitude")
    state.psi[:] = 0
    state.psi[index] = amp / abs(amp)
    return state


def measure(state: State, rng: Optional[np.random.Generator] = None, collapse_state: bool = False) -> Outcome:
    i = sample(state, rng)
    out = Outcome(i, float(abs(state.psi[i]) ** 2), bitstring(i, state.n))
    if collapse_state:
        collapse(state, i)
    return out


def qubit_probabilities(state: State, k: int) -> np.ndarray:
    """[P(qubit k = 0), P(qubit k = 1)]."""
    if not 0 <= k < state.n:
        raise InvalidQubitIndex(f"qubit {k} outside register of {state.n} qubits")
    # view psi as (high, 2, low) with the middle axis on qubit k
    p = probabilities(state).reshape(-1, 2, 1 << k)
    return p.sum(axis=(0, 2))


def measure_qubit(state: State, k: int, rng: Optional[np.random.Generator] = None,
                  collapse_state: bool = False) -> int:
    prob = qubit_probabilities(state, k)
    bit = int(_rng(rng).choice(2, p=prob / prob.sum()))
    if collapse_state:
        mask = ((np.arange(state.dim) >> k) & 1) == bit
        state.psi[~mask] = 0
        state.psi /= np.sqrt(prob[bit])
    return bit
