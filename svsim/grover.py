# svsim/grover.py
"""
Grover's search algorithm on the state-vector engine.

Given f(x) that is true for M of the N = 2^n basis states, Grover's algorithm
amplifies the marked states in O(sqrt(N/M)) oracle calls. One round is the
oracle O (phase flip on marked states) followed by the diffusion
D = 2|s><s| - I, with |s> the uniform superposition.

Both O and the middle stage of D are diagonal, so they are applied straight to
the amplitudes; only the Hadamard layers of D go through the executor.

Bit ordering: basis index bit i is qubit i, so target 6 on three qubits is
|110> (qubit 0 = 0, qubits 1 and 2 = 1).
"""
import logging
import math
from dataclasses import dataclass
from typing import Callable, Collection, Optional, Union
import numpy as np

from .circuit import Circuit, Executor
from .errors import NoMarkedState
from .measure import measure, Outcome
from .state import State

logger = logging.getLogger(__name__)

Predicate = Union[Callable[[int], bool], Collection[int]]


def oracle_mask(n: int, predicate: Predicate) -> np.ndarray:
    """Boolean mask over the 2^n basis states: True where the state is marked."""
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    N = 1 << n
    if callable(predicate):
        return np.fromiter((bool(predicate(i)) for i in range(N)), dtype=bool, count=N)
    mask = np.zeros(N, dtype=bool)
    for i in predicate:
        if not 0 <= i < N:
            raise ValueError(f"marked state {i} outside [0, {N - 1}]")
        mask[i] = True
    return mask


def phase_flip(mask: np.ndarray) -> np.ndarray:
    """Diagonal of the oracle: -1 on marked states, +1 elsewhere."""
    return np.where(mask, -1.0, 1.0)


def apply_oracle(state: State, mask: np.ndarray, executor: Optional[Executor] = None) -> State:
    executor = executor if executor is not None else Executor()
    return executor.engine.apply_diagonal(state, phase_flip(mask))


def zero_reflection(n: int) -> np.ndarray:
    """Diagonal of 2|0><0| - I: +1 on |0...0>, -1 elsewhere."""
    diag = -np.ones(1 << n)
    diag[0] = 1.0
    return diag


def diffusion(state: State, executor: Optional[Executor] = None) -> State:
    """D = H^n (2|0><0| - I) H^n, i.e. inversion about the mean amplitude."""
    executor = executor if executor is not None else Executor()
    layer = Circuit.empty(state.n).h_all()
    executor.run(layer, state, in_place=True)
    executor.engine.apply_diagonal(state, zero_reflection(state.n))
    executor.run(layer, state, in_place=True)
    return state


def optimal_iterations(n: int, num_marked: int = 1) -> int:
    """
    round(pi/4 * sqrt(N/M)), at least 1; 0 when every state is marked.

    On tiny registers the rounding lands past the peak: n=2, M=1 gives 2
    rounds and P(marked)=0.25, while 1 round finds the target with
    certainty. Pass iterations=1 to grover_search there.
    """
    N = 1 << n
    if num_marked < 1:
        raise NoMarkedState("Grover search needs at least one marked state")
    if num_marked >= N:
        return 0
    return max(1, int(round(math.pi / 4 * math.sqrt(N / num_marked))))


def success_probability(state: State, mask: np.ndarray) -> float:
    return float(np.sum(np.abs(state.psi[mask]) ** 2))


@dataclass
class GroverResult:
    state: State
    iterations: int
    mask: np.ndarray
    num_marked: int
    probability: float  # total probability on marked states

    def measure(self, rng: Optional[np.random.Generator] = None) -> Outcome:
        return measure(self.state, rng)

    @property
    def marked(self):
        return [int(i) for i in np.flatnonzero(self.mask)]


def grover_search(n: int, predicate: Predicate, num_marked: Optional[int] = None,
                  iterations: Optional[int] = None,
                  executor: Optional[Executor] = None) -> GroverResult:
    """
    Run Grover's algorithm and return the amplified state, unmeasured.

    Args:
        n: Number of qubits (searches 2^n items). Must be >= 1.
        predicate: f(index) -> bool, or the collection of marked indices.
        num_marked: M used for the iteration count; counted from the
                    predicate when omitted.
        iterations: Override the number of rounds.
        executor: Executor whose engine applies every step.

    Raises:
        NoMarkedState: If the predicate marks nothing or num_marked is 0.
    """
    executor = executor if executor is not None else Executor()
    mask = oracle_mask(n, predicate)
    found = int(mask.sum())
    if found == 0 or num_marked == 0:
        raise NoMarkedState("oracle marks no basis state; nothing to amplify")
    m = found if num_marked is None else num_marked
    if iterations is None:
        iterations = optimal_iterations(n, m)
    elif iterations < 0:
        raise ValueError(f"iterations must be >= 0, got {iterations}")

    logger.debug("Grover search on %d qubits (%d items), M=%d, %d iteration(s)", n, 1 << n, m, iterations)
    state = executor.run(Circuit.empty(n).h_all())
    for it in range(iterations):
        apply_oracle(state, mask, executor)
        diffusion(state, executor)
        logger.debug("iteration %d: P(marked)=%.6f", it + 1, success_probability(state, mask))

    return GroverResult(state, iterations, mask, found, success_probability(state, mask))


def create_single_target_oracle(target: int, n: int) -> Callable[[int], bool]:
    """Predicate that marks exactly `target`."""
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    if not (0 <= target < 2 ** n):
        raise ValueError(f"target must be in [0, {2**n - 1}], got {target}")
    return lambda i: i == target


def grover_search_for_value(n: int, target: int, rng: Optional[np.random.Generator] = None,
                            iterations: Optional[int] = None,
                            executor: Optional[Executor] = None) -> int:
    """Search for one value and measure; returns `target` with high probability."""
    result = grover_search(n, create_single_target_oracle(target, n), num_marked=1,
                           iterations=iterations, executor=executor)
    return result.measure(rng).index
