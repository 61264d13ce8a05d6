# svsim/circuit.py
import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple
from .state import State, DEFAULT_DTYPE
from .engine import Engine
from .backends import make_backend
from .errors import DimensionMismatch
from . import gates as G

logger = logging.getLogger(__name__)

Op = Tuple[str, Tuple]  # e.g., ("h",(k,)) or ("cnot",(c,t)) or ("rz",(k,theta))


@dataclass(frozen=True)
class Circuit:
    """Fixed-size register plus gates in program order. Builders return a new Circuit."""
    n: int
    gates: Tuple[G.Gate, ...] = ()

    def __post_init__(self):
        if self.n < 1:
            raise DimensionMismatch(f"register needs at least one qubit, got n={self.n}")
        for g in self.gates:
            g.check_register(self.n)

    @staticmethod
    def empty(n: int) -> "Circuit":
        return Circuit(n)

    @staticmethod
    def from_ops(n: int, ops: Iterable[Op]) -> "Circuit":
        return Circuit(n, tuple(G.from_op(name, args) for name, args in ops))

    def __len__(self):
        return len(self.gates)

    def __iter__(self):
        return iter(self.gates)

    def append(self, gate: G.Gate) -> "Circuit":
        gate.check_register(self.n)
        return Circuit(self.n, self.gates + (gate,))

    def extend(self, gates: Iterable[G.Gate]) -> "Circuit":
        return Circuit(self.n, self.gates + tuple(gates))

    def h(self, k: int): return self.append(G.h(k))
    def x(self, k: int): return self.append(G.x(k))
    def y(self, k: int): return self.append(G.y(k))
    def z(self, k: int): return self.append(G.z(k))
    def s(self, k: int): return self.append(G.s(k))
    def t(self, k: int): return self.append(G.t(k))
    def p(self, k: int, phi: float): return self.append(G.phase(k, phi))
    def rx(self, k: int, theta: float): return self.append(G.rx(k, theta))
    def ry(self, k: int, theta: float): return self.append(G.ry(k, theta))
    def rz(self, k: int, theta: float): return self.append(G.rz(k, theta))
    def cnot(self, c: int, t: int): return self.append(G.cnot(c, t))
    def cz(self, c: int, t: int): return self.append(G.cz(c, t))
    def swap(self, a: int, b: int): return self.append(G.swap(a, b))
    def toffoli(self, c1: int, c2: int, t: int): return self.append(G.toffoli(c1, c2, t))

    def h_all(self):
        return self.extend(G.h(k) for k in range(self.n))

    def run(self, kernel: str = "serial", dtype=DEFAULT_DTYPE, check_norm=True, num_threads=None,
            check_norm_tol=None, backend=None, initial: Optional[State] = None) -> State:
        if isinstance(backend, str):
            backend = make_backend(backend)
        engine = Engine(kernel=kernel, backend=backend, check_norm=check_norm,
                        norm_tol=check_norm_tol, num_threads=num_threads)
        return Executor(engine, dtype=dtype).run(self, initial)


class Executor:
    """Feeds a Circuit's gates to an Engine in program order."""

    def __init__(self, engine: Optional[Engine] = None, dtype=DEFAULT_DTYPE):
        self.engine = engine if engine is not None else Engine()
        self.dtype = dtype

    @classmethod
    def from_config(cls, cfg, on_fallback=None) -> "Executor":
        return cls(Engine.from_config(cfg, on_fallback=on_fallback), dtype=cfg.dtype)

    def _prepare(self, circuit: Circuit, state: Optional[State], in_place: bool) -> State:
        if state is None:
            return State.zero(circuit.n, dtype=self.dtype)
        if state.n != circuit.n:
            raise DimensionMismatch(
                f"circuit is over {circuit.n} qubits but the state holds {state.n}")
        return state if in_place else state.copy()

    def run(self, circuit: Circuit, state: Optional[State] = None, in_place: bool = False) -> State:
        """Apply every gate; starts from |0...0> when no state is given. The input is copied unless in_place."""
        st = self._prepare(circuit, state, in_place)
        logger.debug("running %d gate(s) on %d qubit(s) with %r", len(circuit), circuit.n, self.engine)
        for gate in circuit.gates:
            self.engine.apply_gate(st, gate)
        return st

    def step(self, circuit: Circuit, state: State, index: int) -> State:
        """Apply only gate `index` to state (in place) and return it."""
        if state.n != circuit.n:
            raise DimensionMismatch(
                f"circuit is over {circuit.n} qubits but the state holds {state.n}")
        return self.engine.apply_gate(state, circuit.gates[index])

    def steps(self, circuit: Circuit, state: Optional[State] = None) -> Iterator[Tuple[int, G.Gate, State]]:
        """Yield (index, gate, state) after each gate; state is a snapshot, safe to keep."""
        st = self._prepare(circuit, state, in_place=False)
        for i, gate in enumerate(circuit.gates):
            self.engine.apply_gate(st, gate)
            yield i, gate, st.copy()
