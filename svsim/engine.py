# svsim/engine.py
"""
State-vector engine: applies one Gate to one State, in place.

A k-qubit gate never becomes a 2^n x 2^n matrix. For every index `base` whose
target bits are 0 and whose control bits are all 1, the 2^k amplitudes at
`base | offset[j]` form an independent sub-vector and the gate matrix is
applied to it. That is O(2^n * 2^k) work per gate.

Three ways to do that work:
  serial  pure-Python loops (apply_serial), the reference
  numba   parallel JIT loops (apply_numba), groups split across threads
  dense   gather all groups into a 2^k x G block and hand it to a
          MultiplyBackend; used when asked for, or for gates with
          >= dense_min_qubits targets when a backend is configured
"""
import logging
import numpy as np
from typing import Callable, Iterable, Optional

from .apply_serial import bit_mask, group_offsets
from .backends import MultiplyBackend, NumpyBackend, make_backend
from .config import KERNELS, SimConfig
from .errors import BackendError, DimensionMismatch, NonUnitaryGate
from .gates import Gate, UNITARY_TOL, is_unitary
from .state import State

logger = logging.getLogger(__name__)


def _load_kernel(kernel: str, num_threads: Optional[int]):
    if kernel == "serial":
        from . import apply_serial
        return apply_serial.apply
    if kernel == "numba":
        try:
            from . import apply_numba
        except ImportError as e:
            raise RuntimeError("Numba backend not available. Did you `pip install numba`?") from e
        if num_threads is not None:
            apply_numba.set_threads(int(num_threads))
        return apply_numba.apply
    if kernel == "dense":
        return None
    raise ValueError(f"Unknown kernel: {kernel} (choose from {KERNELS})")


class Engine:
    def __init__(self, kernel: str = "serial", backend: Optional[MultiplyBackend] = None,
                 dense_min_qubits: int = 3, check_norm: bool = True,
                 norm_tol: Optional[float] = None, unitary_tol: float = UNITARY_TOL,
                 num_threads: Optional[int] = None,
                 on_fallback: Optional[Callable[[BackendError], None]] = None):
        self.kernel = kernel
        self._apply = _load_kernel(kernel, num_threads)
        self.backend = backend
        self.cpu = NumpyBackend()
        self.dense_min_qubits = dense_min_qubits
        self.check_norm = check_norm
        self.norm_tol = norm_tol
        self.unitary_tol = unitary_tol
        self.on_fallback = on_fallback
        self.fallbacks = 0

    @classmethod
    def from_config(cls, cfg: SimConfig, on_fallback=None) -> "Engine":
        backend = None
        if cfg.backend is not None:
            try:
                backend = make_backend(cfg.backend)
            except BackendError as e:
                logger.warning("%s backend unavailable, staying on CPU: %s", cfg.backend, e)
                backend = NumpyBackend()
        return cls(kernel=cfg.kernel, backend=backend, dense_min_qubits=cfg.dense_min_qubits,
                   check_norm=cfg.check_norm, norm_tol=cfg.norm_tol,
                   unitary_tol=cfg.unitary_tol, num_threads=cfg.num_threads,
                   on_fallback=on_fallback)

    def __repr__(self):
        return f"Engine(kernel={self.kernel!r}, backend={self.backend!r})"

    # ----------------------------------------------------------------

    def validate(self, state: State, gate: Gate):
        gate.check_register(state.n)
        if not is_unitary(gate.matrix, self.unitary_tol):
            raise NonUnitaryGate(f"{gate.name}: matrix is not unitary within {self.unitary_tol}")

    def uses_dense(self, gate: Gate) -> bool:
        if self.kernel == "dense":
            return True
        return self.backend is not None and gate.num_targets >= self.dense_min_qubits

    def apply_gate(self, state: State, gate: Gate) -> State:
        """Apply gate to state.psi in place and return the same State."""
        self.validate(state, gate)
        if self.uses_dense(gate):
            self._apply_dense(state, gate)
        else:
            self._apply(state, gate.matrix, gate.targets, gate.controls)
        logger.debug("applied %r", gate)
        if self.check_norm:
            state.check_normalized(self.norm_tol)
        return state

    def apply_gates(self, state: State, gates: Iterable[Gate]) -> State:
        for g in gates:
            self.apply_gate(state, g)
        return state

    def apply_diagonal(self, state: State, diag: np.ndarray) -> State:
        """Multiply amplitude i by diag[i]; for phase oracles and reflections."""
        if diag.shape != state.psi.shape:
            raise DimensionMismatch(f"diagonal of shape {diag.shape} for {state.n} qubits")
        state.psi *= diag
        if self.check_norm:
            state.check_normalized(self.norm_tol)
        return state

    # ----------------------------------------------------------------

    def multiply(self, matrix: np.ndarray, block: np.ndarray) -> np.ndarray:
        """Backend multiply with recovery on the CPU when the backend fails."""
        if self.backend is None:
            return self.cpu.multiply(matrix, block)
        try:
            out = self._backend_multiply(matrix, block)
            if np.shape(out) != block.shape:
                raise BackendError(
                    f"{self.backend.name} returned shape {np.shape(out)} for input {block.shape}")
            return out
        except BackendError as e:
            self.fallbacks += 1
            logger.warning("%s multiply failed, falling back to CPU: %s", self.backend.name, e)
            if self.on_fallback is not None:
                self.on_fallback(e)
            return self.cpu.multiply(matrix, block)

    def _backend_multiply(self, matrix: np.ndarray, block: np.ndarray) -> np.ndarray:
        # whatever a backend raises counts as a BackendError
        try:
            return self.backend.multiply(matrix, block)
        except BackendError:
            raise
        except Exception as e:
            raise BackendError(f"{self.backend.name} multiply raised {type(e).__name__}: {e}") from e

    def _apply_dense(self, state: State, gate: Gate):
        psi = state.psi
        tmask = bit_mask(gate.targets)
        cmask = bit_mask(gate.controls)
        idx = np.arange(psi.shape[0], dtype=np.int64)
        bases = idx[((idx & tmask) == 0) & ((idx & cmask) == cmask)]
        # column g of `groups` holds the 2^k indices of one independent sub-vector
        groups = group_offsets(gate.targets)[:, None] | bases[None, :]
        U = gate.matrix.astype(state.dtype)
        psi[groups] = self.multiply(U, psi[groups])
