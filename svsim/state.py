# svsim/state.py
import numpy as np
from dataclasses import dataclass
from typing import Optional

from .errors import DimensionMismatch, InvalidQubitIndex, NormalizationDrift

DEFAULT_DTYPE = np.complex128


def default_tol(dtype) -> float:
    """Norm tolerance that the dtype can actually hold after a deep circuit."""
    return 1e-5 if np.dtype(dtype) == np.complex64 else 1e-9


@dataclass
class State:
    n: int
    psi: np.ndarray  # shape (2**n,), dtype complex64/128, bit i of index = qubit i

    def __post_init__(self):
        if self.n < 1:
            raise DimensionMismatch(f"register needs at least one qubit, got n={self.n}")
        if self.psi.ndim != 1 or self.psi.shape[0] != 1 << self.n:
            raise DimensionMismatch(
                f"amplitude buffer of shape {self.psi.shape} does not hold {self.n} qubits")

    @staticmethod
    def zero(n: int, dtype=DEFAULT_DTYPE) -> "State":
        return State.basis(n, 0, dtype=dtype)

    @staticmethod
    def basis(n: int, index: int, dtype=DEFAULT_DTYPE) -> "State":
        N = 1 << n
        if not 0 <= index < N:
            raise InvalidQubitIndex(f"basis index {index} outside [0, {N})")
        psi = np.zeros(N, dtype=dtype)
        psi[index] = 1.0 + 0.0j
        return State(n=n, psi=psi)

    @staticmethod
    def uniform(n: int, dtype=DEFAULT_DTYPE) -> "State":
        """Equal superposition, i.e. H on every qubit of |0...0>."""
        N = 1 << n
        psi = np.full(N, 1.0 / np.sqrt(N), dtype=dtype)
        return State(n=n, psi=psi)

    @staticmethod
    def from_amplitudes(amps, normalize: bool = False, dtype=DEFAULT_DTYPE) -> "State":
        psi = np.array(amps, dtype=dtype).reshape(-1)
        N = psi.shape[0]
        if N < 2 or N & (N - 1):
            raise DimensionMismatch(f"{N} amplitudes is not a power of two")
        if normalize:
            norm = np.linalg.norm(psi)
            if norm == 0:
                raise NormalizationDrift("cannot normalize the zero vector")
            psi /= norm
        st = State(n=N.bit_length() - 1, psi=psi)
        st.check_normalized()
        return st

    @property
    def dtype(self):
        return self.psi.dtype

    @property
    def dim(self) -> int:
        return self.psi.shape[0]

    def norm2(self) -> float:
        return float(np.vdot(self.psi, self.psi).real)

    def check_normalized(self, tol: Optional[float] = None):
        if tol is None:
            tol = default_tol(self.dtype)
        n2 = self.norm2()
        if not (abs(1.0 - n2) <= tol):
            raise NormalizationDrift(f"Normalization failed: ||psi||^2={n2} (tol={tol})")

    def probabilities(self) -> np.ndarray:
        return np.abs(self.psi) ** 2

    def copy(self) -> "State":
        return State(self.n, self.psi.copy())

    def as_numpy(self) -> np.ndarray:
        return self.psi
