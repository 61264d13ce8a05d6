# svsim/config.py
import os
import numpy as np
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .gates import UNITARY_TOL
from .state import DEFAULT_DTYPE, default_tol

KERNELS = ("serial", "numba", "dense")
DTYPES = {"complex64": np.complex64, "complex128": np.complex128}


@dataclass(frozen=True)
class SimConfig:
    kernel: str = "serial"
    dtype: type = DEFAULT_DTYPE
    norm_tol: Optional[float] = None  # None -> picked from dtype
    unitary_tol: float = UNITARY_TOL
    check_norm: bool = True
    dense_min_qubits: int = 3
    backend: Optional[str] = None  # "numpy", "cupy" or None
    num_threads: Optional[int] = None

    def __post_init__(self):
        if self.kernel not in KERNELS:
            raise ValueError(f"Unknown kernel: {self.kernel} (choose from {KERNELS})")
        if np.dtype(self.dtype) not in (np.dtype(np.complex64), np.dtype(np.complex128)):
            raise ValueError(f"dtype must be complex64 or complex128, got {self.dtype}")
        if self.dense_min_qubits < 1:
            raise ValueError("dense_min_qubits must be >= 1")
        if self.num_threads is not None and self.num_threads < 1:
            raise ValueError("num_threads must be >= 1")

    @property
    def tol(self) -> float:
        return self.norm_tol if self.norm_tol is not None else default_tol(self.dtype)

    def with_(self, **changes) -> "SimConfig":
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SimConfig":
        """Read SVSIM_* variables; anything unset keeps its default."""
        env = os.environ if environ is None else environ
        kw = {}
        if env.get("SVSIM_KERNEL"):
            kw["kernel"] = env["SVSIM_KERNEL"].lower()
        if env.get("SVSIM_DTYPE"):
            name = env["SVSIM_DTYPE"].lower()
            if name not in DTYPES:
                raise ValueError(f"SVSIM_DTYPE must be one of {sorted(DTYPES)}, got {name}")
            kw["dtype"] = DTYPES[name]
        if env.get("SVSIM_NORM_TOL"):
            kw["norm_tol"] = float(env["SVSIM_NORM_TOL"])
        if env.get("SVSIM_BACKEND"):
            kw["backend"] = env["SVSIM_BACKEND"].lower()
        if env.get("SVSIM_THREADS"):
            kw["num_threads"] = int(env["SVSIM_THREADS"])
        if env.get("SVSIM_DENSE_MIN_QUBITS"):
            kw["dense_min_qubits"] = int(env["SVSIM_DENSE_MIN_QUBITS"])
        return cls(**kw)
