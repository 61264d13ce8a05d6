# svsim/backends.py
"""
Acceleration backends: the one capability the engine offloads.

multiply(matrix, vector) must return an array shaped like `vector` and equal
to matrix @ vector. `vector` is a single sub-vector or a 2-D block whose
columns are the independent amplitude groups of one gate application.
Device setup, transfers and kernel launches stay inside the backend.
"""
import abc
import logging
import numpy as np

from .errors import BackendError

logger = logging.getLogger(__name__)


class MultiplyBackend(abc.ABC):
    name = "abstract"

    @abc.abstractmethod
    def multiply(self, matrix: np.ndarray, vector: np.ndarray) -> np.ndarray:
        ...

    def __repr__(self):
        return f"{type(self).__name__}()"


class NumpyBackend(MultiplyBackend):
    """Host matmul; also the fallback path when a device backend fails."""
    name = "numpy"

    def multiply(self, matrix, vector):
        return np.matmul(matrix, vector)


class CupyBackend(MultiplyBackend):
    """CUDA matmul through CuPy. Every device-side failure surfaces as BackendError."""
    name = "cupy"

    def __init__(self):
        try:
            import cupy as cp
        except ImportError as e:
            raise BackendError("CuPy backend not available. Did you `pip install cupy`?") from e
        self.cp = cp
        try:
            self.device = cp.cuda.Device()
            self.device.use()
        except Exception as e:
            raise BackendError(f"no usable CUDA device: {e}") from e

    def to_device(self, arr: np.ndarray):
        return self.cp.asarray(arr)

    def to_host(self, arr) -> np.ndarray:
        return self.cp.asnumpy(arr)

    def multiply(self, matrix, vector):
        try:
            out = self.cp.matmul(self.to_device(matrix), self.to_device(vector))
            return self.to_host(out)
        except Exception as e:
            raise BackendError(f"device multiply failed: {e}") from e


BACKENDS = {
    "numpy": NumpyBackend,
    "cupy": CupyBackend,
}


def make_backend(name: str) -> MultiplyBackend:
    try:
        cls = BACKENDS[name]
    except KeyError:
        raise ValueError(f"Unknown backend: {name} (choose from {sorted(BACKENDS)})") from None
    backend = cls()
    logger.debug("created %s backend", backend.name)
    return backend
