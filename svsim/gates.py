# svsim/gates.py
"""
Standard gate matrices and the immutable Gate value applied by the engine.

Matrix convention: for a gate on targets (t0, t1, ...), bit b of a row/column
index is the state of qubit targets[b], the same little-endian order used for
state-vector indices. So CNOT() below, whose |10>,|11> rows are swapped, is
"flip bit 0 when bit 1 is set": unitary(CNOT(), [target, control]).

Composition order: program order is application order. fuse(a, b) applies a
first, so its matrix is b.matrix @ a.matrix.
"""
import numpy as np
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, NamedTuple, Sequence, Tuple

from .errors import DimensionMismatch, InvalidQubitIndex, NonUnitaryGate

UNITARY_TOL = 1e-9

# ----------------------------- matrices -----------------------------

def I(dtype=np.complex128) -> np.ndarray:
    return np.eye(2, dtype=dtype)

def X(dtype=np.complex128) -> np.ndarray:
    return np.array([[0, 1],
                     [1, 0]], dtype=dtype)

def Y(dtype=np.complex128) -> np.ndarray:
    return np.array([[0, -1j],
                     [1j, 0]], dtype=dtype)

def Z(dtype=np.complex128) -> np.ndarray:
    return np.array([[1, 0],
                     [0, -1]], dtype=dtype)

def H(dtype=np.complex128) -> np.ndarray:
    s = np.sqrt(0.5)
    return np.array([[s, s],
                     [s, -s]], dtype=dtype)

def P(phi: float, dtype=np.complex128) -> np.ndarray:
    return np.array([[1, 0],
                     [0, np.exp(1j * phi)]], dtype=dtype)

def S(dtype=np.complex128) -> np.ndarray:
    return P(np.pi / 2, dtype=dtype)

def T(dtype=np.complex128) -> np.ndarray:
    return P(np.pi / 4, dtype=dtype)

def TDG(dtype=np.complex128) -> np.ndarray:
    return P(-np.pi / 4, dtype=dtype)

def RX(theta: float, dtype=np.complex128) -> np.ndarray:
    c = np.cos(theta / 2.0)
    s = -1j * np.sin(theta / 2.0)
    return np.array([[c, s],
                     [s, c]], dtype=dtype)

def RY(theta: float, dtype=np.complex128) -> np.ndarray:
    c, s = np.cos(theta / 2.0), np.sin(theta / 2.0)
    return np.array([[c, -s],
                     [s, c]], dtype=dtype)

def RZ(theta: float, dtype=np.complex128) -> np.ndarray:
    return np.array([[np.exp(-0.5j * theta), 0],
                     [0, np.exp(+0.5j * theta)]], dtype=dtype)

def CNOT(dtype=np.complex128) -> np.ndarray:
    # order 00,01,10,11: bit 1 is the control, bit 0 the target
    mat = np.eye(4, dtype=dtype)
    mat[2, 2] = 0; mat[3, 3] = 0
    mat[2, 3] = 1; mat[3, 2] = 1
    return mat

def CZ(dtype=np.complex128) -> np.ndarray:
    return np.diag(np.array([1, 1, 1, -1], dtype=dtype))

def SWAP(dtype=np.complex128) -> np.ndarray:
    mat = np.eye(4, dtype=dtype)
    mat[1, 1] = 0; mat[2, 2] = 0
    mat[1, 2] = 1; mat[2, 1] = 1
    return mat

def TOFFOLI(dtype=np.complex128) -> np.ndarray:
    # bits 1 and 2 control, bit 0 is flipped
    mat = np.eye(8, dtype=dtype)
    mat[6, 6] = 0; mat[7, 7] = 0
    mat[6, 7] = 1; mat[7, 6] = 1
    return mat


def _frozen(mat: np.ndarray) -> np.ndarray:
    mat = np.array(mat, dtype=np.complex128)
    mat.setflags(write=False)
    return mat

# built once at import, read-only so nobody edits a shared table in place
I_MATRIX = _frozen(I())
X_MATRIX = _frozen(X())
Y_MATRIX = _frozen(Y())
Z_MATRIX = _frozen(Z())
H_MATRIX = _frozen(H())
S_MATRIX = _frozen(S())
T_MATRIX = _frozen(T())
TDG_MATRIX = _frozen(TDG())
SWAP_MATRIX = _frozen(SWAP())


def is_unitary(mat: np.ndarray, tol: float = UNITARY_TOL) -> bool:
    d = mat.shape[0]
    return bool(np.allclose(mat.conj().T @ mat, np.eye(d), atol=tol, rtol=0))

# ------------------------------ Gate ------------------------------

@dataclass(frozen=True, eq=False)
class Gate:
    """A validated unitary bound to its target (and optional control) qubits."""
    name: str
    matrix: np.ndarray
    targets: Tuple[int, ...]
    controls: Tuple[int, ...] = ()
    tol: float = field(default=UNITARY_TOL, repr=False)

    def __post_init__(self):
        targets = tuple(int(q) for q in self.targets)
        controls = tuple(int(q) for q in self.controls)
        if not targets:
            raise DimensionMismatch(f"{self.name}: gate needs at least one target")
        for q in targets + controls:
            if q < 0:
                raise InvalidQubitIndex(f"{self.name}: negative qubit index {q}")
        if len(set(targets)) != len(targets):
            raise InvalidQubitIndex(f"{self.name}: repeated target in {targets}")
        if len(set(controls)) != len(controls):
            raise InvalidQubitIndex(f"{self.name}: repeated control in {controls}")
        if set(targets) & set(controls):
            raise InvalidQubitIndex(f"{self.name}: controls {controls} overlap targets {targets}")

        mat = np.array(self.matrix, dtype=np.complex128)
        d = 1 << len(targets)
        if mat.shape != (d, d):
            raise DimensionMismatch(
                f"{self.name}: {len(targets)} target(s) need a {d}x{d} matrix, got {mat.shape}")
        if not is_unitary(mat, self.tol):
            raise NonUnitaryGate(f"{self.name}: matrix is not unitary within {self.tol}")
        mat.setflags(write=False)

        object.__setattr__(self, "targets", targets)
        object.__setattr__(self, "controls", controls)
        object.__setattr__(self, "matrix", mat)

    @property
    def num_targets(self) -> int:
        return len(self.targets)

    @property
    def qubits(self) -> Tuple[int, ...]:
        return self.controls + self.targets

    def check_register(self, n: int):
        for q in self.qubits:
            if q >= n:
                raise InvalidQubitIndex(f"{self.name}: qubit {q} outside register of {n} qubits")

    def is_unitary(self) -> bool:
        return is_unitary(self.matrix, self.tol)

    def then(self, other: "Gate") -> "Gate":
        """Fused gate equal to applying self, then other."""
        if other.targets != self.targets or other.controls != self.controls:
            raise DimensionMismatch(
                f"cannot fuse {self.name}{self.targets} with {other.name}{other.targets}: "
                "targets and controls must match")
        return Gate(f"{self.name}*{other.name}", other.matrix @ self.matrix,
                    self.targets, self.controls, tol=self.tol)

    def __repr__(self):
        ctl = f", controls={self.controls}" if self.controls else ""
        return f"Gate({self.name}, targets={self.targets}{ctl})"


def fuse(*gates: Gate) -> Gate:
    """Pre-multiply gates given in program order into one gate."""
    if not gates:
        raise ValueError("fuse() needs at least one gate")
    out = gates[0]
    for g in gates[1:]:
        out = out.then(g)
    return out

# ------------------------- constructors -------------------------

def unitary(matrix, targets: Sequence[int], controls: Sequence[int] = (), name: str = "U") -> Gate:
    return Gate(name, matrix, tuple(targets), tuple(controls))

def identity(k: int) -> Gate: return Gate("ID", I_MATRIX, (k,))
def x(k: int) -> Gate: return Gate("X", X_MATRIX, (k,))
def y(k: int) -> Gate: return Gate("Y", Y_MATRIX, (k,))
def z(k: int) -> Gate: return Gate("Z", Z_MATRIX, (k,))
def h(k: int) -> Gate: return Gate("H", H_MATRIX, (k,))
def s(k: int) -> Gate: return Gate("S", S_MATRIX, (k,))
def t(k: int) -> Gate: return Gate("T", T_MATRIX, (k,))
def tdg(k: int) -> Gate: return Gate("TDG", TDG_MATRIX, (k,))

def phase(k: int, phi: float) -> Gate: return Gate("P", P(phi), (k,))
def rx(k: int, theta: float) -> Gate: return Gate("RX", RX(theta), (k,))
def ry(k: int, theta: float) -> Gate: return Gate("RY", RY(theta), (k,))
def rz(k: int, theta: float) -> Gate: return Gate("RZ", RZ(theta), (k,))

def cnot(control: int, target: int) -> Gate:
    return Gate("CNOT", X_MATRIX, (target,), (control,))

def cz(control: int, target: int) -> Gate:
    return Gate("CZ", Z_MATRIX, (target,), (control,))

def swap(a: int, b: int) -> Gate:
    return Gate("SWAP", SWAP_MATRIX, (a, b))

def toffoli(c1: int, c2: int, target: int) -> Gate:
    return Gate("TOFFOLI", X_MATRIX, (target,), (c1, c2))

def controlled(gate: Gate, *controls: int) -> Gate:
    """Add control qubits to an existing gate."""
    return Gate("C" + gate.name, gate.matrix, gate.targets, tuple(controls) + gate.controls, tol=gate.tol)

# --------------------------- registry ---------------------------

class GateSpec(NamedTuple):
    build: Callable[..., Gate]
    num_qubits: int
    num_params: int


GATES: Dict[str, GateSpec] = {
    "id": GateSpec(identity, 1, 0),
    "x": GateSpec(x, 1, 0),
    "y": GateSpec(y, 1, 0),
    "z": GateSpec(z, 1, 0),
    "h": GateSpec(h, 1, 0),
    "s": GateSpec(s, 1, 0),
    "t": GateSpec(t, 1, 0),
    "tdg": GateSpec(tdg, 1, 0),
    "p": GateSpec(phase, 1, 1),
    "rx": GateSpec(rx, 1, 1),
    "ry": GateSpec(ry, 1, 1),
    "rz": GateSpec(rz, 1, 1),
    "cnot": GateSpec(cnot, 2, 0),
    "cx": GateSpec(cnot, 2, 0),
    "cz": GateSpec(cz, 2, 0),
    "swap": GateSpec(swap, 2, 0),
    "toffoli": GateSpec(toffoli, 3, 0),
    "ccx": GateSpec(toffoli, 3, 0),
}


def from_op(name: str, args: Iterable) -> Gate:
    """Build a gate from a record like ("cnot", (c, t)) or ("rz", (k, theta))."""
    key = name.lower()
    if key not in GATES:
        raise ValueError(f"Unknown gate {name}")
    spec = GATES[key]
    args = tuple(args)
    if len(args) != spec.num_qubits + spec.num_params:
        raise DimensionMismatch(
            f"{name} takes {spec.num_qubits} qubit(s) and {spec.num_params} parameter(s), got {args}")
    qubits = [int(q) for q in args[:spec.num_qubits]]
    params = [float(p) for p in args[spec.num_qubits:]]
    return spec.build(*qubits, *params)
