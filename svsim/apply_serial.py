# svsim/apply_serial.py
import numpy as np
from typing import Sequence
from .state import State


def bit_mask(qubits: Sequence[int]) -> int:
    m = 0
    for q in qubits:
        m |= 1 << q
    return m


def group_offsets(targets: Sequence[int]) -> np.ndarray:
    """offsets[j] spreads the bits of j onto the target positions (bit b -> targets[b])."""
    k = len(targets)
    offs = np.zeros(1 << k, dtype=np.int64)
    for j in range(1 << k):
        o = 0
        for b in range(k):
            if (j >> b) & 1:
                o |= 1 << targets[b]
        offs[j] = o
    return offs


def apply_single_qubit(state: State, U2: np.ndarray, k: int, cmask: int = 0):
    """Apply 2x2 gate U2 to qubit k (little-endian: bit k), only where all cmask bits are set."""
    psi = state.psi
    assert U2.shape == (2, 2)
    N = psi.shape[0]
    step = 1 << k
    block = step << 1
    u00, u01, u10, u11 = U2[0, 0], U2[0, 1], U2[1, 0], U2[1, 1]
    # iterate blocks of size 2^(k+1), update pairs (i0, i1=i0+step)
    for base in range(0, N, block):
        for off in range(step):
            i0 = base + off
            if (i0 & cmask) != cmask:
                continue
            i1 = i0 + step
            a0 = psi[i0]
            a1 = psi[i1]
            psi[i0] = u00*a0 + u01*a1
            psi[i1] = u10*a0 + u11*a1


def apply_two_qubit_4x4(state: State, U4: np.ndarray, k: int, l: int, cmask: int = 0):
    """Apply 4x4 gate U4 to targets (k, l): matrix bit 0 is qubit k, bit 1 is qubit l."""
    if k == l:
        raise ValueError("k and l must differ")
    assert U4.shape == (4, 4)

    psi = state.psi
    N = psi.shape[0]
    mk = 1 << k
    ml = 1 << l
    lo, hi = min(k, l), max(k, l)
    # walk indices whose k and l bits are both 0:
    # blocks of 2^(hi+1), chunks of 2^(lo+1) inside, offsets below 2^lo
    for base in range(0, N, 1 << (hi + 1)):
        for chunk in range(0, 1 << hi, 1 << (lo + 1)):
            for off in range(1 << lo):
                i00 = base + chunk + off
                if (i00 & cmask) != cmask:
                    continue
                i01 = i00 | mk
                i10 = i00 | ml
                i11 = i00 | mk | ml
                a00, a01, a10, a11 = psi[i00], psi[i01], psi[i10], psi[i11]
                psi[i00] = U4[0,0]*a00 + U4[0,1]*a01 + U4[0,2]*a10 + U4[0,3]*a11
                psi[i01] = U4[1,0]*a00 + U4[1,1]*a01 + U4[1,2]*a10 + U4[1,3]*a11
                psi[i10] = U4[2,0]*a00 + U4[2,1]*a01 + U4[2,2]*a10 + U4[2,3]*a11
                psi[i11] = U4[3,0]*a00 + U4[3,1]*a01 + U4[3,2]*a10 + U4[3,3]*a11


def apply_matrix(state: State, U: np.ndarray, targets: Sequence[int], cmask: int = 0):
    """General k-qubit gate: one 2^k sub-vector per base index with the target bits cleared."""
    psi = state.psi
    N = psi.shape[0]
    d = 1 << len(targets)
    assert U.shape == (d, d)
    tmask = bit_mask(targets)
    offs = [int(o) for o in group_offsets(targets)]
    for base in range(N):
        if base & tmask or (base & cmask) != cmask:
            continue
        idx = [base | o for o in offs]
        sub = [psi[i] for i in idx]
        for r in range(d):
            acc = U[r, 0] * sub[0]
            for c in range(1, d):
                acc += U[r, c] * sub[c]
            psi[idx[r]] = acc


def apply_controlled_x(state: State, target: int, cmask: int):
    """X on target where every control bit is set: a plain swap of amplitude pairs (CNOT, Toffoli)."""
    psi = state.psi
    N = psi.shape[0]
    mt = 1 << target
    for i0 in range(N):
        if i0 & mt or (i0 & cmask) != cmask:
            continue
        i1 = i0 | mt
        a = psi[i0]
        psi[i0] = psi[i1]
        psi[i1] = a


def apply(state: State, U: np.ndarray, targets: Sequence[int], controls: Sequence[int] = ()):
    """Pick the cheapest serial kernel for this gate shape."""
    cmask = bit_mask(controls)
    U = np.asarray(U, dtype=state.dtype)
    if len(targets) == 1:
        if controls and np.array_equal(U, np.array([[0, 1], [1, 0]], dtype=U.dtype)):
            apply_controlled_x(state, targets[0], cmask)
        else:
            apply_single_qubit(state, U, targets[0], cmask)
    elif len(targets) == 2:
        apply_two_qubit_4x4(state, U, targets[0], targets[1], cmask)
    else:
        apply_matrix(state, U, targets, cmask)
