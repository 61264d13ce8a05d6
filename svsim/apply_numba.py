# svsim/apply_numba.py
import numpy as np
from numba import config, njit, prange, set_num_threads, get_num_threads
from typing import Sequence
from .state import State
from .apply_serial import bit_mask, group_offsets

# ---------- low-level kernels (Numba JIT) ----------
# Every kernel visits disjoint index groups, so prange iterations never touch
# the same amplitude.

@njit(parallel=True, fastmath=True)
def _single_qubit_kernel(psi, U2, k, cmask):
    N = psi.shape[0]
    step = 1 << k
    block = step << 1
    nblocks = N // block
    for b in prange(nblocks):
        base = b * block
        for off in range(step):
            i0 = base + off
            if (i0 & cmask) != cmask:
                continue
            i1 = i0 + step
            a0 = psi[i0]
            a1 = psi[i1]
            psi[i0] = U2[0,0]*a0 + U2[0,1]*a1
            psi[i1] = U2[1,0]*a0 + U2[1,1]*a1

@njit(parallel=True, fastmath=True)
def _two_qubit_4x4_kernel(psi, U4, k, l, cmask):
    N = psi.shape[0]
    mk = 1 << k
    ml = 1 << l
    # Iterate only bases where bits k and l are 0 → disjoint quads.
    for i00 in prange(N):
        if (i00 & mk) == 0 and (i00 & ml) == 0 and (i00 & cmask) == cmask:
            i01 = i00 | mk
            i10 = i00 | ml
            i11 = i00 | mk | ml
            a00 = psi[i00]; a01 = psi[i01]; a10 = psi[i10]; a11 = psi[i11]
            psi[i00] = U4[0,0]*a00 + U4[0,1]*a01 + U4[0,2]*a10 + U4[0,3]*a11
            psi[i01] = U4[1,0]*a00 + U4[1,1]*a01 + U4[1,2]*a10 + U4[1,3]*a11
            psi[i10] = U4[2,0]*a00 + U4[2,1]*a01 + U4[2,2]*a10 + U4[2,3]*a11
            psi[i11] = U4[3,0]*a00 + U4[3,1]*a01 + U4[3,2]*a10 + U4[3,3]*a11

@njit(parallel=True, fastmath=True)
def _matrix_kernel(psi, U, offsets, tmask, cmask):
    N = psi.shape[0]
    d = offsets.shape[0]
    for base in prange(N):
        if (base & tmask) == 0 and (base & cmask) == cmask:
            sub = np.empty(d, dtype=psi.dtype)
            for j in range(d):
                sub[j] = psi[base | offsets[j]]
            for r in range(d):
                acc = U[r, 0] * sub[0]
                for c in range(1, d):
                    acc += U[r, c] * sub[c]
                psi[base | offsets[r]] = acc

@njit(parallel=True, fastmath=True)
def _controlled_x_kernel(psi, target, cmask):
    N = psi.shape[0]
    mt = 1 << target
    for base in prange(N):
        if (base & mt) == 0 and (base & cmask) == cmask:
            i1 = base | mt
            a0 = psi[base]
            psi[base] = psi[i1]
            psi[i1] = a0

# ---------- user-facing apply helpers ----------

def set_threads(n: int):
    # numba rejects counts above the pool it was started with
    set_num_threads(max(1, min(int(n), config.NUMBA_NUM_THREADS)))

def get_threads() -> int:
    return get_num_threads()

def apply_single_qubit(state: State, U2: np.ndarray, k: int, cmask: int = 0):
    _single_qubit_kernel(state.psi, U2.astype(state.dtype), k, cmask)

def apply_two_qubit_4x4(state: State, U4: np.ndarray, k: int, l: int, cmask: int = 0):
    if k == l:
        raise ValueError("k and l must differ")
    _two_qubit_4x4_kernel(state.psi, U4.astype(state.dtype), k, l, cmask)

def apply_matrix(state: State, U: np.ndarray, targets: Sequence[int], cmask: int = 0):
    offs = group_offsets(targets)
    _matrix_kernel(state.psi, U.astype(state.dtype), offs, bit_mask(targets), cmask)

def apply_controlled_x(state: State, target: int, cmask: int):
    _controlled_x_kernel(state.psi, target, cmask)

def apply(state: State, U: np.ndarray, targets: Sequence[int], controls: Sequence[int] = ()):
    cmask = bit_mask(controls)
    U = np.ascontiguousarray(U, dtype=state.dtype)
    if len(targets) == 1:
        if controls and np.array_equal(U, np.array([[0, 1], [1, 0]], dtype=U.dtype)):
            apply_controlled_x(state, targets[0], cmask)
        else:
            apply_single_qubit(state, U, targets[0], cmask)
    elif len(targets) == 2:
        apply_two_qubit_4x4(state, U, targets[0], targets[1], cmask)
    else:
        apply_matrix(state, U, targets, cmask)
