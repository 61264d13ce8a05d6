import numpy as np
import pytest

from svsim.circuit import Circuit, Executor
from svsim.config import SimConfig
from svsim.engine import Engine
from svsim.errors import DimensionMismatch, NonUnitaryGate, NormalizationDrift
from svsim.gates import Gate
from svsim.state import State


def ghz(n):
    c = Circuit.empty(n).h(0)
    for k in range(n - 1):
        c = c.cnot(k, k + 1)
    return c


def test_run_is_deterministic():
    c = ghz(4).rx(2, 0.37).ry(1, 1.3).swap(0, 3)
    init = State.from_amplitudes(np.arange(16) + 1j, normalize=True)
    ex = Executor()
    a = ex.run(c, init)
    b = ex.run(c, init)
    assert np.array_equal(a.as_numpy(), b.as_numpy())


def test_run_does_not_touch_initial_state():
    init = State.zero(2)
    Executor().run(ghz(2), init)
    assert np.array_equal(init.as_numpy(), [1, 0, 0, 0])


def test_run_in_place_mutates_caller_state():
    init = State.zero(2)
    out = Executor().run(ghz(2), init, in_place=True)
    assert out is init
    assert np.isclose(abs(init.as_numpy()[3]) ** 2, 0.5)


def test_circuit_is_immutable():
    base = Circuit.empty(2).h(0)
    longer = base.cnot(0, 1)
    assert len(base) == 1 and len(longer) == 2
    with pytest.raises(AttributeError):
        base.n = 3


def test_step_mode_matches_run():
    c = ghz(3).h(2)
    ex = Executor()
    snaps = list(ex.steps(c))
    assert [i for i, _, _ in snaps] == [0, 1, 2, 3]
    assert snaps[0][2].as_numpy()[1].real == pytest.approx(1 / np.sqrt(2))
    assert np.allclose(snaps[-1][2].as_numpy(), ex.run(c).as_numpy())
    # snapshots are independent copies
    assert not np.allclose(snaps[0][2].as_numpy(), snaps[-1][2].as_numpy())


def test_single_step():
    c = Circuit.empty(1).x(0).h(0)
    ex = Executor()
    st = State.zero(1)
    ex.step(c, st, 0)
    assert np.allclose(st.as_numpy(), [0, 1])
    ex.step(c, st, 1)
    assert np.allclose(st.as_numpy(), [1 / np.sqrt(2), -1 / np.sqrt(2)])


def test_register_size_mismatch_fails_fast():
    with pytest.raises(DimensionMismatch):
        Executor().run(ghz(3), State.zero(2))


def test_from_ops():
    c = Circuit.from_ops(2, [("h", (0,)), ("cnot", (0, 1)), ("rz", (1, 0.1))])
    assert [g.name for g in c] == ["H", "CNOT", "RZ"]


def test_norm_drift_is_reported():
    st = State.zero(1)
    st.psi[0] = 2.0
    with pytest.raises(NormalizationDrift):
        Engine().apply_gate(st, Circuit.empty(1).h(0).gates[0])


def test_norm_check_can_be_disabled():
    st = State.zero(1)
    st.psi[0] = 2.0
    Engine(check_norm=False).apply_gate(st, Circuit.empty(1).h(0).gates[0])
    assert st.norm2() == pytest.approx(4.0)


def test_executor_from_config():
    ex = Executor.from_config(SimConfig(kernel="dense", dtype=np.complex64))
    st = ex.run(ghz(2))
    assert st.dtype == np.complex64
    assert ex.engine.kernel == "dense"


def test_unknown_kernel():
    with pytest.raises(ValueError):
        Engine(kernel="quantum")


def test_engine_rechecks_unitarity_with_its_own_tolerance():
    loose = Gate("U", [[1, 0], [0, 1 + 1e-6]], (0,), tol=1e-3)
    with pytest.raises(NonUnitaryGate):
        Engine(unitary_tol=1e-12, check_norm=False).apply_gate(State.zero(1), loose)
    Engine(unitary_tol=1e-3, check_norm=False).apply_gate(State.zero(1), loose)


def test_unitary_tol_from_config():
    loose = Gate("U", [[1, 0], [0, 1 + 1e-6]], (0,), tol=1e-3)
    eng = Engine.from_config(SimConfig(unitary_tol=1e-12, check_norm=False))
    with pytest.raises(NonUnitaryGate):
        eng.apply_gate(State.zero(1), loose)
