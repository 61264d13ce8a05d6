# svsim/tests/test_correctness_small.py
import numpy as np
import pytest
from svsim.circuit import Circuit
from svsim.engine import Engine
from svsim.state import State
from svsim import gates as G

def almost(p, q, tol=1e-9):
    return np.allclose(p, q, atol=tol, rtol=0)

def probs(psi):
    return np.abs(psi)**2

def random_state(n, seed):
    rng = np.random.default_rng(seed)
    amps = rng.normal(size=1 << n) + 1j * rng.normal(size=1 << n)
    return State.from_amplitudes(amps, normalize=True)

def test_h_on_zero():
    st = Circuit.empty(1).h(0).run()
    s = 1 / np.sqrt(2)
    assert almost(st.as_numpy(), [s, s])

def test_x_flips():
    # |0> -> X -> |1>
    st = Circuit.empty(1).x(0).run()
    assert almost(probs(st.as_numpy()), [0.0, 1.0])

@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_x_twice_is_identity(seed):
    st = random_state(1, seed)
    out = Circuit.empty(1).x(0).x(0).run(initial=st)
    assert np.array_equal(out.as_numpy(), st.as_numpy())

def test_cnot_control_off_noop():
    # |00> --(CNOT c=1,t=0)--> stays |00>
    st = Circuit.empty(2).cnot(1,0).run()
    expect = np.zeros(4); expect[0]=1.0
    assert almost(probs(st.as_numpy()), expect)

def test_cnot_control_on_flips():
    # |10> in index encoding: bit0 (qubit 0) = 1, bit1 = 0 -> index 1
    st = Circuit.empty(2).cnot(0,1).run(initial=State.basis(2, 0b01))
    expect = np.zeros(4); expect[0b11]=1.0
    assert np.array_equal(probs(st.as_numpy()), expect)

def test_cnot_prepared_by_x():
    # X on qubit 1 (control), then CNOT(1->0): index 2 -> index 3
    st = Circuit.empty(2).x(1).cnot(1,0).run()
    expect = np.zeros(4); expect[3]=1.0
    assert almost(probs(st.as_numpy()), expect)

def test_bell_state():
    st = Circuit.empty(2).h(0).cnot(0,1).run()
    s = 1 / np.sqrt(2)
    assert almost(st.as_numpy(), [s, 0, 0, s])

def test_swap_exchanges_qubits():
    st = Circuit.empty(3).swap(0, 2).run(initial=State.basis(3, 0b001))
    assert almost(probs(st.as_numpy()), np.eye(8)[0b100])

@pytest.mark.parametrize("controls,flips", [
    ((0, 0), False), ((1, 0), False), ((0, 1), False), ((1, 1), True),
])
def test_toffoli_truth_table(controls, flips):
    idx = controls[0] | (controls[1] << 1)
    st = Circuit.empty(3).toffoli(0, 1, 2).run(initial=State.basis(3, idx))
    expect = idx | (4 if flips else 0)
    assert almost(probs(st.as_numpy()), np.eye(8)[expect])

def test_y_and_z_phases():
    s = 1 / np.sqrt(2)
    st = Circuit.empty(1).y(0).run()
    assert almost(st.as_numpy(), [0, 1j])
    st = Circuit.empty(1).h(0).z(0).run()
    assert almost(st.as_numpy(), [s, -s])

def test_t_squared_is_s():
    a = Circuit.empty(1).h(0).t(0).t(0).run()
    b = Circuit.empty(1).h(0).s(0).run()
    assert almost(a.as_numpy(), b.as_numpy())

def test_dense_cnot_matches_controlled_form():
    # CNOT() has bit 1 as control, bit 0 as target
    dense = G.unitary(G.CNOT(), targets=[1, 0], name="CNOT4")
    for i in range(4):
        a = Circuit.empty(2).append(dense).run(initial=State.basis(2, i))
        b = Circuit.empty(2).cnot(0, 1).run(initial=State.basis(2, i))
        assert almost(a.as_numpy(), b.as_numpy())

def test_three_qubit_matrix_matches_toffoli():
    dense = G.unitary(G.TOFFOLI(), targets=[2, 0, 1], name="CCX8")
    for i in range(8):
        a = Circuit.empty(3).append(dense).run(initial=State.basis(3, i))
        b = Circuit.empty(3).toffoli(0, 1, 2).run(initial=State.basis(3, i))
        assert almost(a.as_numpy(), b.as_numpy())

@pytest.mark.parametrize("kernel", ["serial", "dense"])
def test_normalization(kernel):
    c = (Circuit.empty(3).h(0).h(1).cnot(1,0).rx(2, 0.3).ry(0, 1.1).rz(1, -0.7)
         .toffoli(0, 1, 2).swap(0, 2).p(1, 0.25))
    eng = Engine(kernel=kernel)
    st = random_state(3, 7)
    for gate in c:
        eng.apply_gate(st, gate)
        assert abs(1.0 - st.norm2()) < 1e-9

def test_complex64_run():
    st = Circuit.empty(2).h(0).cnot(0, 1).run(dtype=np.complex64)
    assert st.dtype == np.complex64
    assert almost(probs(st.as_numpy()), [0.5, 0, 0, 0.5], tol=1e-6)
