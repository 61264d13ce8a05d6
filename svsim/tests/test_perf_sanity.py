# svsim/tests/test_perf_sanity.py
import csv
import os
import time
import numpy as np
from svsim.circuit import Circuit
from svsim import bench
from svsim import plot_results

def build_chain(n, depth):
    c = Circuit.empty(n)
    for _ in range(depth):
        c = c.h_all()
        for k in range(0, n-1, 2):
            c = c.cnot(k, k+1)
    return c

def test_bench_runs_and_times():
    n, depth = 12, 3     # ~moderate but quick in CI/local
    c = build_chain(n, depth)
    c.run(kernel="numba", num_threads=2)  # JIT warmup
    t0 = time.perf_counter()
    s1 = c.run(kernel="serial")
    t1 = time.perf_counter() - t0

    t0 = time.perf_counter()
    s2 = c.run(kernel="numba", num_threads=2)
    t2 = time.perf_counter() - t0

    # correctness
    assert np.allclose(s1.as_numpy(), s2.as_numpy(), atol=1e-9, rtol=0)
    # sanity: both timings are positive
    assert t1 > 0 and t2 > 0
    # don't hard-assert speedup (machines vary); just ensure it isn't catastrophically slower
    assert t2 < 5.0 * t1

def test_random_circuit_is_reproducible():
    a = bench.random_circuit(5, 6, seed=3)
    b = bench.random_circuit(5, 6, seed=3)
    assert [(g.name, g.targets, g.controls) for g in a] == [(g.name, g.targets, g.controls) for g in b]
    assert len(a) == 3 * 5 + 3 * 2

def test_bench_writes_csv_and_plots(tmp_path, capsys):
    out = tmp_path / "serial" / "qubits.csv"
    bench.bench_qubits([2, 3], depth=4, kernel="serial", out_path=str(out))
    with open(out) as f:
        rows = list(csv.DictReader(f))
    assert [int(r["qubits"]) for r in rows] == [2, 3]
    assert all(r["kernel"] == "serial" and float(r["wall_ms"]) > 0 for r in rows)
    assert "✓ done." in capsys.readouterr().out

    written = plot_results.plot_csv(str(out))
    assert len(written) == 1 and os.path.exists(written[0])

def test_bench_grover_rows(tmp_path):
    out = tmp_path / "dense" / "grover.csv"
    bench.bench_grover([3, 4], kernel="dense", out_path=str(out))
    rows = plot_results.load_rows(str(out))
    assert [r["depth"] for r in rows] == [2, 3]
