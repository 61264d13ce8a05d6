# svsim/bench.py
import argparse, csv, logging, os, socket, subprocess, time
from datetime import datetime
import numpy as np
from .circuit import Circuit, Executor
from .engine import Engine
from .grover import grover_search

DATA_DIR = os.path.join(os.getcwd(), "data")
DTYPE = np.complex64

def kernel_dir(kernel, data_dir=None):
    path = os.path.join(data_dir or DATA_DIR, kernel)
    os.makedirs(path, exist_ok=True)
    return path

def make_executor(kernel, threads=None):
    # benchmarks time the kernels, not the norm check
    return Executor(Engine(kernel=kernel, check_norm=False, num_threads=threads), dtype=DTYPE)

def warmup(circ, kernel, threads=None):
    # one dummy run to JIT-compile & warm caches
    make_executor(kernel, threads).run(circ)

# ---------------------------------------------------------------------

def git_commit():
    try:
        return subprocess.check_output(["git", "rev-parse", "--short", "HEAD"],
                                       stderr=subprocess.DEVNULL).decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return ""

def meta_row():
    return {
        "hostname": socket.gethostname(),
        "commit": git_commit(),
        "dtype": np.dtype(DTYPE).name,
        "timestamp": datetime.now().isoformat(timespec="seconds"),
    }

HEADER = ["experiment","qubits","depth","kernel","threads","gates","wall_ms","hostname","commit","dtype","timestamp"]

def new_csv(path):
    """Create/overwrite CSV with header."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", newline="") as f:
        csv.DictWriter(f, fieldnames=HEADER).writeheader()

def write_row(path, row):
    with open(path, "a", newline="") as f:
        csv.DictWriter(f, fieldnames=HEADER).writerow({**row, **meta_row()})

# ---------------------------------------------------------------------

def random_circuit(n, depth, seed=0):
    """Alternating layers: H/X on every qubit, then CNOTs on neighbouring pairs."""
    rng = np.random.default_rng(seed)
    gates = []
    for layer in range(depth):
        if layer % 2 == 0:
            for k in range(n):
                gates.append(("h" if rng.integers(0, 2) == 0 else "x", (k,)))
        else:
            for k in range(0, n-1, 2):
                pair = (k, k+1) if rng.integers(0, 2) == 0 else (k+1, k)
                gates.append(("cnot", pair))
    return Circuit.from_ops(n, gates)

def time_run(circ, kernel, threads=None):
    ex = make_executor(kernel, threads)
    t0 = time.perf_counter()
    ex.run(circ)
    return (time.perf_counter() - t0) * 1e3  # ms

def numba_max_threads():
    try:
        from .apply_numba import get_threads, set_threads
    except ImportError:
        return os.cpu_count() or 1
    set_threads(os.cpu_count() or 1)
    return get_threads()

def threads_for(kernel):
    return numba_max_threads() if kernel == "numba" else 0

# ---------------------------------------------------------------------
# individual experiments

def bench_qubits(ns, depth, kernel, out_path):
    print(f"[run] Qubits scaling → {out_path}")
    new_csv(out_path)
    warmup(random_circuit(min(ns), depth, seed=42), kernel)
    for n in ns:
        circ = random_circuit(n, depth, seed=42)
        wall = time_run(circ, kernel)
        write_row(out_path, {"experiment": "qubits", "qubits": n, "depth": depth, "kernel": kernel,
                             "threads": threads_for(kernel), "gates": len(circ), "wall_ms": f"{wall:.3f}"})
        print(f"  n={n}  wall={wall:.2f} ms")
    print("✓ done.\n")

def bench_threads(n, depth, threads_list, out_path):
    print(f"[run] Thread scaling → {out_path}")
    new_csv(out_path)
    circ = random_circuit(n, depth, seed=123)
    warmup(circ, "numba", threads=1)
    t1 = time_run(circ, "numba", threads=1)
    pool = numba_max_threads()
    print(f"  pool={pool}  T1={t1:.1f} ms")

    for t in threads_list:
        tt = min(int(t), pool)
        if tt != t:
            print(f"  requested t={t} > pool={pool}; using t={tt}")
        wall = time_run(circ, "numba", threads=tt)
        speedup = t1 / wall if wall > 0 else float("nan")
        write_row(out_path, {"experiment": "threads", "qubits": n, "depth": depth, "kernel": "numba",
                             "threads": tt, "gates": len(circ), "wall_ms": f"{wall:.3f}"})
        print(f"  t={tt}  wall={wall:.2f} ms  speedup={speedup:.2f}×")
    print("✓ done.\n")

def bench_depth(n, depths, kernel, out_path):
    print(f"[run] Depth scaling → {out_path}")
    new_csv(out_path)
    warmup(random_circuit(n, min(depths), seed=7), kernel)

    for d in depths:
        circ = random_circuit(n, d, seed=7)
        wall = time_run(circ, kernel)
        write_row(out_path, {"experiment": "depth", "qubits": n, "depth": d, "kernel": kernel,
                             "threads": threads_for(kernel), "gates": len(circ), "wall_ms": f"{wall:.3f}"})
        print(f"  depth={d}  wall={wall:.2f} ms")
    print("✓ done.\n")

def bench_grover(ns, kernel, out_path):
    print(f"[run] Grover search → {out_path}")
    new_csv(out_path)
    warmup(Circuit.empty(min(ns)).h_all(), kernel)
    for n in ns:
        ex = make_executor(kernel)
        t0 = time.perf_counter()
        res = grover_search(n, [(1 << n) - 1], executor=ex)
        wall = (time.perf_counter() - t0) * 1e3
        write_row(out_path, {"experiment": "grover", "qubits": n, "depth": res.iterations, "kernel": kernel,
                             "threads": threads_for(kernel), "gates": 2 * n * res.iterations + n,
                             "wall_ms": f"{wall:.3f}"})
        print(f"  n={n}  iterations={res.iterations}  P={res.probability:.4f}  wall={wall:.2f} ms")
    print("✓ done.\n")

# ---------------------------------------------------------------------
def _ints(s):
    return [int(x) for x in s.split(",")]

def build_parser():
    p = argparse.ArgumentParser(description="svsim benchmarks → data/<kernel>/*.csv")
    p.add_argument("--data-dir", type=str, default=None)
    sub = p.add_subparsers(dest="cmd", required=True)

    p_qubits = sub.add_parser("qubits")
    p_qubits.add_argument("--ns", type=str, required=True)
    p_qubits.add_argument("--depth", type=int, default=100)
    p_qubits.add_argument("--kernel", type=str, default="numba", choices=["serial","numba","dense"])

    p_threads = sub.add_parser("threads")
    p_threads.add_argument("--n", type=int, default=16)
    p_threads.add_argument("--depth", type=int, default=200)
    p_threads.add_argument("--threads", type=str, default="1,2,4,8,16")

    p_depth = sub.add_parser("depth")
    p_depth.add_argument("--n", type=int, default=12)
    p_depth.add_argument("--depths", type=str, default="10,50,100,300,600")
    p_depth.add_argument("--kernel", type=str, default="numba", choices=["serial","numba","dense"])

    p_grover = sub.add_parser("grover")
    p_grover.add_argument("--ns", type=str, default="4,6,8,10")
    p_grover.add_argument("--kernel", type=str, default="numba", choices=["serial","numba","dense"])
    return p

def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.WARNING)
    kernel = getattr(args, "kernel", "numba")
    base = kernel_dir(kernel, args.data_dir)

    if args.cmd == "qubits":
        bench_qubits(_ints(args.ns), args.depth, kernel, os.path.join(base, "qubits.csv"))
    elif args.cmd == "threads":
        bench_threads(args.n, args.depth, _ints(args.threads), os.path.join(base, "threads.csv"))
    elif args.cmd == "depth":
        bench_depth(args.n, _ints(args.depths), kernel, os.path.join(base, "depth.csv"))
    elif args.cmd == "grover":
        bench_grover(_ints(args.ns), kernel, os.path.join(base, "grover.csv"))

if __name__ == "__main__":
    main()
