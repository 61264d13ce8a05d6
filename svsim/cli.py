# svsim/cli.py
"""
Command line front end.

    svsim run -n 2 "h q[0]" "cnot q[0],q[1]"
    svsim run -n 3 --file bell.txt --shots 1000 --seed 7
    svsim grover -n 3 --target 5 --shots 100

Instruction lines look like `h q[0]`, `cnot q[0],q[1]` or `rz(0.5) q[2]`;
blank lines and `#` comments are skipped.
"""
import argparse
import logging
import re
import sys
from typing import Iterable, List, Optional

import numpy as np

from .circuit import Circuit, Executor, Op
from .config import DTYPES, KERNELS, SimConfig
from .errors import SimulationError
from .grover import grover_search
from .measure import bitstring, probabilities, sample_counts

logger = logging.getLogger("svsim")

_INSTR = re.compile(r"^\s*([A-Za-z_]\w*)\s*(?:\(([^)]*)\))?\s+(.+?)\s*$")


def parse_instruction(line: str) -> Op:
    """'rz(0.5) q[2]' -> ('rz', (2, 0.5))."""
    m = _INSTR.match(line)
    if not m:
        raise ValueError(f"Invalid instruction: {line!r}")
    name, params, operands = m.groups()
    qubits = [int(q) for q in re.findall(r"\d+", operands)]
    if not qubits:
        raise ValueError(f"Invalid target qubits for instruction: {line!r}")
    args = [float(p) for p in params.split(",")] if params else []
    return name.lower(), tuple(qubits) + tuple(args)


def parse_program(lines: Iterable[str]) -> List[Op]:
    ops = []
    for raw in lines:
        line = raw.split("#", 1)[0].strip()
        if line:
            ops.append(parse_instruction(line))
    return ops


def print_probabilities(probs: np.ndarray, n: int, threshold: Optional[float] = None):
    """Print every basis state, or only those above `threshold` when given."""
    print("Final probabilities:")
    for i, p in enumerate(probs):
        if threshold is None or p > threshold:
            print(f"State |{bitstring(i, n)}>: {p:.5f}")


def print_counts(counts):
    print("Counts:")
    for bits, c in counts.items():
        print(f"  {bits}: {c}")


def _config(args) -> SimConfig:
    cfg = SimConfig.from_env()
    changes = {}
    if args.kernel:
        changes["kernel"] = args.kernel
    if args.dtype:
        changes["dtype"] = DTYPES[args.dtype]
    if args.backend:
        changes["backend"] = args.backend
    if args.threads:
        changes["num_threads"] = args.threads
    return cfg.with_(**changes)


def cmd_run(args) -> int:
    lines = list(args.instructions)
    if args.file:
        with open(args.file) as f:
            lines.extend(f.read().splitlines())
    circ = Circuit.from_ops(args.qubits, parse_program(lines))
    print(f"Starting circuit execution ({len(circ)} gates on {circ.n} qubits)...")
    st = Executor.from_config(_config(args)).run(circ)
    print_probabilities(probabilities(st), circ.n, threshold=args.threshold)
    if args.shots:
        print_counts(sample_counts(st, args.shots, np.random.default_rng(args.seed)))
    return 0


def cmd_grover(args) -> int:
    targets = [int(t) for t in args.target.split(",")] if args.target else []
    ex = Executor.from_config(_config(args))
    res = grover_search(args.qubits, targets, iterations=args.iterations, executor=ex)
    print(f"Grover search on {args.qubits} qubits ({1 << args.qubits} items), "
          f"{res.num_marked} marked, {res.iterations} iteration(s)")
    print(f"P(marked) = {res.probability:.5f}")
    print_probabilities(probabilities(res.state), args.qubits, threshold=args.threshold)
    if args.shots:
        print_counts(sample_counts(res.state, args.shots, np.random.default_rng(args.seed)))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="svsim", description="state-vector quantum circuit simulator")
    p.add_argument("-v", "--verbose", action="count", default=0)
    sub = p.add_subparsers(dest="cmd", required=True)

    def common(sp):
        sp.add_argument("-n", "--qubits", type=int, required=True)
        sp.add_argument("--kernel", choices=KERNELS)
        sp.add_argument("--dtype", choices=sorted(DTYPES))
        sp.add_argument("--backend", choices=["numpy", "cupy"])
        sp.add_argument("--threads", type=int)
        sp.add_argument("--shots", type=int, default=0)
        sp.add_argument("--seed", type=int)
        sp.add_argument("--threshold", type=float,
                        help="hide basis states at or below this probability (default: show all)")

    p_run = sub.add_parser("run", help="run a circuit given as instructions")
    common(p_run)
    p_run.add_argument("instructions", nargs="*")
    p_run.add_argument("--file")
    p_run.set_defaults(func=cmd_run)

    p_grover = sub.add_parser("grover", help="Grover search for marked values")
    common(p_grover)
    p_grover.add_argument("--target", type=str, required=True, help="comma separated marked values")
    p_grover.add_argument("--iterations", type=int,
                          help="rounds to run; the default round(pi/4*sqrt(N/M)) "
                               "overshoots on 2 qubits with one target, pass 1 there")
    p_grover.set_defaults(func=cmd_grover)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    try:
        return args.func(args)
    except (SimulationError, ValueError) as e:
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
