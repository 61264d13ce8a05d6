# svsim/plot_results.py
import csv, os, sys
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from collections import defaultdict
from statistics import median

from .bench import DATA_DIR

def load_rows(path):
    rows = []
    with open(path, "r") as f:
        for row in csv.DictReader(f):
            row["qubits"]  = int(row["qubits"])
            row["depth"]   = int(row["depth"])
            row["threads"] = int(row["threads"])
            row["wall_ms"] = float(row["wall_ms"])
            rows.append(row)
    return rows

def median_by_key(rows, key_fields):
    buckets = defaultdict(list)
    for r in rows:
        buckets[tuple(r[k] for k in key_fields)].append(r["wall_ms"])
    agg = []
    for key, vals in buckets.items():
        out = dict(zip(key_fields, key))
        out["wall_ms"] = float(median(vals))
        agg.append(out)
    return sorted(agg, key=lambda r: tuple(r[k] for k in key_fields))

def _save(out_dir, name):
    path = os.path.join(out_dir, name)
    plt.grid(True, which="both", ls="--", lw=0.5)
    plt.tight_layout()
    plt.savefig(path, dpi=200)
    plt.close()
    return path

def plot_runtime_vs(rows, x, out_dir, tag, log=False):
    """Median wall time against `x` ("qubits" or "depth"), one line per kernel."""
    pts = median_by_key(rows, ["kernel", x])
    if not pts:
        return None
    by_kernel = defaultdict(list)
    for r in pts:
        by_kernel[r["kernel"]].append((r[x], r["wall_ms"]))
    plt.figure()
    for kernel, p in by_kernel.items():
        xs, ys = zip(*p)
        plt.plot(xs, ys, marker="o", label=kernel)
    plt.xlabel("Qubits (n)" if x == "qubits" else x.capitalize())
    plt.ylabel("Runtime (ms)")
    if log:
        plt.yscale("log")
    plt.title(f"Runtime vs {x.capitalize()} [{tag}]")
    plt.legend()
    return _save(out_dir, f"runtime_vs_{x}_{tag}.png")

def plot_speedup_vs_threads(rows, out_dir, tag):
    pts = median_by_key(rows, ["threads"])
    t1 = next((r["wall_ms"] for r in pts if r["threads"] == 1), None)
    if not t1:
        return None
    plt.figure()
    plt.plot([r["threads"] for r in pts], [t1 / r["wall_ms"] for r in pts], marker="o")
    plt.xlabel("Threads")
    plt.ylabel("Speedup (T1/Tt)")
    plt.title(f"Speedup vs Threads [{tag}]")
    return _save(out_dir, f"speedup_vs_threads_{tag}.png")

def plot_csv(path):
    """Plot one bench CSV next to itself; returns the PNG paths written."""
    tag = os.path.splitext(os.path.basename(path))[0]
    kernel = os.path.basename(os.path.dirname(path))
    rows = load_rows(path)
    out_dir = os.path.dirname(path)
    if tag == "threads":
        written = [plot_speedup_vs_threads(rows, out_dir, kernel)]
    elif tag == "depth":
        written = [plot_runtime_vs(rows, "depth", out_dir, kernel)]
    else:
        written = [plot_runtime_vs(rows, "qubits", out_dir, f"{tag}_{kernel}", log=True)]
    return [w for w in written if w]

def find_csvs(data_dir):
    csvs = []
    for root, _, files in os.walk(data_dir):
        csvs.extend(os.path.join(root, f) for f in files if f.endswith(".csv"))
    return sorted(csvs)

def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    data_dir = argv[0] if argv else DATA_DIR
    csvs = find_csvs(data_dir)
    if not csvs:
        print(f"No CSV files found under {data_dir}")
        return
    for path in csvs:
        try:
            written = plot_csv(path)
        except (KeyError, ValueError) as e:
            print(f"Skipping {path}: {e}")
            continue
        print(f"Plotted {path} → {', '.join(written) or 'nothing'}")
    print(f"\nSaved all plots under {data_dir}/<kernel>/*.png")

if __name__ == "__main__":
    main()
