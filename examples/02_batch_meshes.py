#!/usr/bin/env python3
"""
02_batch_meshes.py
Batch over different seeds -> mesh sizes -> stream results to summary.csv.

Usage:
  python examples/02_batch_meshes.py --n 30 --seeds 10 --out out/batch
"""
import argparse
import csv
from pathlib import Path

from perivoro import GeneratorConfig, InfeasiblePackingError, Solver

def run_once(n: int, delta: float, seed: int):
    config = GeneratorConfig(n_sites=n, delta=delta, seed=seed)
    s = Solver(config.sample_sites(), domain_size=config.domain_size)
    nodes, edges = s.run(save_fig=False)
    return dict(
        boundary_sites=len(s.boundary_sites),
        raw_vertices=s.raw_vertex_count,
        nodes=len(nodes),
        edges=len(edges),
    )

def main():
    p = argparse.ArgumentParser()
    p.add_argument("--n", type=int, default=30, help="number of sites per run")
    p.add_argument("--delta", type=float, default=0.7, help="packing tightness")
    p.add_argument("--seeds", type=int, default=8, help="how many seeds to run (0..seeds-1)")
    p.add_argument("--out", type=str, default="out/batch", help="output directory")
    args = p.parse_args()

    out_dir = Path(args.out)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_csv = out_dir / "summary.csv"

    fieldnames = ["seed", "n", "status", "boundary_sites", "raw_vertices", "nodes", "edges"]
    with out_csv.open("w", newline="") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        for seed in range(args.seeds):
            try:
                row = dict(seed=seed, n=args.n, status="ok", **run_once(args.n, args.delta, seed))
            except InfeasiblePackingError as e:
                row = dict(seed=seed, n=args.n, status="infeasible")
                print(f"[seed {seed:02d}] {e}")
            w.writerow(row)
            print(f"[seed {seed:02d}] {row}")

    print(f"[perivoro] Done. CSV at: {out_csv}")

if __name__ == "__main__":
    main()
