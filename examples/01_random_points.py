#!/usr/bin/env python3
"""
01_random_points.py
Quick start: blue-noise sites -> periodic Voronoi mesh -> export.

Usage:
  python examples/01_random_points.py --n 20 --seed 0 --out out --plot

Requires:
  pip install perivoro
  (optional for --plot) pip install "perivoro[plots]"
"""
import argparse
from pathlib import Path

from perivoro import GeneratorConfig, Solver

def main():
    p = argparse.ArgumentParser()
    p.add_argument("--n", type=int, default=20, help="number of sites")
    p.add_argument("--seed", type=int, default=0, help="random seed")
    p.add_argument("--out", type=str, default="out", help="output directory")
    p.add_argument("--plot", action="store_true", help="save a PNG figure")
    args = p.parse_args()

    config = GeneratorConfig(lx=2.0, ly=1.0, n_sites=args.n, delta=0.7, seed=args.seed)
    sites = config.sample_sites()

    s = Solver(sites, domain_size=config.domain_size)
    nodes, edges = s.run(save_fig=False)

    print("[perivoro] periodic mesh on random sites:")
    print("  boundary sites :", len(s.boundary_sites))
    print("  mirror sites   :", len(s.mirror_points))
    print("  nodes / edges  :", len(nodes), "/", len(edges))

    s.export_geometry(dir_path=args.out, file_type="txt")
    if args.plot:
        s.save_figure(str(Path(args.out) / "voro_random.png"))

if __name__ == "__main__":
    main()
