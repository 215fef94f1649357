"""
perivoro.cli
Command-line entry point: sample sites, build the periodic mesh, export it.

Usage:
  perivoro --lx 2 --ly 1 --n 10 --delta 0.7 --seed 0 --out out --plot
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import structlog

from .config import GeneratorConfig
from .sampler import InfeasiblePackingError
from .solver import Solver

logger = structlog.get_logger()


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s", stream=sys.stderr)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="perivoro", description="Periodic Voronoi mesh generator.")
    p.add_argument("--lx", type=float, default=2.0, help="domain width")
    p.add_argument("--ly", type=float, default=1.0, help="domain height")
    p.add_argument("--n", type=int, default=10, help="number of sites")
    p.add_argument("--delta", type=float, default=0.7, help="packing tightness (lower = denser)")
    p.add_argument("--max-attempts", type=int, default=100000, help="sampler retry ceiling")
    p.add_argument("--seed", type=int, default=None, help="random seed")
    p.add_argument("--out", type=str, default="out", help="output directory")
    p.add_argument("--format", choices=("txt", "csv", "npy"), default="txt", help="output file type")
    p.add_argument("--plot", action="store_true", help="save a PNG figure")
    p.add_argument("--verbose", action="store_true", help="debug logging")
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = GeneratorConfig(
            lx=args.lx,
            ly=args.ly,
            n_sites=args.n,
            delta=args.delta,
            max_attempts=args.max_attempts,
            seed=args.seed,
        )
    except ValueError as e:
        logger.error("Invalid configuration", error=str(e))
        return 2

    logger.info(
        "Starting generation",
        domain=config.domain_size,
        n_sites=config.n_sites,
        min_spacing=round(config.min_spacing, 6),
        min_clearance=round(config.min_clearance, 6),
    )

    try:
        sites = config.sample_sites(np.random.default_rng(config.seed))
    except InfeasiblePackingError as e:
        logger.error("Infeasible packing", placed=e.placed, requested=e.requested, attempts=e.attempts)
        print(str(e), file=sys.stderr)
        print("try again!", file=sys.stderr)
        return 1

    s = Solver(sites, domain_size=config.domain_size, short_edge_fraction=config.short_edge_fraction)
    s.run(save_fig=False)
    s.export_geometry(dir_path=args.out, file_type=args.format)
    if args.plot:
        s.save_figure(str(Path(args.out) / "perivoro.png"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
