"""
perivoro.sampler
Blue-noise site placement by rejection sampling in a rectangle.

Every accepted site keeps at least `min_spacing` from all other sites and at
least `min_clearance` from the four domain edges. Placement never backtracks:
if the attempt budget runs out first, the run is abandoned.
"""
from typing import Optional, Tuple

import numpy as np
import structlog

logger = structlog.get_logger()


class InfeasiblePackingError(RuntimeError):
    """Raised when the sampler exhausts its attempt budget."""

    def __init__(self, placed: int, requested: int, attempts: int):
        self.placed = placed
        self.requested = requested
        self.attempts = attempts
        super().__init__(
            f"Could not position all the sites ({placed} of {requested} placed "
            f"after {attempts} attempts). Consider increasing the maximum number "
            f"of attempts and/or increasing delta to relax the minimum distance."
        )


def sample_sites(
    n_sites: int,
    domain_size: Tuple[float, float],
    min_spacing: float,
    min_clearance: float,
    max_attempts: int,
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Place `n_sites` random sites in [0, lx] x [0, ly].

    Parameters
    ----------
    n_sites       : number of sites to place
    domain_size   : (lx, ly)
    min_spacing   : minimum distance between two sites
    min_clearance : minimum distance between a site and each domain edge
    max_attempts  : budget of attempts for the sites after the first one
    rng           : numpy Generator (fresh default_rng() if None)

    Returns
    -------
    (n_sites, 2) float ndarray

    Raises
    ------
    InfeasiblePackingError if the budget is exhausted before all sites are placed.
    """
    if n_sites < 1:
        raise ValueError("n_sites must be at least 1.")
    if rng is None:
        rng = np.random.default_rng()
    lx, ly = domain_size
    if 2.0 * min_clearance > min(lx, ly):
        raise InfeasiblePackingError(0, n_sites, 0)

    # first site: uniform over the region clear of the edges
    sites = np.zeros((n_sites, 2), dtype=float)
    sites[0] = (
        min_clearance + (lx - 2.0 * min_clearance) * rng.random(),
        min_clearance + (ly - 2.0 * min_clearance) * rng.random(),
    )
    placed = 1
    attempts = 0

    while placed < n_sites:
        attempts += 1
        if attempts > max_attempts:
            logger.error("Site placement failed", placed=placed, requested=n_sites, attempts=max_attempts)
            raise InfeasiblePackingError(placed, n_sites, max_attempts)

        x = lx * rng.random()
        y = ly * rng.random()

        distances = np.hypot(sites[:placed, 0] - x, sites[:placed, 1] - y)
        far_enough = bool(np.all(distances >= min_spacing))
        clear_of_edges = x >= min_clearance and lx - x >= min_clearance and y >= min_clearance and ly - y >= min_clearance
        if far_enough and clear_of_edges:
            sites[placed] = (x, y)
            placed += 1

    logger.info("Sites placed", n_sites=n_sites, attempts=attempts)
    return sites
