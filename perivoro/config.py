"""
perivoro.config
Run configuration: domain extents, site count, packing tightness and the
derived spacing thresholds.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .sampler import sample_sites
from .utils import reference_length


@dataclass
class GeneratorConfig:
    """Configuration for one periodic Voronoi generation run."""

    lx: float = 2.0
    ly: float = 1.0
    n_sites: int = 10
    delta: float = 0.7  # lower = tighter packing
    max_attempts: int = 100000
    clearance_fraction: float = 0.05
    short_edge_fraction: float = 0.05
    seed: Optional[int] = None

    def __post_init__(self):
        if self.lx <= 0.0 or self.ly <= 0.0:
            raise ValueError("Domain extents lx and ly must be positive.")
        if self.n_sites < 1:
            raise ValueError("n_sites must be at least 1.")
        if self.delta <= 0.0:
            raise ValueError("delta must be positive.")
        if self.max_attempts < 0:
            raise ValueError("max_attempts cannot be negative.")
        for name in ("clearance_fraction", "short_edge_fraction"):
            value = getattr(self, name)
            if not 0.0 < value < 1.0:
                raise ValueError(f"{name} must lie in (0, 1), got {value}.")

    @property
    def domain_size(self) -> Tuple[float, float]:
        return (float(self.lx), float(self.ly))

    @property
    def area(self) -> float:
        return self.lx * self.ly

    @property
    def reference_length(self) -> float:
        return reference_length(self.domain_size, self.n_sites)

    @property
    def min_spacing(self) -> float:
        """Minimum allowable distance between two sites."""
        return self.reference_length * self.delta

    @property
    def min_clearance(self) -> float:
        """Minimum allowable distance between a site and a domain edge."""
        return self.clearance_fraction * self.min_spacing

    @property
    def short_edge_length(self) -> float:
        return self.short_edge_fraction * self.lx

    def sample_sites(self, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """Run the site sampler with this configuration's thresholds."""
        if rng is None:
            rng = np.random.default_rng(self.seed)
        return sample_sites(
            self.n_sites,
            self.domain_size,
            min_spacing=self.min_spacing,
            min_clearance=self.min_clearance,
            max_attempts=self.max_attempts,
            rng=rng,
        )
