import numpy as np
import pytest
from perivoro import GeneratorConfig, InfeasiblePackingError, sample_sites


class _CountingRng:
    """Generator stand-in that counts draws."""

    def __init__(self, seed=0):
        self._rng = np.random.default_rng(seed)
        self.draws = 0

    def random(self):
        self.draws += 1
        return self._rng.random()


def test_spacing_and_clearance_invariants():
    config = GeneratorConfig(lx=2.0, ly=1.0, n_sites=10, delta=0.7, seed=0)
    sites = config.sample_sites()

    assert sites.shape == (10, 2)
    d = np.hypot(*(sites[:, None, :] - sites[None, :, :]).transpose(2, 0, 1))
    np.fill_diagonal(d, np.inf)
    assert d.min() >= config.min_spacing

    x, y = sites[:, 0], sites[:, 1]
    edge_distance = np.min(np.stack([x, config.lx - x, y, config.ly - y]), axis=0)
    assert np.all(edge_distance >= config.min_clearance)

def test_same_seed_same_sites():
    config = GeneratorConfig(n_sites=8, seed=42)
    assert np.array_equal(config.sample_sites(), config.sample_sites())

def test_zero_attempts_fails_before_second_point():
    rng = _CountingRng()
    with pytest.raises(InfeasiblePackingError) as exc:
        sample_sites(5, (2.0, 1.0), min_spacing=0.1, min_clearance=0.005, max_attempts=0, rng=rng)
    assert exc.value.placed == 1
    assert exc.value.requested == 5
    # only the first site's two coordinates were drawn
    assert rng.draws == 2

def test_single_site_needs_no_attempts():
    sites = sample_sites(1, (2.0, 1.0), min_spacing=0.1, min_clearance=0.005, max_attempts=0,
                         rng=np.random.default_rng(0))
    assert sites.shape == (1, 2)

def test_infeasible_density_reports_guidance():
    config = GeneratorConfig(n_sites=50, delta=5.0, max_attempts=200, seed=0)
    with pytest.raises(InfeasiblePackingError, match="maximum number of attempts") as exc:
        config.sample_sites()
    assert exc.value.placed < 50
    assert exc.value.attempts == 200

def test_clearance_larger_than_domain_is_infeasible():
    with pytest.raises(InfeasiblePackingError):
        sample_sites(2, (1.0, 0.1), min_spacing=0.1, min_clearance=0.06, max_attempts=10)
