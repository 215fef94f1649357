import math
from typing import Generic, Iterator, List, Sequence, Tuple, TypeVar

import numpy as np

T = TypeVar("T")


class CyclicSequence(Generic[T]):
    """
    Ordered cyclic sequence: the item after the last one is the first one.

    Examples
    --------
    >>> list(CyclicSequence([3, 5, 7]).pairs())
    [(3, 5), (5, 7), (7, 3)]
    """

    def __init__(self, items: Sequence[T]):
        self._items: List[T] = list(items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __contains__(self, item) -> bool:
        return item in self._items

    def __getitem__(self, index: int) -> T:
        return self._items[index % len(self._items)]

    def __repr__(self) -> str:
        return f"CyclicSequence({self._items!r})"

    def pairs(self) -> Iterator[Tuple[T, T]]:
        """Consecutive pairs, closing the cycle."""
        n = len(self._items)
        if n < 2:
            return
        for i in range(n):
            yield self._items[i], self[i + 1]


def is_in_box(x: float, y: float, domain_size: Tuple[float, float]) -> bool:
    """True if (x, y) lies within or on [0, lx] x [0, ly]."""
    lx, ly = domain_size
    return 0.0 <= x <= lx and 0.0 <= y <= ly


def points_in_box(points: np.ndarray, domain_size: Tuple[float, float]) -> np.ndarray:
    """
    Boolean mask of the points lying within or on the rectangular domain.

    Parameters
    ----------
    points      : (N,2) array-like
    domain_size : (lx, ly)

    Returns
    -------
    (N,) bool ndarray.
    """
    points = np.asarray(points, dtype=float).reshape(-1, 2)
    upper = np.asarray(domain_size, dtype=float)
    return np.logical_and(np.all(points >= 0.0, axis=1), np.all(points <= upper, axis=1))


def reference_length(domain_size: Tuple[float, float], n_sites: int) -> float:
    """
    Side-to-side distance of a regular hexagonal packing of `n_sites` cells
    covering the domain area.
    """
    lx, ly = domain_size
    return math.sqrt(2.0 * lx * ly / (math.sqrt(3.0) * n_sites))


def calculate_hexagon_centers(domain_size: Tuple[float, float], spacing: float) -> List[Tuple[float, float]]:
    """
    Triangular lattice of sites (hexagonal cells) strictly inside the domain.

    Rows are `spacing * sqrt(3)/2` apart, every other row offset by half a
    spacing; the lattice is inset by half a spacing from the lower-left corner.
    """
    if spacing <= 0.0:
        raise ValueError("Spacing must be positive.")
    lx, ly = domain_size
    row_height = spacing * math.sqrt(3.0) / 2.0

    centers = []
    y = row_height / 2.0
    row = 0
    while y < ly:
        x = spacing / 2.0 + (row % 2) * (spacing / 2.0)
        while x < lx:
            centers.append((x, y))
            x += spacing
        y += row_height
        row += 1
    return centers
