"""
perivoro.geometry
Vertex/cell containers over a SciPy Voronoi diagram and the segment-box
crossing used by the clipper.

The point at infinity is not a vertex: an unbounded cell holds `None` in its
cyclic vertex list where Qhull reports index -1.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import shapely
from scipy.spatial import Voronoi
from shapely.geometry import LineString, box
from shapely.ops import nearest_points

from .utils import CyclicSequence, is_in_box

Point2 = Tuple[float, float]


class VertexTable:
    """
    Mutable table of finite vertices, id -> (x, y).

    Ids 0..n-1 are the Voronoi vertices; `add` appends new ids above the
    current maximum. The clipper may only `add`; the collapser may only
    overwrite coordinates of existing ids.
    """

    def __init__(self, coordinates: Sequence[Sequence[float]]):
        self._xy: List[Point2] = [(float(x), float(y)) for x, y in coordinates]

    def __len__(self) -> int:
        return len(self._xy)

    def __getitem__(self, vid: int) -> Point2:
        return self._xy[vid]

    def __setitem__(self, vid: int, point: Sequence[float]) -> None:
        self._xy[vid] = (float(point[0]), float(point[1]))

    @property
    def max_id(self) -> int:
        return len(self._xy) - 1

    def add(self, point: Sequence[float]) -> int:
        self._xy.append((float(point[0]), float(point[1])))
        return self.max_id

    def in_box(self, vid: Optional[int], domain_size: Tuple[float, float]) -> bool:
        if vid is None:
            return False
        x, y = self._xy[vid]
        return is_in_box(x, y, domain_size)

    def distance(self, a: int, b: int) -> float:
        (x1, y1), (x2, y2) = self._xy[a], self._xy[b]
        return float(np.hypot(x1 - x2, y1 - y2))


@dataclass(frozen=True)
class Ray:
    """Infinite Voronoi ridge between two sites, leaving finite vertex `start`."""

    start: int
    sites: Tuple[int, int]
    direction: Point2


@dataclass
class Cell:
    """Voronoi cell of one site: cyclic vertex ids, None for the point at infinity."""

    site: int
    vertices: CyclicSequence
    rays: List[Ray] = field(default_factory=list)

    @property
    def unbounded(self) -> bool:
        return None in self.vertices

    def edges(self) -> Iterator[Tuple[Optional[int], Optional[int]]]:
        return self.vertices.pairs()


def build_voronoi(points: np.ndarray) -> Tuple[VertexTable, List[Cell]]:
    """
    Voronoi diagram of `points` (Qhull via SciPy).

    Bounded cells are re-ordered counterclockwise around their vertex
    centroid; unbounded cells keep Qhull's order with None in place of -1
    and list their infinite ridges as rays, each pointing away from the
    centroid of all points. Qhull errors (e.g. coincident points) propagate.
    """
    points = np.asarray(points, dtype=float)
    vor = Voronoi(points)
    vertices = VertexTable(vor.vertices)

    # rays incident to each input point index
    center = vor.points.mean(axis=0)
    all_rays: Dict[int, List[Ray]] = {}
    for (p1, p2), (v1, v2) in zip(vor.ridge_points, vor.ridge_vertices):
        if v1 >= 0 and v2 >= 0:
            continue
        t = vor.points[p2] - vor.points[p1]
        t /= np.linalg.norm(t)
        n = np.array([-t[1], t[0]])  # normal
        midpoint = vor.points[[p1, p2]].mean(axis=0)
        direction = np.sign(np.dot(midpoint - center, n)) * n
        ray = Ray(
            start=int(max(v1, v2)),
            sites=(int(min(p1, p2)), int(max(p1, p2))),
            direction=(float(direction[0]), float(direction[1])),
        )
        all_rays.setdefault(int(p1), []).append(ray)
        all_rays.setdefault(int(p2), []).append(ray)

    cells: List[Cell] = []
    for site, region_idx in enumerate(vor.point_region):
        region = vor.regions[region_idx]
        if region and all(v >= 0 for v in region):
            vs = vor.vertices[region]
            c = vs.mean(axis=0)
            angles = np.arctan2(vs[:, 1] - c[1], vs[:, 0] - c[0])
            ids = [int(v) for v in np.asarray(region)[np.argsort(angles)]]
        else:
            ids = [int(v) if v >= 0 else None for v in region]
        cells.append(Cell(site=site, vertices=CyclicSequence(ids), rays=all_rays.get(site, [])))
    return vertices, cells


def box_crossing(inside: Sequence[float], outside: Sequence[float], domain_size: Tuple[float, float]) -> Point2:
    """
    Point where the segment inside -> outside leaves [0, lx] x [0, ly].

    The farthest boundary hit from `inside` is the exit point; this also covers
    an `inside` endpoint lying on the boundary and segments running along it.
    The result is snapped onto the rectangle.
    """
    lx, ly = domain_size
    ring = box(0.0, 0.0, lx, ly).exterior
    segment = LineString([tuple(inside), tuple(outside)])

    hits = shapely.get_coordinates(segment.intersection(ring))
    if len(hits) == 0:
        # round-off: the segment grazes the boundary without touching it
        hits = shapely.get_coordinates(nearest_points(ring, segment)[0])

    start = np.asarray(inside, dtype=float)
    exit_point = hits[np.argmax(np.hypot(hits[:, 0] - start[0], hits[:, 1] - start[1]))]
    return (float(np.clip(exit_point[0], 0.0, lx)), float(np.clip(exit_point[1], 0.0, ly)))
