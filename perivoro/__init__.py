"""
perivoro: periodic Voronoi meshes of a rectangle from blue-noise sites.
"""
from .utils import (
    CyclicSequence,
    is_in_box,
    points_in_box,
    reference_length,
    calculate_hexagon_centers,
)
from .config import GeneratorConfig
from .geometry import Cell, Ray, VertexTable, box_crossing, build_voronoi
from .sampler import InfeasiblePackingError, sample_sites
from .solver import Solver

__all__ = [
    "CyclicSequence",
    "is_in_box",
    "points_in_box",
    "reference_length",
    "calculate_hexagon_centers",
    "GeneratorConfig",
    "Cell",
    "Ray",
    "VertexTable",
    "box_crossing",
    "build_voronoi",
    "InfeasiblePackingError",
    "sample_sites",
    "Solver",
]
