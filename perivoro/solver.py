#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
perivoro.solver
Periodic Voronoi tessellation of a rectangle [0,Lx]x[0,Ly] as a node/edge mesh.
- Boundary-site detection on the plain Voronoi diagram
- Periodic mirror insertion (3x3 tiling of boundary sites)
- Clipping of the enlarged diagram to the box, stitching boundary crossings
- Collapse of degenerate (short) edges
- TXT/CSV/NPY export

Dependencies: numpy, scipy, shapely, structlog
Optional: matplotlib (only if save_fig=True in run)
"""
from __future__ import annotations

import os
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog

from .geometry import Cell, Ray, VertexTable, box_crossing, build_voronoi

logger = structlog.get_logger()

Edge = Tuple[int, int]

# Qhull needs at least this many points for a 2D Voronoi diagram
MIN_VORONOI_POINTS = 4


class Solver:
    """
    Periodic Voronoi mesher for a fixed set of sites in [0,Lx]x[0,Ly].

    Workflow:
        s = Solver(sites, domain_size=(2.0, 1.0))
        nodes, edges = s.run(save_fig=False)
        s.export_geometry(dir_path="./out", file_type="txt")

    Stages can also be called one at a time, in this order:
        detect_boundary_sites -> insert_mirrors -> clip_to_box
        -> collapse_short_edges -> build_mesh

    Attributes set by the stages:
        boundary_sites : list[int]               # detect_boundary_sites
        mirror_points : (8B,2) float array        # insert_mirrors
        vertices : VertexTable                    # insert_mirrors; grown by clip_to_box,
                                                  # coordinates overwritten by collapse_short_edges
        cells : list[Cell]                        # insert_mirrors (sites first, then mirrors)
        raw_vertex_count : int                    # vertices in the enlarged diagram
        clipped_edges, clipped_vertices           # clip_to_box
        mesh_edges, mesh_vertices                 # collapse_short_edges
        nodes : (M,3) array [id, x, y]            # build_mesh
        edges : (E,3) int array [id, n1, n2]      # build_mesh
    """

    def __init__(
        self,
        sites: Sequence[Tuple[float, float]],
        domain_size: Tuple[float, float] = (2.0, 1.0),
        short_edge_fraction: float = 0.05,
    ):
        self.domain_size: Tuple[float, float] = (float(domain_size[0]), float(domain_size[1]))
        lx, ly = self.domain_size
        if lx <= 0.0 or ly <= 0.0:
            raise ValueError("Domain extents must be positive.")

        self.sites = np.asarray(sites, dtype=float)
        if self.sites.ndim != 2 or self.sites.shape[1] != 2 or len(self.sites) == 0:
            raise ValueError("Sites must be a non-empty (N,2) array.")
        strictly_inside = np.all((self.sites > 0.0) & (self.sites < np.array(self.domain_size)), axis=1)
        if not np.all(strictly_inside):
            raise ValueError("All sites must lie strictly inside the domain.")

        self.short_edge_length = short_edge_fraction * lx

        self.boundary_sites: List[int] = []
        self.mirror_points: np.ndarray = np.empty((0, 2))
        self.vertices: Optional[VertexTable] = None
        self.cells: List[Cell] = []
        self.raw_vertex_count = 0

        self.clipped_edges: List[Edge] = []
        self.clipped_vertices: List[int] = []
        self.mesh_edges: List[Edge] = []
        self.mesh_vertices: List[int] = []

        self.nodes: Optional[np.ndarray] = None
        self.edges: Optional[np.ndarray] = None

    # --------------------
    # Periodic images
    # --------------------
    @staticmethod
    def periodic_images(points: np.ndarray, domain_size: Tuple[float, float]) -> np.ndarray:
        """
        The 8 translates of each point by (k*lx, l*ly), (k,l) in {-1,0,1}^2 \\ {(0,0)}.
        Images of one point are contiguous, k outer and l inner.
        """
        lx, ly = domain_size
        offsets = [(k * lx, l * ly) for k in (-1, 0, 1) for l in (-1, 0, 1) if (k, l) != (0, 0)]
        images = [(px + dx, py + dy) for (px, py) in np.asarray(points, dtype=float) for dx, dy in offsets]
        return np.asarray(images, dtype=float).reshape(-1, 2)

    # --------------------
    # Pipeline stages
    # --------------------
    def detect_boundary_sites(self) -> List[int]:
        """
        Sites whose plain Voronoi cell is unbounded or has a vertex outside the box.
        """
        if len(self.sites) < MIN_VORONOI_POINTS:
            # every site is on the convex hull, so every cell is unbounded
            self.boundary_sites = list(range(len(self.sites)))
        else:
            vertices, cells = build_voronoi(self.sites)
            self.boundary_sites = []
            for cell in cells:
                for v in cell.vertices:
                    if not vertices.in_box(v, self.domain_size):
                        self.boundary_sites.append(cell.site)
                        break

        logger.info("Boundary sites detected", boundary=len(self.boundary_sites), sites=len(self.sites))
        return self.boundary_sites

    def insert_mirrors(self) -> np.ndarray:
        """
        Mirror the boundary sites and build the enlarged, periodic diagram.
        """
        self.mirror_points = self.periodic_images(self.sites[self.boundary_sites], self.domain_size)
        all_points = np.vstack([self.sites, self.mirror_points])
        self.vertices, self.cells = build_voronoi(all_points)
        self.raw_vertex_count = len(self.vertices)

        logger.info(
            "Periodic diagram built",
            mirrors=len(self.mirror_points),
            cells=len(self.cells),
            vertices=self.raw_vertex_count,
        )
        return self.mirror_points

    def clip_to_box(self) -> Tuple[List[Edge], List[int]]:
        """
        Restrict the enlarged diagram to the box.

        Keeps every cell edge with at least one endpoint in or on the box, then
        replaces the outside endpoint of each crossing edge by a new vertex at
        the boundary crossing. Outside endpoints are dropped from the vertex set.
        Rays leaving an in-box vertex are cut at the boundary the same way.
        """
        if self.vertices is None:
            raise RuntimeError("insert_mirrors() must run before clip_to_box().")

        def in_box(v: int) -> bool:
            return self.vertices.in_box(v, self.domain_size)

        # extraction: must be complete before any crossing is computed
        kept_edges = set()
        kept_rays: Dict[Tuple[int, Tuple[int, int]], Ray] = {}
        for cell in self.cells:
            for a, b in cell.edges():
                if a is None or b is None:
                    continue  # handled through cell.rays
                if in_box(a) or in_box(b):
                    kept_edges.add((a, b) if a < b else (b, a))
            for ray in cell.rays:
                if in_box(ray.start):
                    kept_rays[(ray.start, ray.sites)] = ray
        edges = sorted(kept_edges)
        kept_vertices = {v for edge in edges for v in edge} | {start for start, _ in kept_rays}

        outside = set()
        crossings: List[int] = []
        for i, (a, b) in enumerate(edges):
            a_in, b_in = in_box(a), in_box(b)
            if a_in and b_in:
                continue
            inner, outer = (a, b) if a_in else (b, a)
            new_vertex = self.vertices.add(box_crossing(self.vertices[inner], self.vertices[outer], self.domain_size))
            edges[i] = (inner, new_vertex)
            outside.add(outer)
            crossings.append(new_vertex)

        # any point this far along a ray from an in-box vertex is outside the box
        reach = 2.0 * sum(self.domain_size)
        for key in sorted(kept_rays):
            ray = kept_rays[key]
            x, y = self.vertices[ray.start]
            far_point = (x + ray.direction[0] * reach, y + ray.direction[1] * reach)
            new_vertex = self.vertices.add(box_crossing((x, y), far_point, self.domain_size))
            edges.append((ray.start, new_vertex))
            crossings.append(new_vertex)

        self.clipped_edges = sorted(edges)
        self.clipped_vertices = sorted((kept_vertices - outside) | set(crossings))

        logger.info(
            "Diagram clipped to box",
            edges=len(self.clipped_edges),
            crossings=len(crossings),
            removed_vertices=len(outside),
        )
        return self.clipped_edges, self.clipped_vertices

    def collapse_short_edges(self) -> Tuple[List[Edge], List[int]]:
        """
        Merge the endpoints of edges shorter than `short_edge_length`.

        Union-find merge: the second endpoint's representative joins the first
        one's and takes its coordinates. Passes repeat until no short edge is
        left, since a merge can shorten the edges around it. Vertices left with
        identical coordinates are merged last.
        """
        parent: Dict[int, int] = {v: v for v in self.clipped_vertices}

        def find(v: int) -> int:
            while parent[v] != v:
                parent[v] = parent[parent[v]]
                v = parent[v]
            return v

        def relabel(edges: List[Edge]) -> List[Edge]:
            relabelled = set()
            for a, b in edges:
                ra, rb = find(a), find(b)
                if ra != rb:
                    relabelled.add((ra, rb) if ra < rb else (rb, ra))
            return sorted(relabelled)

        edges = list(self.clipped_edges)
        collapsed = 0
        while True:
            merged = 0
            for a, b in edges:
                ra, rb = find(a), find(b)
                if ra == rb:
                    continue
                if self.vertices.distance(ra, rb) < self.short_edge_length:
                    parent[rb] = ra
                    self.vertices[rb] = self.vertices[ra]
                    merged += 1
            edges = relabel(edges)
            collapsed += merged
            if not merged:
                break

        by_value: Dict[Tuple[float, float], int] = {}
        for v in sorted({v for edge in edges for v in edge}):
            first = by_value.setdefault(self.vertices[v], v)
            if first != v:
                parent[v] = first
        edges = relabel(edges)

        self.mesh_edges = edges
        self.mesh_vertices = sorted({v for edge in edges for v in edge})

        logger.info("Short edges collapsed", collapsed=collapsed, edges=len(self.mesh_edges))
        return self.mesh_edges, self.mesh_vertices

    def build_mesh(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Dense 1-based renumbering of the surviving vertices (ascending original id)
        and edges (ascending node pair).
        """
        node_id = {v: i + 1 for i, v in enumerate(self.mesh_vertices)}

        nodes = np.zeros((len(self.mesh_vertices), 3), dtype=float)
        for v, n in node_id.items():
            x, y = self.vertices[v]
            nodes[n - 1] = (n, x, y)

        pairs = sorted(tuple(sorted((node_id[a], node_id[b]))) for a, b in self.mesh_edges)
        edges = np.array([(i + 1, n1, n2) for i, (n1, n2) in enumerate(pairs)], dtype=int).reshape(-1, 3)

        self.nodes = nodes
        self.edges = edges
        return self.nodes, self.edges

    def run(self, save_fig: bool = False, fig_name: str = "perivoro.png") -> Tuple[np.ndarray, np.ndarray]:
        """
        Run all stages in order; optionally save a figure of sites and mesh.
        """
        self.detect_boundary_sites()
        self.insert_mirrors()
        self.clip_to_box()
        self.collapse_short_edges()
        nodes, edges = self.build_mesh()

        if save_fig:
            self.save_figure(fig_name)
        return nodes, edges

    # --------------------
    # Output
    # --------------------
    def save_figure(self, fig_name: str = "perivoro.png") -> None:
        if self.nodes is None:
            self.run(save_fig=False)

        # lazy import
        import matplotlib.pyplot as plt

        lx, ly = self.domain_size
        xy = {int(n): (x, y) for n, x, y in self.nodes}
        fig, ax = plt.subplots(figsize=(5.0 * lx / max(lx, ly), 5.0 * ly / max(lx, ly)))
        for _, n1, n2 in self.edges:
            (x1, y1), (x2, y2) = xy[int(n1)], xy[int(n2)]
            ax.plot([x1, x2], [y1, y2], "b-", lw=1)
        ax.plot(self.nodes[:, 1], self.nodes[:, 2], "k.", ms=3)
        ax.plot(self.sites[:, 0], self.sites[:, 1], "ro", ms=2)
        ax.set_xlim(0.0, lx)
        ax.set_ylim(0.0, ly)
        ax.set_aspect("equal")
        ax.set_title("periodic Voronoi mesh")
        fig.savefig(fig_name, bbox_inches="tight")
        plt.close(fig)

    def export_geometry(self, dir_path: str = "./out", file_type: str = "txt") -> None:
        """
        Export the mesh (nodes + edges).
        - TXT:   geometry-nodes.txt, geometry-edges.txt (tab-separated)
        - CSV:   nodes.csv, edges.csv
        - NPY:   nodes.npy, edges.npy
        """
        if self.nodes is None or self.edges is None:
            self.run(save_fig=False)

        node_fmt = ["%d", "%.6f", "%.6f"]
        edge_fmt = "%d"
        file_type = file_type.lower()
        if file_type not in ("txt", "csv", "npy"):
            raise ValueError("Unsupported file_type. Use 'txt', 'csv' or 'npy'.")

        os.makedirs(dir_path, exist_ok=True)
        if file_type == "txt":
            node_file = os.path.join(dir_path, "geometry-nodes.txt")
            edge_file = os.path.join(dir_path, "geometry-edges.txt")
            np.savetxt(node_file, self.nodes, delimiter="\t", fmt=node_fmt)
            np.savetxt(edge_file, self.edges, delimiter="\t", fmt=edge_fmt)
        elif file_type == "csv":
            node_file = os.path.join(dir_path, "nodes.csv")
            edge_file = os.path.join(dir_path, "edges.csv")
            np.savetxt(node_file, self.nodes, delimiter=",", fmt=node_fmt)
            np.savetxt(edge_file, self.edges, delimiter=",", fmt=edge_fmt)
        else:
            node_file = os.path.join(dir_path, "nodes.npy")
            edge_file = os.path.join(dir_path, "edges.npy")
            np.save(node_file, self.nodes)
            np.save(edge_file, self.edges)

        logger.info("Geometry exported", nodes=node_file, edges=edge_file, n_nodes=len(self.nodes), n_edges=len(self.edges))

