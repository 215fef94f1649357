import numpy as np
import pytest
from scipy.spatial import QhullError
from perivoro import GeneratorConfig, Solver, VertexTable, calculate_hexagon_centers, points_in_box

def _grid_sites():
    # jittered 3x3 grid in the unit square; outer sites pushed outward
    return [
        (0.17, 0.16), (0.50, 0.14), (0.83, 0.17),
        (0.15, 0.51), (0.50, 0.50), (0.86, 0.49),
        (0.16, 0.84), (0.51, 0.86), (0.84, 0.83),
    ]

def _four_sites():
    return [(0.5, 0.3), (1.5, 0.25), (0.55, 0.75), (1.45, 0.7)]

def _check_mesh(s):
    nodes, edges = s.nodes, s.edges
    lx, ly = s.domain_size

    assert nodes.shape[1] == 3 and nodes.shape[0] > 0
    assert edges.shape[1] == 3 and edges.shape[0] > 0

    # containment
    assert np.all(nodes[:, 1] >= -1e-9) and np.all(nodes[:, 1] <= lx + 1e-9)
    assert np.all(nodes[:, 2] >= -1e-9) and np.all(nodes[:, 2] <= ly + 1e-9)
    assert np.all(points_in_box(nodes[:, 1:], s.domain_size))

    # dense ids
    assert nodes[:, 0].astype(int).tolist() == list(range(1, len(nodes) + 1))
    assert edges[:, 0].tolist() == list(range(1, len(edges) + 1))

    # edge validity
    node_ids = set(nodes[:, 0].astype(int).tolist())
    xy = {int(n): (x, y) for n, x, y in nodes}
    for _, n1, n2 in edges:
        assert n1 in node_ids and n2 in node_ids
        assert n1 != n2
        (x1, y1), (x2, y2) = xy[n1], xy[n2]
        assert np.hypot(x1 - x2, y1 - y2) >= s.short_edge_length

    # no duplicate edges
    pairs = {(min(n1, n2), max(n1, n2)) for _, n1, n2 in edges}
    assert len(pairs) == len(edges)

def test_rejects_sites_outside_domain():
    with pytest.raises(ValueError):
        Solver([(0.5, 0.5), (2.5, 0.5)], domain_size=(2.0, 1.0))
    with pytest.raises(ValueError):
        Solver([(0.0, 0.5)], domain_size=(2.0, 1.0))
    with pytest.raises(ValueError):
        Solver([], domain_size=(2.0, 1.0))

def test_boundary_sites_exclude_interior_center():
    s = Solver(_grid_sites(), domain_size=(1.0, 1.0))
    assert s.detect_boundary_sites() == [0, 1, 2, 3, 5, 6, 7, 8]

def test_few_sites_are_all_boundary():
    s = Solver([(0.5, 0.5), (1.5, 0.5)], domain_size=(2.0, 1.0))
    assert s.detect_boundary_sites() == [0, 1]

def test_periodic_images_offsets():
    images = Solver.periodic_images(np.array([[0.3, 0.2]]), (2.0, 1.0))
    expected = [(0.3 + 2.0 * k, 0.2 + 1.0 * l) for k in (-1, 0, 1) for l in (-1, 0, 1) if (k, l) != (0, 0)]
    assert images.shape == (8, 2)
    assert np.allclose(images, expected)

def test_mirror_completeness():
    s = Solver(_grid_sites(), domain_size=(1.0, 1.0))
    s.detect_boundary_sites()
    mirrors = s.insert_mirrors()

    assert mirrors.shape == (8 * len(s.boundary_sites), 2)
    for i, site in enumerate(s.boundary_sites):
        x, y = s.sites[site]
        block = mirrors[8 * i : 8 * i + 8]
        offsets = sorted(map(tuple, np.round(block - (x, y), 9)))
        assert offsets == sorted((float(k), float(l)) for k in (-1, 0, 1) for l in (-1, 0, 1) if (k, l) != (0, 0))
    assert len(s.cells) == len(s.sites) + len(mirrors)

def test_center_cell_passes_through_clipper():
    s = Solver(_grid_sites(), domain_size=(1.0, 1.0))
    s.detect_boundary_sites()
    s.insert_mirrors()
    edges, vertices = s.clip_to_box()

    center = s.cells[4]
    assert not center.unbounded
    assert all(s.vertices.in_box(v, s.domain_size) for v in center.vertices)

    kept = set(edges)
    for a, b in center.edges():
        assert (min(a, b), max(a, b)) in kept
    assert all(v < s.raw_vertex_count for v in center.vertices)
    assert set(center.vertices) <= set(vertices)

def test_clipped_edges_stay_in_box():
    s = Solver(_four_sites(), domain_size=(2.0, 1.0))
    s.detect_boundary_sites()
    s.insert_mirrors()
    edges, vertices = s.clip_to_box()

    assert set(v for e in edges for v in e) == set(vertices)
    assert all(s.vertices.in_box(v, s.domain_size) for v in vertices)
    assert any(v >= s.raw_vertex_count for v in vertices)

def test_four_site_scenario():
    config = GeneratorConfig(lx=2.0, ly=1.0, n_sites=4, delta=0.5)
    sites = np.array(_four_sites())
    d = np.hypot(*(sites[:, None, :] - sites[None, :, :]).transpose(2, 0, 1))
    np.fill_diagonal(d, np.inf)
    assert d.min() >= config.min_spacing

    s = Solver(sites, domain_size=config.domain_size, short_edge_fraction=config.short_edge_fraction)
    nodes, edges = s.run(save_fig=False)

    assert all(not s.cells[i].unbounded for i in range(4))
    assert 0 < len(nodes) < s.raw_vertex_count
    _check_mesh(s)

def test_mesh_invariants_on_grid():
    s = Solver(_grid_sites(), domain_size=(1.0, 1.0))
    s.run(save_fig=False)
    _check_mesh(s)

def test_mesh_invariants_on_hexagon_lattice():
    s = Solver(calculate_hexagon_centers((2.0, 1.0), 0.3), domain_size=(2.0, 1.0))
    s.run(save_fig=False)
    _check_mesh(s)

def test_mesh_invariants_on_sampled_sites():
    for seed in range(3):
        config = GeneratorConfig(lx=2.0, ly=1.0, n_sites=12, delta=0.7, seed=seed)
        s = Solver(config.sample_sites(), domain_size=config.domain_size)
        s.run(save_fig=False)
        _check_mesh(s)

def _solver_with_graph(coordinates, edges):
    s = Solver(_grid_sites(), domain_size=(1.0, 1.0))
    s.vertices = VertexTable(coordinates)
    s.clipped_edges = sorted(edges)
    s.clipped_vertices = sorted({v for e in edges for v in e})
    return s

def test_collapse_merges_short_edge():
    s = _solver_with_graph(
        [(0.1, 0.1), (0.5, 0.1), (0.52, 0.1), (0.5, 0.6)],
        [(0, 1), (1, 2), (2, 3), (1, 3)],
    )
    edges, vertices = s.collapse_short_edges()

    assert edges == [(0, 1), (1, 3)]
    assert vertices == [0, 1, 3]
    assert s.vertices[2] == s.vertices[1]

def test_collapse_follows_shortened_neighbours():
    # merging 1 into 0 moves it to x=0.2, which makes edge (1, 2) short too
    s = _solver_with_graph(
        [(0.2, 0.5), (0.16, 0.5), (0.23, 0.5), (0.6, 0.5)],
        [(0, 1), (1, 2), (2, 3)],
    )
    edges, vertices = s.collapse_short_edges()

    assert edges == [(0, 3)]
    assert vertices == [0, 3]

def test_collapse_merges_coincident_vertices_by_value():
    s = _solver_with_graph(
        [(0.1, 0.1), (0.5, 0.5), (0.1, 0.1), (0.9, 0.1)],
        [(0, 1), (1, 2), (2, 3)],
    )
    edges, vertices = s.collapse_short_edges()

    assert edges == [(0, 1), (0, 3)]
    assert vertices == [0, 1, 3]

def _total_length(s):
    xy = {int(n): (x, y) for n, x, y in s.nodes}
    return sum(np.hypot(xy[n1][0] - xy[n2][0], xy[n1][1] - xy[n2][1]) for _, n1, n2 in s.edges)

def test_single_site_cell_wraps_across_box():
    s = Solver([(0.3, 0.3)], domain_size=(1.0, 1.0))
    nodes, edges = s.run(save_fig=False)
    _check_mesh(s)

    # full walls at x=0.8 and y=0.8, two of them reached only through rays
    assert np.isclose(_total_length(s), 2.0)
    xs, ys = nodes[:, 1], nodes[:, 2]
    assert np.allclose(sorted(ys[np.isclose(xs, 0.0)]), sorted(ys[np.isclose(xs, 1.0)]))
    assert np.allclose(sorted(xs[np.isclose(ys, 0.0)]), sorted(xs[np.isclose(ys, 1.0)]))
    assert np.any(np.isclose(xs, 1.0) & np.isclose(ys, 0.8))
    assert np.any(np.isclose(xs, 0.8) & np.isclose(ys, 1.0))

def test_collinear_sites_fail_in_voronoi_builder(tmp_path):
    s = Solver([(0.2, 0.5), (0.4, 0.5), (0.6, 0.5), (0.8, 0.5)], domain_size=(1.0, 1.0))
    with pytest.raises(QhullError):
        s.detect_boundary_sites()

    out = tmp_path / "out"
    with pytest.raises(QhullError):
        s.run(save_fig=False)
        s.export_geometry(dir_path=str(out))
    assert s.nodes is None and s.edges is None
    assert not out.exists()
