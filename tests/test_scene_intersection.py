"""Unit tests for scene storage and closest-hit queries.

Tests cover:
- Adding, counting and clearing spheres
- Capacity limits
- intersect_scene returning the nearest hit inside the interval
"""

import numpy as np
import pytest
import taichi as ti


def _nearest_hit_t(origin, direction, spheres, t_min, t_max):
    """Reference closest-hit search in plain numpy."""
    origin = np.asarray(origin, dtype=np.float64)
    direction = np.asarray(direction, dtype=np.float64)
    best = None
    for center, radius in spheres:
        oc = origin - np.asarray(center, dtype=np.float64)
        a = direction @ direction
        h = direction @ oc
        c = oc @ oc - radius * radius
        disc = h * h - a * c
        if disc < 0.0:
            continue
        sqrt_d = np.sqrt(disc)
        for t in sorted(((-h - sqrt_d) / a, (-h + sqrt_d) / a)):
            limit = t_max if best is None else best
            if t_min < t < limit:
                best = t
                break
    return best


SPHERES = [
    ((0.0, 0.0, -1.0), 0.5),
    ((0.0, -100.5, -1.0), 100.0),
    ((0.2, 0.1, -3.0), 1.0),
    ((-1.0, 0.0, -1.0), 0.5),
    ((0.05, 0.0, -0.6), 0.1),
]


class TestSceneStorage:
    """Tests for sphere storage."""

    def test_add_sphere(self):
        from marbles.scene.intersection import add_sphere, get_sphere_count

        assert get_sphere_count() == 0
        idx = add_sphere((1.0, 2.0, 3.0), 0.5, material_id=1)
        assert idx == 0
        assert get_sphere_count() == 1

    def test_add_sphere_stores_values(self):
        from marbles.scene.intersection import (
            add_sphere,
            sphere_centers,
            sphere_material_ids,
            sphere_radii,
        )

        add_sphere((0.0, 0.0, 0.0), 1.0)
        idx = add_sphere((1.0, 2.0, 3.0), 0.25, material_id=4)
        assert idx == 1
        c = sphere_centers[idx]
        assert abs(c[0] - 1.0) < 1e-6
        assert abs(c[1] - 2.0) < 1e-6
        assert abs(c[2] - 3.0) < 1e-6
        assert abs(sphere_radii[idx] - 0.25) < 1e-6
        assert sphere_material_ids[idx] == 4

    def test_clear_scene(self):
        from marbles.scene.intersection import add_sphere, clear_scene, get_sphere_count

        add_sphere((0.0, 0.0, 0.0), 1.0)
        add_sphere((2.0, 0.0, 0.0), 1.0)
        assert get_sphere_count() == 2
        clear_scene()
        assert get_sphere_count() == 0

    def test_capacity_exceeded(self):
        from marbles.scene.intersection import MAX_SPHERES, add_sphere, num_spheres

        num_spheres[None] = MAX_SPHERES
        with pytest.raises(RuntimeError, match="Maximum number of spheres"):
            add_sphere((0.0, 0.0, 0.0), 1.0)


class TestIntersectScene:
    """Tests for the closest-hit query."""

    def test_empty_scene_misses(self):
        from marbles.core.interval import make_interval
        from marbles.core.ray import make_ray, vec3
        from marbles.scene.intersection import intersect_scene

        hit = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0), vec3(0.0, 0.0, -1.0))
            hit[None] = intersect_scene(ray, make_interval(0.001, 1e10)).hit

        test_kernel()
        assert hit[None] == 0

    def test_nearest_of_two(self):
        """Of two spheres along the ray, the nearer one is reported."""
        from marbles.core.interval import make_interval
        from marbles.core.ray import make_ray, vec3
        from marbles.scene.intersection import add_sphere, intersect_scene

        add_sphere((0.0, 0.0, -10.0), 1.0, material_id=1)
        add_sphere((0.0, 0.0, -5.0), 1.0, material_id=2)

        t_val = ti.field(dtype=ti.f32, shape=())
        material = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0), vec3(0.0, 0.0, -1.0))
            rec = intersect_scene(ray, make_interval(0.001, 1e10))
            t_val[None] = rec.t
            material[None] = rec.material_id

        test_kernel()
        assert abs(t_val[None] - 4.0) < 1e-4
        assert material[None] == 2

    @pytest.mark.parametrize(
        "t_min,t_max",
        [(0.001, 1e10), (0.001, 0.55), (0.6, 1e10), (1.0, 3.0), (0.001, 0.3)],
    )
    def test_matches_manual_scan(self, t_min, t_max):
        """intersect_scene agrees with a brute-force min-t scan."""
        from marbles.core.interval import make_interval
        from marbles.core.ray import make_ray, vec3
        from marbles.scene.intersection import add_sphere, intersect_scene

        for center, radius in SPHERES:
            add_sphere(center, radius)

        directions = np.array(
            [
                [0.0, 0.0, -1.0],
                [0.1, 0.05, -1.0],
                [0.0, -1.0, -1.0],
                [-0.8, 0.0, -1.0],
                [0.0, 1.0, 0.0],
                [0.2, 0.1, -1.5],
            ],
            dtype=np.float32,
        )
        n = len(directions)
        dirs = ti.Vector.field(3, dtype=ti.f32, shape=n)
        dirs.from_numpy(directions)
        hits = ti.field(dtype=ti.i32, shape=n)
        ts = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                rec = intersect_scene(make_ray(vec3(0.0), dirs[k]), make_interval(t_min, t_max))
                hits[k] = rec.hit
                ts[k] = rec.t

        test_kernel()
        for k in range(n):
            expected = _nearest_hit_t((0.0, 0.0, 0.0), directions[k], SPHERES, t_min, t_max)
            if expected is None:
                assert hits[k] == 0
            else:
                assert hits[k] == 1
                assert abs(ts[k] - expected) < 1e-3 * max(1.0, expected)
