"""Unit tests for the dielectric material.

Tests cover:
- Refraction ratio entering and leaving
- Total internal reflection detection
- ior = 1.0 leaves rays unbent
- White attenuation and Fresnel-weighted reflect/refract choice
- Registry validation
"""

import numpy as np
import pytest
import taichi as ti


class TestRefractionRatio:
    def test_entering_and_leaving(self):
        from marbles.materials.dielectric import refraction_ratio

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = refraction_ratio(1.5, 1)
            result[1] = refraction_ratio(1.5, 0)

        test_kernel()
        assert abs(result[0] - 1.0 / 1.5) < 1e-6
        assert abs(result[1] - 1.5) < 1e-6


class TestWillReflect:
    """Tests for total internal reflection detection."""

    def test_steep_exit_refracts(self):
        """Leaving glass near the normal can refract."""
        from marbles.core.ray import make_ray, vec3
        from marbles.geometry.sphere import HitRecord
        from marbles.materials.dielectric import will_reflect

        result = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, -1.0, 0.0), vec3(0.1, 1.0, 0.0))
            rec = HitRecord(
                hit=1,
                t=1.0,
                point=vec3(0.0),
                normal=vec3(0.0, -1.0, 0.0),
                front_face=0,
                material_id=0,
                u=0.0,
                v=0.0,
            )
            result[None] = will_reflect(1.5, ray, rec)

        test_kernel()
        assert result[None] == 0

    def test_grazing_exit_totally_reflects(self):
        """Leaving glass at a shallow angle is total internal reflection."""
        from marbles.core.ray import make_ray, vec3
        from marbles.geometry.sphere import HitRecord
        from marbles.materials.dielectric import will_reflect

        result = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ray = make_ray(vec3(0.0, -1.0, 0.0), vec3(1.0, 0.2, 0.0))
            rec = HitRecord(
                hit=1,
                t=1.0,
                point=vec3(0.0),
                normal=vec3(0.0, -1.0, 0.0),
                front_face=0,
                material_id=0,
                u=0.0,
                v=0.0,
            )
            result[None] = will_reflect(1.5, ray, rec)

        test_kernel()
        assert result[None] == 1


class TestScatterDielectric:
    """Tests for scatter_dielectric."""

    def test_ior_one_does_not_bend(self):
        """With ior = 1 refracted samples continue in the incident direction."""
        from marbles.core.ray import make_ray, normalize, vec3
        from marbles.geometry.sphere import HitRecord
        from marbles.materials.dielectric import scatter_dielectric

        n = 1000
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
        attenuations = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                ray = make_ray(vec3(-1.0, 1.0, 0.0), vec3(1.0, -1.0, 0.0))
                rec = HitRecord(
                    hit=1,
                    t=1.0,
                    point=vec3(0.0),
                    normal=vec3(0.0, 1.0, 0.0),
                    front_face=1,
                    material_id=0,
                    u=0.0,
                    v=0.0,
                )
                srec = scatter_dielectric(1.0, ray, rec)
                directions[i] = normalize(srec.direction)
                attenuations[i] = srec.attenuation

        test_kernel()
        d = directions.to_numpy()
        # Schlick still reflects a small share even without an index change
        refracted = d[d[:, 1] < 0.0]
        assert len(refracted) > 0.95 * n
        s = 1.0 / np.sqrt(2.0)
        assert np.allclose(refracted, [s, -s, 0.0], atol=1e-5)
        assert np.allclose(attenuations.to_numpy(), 1.0)

    def test_total_internal_reflection_always_reflects(self):
        from marbles.core.ray import make_ray, normalize, vec3
        from marbles.geometry.sphere import HitRecord
        from marbles.materials.dielectric import scatter_dielectric

        n = 500
        ys = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                ray = make_ray(vec3(0.0, -1.0, 0.0), vec3(1.0, 0.2, 0.0))
                rec = HitRecord(
                    hit=1,
                    t=1.0,
                    point=vec3(0.0),
                    normal=vec3(0.0, -1.0, 0.0),
                    front_face=0,
                    material_id=0,
                    u=0.0,
                    v=0.0,
                )
                ys[i] = normalize(scatter_dielectric(1.5, ray, rec).direction).y

        test_kernel()
        # Reflected back down into the glass
        assert (ys.to_numpy() < 0.0).all()

    def test_reflect_fraction_matches_schlick(self):
        """At normal incidence about 4% of glass samples reflect."""
        from marbles.core.ray import make_ray, vec3
        from marbles.geometry.sphere import HitRecord
        from marbles.materials.dielectric import scatter_dielectric

        n = 40000
        reflected = ti.field(dtype=ti.i32, shape=n)

        @ti.kernel
        def test_kernel():
            for i in range(n):
                ray = make_ray(vec3(0.0, 1.0, 0.0), vec3(0.0, -1.0, 0.0))
                rec = HitRecord(
                    hit=1,
                    t=1.0,
                    point=vec3(0.0),
                    normal=vec3(0.0, 1.0, 0.0),
                    front_face=1,
                    material_id=0,
                    u=0.0,
                    v=0.0,
                )
                srec = scatter_dielectric(1.5, ray, rec)
                reflected[i] = ti.select(srec.direction.y > 0.0, 1, 0)

        test_kernel()
        fraction = reflected.to_numpy().mean()
        assert abs(fraction - 0.04) < 0.01


class TestDielectricRegistry:
    def test_add_and_count(self):
        from marbles.materials.dielectric import (
            add_dielectric_material,
            dielectric_iors,
            get_dielectric_material_count,
        )

        assert add_dielectric_material(1.5) == 0
        assert add_dielectric_material(1.0 / 1.5) == 1
        assert get_dielectric_material_count() == 2
        assert abs(dielectric_iors[1] - 1.0 / 1.5) < 1e-6

    @pytest.mark.parametrize("ior", [0.0, -1.5])
    def test_non_positive_ior_rejected(self, ior):
        from marbles.materials.dielectric import add_dielectric_material

        with pytest.raises(ValueError, match="must be positive"):
            add_dielectric_material(ior)
