"""Tests for material value objects."""
import pytest

from dd4hep_layers.geometry.material import (
    HomogeneousSurfaceMaterial,
    Material,
    MaterialProperties,
    SurfaceMaterialProxy,
)
from dd4hep_layers.geometry.binning import BinUtility


class TestMaterialProperties:

    def test_construction(self):
        a = MaterialProperties(1., 2., 3., 4., 5., 6.)
        b = MaterialProperties(Material(1., 2., 3., 4., 5.), 6.)

        assert a.thickness == pytest.approx(6.)
        assert a.thickness_in_x0() == pytest.approx(6.)
        assert a.thickness_in_l0() == pytest.approx(3.)
        assert a.average_a() == 3.
        assert a.average_z() == 4.
        assert a.average_rho() == 5.
        assert a.z_over_a_times_rho() == pytest.approx(6.666666666)
        assert a == b

    def test_wrong_number_of_values(self):
        with pytest.raises(ValueError):
            MaterialProperties(1., 2., 3.)

    def test_compound(self):
        a = MaterialProperties(1., 2., 3., 4., 5., 1.)
        b = MaterialProperties(2., 4., 6., 8., 10., 2.)
        c = MaterialProperties(4., 8., 12., 16., 20., 3.)
        compound = [a, b, c]

        abc = MaterialProperties.compound(compound, unit_thickness=True)
        assert abc.thickness == pytest.approx(1.)
        assert abc.thickness_in_x0() == pytest.approx(
            a.thickness_in_x0() + b.thickness_in_x0() + c.thickness_in_x0())
        assert abc.thickness / abc.average_x0() == pytest.approx(abc.thickness_in_x0())
        assert abc.thickness_in_l0() == pytest.approx(
            a.thickness_in_l0() + b.thickness_in_l0() + c.thickness_in_l0())

        abc_ns = MaterialProperties.compound(compound, unit_thickness=False)
        assert abc_ns.average_rho() == pytest.approx(
            (a.thickness * a.average_rho() + b.thickness * b.average_rho()
             + c.thickness * c.average_rho()) / (a.thickness + b.thickness + c.thickness))

        assert abc != abc_ns
        assert abc.thickness != abc_ns.thickness
        assert abc.average_rho() != abc_ns.average_rho()
        assert abc.thickness_in_x0() == pytest.approx(abc_ns.thickness_in_x0())
        assert abc.thickness_in_l0() == pytest.approx(abc_ns.thickness_in_l0())
        assert abc.average_a() == pytest.approx(abc_ns.average_a())
        assert abc.average_z() == pytest.approx(abc_ns.average_z())
        assert abc.average_rho() * abc.thickness == pytest.approx(
            abc_ns.average_rho() * abc_ns.thickness)

    def test_compound_without_material(self):
        with pytest.raises(ValueError):
            MaterialProperties.compound([])

    def test_scale(self):
        mat = MaterialProperties(1., 2., 3., 4., 5., 0.1)
        half_mat = MaterialProperties(1., 2., 3., 4., 5., 0.05)
        half_scaled = MaterialProperties(mat.material, mat.thickness)
        half_scaled *= 0.5

        assert mat != half_mat
        assert half_mat == half_scaled
        assert mat.thickness_in_x0() == pytest.approx(2. * half_mat.thickness_in_x0())
        assert mat.thickness_in_l0() == pytest.approx(2. * half_mat.thickness_in_l0())
        assert mat.thickness * mat.average_rho() == pytest.approx(
            2. * half_mat.thickness * half_mat.average_rho())


class TestSurfaceMaterial:

    def test_vacuum_material_is_falsy(self):
        assert not Material()
        assert Material(93.7, 457.5, 28.09, 14., 0.00233)

    def test_homogeneous_material(self):
        properties = MaterialProperties(Material(93.7, 457.5, 28.09, 14., 0.00233), 0.3)
        material = HomogeneousSurfaceMaterial(properties)
        assert material.material_properties() is properties
        assert material.material_properties((1.0, 2.0, 3.0)) is properties

    def test_proxy_carries_no_values(self):
        proxy = SurfaceMaterialProxy(BinUtility(10, 0.0, 1.0))
        assert proxy.material_properties() is None
        assert proxy.bin_utility.bins() == 10
