"""Tests for the proto-layer / envelope computation."""
import math

import pytest

from dd4hep_layers.geometry.detector_element import collect_sensitive, create_sensitive_surface
from dd4hep_layers.geometry.proto_layer import (
    ProtoLayer,
    compute_proto_layer,
    ordered_extent,
    shape_z_extent,
)
from dd4hep_layers.geometry.transforms import convert_transform
from dd4hep_layers.geometry_parsing.detector_nodes import Box, DetectorNode, Extension, TubeSegment

from conftest import FLIP_Z_ROTATION, box_module, tube_layer


def _proto_layer(node, is_disc):
    extension = node.get_extension()
    surfaces = collect_sensitive(node, extension.axes)
    transform = convert_transform(node.world_transform)
    return compute_proto_layer(node, extension, surfaces, transform, is_disc)


class TestOrderedExtent:

    @pytest.mark.parametrize("low, high", [(-5.0, 5.0), (5.0, -5.0), (3.0, 3.0), (10.0, 2.0)])
    def test_swap_only_when_inverted(self, low, high):
        ordered_low, ordered_high, swapped = ordered_extent(low, high)
        assert ordered_low <= ordered_high
        assert swapped == (low > high)
        assert {ordered_low, ordered_high} == {low, high}


class TestShapeExtent:

    def test_cylinder_uses_half_length(self):
        node = tube_layer('barrel', 1.0, 2.0, 5.0, z=30.0)
        transform = convert_transform(node.world_transform)
        assert shape_z_extent(node.shape, transform, is_disc=False) == (-50.0, 50.0)

    def test_disc_projects_along_local_z(self):
        node = tube_layer('disc', 1.0, 2.0, 0.5, z=100.0)
        transform = convert_transform(node.world_transform)
        assert shape_z_extent(node.shape, transform, is_disc=True) == pytest.approx((995.0, 1005.0))

    def test_flipped_disc_is_swapped(self):
        node = tube_layer('disc', 1.0, 2.0, 0.5, z=-100.0, rotation=FLIP_Z_ROTATION)
        transform = convert_transform(node.world_transform)
        z_min, z_max = shape_z_extent(node.shape, transform, is_disc=True)
        assert z_min == pytest.approx(-1005.0)
        assert z_max == pytest.approx(-995.0)


class TestComputeProtoLayer:

    def test_shape_extent_without_surfaces(self):
        proto_layer = _proto_layer(tube_layer('barrel', 1.0, 2.0, 5.0), is_disc=False)
        assert proto_layer.min_r == pytest.approx(10.0)
        assert proto_layer.max_r == pytest.approx(20.0)
        assert proto_layer.min_z == pytest.approx(-50.0)
        assert proto_layer.max_z == pytest.approx(50.0)
        assert proto_layer.env_r == (0.0, 0.0)
        assert proto_layer.env_z == (0.0, 0.0)

    def test_padding_from_surfaces(self, barrel_with_module):
        proto_layer = _proto_layer(barrel_with_module, is_disc=False)
        # module plane at x = 35 mm, |y| <= 10 mm, |z| <= 50 mm
        assert proto_layer.min_r == pytest.approx(35.0)
        assert proto_layer.max_r == pytest.approx(math.hypot(35.0, 10.0))
        assert proto_layer.min_z == pytest.approx(-50.0)
        assert proto_layer.max_z == pytest.approx(50.0)
        assert proto_layer.env_r == pytest.approx((5.0, 40.0 - math.hypot(35.0, 10.0)))
        assert proto_layer.env_z == pytest.approx((50.0, 50.0))

    def test_explicit_envelope_with_surfaces(self, barrel_with_module):
        barrel_with_module.extension = Extension(axes='YZX', build_envelope=True,
                                                 envelope_r=1.0, envelope_z=2.0)
        proto_layer = _proto_layer(barrel_with_module, is_disc=False)
        assert proto_layer.env_r == pytest.approx((1.0, 1.0))
        assert proto_layer.env_z == pytest.approx((2.0, 2.0))
        # extent still from the module
        assert proto_layer.min_r == pytest.approx(35.0)
        assert proto_layer.max_z == pytest.approx(50.0)

    def test_explicit_envelope_without_surfaces(self):
        node = tube_layer('barrel', 1.0, 2.0, 5.0,
                          extension=Extension(build_envelope=True, envelope_r=0.5, envelope_z=1.5))
        proto_layer = _proto_layer(node, is_disc=False)
        assert proto_layer.env_r == pytest.approx((0.5, 0.5))
        assert proto_layer.env_z == pytest.approx((1.5, 1.5))
        assert proto_layer.min_r == pytest.approx(10.0)
        assert proto_layer.max_z == pytest.approx(50.0)

    def test_explicit_envelope_accepts_any_shape(self, barrel_with_module):
        barrel_with_module.shape = Box(4.0, 4.0, 10.0)
        barrel_with_module.extension = Extension(axes='YZX', build_envelope=True,
                                                 envelope_r=0.1, envelope_z=0.1)
        proto_layer = _proto_layer(barrel_with_module, is_disc=False)
        assert proto_layer.env_r == pytest.approx((0.1, 0.1))

    def test_explicit_envelope_measures_sensitive_layer(self):
        node = box_module('barrel', (3.5, 0.0, 0.0),
                          extension=Extension(axes='YZX', build_envelope=True,
                                              envelope_r=0.5, envelope_z=0.5))
        transform = convert_transform(node.world_transform)
        layer_surface = create_sensitive_surface(node, False, 'YZX')
        proto_layer = compute_proto_layer(node, node.get_extension(), [], transform, False,
                                          layer_surface)
        assert proto_layer.min_r == pytest.approx(35.0)
        assert proto_layer.max_r == pytest.approx(math.hypot(35.0, 10.0))
        assert (proto_layer.min_z, proto_layer.max_z) == pytest.approx((-50.0, 50.0))
        assert proto_layer.env_z == pytest.approx((0.5, 0.5))

    def test_explicit_envelope_without_any_extent(self):
        node = DetectorNode('barrel', shape=Box(4.0, 4.0, 10.0),
                            extension=Extension(build_envelope=True, envelope_r=0.5))
        with pytest.raises(ValueError, match="explicit envelopes"):
            _proto_layer(node, is_disc=False)

    def test_wrong_shape_is_fatal(self):
        node = DetectorNode('barrel', shape=Box(4.0, 4.0, 10.0), extension=Extension())
        with pytest.raises(ValueError, match="TubeSegment"):
            _proto_layer(node, is_disc=False)

    def test_missing_shape_is_fatal(self):
        node = DetectorNode('barrel', extension=Extension())
        with pytest.raises(ValueError, match="neither a shape nor tolerances"):
            _proto_layer(node, is_disc=True)

    def test_disc_extent_is_ordered(self):
        node = tube_layer('disc', 1.0, 2.0, 0.5, z=100.0, rotation=FLIP_Z_ROTATION)
        proto_layer = _proto_layer(node, is_disc=True)
        assert proto_layer.min_z <= proto_layer.max_z
        assert (proto_layer.min_z, proto_layer.max_z) == pytest.approx((995.0, 1005.0))


class TestProtoLayerRanges:

    def test_ranges_include_envelopes(self):
        proto_layer = ProtoLayer(10.0, 20.0, -50.0, 50.0, env_r=(1.0, 2.0), env_z=(3.0, 4.0))
        assert proto_layer.radial_range() == (9.0, 22.0)
        assert proto_layer.z_range() == (-53.0, 54.0)

    def test_empty_proto_layer(self):
        assert ProtoLayer.from_surfaces([]).is_empty()

    def test_disc_surface_extent(self):
        node = tube_layer('disc', 1.0, 2.0, 0.5, z=100.0)
        node.add_child(DetectorNode('ring', shape=TubeSegment(1.2, 1.8, 0.01), sensitive=True))
        surfaces = collect_sensitive(node)
        assert len(surfaces) == 1
        # collected surfaces are never discs, a tube module becomes a cylinder
        proto_layer = ProtoLayer.from_surfaces(surfaces)
        assert proto_layer.min_r == pytest.approx(15.0)
        assert proto_layer.max_r == pytest.approx(15.0)
        assert proto_layer.min_z == pytest.approx(999.9)
        assert proto_layer.max_z == pytest.approx(1000.1)
