"""
Default layer assembly for layers made of several sensitive surfaces.

The builder hands surfaces, binning hints, proto-layer, transform and
approach descriptor over; the creator sizes the layer from the proto-layer
(envelopes included) and bins the surfaces on a phi x z (cylinder) or
r x phi (disc) grid.
"""

import math
from typing import List, Sequence

import numpy as np

from dd4hep_layers.geometry.binning import (
    BinningData,
    BinningOption,
    BinningType,
    BinningValue,
    BinUtility,
    coordinate_value,
)
from dd4hep_layers.geometry.layers import (
    CylinderLayer,
    DiscLayer,
    LayerType,
    SurfaceArray,
    SurfaceGridLookup,
)
from dd4hep_layers.geometry.surfaces import CylinderBounds, RadialBounds
from dd4hep_layers.geometry.transforms import Transform3D

# tolerance for two module centers to count as the same bin position (mm / rad)
BIN_TOLERANCE = 1e-3


def distinct_values(values: Sequence[float], tolerance=BIN_TOLERANCE) -> List[float]:
    """Sorted values with near-duplicates merged"""
    merged: List[float] = []
    for value in sorted(values):
        if not merged or abs(value - merged[-1]) > tolerance:
            merged.append(value)
    return merged


def _binning_data(values, b_type, low, high, value, option):
    positions = distinct_values(values)
    bins = max(len(positions), 1)
    if b_type == BinningType.equidistant or bins == 1:
        return BinningData(option, value, bins, low, high)
    midpoints = [0.5 * (a + b) for a, b in zip(positions[:-1], positions[1:])]
    return BinningData(option, value, boundaries=[low] + midpoints + [high])


class LayerCreator:
    """Builds cylinder and disc layers from collected sensitive surfaces"""

    def __init__(self, verbose=False):
        self.verbose = verbose

    def _local_coordinates(self, surfaces, transform, value):
        centers = np.array([surface.center() for surface in surfaces])
        local = transform.inverse_apply(centers)
        return [coordinate_value(point, value) for point in local]

    def cylinder_layer(self, surfaces, b_type_phi, b_type_z, proto_layer, transform=None,
                       approach_descriptor=None):
        """
        Cylinder layer around the surfaces.

        Radius in the middle of the envelope-extended radial range,
        thickness = radial extent + envelopes, half length from the
        envelope-extended z range.
        """
        r_min, r_max = proto_layer.radial_range()
        z_min, z_max = proto_layer.z_range()
        layer_r = 0.5 * (r_min + r_max)
        half_z = 0.5 * (z_max - z_min)
        thickness = r_max - r_min
        if transform is None:
            transform = Transform3D.from_translation([0.0, 0.0, 0.5 * (z_min + z_max)])

        surface_array = None
        layer_type = LayerType.passive
        if surfaces:
            bin_utility = BinUtility.from_binning_data(
                _binning_data(self._local_coordinates(surfaces, transform, BinningValue.binPhi),
                              b_type_phi, -math.pi, math.pi, BinningValue.binPhi, BinningOption.closed),
                transform)
            bin_utility += BinUtility.from_binning_data(
                _binning_data(self._local_coordinates(surfaces, transform, BinningValue.binZ),
                              b_type_z, -half_z, half_z, BinningValue.binZ, BinningOption.open))
            surface_array = SurfaceArray(SurfaceGridLookup(bin_utility, surfaces), surfaces)
            layer_type = LayerType.active
            if self.verbose:
                print(f"[L] Cylinder layer with {len(surfaces)} surfaces, binning {bin_utility.bins_per_axis()}")

        return CylinderLayer(transform, CylinderBounds(layer_r, half_z), surface_array, thickness,
                             approach_descriptor, layer_type, proto_layer)

    def disc_layer(self, surfaces, b_type_r, b_type_phi, proto_layer, transform=None,
                   approach_descriptor=None):
        """
        Disc layer around the surfaces.

        Radial bounds from the envelope-extended radial range, thickness =
        z extent + envelopes.
        """
        r_min, r_max = proto_layer.radial_range()
        z_min, z_max = proto_layer.z_range()
        thickness = z_max - z_min
        if transform is None:
            transform = Transform3D.from_translation([0.0, 0.0, 0.5 * (z_min + z_max)])

        surface_array = None
        layer_type = LayerType.passive
        if surfaces:
            bin_utility = BinUtility.from_binning_data(
                _binning_data(self._local_coordinates(surfaces, transform, BinningValue.binR),
                              b_type_r, r_min, r_max, BinningValue.binR, BinningOption.open),
                transform)
            bin_utility += BinUtility.from_binning_data(
                _binning_data(self._local_coordinates(surfaces, transform, BinningValue.binPhi),
                              b_type_phi, -math.pi, math.pi, BinningValue.binPhi, BinningOption.closed))
            surface_array = SurfaceArray(SurfaceGridLookup(bin_utility, surfaces), surfaces)
            layer_type = LayerType.active
            if self.verbose:
                print(f"[L] Disc layer with {len(surfaces)} surfaces, binning {bin_utility.bins_per_axis()}")

        return DiscLayer(transform, RadialBounds(max(r_min, 0.0), r_max), surface_array, thickness,
                         approach_descriptor, layer_type, proto_layer)
