"""
Approach descriptors: the inner, central and outer boundary surfaces of a
layer, one of which can be marked for material mapping.
"""

import math
from typing import Tuple

from dd4hep_layers.geometry.binning import BinningOption, BinningValue, BinUtility
from dd4hep_layers.geometry.material import SurfaceMaterialProxy
from dd4hep_layers.geometry.surfaces import CylinderSurface, DiscSurface
from dd4hep_layers.geometry_parsing.detector_nodes import LayerMaterialPos


class ApproachDescriptor:
    """
    Owns the three boundary surfaces (inner, central, outer) of a layer.

    The surfaces are released together with the descriptor (`release`), a
    layer that takes the descriptor over registers itself on them. After
    the release inner, central and outer are None.
    """

    def __init__(self, inner, central, outer):
        self._surfaces: Tuple = (inner, central, outer)

    def _surface(self, index):
        return self._surfaces[index] if self._surfaces else None

    @property
    def inner(self):
        return self._surface(0)

    @property
    def central(self):
        return self._surface(1)

    @property
    def outer(self):
        return self._surface(2)

    def contained_surfaces(self):
        return list(self._surfaces)

    def register_layer(self, layer):
        for surface in self._surfaces:
            surface.associated_layer = layer

    def material_surface(self):
        """The surface carrying the material proxy, or None"""
        for surface in self._surfaces:
            if surface.associated_material is not None:
                return surface
        return None

    def release(self):
        for surface in self._surfaces:
            surface.associated_layer = None
        self._surfaces = ()

    def __len__(self):
        return len(self._surfaces)

    def __repr__(self):
        return f"ApproachDescriptor({list(self._surfaces)!r})"


def build_material_bin_utility(material_bins, low, high, value: BinningValue, transform=None):
    """
    Two-dimensional binning for material mapping: closed phi axis over the
    full circle times an open axis in r or z.
    """
    bins_phi, bins_second = material_bins
    bin_utility = BinUtility(bins_phi, -math.pi, math.pi, BinningOption.closed, BinningValue.binPhi)
    bin_utility += BinUtility(bins_second, low, high, BinningOption.open, value, transform)
    return bin_utility


def attach_material_proxy(surfaces, position: LayerMaterialPos, proxy):
    """Attach the proxy to the inner, central or outer surface"""
    inner, central, outer = surfaces
    if position == LayerMaterialPos.inner:
        inner.set_associated_material(proxy)
    elif position == LayerMaterialPos.central:
        central.set_associated_material(proxy)
    elif position == LayerMaterialPos.outer:
        outer.set_associated_material(proxy)
    else:
        raise ValueError(f"Unknown layer material position: {position!r}")


def disc_approach_descriptor(proto_layer, transform, extension, verbose=False):
    """Approach descriptor of a disc layer: three discs along the local z axis"""
    bin_utility = build_material_bin_utility(extension.material_bins, proto_layer.min_r,
                                             proto_layer.max_r, BinningValue.binR, transform)
    proxy = SurfaceMaterialProxy(bin_utility)
    _report(extension, verbose)

    thickness = abs(proto_layer.min_z - proto_layer.max_z) + proto_layer.env_z[0] + proto_layer.env_z[1]
    inner_pos = transform.translation - transform.col(2) * thickness * 0.5
    outer_pos = transform.translation + transform.col(2) * thickness * 0.5
    if inner_pos[2] > outer_pos[2]:
        inner_pos, outer_pos = outer_pos, inner_pos

    inner = DiscSurface(transform.with_translation(inner_pos), proto_layer.min_r, proto_layer.max_r)
    outer = DiscSurface(transform.with_translation(outer_pos), proto_layer.min_r, proto_layer.max_r)
    central = DiscSurface(transform, proto_layer.min_r, proto_layer.max_r)

    attach_material_proxy((inner, central, outer), extension.layer_material_position, proxy)
    return ApproachDescriptor(inner, central, outer)


def cylinder_approach_descriptor(proto_layer, transform, extension, half_z, verbose=False):
    """Approach descriptor of a cylinder layer: concentric cylinders at min, mean and max radius"""
    inner = CylinderSurface(transform, proto_layer.min_r, half_z)
    outer = CylinderSurface(transform, proto_layer.max_r, half_z)
    central = CylinderSurface(transform, 0.5 * (proto_layer.min_r + proto_layer.max_r), half_z)

    bin_utility = build_material_bin_utility(extension.material_bins, -half_z, half_z,
                                             BinningValue.binZ, transform)
    proxy = SurfaceMaterialProxy(bin_utility)
    _report(extension, verbose)

    attach_material_proxy((inner, central, outer), extension.layer_material_position, proxy)
    return ApproachDescriptor(inner, central, outer)


def _report(extension, verbose):
    if verbose:
        bins_phi, bins_second = extension.material_bins
        print(f"[L] Layer is marked to carry support material on Surface "
              f"( inner=0 / center=1 / outer=2 ) :   {extension.layer_material_position.value}"
              f"    with binning: [{bins_phi}, {bins_second}]")
