"""
Proto-layer: the bounding envelope of a layer before it is built.
"""

import math
from typing import Sequence, Tuple

import numpy as np

from dd4hep_layers.geometry.surfaces import PlaneSurface
from dd4hep_layers.geometry_parsing.detector_nodes import TubeSegment
from dd4hep_layers.utils.units import CM


def _closest_approach_r(a, b):
    """Smallest transverse distance of the segment a-b to the z axis"""
    a = np.asarray(a[:2], dtype=float)
    b = np.asarray(b[:2], dtype=float)
    ab = b - a
    length2 = float(ab @ ab)
    if length2 == 0.0:
        return float(np.hypot(*a))
    t = min(max(-float(a @ ab) / length2, 0.0), 1.0)
    return float(np.hypot(*(a + t * ab)))


class ProtoLayer:
    """
    Extent of a layer in r, z and phi plus asymmetric envelopes.

    env_r = (inner, outer) and env_z = (negative, positive) padding in mm.
    """

    def __init__(self, min_r=math.inf, max_r=-math.inf, min_z=math.inf, max_z=-math.inf,
                 env_r: Tuple[float, float] = (0.0, 0.0), env_z: Tuple[float, float] = (0.0, 0.0),
                 min_phi=math.pi, max_phi=-math.pi):
        self.min_r = min_r
        self.max_r = max_r
        self.min_z = min_z
        self.max_z = max_z
        self.min_phi = min_phi
        self.max_phi = max_phi
        self.env_r = tuple(env_r)
        self.env_z = tuple(env_z)

    @classmethod
    def from_surfaces(cls, surfaces: Sequence):
        """Extent of all surface vertices (and, for planes, their edges)"""
        proto_layer = cls()
        for surface in surfaces:
            proto_layer.measure(surface)
        return proto_layer

    def measure(self, surface):
        vertices = surface.vertices()
        radii = np.hypot(vertices[:, 0], vertices[:, 1])
        phis = np.arctan2(vertices[:, 1], vertices[:, 0])

        min_r = float(radii.min())
        if isinstance(surface, PlaneSurface):
            for i in range(len(vertices)):
                min_r = min(min_r, _closest_approach_r(vertices[i], vertices[(i + 1) % len(vertices)]))

        self.min_r = min(self.min_r, min_r)
        self.max_r = max(self.max_r, float(radii.max()))
        self.min_z = min(self.min_z, float(vertices[:, 2].min()))
        self.max_z = max(self.max_z, float(vertices[:, 2].max()))
        self.min_phi = min(self.min_phi, float(phis.min()))
        self.max_phi = max(self.max_phi, float(phis.max()))

    def is_empty(self):
        return self.min_r > self.max_r

    def set_extent(self, min_r, max_r, min_z, max_z):
        # r comes from tube radii and is always ordered, z may be projected
        if min_z > max_z:
            min_z, max_z = max_z, min_z
        self.min_r = min_r
        self.max_r = max_r
        self.min_z = min_z
        self.max_z = max_z

    def radial_range(self):
        """(r_min, r_max) including the envelopes"""
        return (self.min_r - self.env_r[0], self.max_r + self.env_r[1])

    def z_range(self):
        """(z_min, z_max) including the envelopes"""
        return (self.min_z - self.env_z[0], self.max_z + self.env_z[1])

    def __repr__(self):
        return (f"ProtoLayer(r=[{self.min_r:.3f}, {self.max_r:.3f}], z=[{self.min_z:.3f}, {self.max_z:.3f}], "
                f"envR={self.env_r}, envZ={self.env_z})")


def ordered_extent(low, high):
    """Return (low, high) swapped if inverted, plus whether a swap happened"""
    if low > high:
        return high, low, True
    return low, high, False


def shape_z_extent(tube, transform, is_disc):
    """
    Longitudinal extent of a tube segment layer in mm.

    Cylinders use +-dz directly. Discs project the half length along the
    rotated z axis around the translation; a flipped axis gives an inverted
    range which is swapped.
    """
    dz = tube.dz * CM
    if not is_disc:
        return -dz, dz
    z_min = (transform.translation - transform.col(2) * dz)[2]
    z_max = (transform.translation + transform.col(2) * dz)[2]
    z_min, z_max, _ = ordered_extent(float(z_min), float(z_max))
    return z_min, z_max


def compute_proto_layer(node, extension, surfaces, transform, is_disc, layer_surface=None):
    """
    Proto-layer of a layer node.

    Parameters:
    -----------
    node : DetectorNode
        Layer node (its shape is inspected unless envelopes are explicit)
    extension : Extension
        Extension of the layer node
    surfaces : list
        Sensitive surfaces collected below the layer
    transform : Transform3D
        Converted world transform of the layer
    is_disc : bool
        Disc (endcap) or cylinder (barrel) layer
    layer_surface : Surface, optional
        Surface of a sensitive layer node. Measured when envelopes are
        explicit and neither collected surfaces nor a TubeSegment give an
        extent

    Returns:
    --------
    ProtoLayer
    """
    proto_layer = ProtoLayer.from_surfaces(surfaces)
    tube = node.shape if isinstance(node.shape, TubeSegment) else None

    if extension.build_envelope:
        proto_layer.env_r = (extension.envelope_r, extension.envelope_r)
        proto_layer.env_z = (extension.envelope_z, extension.envelope_z)
        if proto_layer.is_empty():
            # nothing collected, the extent comes from the tube or the layer surface itself
            if tube is not None:
                z_min, z_max = shape_z_extent(tube, transform, is_disc)
                proto_layer.set_extent(tube.rmin * CM, tube.rmax * CM, z_min, z_max)
            elif layer_surface is not None:
                proto_layer.measure(layer_surface)
            else:
                raise ValueError(
                    f"Layer DetElement: {node.name} has explicit envelopes but neither sensitive "
                    f"surfaces nor a TubeSegment shape to derive its extent from")
        return proto_layer

    if node.shape is None:
        raise ValueError(
            f"Layer DetElement: {node.name} has neither a shape nor tolerances for envelopes "
            f"added to its extension. Please check your detector constructor!")
    if tube is None:
        kind = 'Disc' if is_disc else 'Cylinder'
        raise ValueError(
            f"{kind} layer {node.name} has wrong shape {type(node.shape).__name__} - "
            f"needs to be TubeSegment!")

    r_min = tube.rmin * CM
    r_max = tube.rmax * CM
    z_min, z_max = shape_z_extent(tube, transform, is_disc)

    if proto_layer.is_empty():
        proto_layer.set_extent(r_min, r_max, z_min, z_max)
        proto_layer.env_r = (0.0, 0.0)
        proto_layer.env_z = (0.0, 0.0)
    else:
        proto_layer.env_z = (abs(z_min - proto_layer.min_z), abs(z_max - proto_layer.max_z))
        proto_layer.env_r = (abs(r_min - proto_layer.min_r), abs(r_max - proto_layer.max_r))
    return proto_layer
