"""
Sensitive detector elements and the recursive collection of their surfaces.
"""

import math
from typing import List

import numpy as np

from dd4hep_layers.geometry.surfaces import (
    CylinderSurface,
    DiscSurface,
    PlaneSurface,
    RectangleBounds,
    TrapezoidBounds,
)
from dd4hep_layers.geometry.transforms import Transform3D, convert_transform
from dd4hep_layers.geometry_parsing.detector_nodes import Box, Trapezoid, TubeSegment
from dd4hep_layers.utils.units import CM, DEG

_AXIS_INDEX = {'x': 0, 'y': 1, 'z': 2}


def parse_axes(axes: str):
    """
    Decode an axis orientation string.

    Each of the three letters names the shape axis used as local x, local y
    and normal of the surface; an uppercase letter keeps the direction, a
    lowercase letter flips it. 'XYZ' is the identity, 'XzY' uses the shape
    z axis (flipped) as local y and the shape y axis as normal.

    Returns:
    --------
    list of (axis_index, sign)
    """
    if axes is None or len(axes) != 3:
        raise ValueError(f"Axis orientation must have three letters, got {axes!r}")
    decoded = []
    for letter in axes:
        if letter.lower() not in _AXIS_INDEX:
            raise ValueError(f"Invalid axis letter {letter!r} in {axes!r}")
        decoded.append((_AXIS_INDEX[letter.lower()], 1.0 if letter.isupper() else -1.0))
    if len({index for index, _ in decoded}) != 3:
        raise ValueError(f"Axis orientation {axes!r} repeats an axis")
    return decoded


class DD4hepDetElement:
    """
    Detector element built from a sensitive detector node.

    Parameters:
    -----------
    node : DetectorNode
        Sensitive node this element represents
    axes : str
        Axis orientation string (see parse_axes)
    scale : float
        Native length unit expressed in the internal unit
    is_disc : bool
        Interpret a tube segment as a disc rather than a cylinder
    material : SurfaceMaterial, optional
    build_digitization_modules : bool
        Keep the digitization module for this element
    digitization_module : DigitizationModule, optional
        Possibly shared between elements
    """

    def __init__(self, node, axes='XYZ', scale=CM, is_disc=False, material=None,
                 build_digitization_modules=False, digitization_module=None):
        self.node = node
        self.identifier = node.name
        self.axes = axes
        self.scale = scale
        self.is_disc = is_disc
        self.digitization_module = digitization_module if build_digitization_modules else None
        self.transform = convert_transform(node.world_transform)
        # convert_transform works in cm, rescale if another unit was requested
        if scale != CM:
            self.transform = Transform3D(self.transform.rotation,
                                         self.transform.translation / CM * scale)
        self.thickness = 0.0
        self._surface = self._build_surface()
        self._surface.associated_detector_element = self
        self._surface.set_associated_material(material)

    def _oriented_transform(self):
        rotation = self.transform.rotation
        columns = [sign * rotation[:, index] for index, sign in parse_axes(self.axes)]
        return Transform3D(np.column_stack(columns), self.transform.translation)

    def _build_surface(self):
        shape = self.node.shape
        scale = self.scale

        if isinstance(shape, TubeSegment):
            span = (shape.phi2 - shape.phi1) * DEG
            half_phi = min(0.5 * span, math.pi)
            avg_phi = 0.5 * (shape.phi1 + shape.phi2) * DEG if span < 2 * math.pi else 0.0
            if self.is_disc:
                self.thickness = 2.0 * shape.dz * scale
                return DiscSurface(self.transform, shape.rmin * scale, shape.rmax * scale,
                                   half_phi, avg_phi)
            self.thickness = (shape.rmax - shape.rmin) * scale
            return CylinderSurface(self.transform, 0.5 * (shape.rmin + shape.rmax) * scale,
                                   shape.dz * scale, half_phi, avg_phi)

        orientation = parse_axes(self.axes)

        if isinstance(shape, Box):
            half = shape.half_lengths()
            half_x = half[orientation[0][0]] * scale
            half_y = half[orientation[1][0]] * scale
            self.thickness = 2.0 * half[orientation[2][0]] * scale
            return PlaneSurface(self._oriented_transform(), RectangleBounds(half_x, half_y))

        if isinstance(shape, Trapezoid):
            # the x half length varies along the shape z axis
            if orientation[0][0] != 0 or orientation[1][0] != 2:
                raise ValueError(
                    f"Trapezoid module {self.identifier} needs axes with local x = X "
                    f"and local y = Z, got {self.axes!r}")
            self.thickness = 2.0 * shape.dy * scale
            return PlaneSurface(self._oriented_transform(),
                                TrapezoidBounds(shape.dx1 * scale, shape.dx2 * scale, shape.dz * scale))

        raise ValueError(f"Sensitive element {self.identifier} has unsupported shape {shape!r}")

    def surface(self):
        return self._surface

    def __repr__(self):
        return f"DD4hepDetElement({self.identifier!r}, axes={self.axes!r})"


def create_sensitive_surface(node, is_disc=False, axes='XYZ', build_digitization_modules=False,
                             verbose=False):
    """
    Build the detector element of a sensitive node and return its surface.

    A missing extension is not an error: the element is then created
    without material and without digitization module.
    """
    material = None
    digitization_module = None
    extension = node.get_extension()
    if extension is not None:
        material = extension.material
        digitization_module = extension.digitization_module
    elif verbose:
        print(f"[L] Sensitive element {node.name} has no extension, building it without material")

    element = DD4hepDetElement(node, axes, CM, is_disc, material,
                               build_digitization_modules, digitization_module)
    return element.surface()


def collect_sensitive(node, axes='XYZ', build_digitization_modules=False, verbose=False) -> List:
    """
    Surfaces of all sensitive descendants of `node`, depth first in child order.

    The node itself is not included; sensitive nodes are descended into as well.
    """
    surfaces = []
    for child in node.children:
        if child.sensitive:
            surfaces.append(create_sensitive_surface(child, False, axes,
                                                     build_digitization_modules, verbose))
        surfaces.extend(collect_sensitive(child, axes, build_digitization_modules, verbose))
    return surfaces
