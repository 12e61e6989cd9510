"""
Input model of the layer builder: a read-only tree of DD4hep-like detector
nodes. All lengths are in native units (cm), densities in g/cm3.
"""

import enum
from typing import List, Optional, Sequence, Tuple

import numpy as np


IDENTITY_ROTATION = (1.0, 0.0, 0.0,
                     0.0, 1.0, 0.0,
                     0.0, 0.0, 1.0)


class NativeTransform:
    """Row-major 3x3 rotation (9 values) and translation in cm"""

    def __init__(self, rotation: Sequence[float] = IDENTITY_ROTATION,
                 translation: Sequence[float] = (0.0, 0.0, 0.0)):
        if len(rotation) != 9:
            raise ValueError(f"Native rotation needs 9 values, got {len(rotation)}")
        if len(translation) != 3:
            raise ValueError(f"Native translation needs 3 values, got {len(translation)}")
        self.rotation = tuple(float(v) for v in rotation)
        self.translation = tuple(float(v) for v in translation)

    def matrix(self):
        return np.array(self.rotation).reshape(3, 3)

    def compose(self, local: 'NativeTransform') -> 'NativeTransform':
        """self * local, i.e. place `local` inside the frame of self"""
        rotation = self.matrix() @ local.matrix()
        translation = self.matrix() @ np.array(local.translation) + np.array(self.translation)
        return NativeTransform(rotation.ravel().tolist(), translation.tolist())

    def __repr__(self):
        return f"NativeTransform(translation={list(self.translation)})"


class TubeSegment:
    """Tube segment (TGeoTubeSeg): radii, half length and phi range in deg"""

    def __init__(self, rmin, rmax, dz, phi1=0.0, phi2=360.0):
        self.rmin = float(rmin)
        self.rmax = float(rmax)
        self.dz = float(dz)
        self.phi1 = float(phi1)
        self.phi2 = float(phi2)

    def __repr__(self):
        return f"TubeSegment(rmin={self.rmin}, rmax={self.rmax}, dz={self.dz})"


class Box:
    """Box (TGeoBBox) with half lengths dx, dy, dz"""

    def __init__(self, dx, dy, dz):
        self.dx = float(dx)
        self.dy = float(dy)
        self.dz = float(dz)

    def half_lengths(self):
        return (self.dx, self.dy, self.dz)

    def __repr__(self):
        return f"Box(dx={self.dx}, dy={self.dy}, dz={self.dz})"


class Trapezoid:
    """Trapezoid (TGeoTrd1/TGeoTrd2): x half lengths at -dz / +dz, y and z half lengths"""

    def __init__(self, dx1, dx2, dy, dz):
        self.dx1 = float(dx1)
        self.dx2 = float(dx2)
        self.dy = float(dy)
        self.dz = float(dz)

    def __repr__(self):
        return f"Trapezoid(dx1={self.dx1}, dx2={self.dx2}, dy={self.dy}, dz={self.dz})"


class NativeMaterial:
    """Bulk material of a volume in native units (cm, g/cm3)"""

    def __init__(self, name, rad_length=0.0, int_length=0.0, a=0.0, z=0.0, density=0.0):
        self.name = name
        self.rad_length = float(rad_length)
        self.int_length = float(int_length)
        self.a = float(a)
        self.z = float(z)
        self.density = float(density)

    def __repr__(self):
        return f"NativeMaterial({self.name!r})"


VACUUM = NativeMaterial('Vacuum')


class LayerMaterialPos(enum.Enum):
    """Surface of the approach descriptor that carries the support material"""
    inner = 0
    central = 1
    outer = 2


class DigitizationModule:
    """Readout description shared between identical modules"""

    def __init__(self, name, pitch_x=None, pitch_y=None, thickness=None):
        self.name = name
        self.pitch_x = pitch_x
        self.pitch_y = pitch_y
        self.thickness = thickness

    def __repr__(self):
        return f"DigitizationModule({self.name!r})"


class Extension:
    """
    Tracking information attached to a detector node.

    Parameters:
    -----------
    axes : str
        Orientation of the module axes, e.g. 'XYZ' or 'XzY'
    build_envelope : bool
        Layer envelopes are given explicitly by envelope_r / envelope_z,
        symmetric margins in the internal unit (mm)
    material_bins : tuple(int, int)
        Bins in phi and in r (disc) or z (cylinder) for material mapping
    layer_material_position : LayerMaterialPos
        Which approach surface carries the material proxy
    has_support_material : bool
        Layer is marked for material mapping
    material : SurfaceMaterial, optional
        Material of a sensitive module
    digitization_module : DigitizationModule, optional
        Possibly shared readout description
    """

    def __init__(self, axes='XYZ', build_envelope=False, envelope_r=0.0, envelope_z=0.0,
                 material_bins: Tuple[int, int] = (1, 1),
                 layer_material_position: LayerMaterialPos = LayerMaterialPos.inner,
                 has_support_material=False, material=None, digitization_module=None):
        self.axes = axes
        self.build_envelope = build_envelope
        self.envelope_r = float(envelope_r)
        self.envelope_z = float(envelope_z)
        self.material_bins = (int(material_bins[0]), int(material_bins[1]))
        self.layer_material_position = layer_material_position
        self.has_support_material = has_support_material
        self.material = material
        self.digitization_module = digitization_module


class DetectorNode:
    """
    One node of the detector description tree.

    The world transform is derived from the parent chain when the node is
    attached with add_child, unless it was given explicitly.
    """

    def __init__(self, name, shape=None, local_transform: Optional[NativeTransform] = None,
                 world_transform: Optional[NativeTransform] = None,
                 material: NativeMaterial = VACUUM, sensitive=False,
                 extension: Optional[Extension] = None, children=None):
        self.name = name
        self.shape = shape
        self.local_transform = local_transform if local_transform is not None else NativeTransform()
        self._explicit_world = world_transform is not None
        self.world_transform = world_transform if world_transform is not None else self.local_transform
        self.material = material
        self.sensitive = sensitive
        self.extension = extension
        self.parent = None
        self.children: List['DetectorNode'] = []
        for child in children or []:
            self.add_child(child)

    def add_child(self, child: 'DetectorNode') -> 'DetectorNode':
        child.parent = self
        child._place(self.world_transform)
        self.children.append(child)
        return child

    def _place(self, parent_world: NativeTransform):
        if not self._explicit_world:
            self.world_transform = parent_world.compose(self.local_transform)
        for child in self.children:
            child._place(self.world_transform)

    def get_extension(self) -> Optional[Extension]:
        """The attached Extension, or None when there is none"""
        if isinstance(self.extension, Extension):
            return self.extension
        return None

    def descendants(self):
        """Depth-first iteration over all descendants in child order"""
        for child in self.children:
            yield child
            yield from child.descendants()

    def __repr__(self):
        return f"DetectorNode({self.name!r}, shape={self.shape!r}, sensitive={self.sensitive})"
