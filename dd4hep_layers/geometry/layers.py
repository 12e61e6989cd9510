import enum
from typing import Dict, List, Optional, Tuple

from dd4hep_layers.geometry.surfaces import CylinderBounds, CylinderSurface, DiscSurface, RadialBounds


class LayerType(enum.Enum):
    navigation = -1
    passive = 0
    active = 1


class SingleElementLookup:
    """Lookup that returns the same single surface for every position"""

    def __init__(self, surface):
        self.surface = surface

    def lookup(self, position) -> List:
        return [self.surface]


class SurfaceGridLookup:
    """Lookup filling each surface into the bin of its center"""

    def __init__(self, bin_utility, surfaces):
        self.bin_utility = bin_utility
        self.grid: Dict[Tuple[int, ...], List] = {}
        for surface in surfaces:
            self.grid.setdefault(bin_utility.bin(surface.center()), []).append(surface)

    def lookup(self, position) -> List:
        return list(self.grid.get(self.bin_utility.bin(position), []))


class SurfaceArray:
    """Maps positions on a layer to the sensitive surfaces it contains"""

    def __init__(self, lookup, surfaces):
        self._lookup = lookup
        self._surfaces = list(surfaces)

    @classmethod
    def single(cls, surface):
        return cls(SingleElementLookup(surface), [surface])

    def surfaces_at(self, position) -> List:
        return self._lookup.lookup(position)

    def surfaces(self) -> List:
        return list(self._surfaces)

    def __len__(self):
        return len(self._surfaces)


class Layer:
    """
    Base class of cylinder and disc layers.

    The layer material lives on the surface representation and is
    accessible through `surface_material`.
    """

    def __init__(self, transform, bounds, surface_array: Optional[SurfaceArray], thickness,
                 approach_descriptor=None, layer_type=LayerType.passive, proto_layer=None):
        self.transform = transform
        self.bounds = bounds
        self.surface_array = surface_array
        self.thickness = float(thickness)
        self.approach_descriptor = approach_descriptor
        self.layer_type = layer_type
        self.proto_layer = proto_layer
        self._representation = self._build_representation()
        self._representation.associated_layer = self

        if approach_descriptor is not None:
            approach_descriptor.register_layer(self)
        if surface_array is not None:
            for surface in surface_array.surfaces():
                surface.associated_layer = self

    def _build_representation(self):
        raise NotImplementedError

    def surface_representation(self):
        return self._representation

    @property
    def surface_material(self):
        return self._representation.associated_material

    def sensitive_surfaces(self):
        if self.surface_array is None:
            return []
        return self.surface_array.surfaces()

    def __repr__(self):
        return (f"{type(self).__name__}({self.bounds!r}, thickness={self.thickness:.3f}, "
                f"surfaces={len(self.sensitive_surfaces())}, type={self.layer_type.name})")


class CylinderLayer(Layer):
    def __init__(self, transform, bounds: CylinderBounds, surface_array, thickness,
                 approach_descriptor=None, layer_type=LayerType.passive, proto_layer=None):
        super().__init__(transform, bounds, surface_array, thickness, approach_descriptor,
                         layer_type, proto_layer)

    def _build_representation(self):
        return CylinderSurface(self.transform, self.bounds)


class DiscLayer(Layer):
    def __init__(self, transform, bounds: RadialBounds, surface_array, thickness,
                 approach_descriptor=None, layer_type=LayerType.passive, proto_layer=None):
        super().__init__(transform, bounds, surface_array, thickness, approach_descriptor,
                         layer_type, proto_layer)

    def _build_representation(self):
        return DiscSurface(self.transform, self.bounds)
