import math
from typing import Optional

import numpy as np

from dd4hep_layers.geometry.transforms import Transform3D

# number of phi segments used to polygonize round bounds
PHI_SEGMENTS = 72


def _phi_samples(avg_phi, half_phi):
    if half_phi >= math.pi:
        return np.linspace(-math.pi, math.pi, PHI_SEGMENTS, endpoint=False)
    nseg = max(2, int(math.ceil(PHI_SEGMENTS * half_phi / math.pi)))
    return np.linspace(avg_phi - half_phi, avg_phi + half_phi, nseg + 1)


class RectangleBounds:
    def __init__(self, half_x, half_y):
        if half_x < 0 or half_y < 0:
            raise ValueError(f"RectangleBounds need non-negative half lengths, got ({half_x}, {half_y})")
        self.half_x = float(half_x)
        self.half_y = float(half_y)

    def vertices(self):
        hx, hy = self.half_x, self.half_y
        return np.array([[-hx, -hy], [hx, -hy], [hx, hy], [-hx, hy]])

    def __repr__(self):
        return f"RectangleBounds({self.half_x:.3f}, {self.half_y:.3f})"


class TrapezoidBounds:
    def __init__(self, min_half_x, max_half_x, half_y):
        if min(min_half_x, max_half_x, half_y) < 0:
            raise ValueError("TrapezoidBounds need non-negative half lengths")
        self.min_half_x = float(min_half_x)
        self.max_half_x = float(max_half_x)
        self.half_y = float(half_y)

    def vertices(self):
        hy = self.half_y
        return np.array([[-self.min_half_x, -hy], [self.min_half_x, -hy],
                         [self.max_half_x, hy], [-self.max_half_x, hy]])

    def __repr__(self):
        return f"TrapezoidBounds({self.min_half_x:.3f}, {self.max_half_x:.3f}, {self.half_y:.3f})"


class RadialBounds:
    """Disc bounds: inner/outer radius and an optional phi sector"""

    def __init__(self, r_min, r_max, half_phi=math.pi, avg_phi=0.0):
        if r_min < 0 or r_min > r_max:
            raise ValueError(f"RadialBounds need 0 <= r_min <= r_max, got ({r_min}, {r_max})")
        self.r_min = float(r_min)
        self.r_max = float(r_max)
        self.half_phi = float(half_phi)
        self.avg_phi = float(avg_phi)

    def __repr__(self):
        return f"RadialBounds({self.r_min:.3f}, {self.r_max:.3f})"


class CylinderBounds:
    """Cylinder bounds: radius, half length along the local z axis and phi sector"""

    def __init__(self, radius, half_z, half_phi=math.pi, avg_phi=0.0):
        if radius < 0 or half_z < 0:
            raise ValueError(f"CylinderBounds need non-negative radius and half length, got ({radius}, {half_z})")
        self.radius = float(radius)
        self.half_z = float(half_z)
        self.half_phi = float(half_phi)
        self.avg_phi = float(avg_phi)

    def __repr__(self):
        return f"CylinderBounds({self.radius:.3f}, {self.half_z:.3f})"


class Surface:
    """
    Base class for all surfaces.

    A surface may reference the detector element it represents and the
    layer it belongs to; material is attached with set_associated_material.
    """

    def __init__(self, transform: Optional[Transform3D], bounds):
        self.transform = transform if transform is not None else Transform3D()
        self.bounds = bounds
        self.associated_material = None
        self.associated_detector_element = None
        self.associated_layer = None

    def set_associated_material(self, material):
        self.associated_material = material

    def center(self):
        return self.transform.translation

    def normal(self):
        return self.transform.col(2)

    def local_vertices(self):
        raise NotImplementedError

    def vertices(self):
        """Global vertices of the polygonized surface, shape (N, 3)"""
        return self.transform.apply(self.local_vertices())

    def __repr__(self):
        return f"{type(self).__name__}({self.bounds!r}, center={self.center().tolist()})"


class PlaneSurface(Surface):
    def local_vertices(self):
        xy = self.bounds.vertices()
        return np.column_stack([xy, np.zeros(len(xy))])


class DiscSurface(Surface):
    def __init__(self, transform, r_min, r_max=None, half_phi=math.pi, avg_phi=0.0):
        if isinstance(r_min, RadialBounds):
            bounds = r_min
        else:
            bounds = RadialBounds(r_min, r_max, half_phi, avg_phi)
        super().__init__(transform, bounds)

    def local_vertices(self):
        phis = _phi_samples(self.bounds.avg_phi, self.bounds.half_phi)
        points = []
        for r in (self.bounds.r_min, self.bounds.r_max):
            points.append(np.column_stack([r * np.cos(phis), r * np.sin(phis), np.zeros(len(phis))]))
        return np.vstack(points)


class CylinderSurface(Surface):
    def __init__(self, transform, radius, half_z=None, half_phi=math.pi, avg_phi=0.0):
        if isinstance(radius, CylinderBounds):
            bounds = radius
        else:
            bounds = CylinderBounds(radius, half_z, half_phi, avg_phi)
        super().__init__(transform, bounds)

    def normal(self):
        # radial, evaluated at the average phi of the bounds
        phi = self.bounds.avg_phi
        return self.transform.rotation @ np.array([math.cos(phi), math.sin(phi), 0.0])

    def local_vertices(self):
        phis = _phi_samples(self.bounds.avg_phi, self.bounds.half_phi)
        r = self.bounds.radius
        points = []
        for z in (-self.bounds.half_z, self.bounds.half_z):
            points.append(np.column_stack([r * np.cos(phis), r * np.sin(phis), np.full(len(phis), z)]))
        return np.vstack(points)
