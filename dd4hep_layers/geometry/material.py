"""
Material value objects attached to surfaces and layers.

Units: lengths in mm, density in g/mm3. The builder never evaluates
energy loss or scattering, it only carries these values along.
"""

import math
from typing import Sequence

from dd4hep_layers.utils.units import native_to_internal_density, native_to_internal_length


class Material:
    """Bulk material: radiation length X0, interaction length L0, A, Z and density"""

    def __init__(self, x0=0.0, l0=0.0, a=0.0, z=0.0, rho=0.0):
        self.x0 = float(x0)
        self.l0 = float(l0)
        self.a = float(a)
        self.z = float(z)
        self.rho = float(rho)

    def z_over_a_times_rho(self):
        if self.a == 0:
            return 0.0
        return self.z / self.a * self.rho

    def __bool__(self):
        # default constructed material is vacuum
        return self.x0 > 0.0

    def __eq__(self, other):
        if not isinstance(other, Material):
            return NotImplemented
        return all(math.isclose(mine, theirs, rel_tol=1e-9, abs_tol=1e-12)
                   for mine, theirs in zip(self._values(), other._values()))

    def _values(self):
        return (self.x0, self.l0, self.a, self.z, self.rho)

    def __repr__(self):
        return (f"Material(X0={self.x0:.4g}, L0={self.l0:.4g}, A={self.a:.4g}, "
                f"Z={self.z:.4g}, rho={self.rho:.4g})")


class MaterialProperties:
    """
    Material of a slab with a given thickness.

    Can be constructed from the five material constants plus thickness,
    from a Material and a thickness, or as the compound of several slabs
    (see `compound`).
    """

    def __init__(self, material, thickness, *args):
        if isinstance(material, Material):
            if args:
                raise ValueError("MaterialProperties(Material, thickness) takes no further values")
            self.material = material
            self.thickness = float(thickness)
        else:
            # (X0, L0, A, Z, rho, thickness)
            values = (material, thickness) + args
            if len(values) != 6:
                raise ValueError("MaterialProperties needs X0, L0, A, Z, rho and thickness")
            self.material = Material(*values[:5])
            self.thickness = float(values[5])

    @classmethod
    def compound(cls, layers: Sequence['MaterialProperties'], unit_thickness=True):
        """
        Average several slabs into one.

        Thickness-in-X0 and thickness-in-L0 add up; A and Z are averaged
        weighted by areal density, rho by thickness. With `unit_thickness`
        the result is rescaled to thickness 1 keeping the X0/L0 fractions
        and the areal density.
        """
        thickness = 0.0
        in_x0 = 0.0
        in_l0 = 0.0
        rho = 0.0
        a = 0.0
        z = 0.0
        for layer in layers:
            in_x0 += layer.thickness_in_x0()
            in_l0 += layer.thickness_in_l0()
            t = layer.thickness
            r = layer.average_rho()
            thickness += t
            rho += r * t
            a += layer.average_a() * r * t
            z += layer.average_z() * r * t

        if thickness <= 0.0 or rho <= 0.0:
            raise ValueError("Cannot build compound material from slabs without thickness or density")

        material = Material(thickness / in_x0, thickness / in_l0,
                            a / rho, z / rho, rho / thickness)
        result = cls(material, thickness)
        if unit_thickness:
            result.scale_to_unit_thickness()
        return result

    def scale_to_unit_thickness(self):
        t = self.thickness
        m = self.material
        self.material = Material(m.x0 / t, m.l0 / t, m.a, m.z, m.rho * t)
        self.thickness = 1.0

    def thickness_in_x0(self):
        if self.material.x0 == 0:
            return 0.0
        return self.thickness / self.material.x0

    def thickness_in_l0(self):
        if self.material.l0 == 0:
            return 0.0
        return self.thickness / self.material.l0

    def average_x0(self):
        return self.material.x0

    def average_l0(self):
        return self.material.l0

    def average_a(self):
        return self.material.a

    def average_z(self):
        return self.material.z

    def average_rho(self):
        return self.material.rho

    def z_over_a_times_rho(self):
        return self.material.z_over_a_times_rho()

    def __imul__(self, scale):
        self.thickness *= scale
        return self

    def __mul__(self, scale):
        return MaterialProperties(self.material, self.thickness * scale)

    def __eq__(self, other):
        if not isinstance(other, MaterialProperties):
            return NotImplemented
        return (self.material == other.material
                and math.isclose(self.thickness, other.thickness, rel_tol=1e-9, abs_tol=1e-12))

    def __repr__(self):
        return f"MaterialProperties({self.material!r}, thickness={self.thickness:.4g})"


class SurfaceMaterial:
    """Base for anything that can be attached to a surface as material"""

    def material_properties(self, position=None):
        raise NotImplementedError


class HomogeneousSurfaceMaterial(SurfaceMaterial):
    """The same material properties everywhere on the surface"""

    def __init__(self, properties: MaterialProperties, split_factor=1.0):
        self.properties = properties
        self.split_factor = split_factor

    def material_properties(self, position=None):
        return self.properties

    def __repr__(self):
        return f"HomogeneousSurfaceMaterial({self.properties!r})"


class SurfaceMaterialProxy(SurfaceMaterial):
    """
    Marker telling the material mapping that this surface will receive
    binned material later. Carries only the binning.
    """

    def __init__(self, bin_utility):
        self.bin_utility = bin_utility

    def material_properties(self, position=None):
        return None

    def __repr__(self):
        return f"SurfaceMaterialProxy({self.bin_utility!r})"


def resolve_bulk_material(native_material, thickness):
    """
    Homogeneous surface material from a native (cm, g/cm3) material.

    Vacuum (any casing) gives None, everything else the unit-converted
    material with the given thickness in mm.
    """
    if native_material is None or native_material.name.casefold() == 'vacuum':
        return None
    material = Material(native_to_internal_length(native_material.rad_length),
                        native_to_internal_length(native_material.int_length),
                        native_material.a,
                        native_material.z,
                        native_to_internal_density(native_material.density))
    return HomogeneousSurfaceMaterial(MaterialProperties(material, thickness))
