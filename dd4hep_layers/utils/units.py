"""
Unit constants for the layer builder.

Internal length unit is mm and angles are in rad. The native unit of the
detector description (TGeo / DD4hep) is cm, so every length read from a
DetectorNode has to be multiplied by CM before it enters the geometry.
"""

import math

MM = 1.0
CM = 10.0
M = 1000.0
UM = 1.0e-3

RAD = 1.0
MRAD = 1.0e-3
DEG = math.pi / 180.0

# Native expression units, normalized to cm (DD4hep compact convention)
NATIVE_LENGTH_UNITS = {
    'mm': MM / CM,
    'cm': 1.0,
    'm': M / CM,
    'um': UM / CM,
}

NATIVE_ANGLE_UNITS = {
    'rad': RAD,
    'mrad': MRAD,
    'deg': DEG,
}


def native_to_internal_length(value):
    """Convert a native (cm) length to the internal unit (mm)."""
    if value is None:
        return None
    return float(value) * CM


def native_to_internal_density(value):
    """Convert a native density (g/cm3) to g/mm3."""
    if value is None:
        return None
    return float(value) / CM ** 3
