"""
Shared test fixtures for the layer builder tests.
"""
import sys
from pathlib import Path

import pytest

# Add the repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dd4hep_layers.detector_config import LayerBuilderConfig
from dd4hep_layers.geometry_parsing.detector_nodes import (
    IDENTITY_ROTATION,
    VACUUM,
    Box,
    DetectorNode,
    Extension,
    NativeMaterial,
    NativeTransform,
    TubeSegment,
)

# rotation by 180 deg around x: flips the local z axis
FLIP_Z_ROTATION = (1.0, 0.0, 0.0,
                   0.0, -1.0, 0.0,
                   0.0, 0.0, -1.0)


def tube_layer(name, rmin, rmax, dz, z=0.0, rotation=IDENTITY_ROTATION, material=VACUUM,
               extension=None, sensitive=False, children=()):
    """Layer node with a tube segment shape, all lengths in cm"""
    return DetectorNode(
        name,
        shape=TubeSegment(rmin, rmax, dz),
        local_transform=NativeTransform(rotation, (0.0, 0.0, z)),
        material=material,
        sensitive=sensitive,
        extension=extension if extension is not None else Extension(),
        children=list(children),
    )


def box_module(name, position, half_lengths=(0.01, 1.0, 5.0), sensitive=True, extension=None,
               children=()):
    """Module node with a box shape placed at `position` (cm)"""
    return DetectorNode(
        name,
        shape=Box(*half_lengths),
        local_transform=NativeTransform(IDENTITY_ROTATION, position),
        sensitive=sensitive,
        extension=extension,
        children=list(children),
    )


@pytest.fixture
def silicon():
    return NativeMaterial('Silicon', rad_length=9.37, int_length=45.75, a=28.0855, z=14.0,
                          density=2.33)


@pytest.fixture
def make_config():
    def _make(negative=None, central=None, positive=None, **kwargs):
        return LayerBuilderConfig('TestTracker', negative_layers=negative, central_layers=central,
                                  positive_layers=positive, verbose=False, **kwargs)
    return _make


@pytest.fixture
def barrel_with_module():
    """Barrel layer r = 3..4 cm, |z| < 10 cm, holding one module at x = 3.5 cm.

    The module spans y in [-1, 1] cm and z in [-5, 5] cm with its normal
    along x (axes 'YZX').
    """
    module = box_module('module_0', (3.5, 0.0, 0.0))
    return tube_layer('barrel_0', 3.0, 4.0, 10.0, extension=Extension(axes='YZX'),
                      children=[module])


TRACKER_XML = """<?xml version="1.0"?>
<lccdd>
  <define>
    <constant name="barrel_rmax" value="barrel_rmin + 1*cm"/>
    <constant name="barrel_rmin" value="30*mm"/>
    <constant name="disc_z" value="1*m"/>
  </define>
  <materials>
    <material name="Silicon" radlen="9.37*cm" intlen="45.75*cm" A="28.0855" Z="14" density="2.33"/>
  </materials>
  <digitization_modules>
    <module name="pixel" pitch_x="20*um" pitch_y="20*um"/>
  </digitization_modules>
  <detector name="Tracker">
    <layer name="barrel_0" region="central">
      <tubs rmin="barrel_rmin" rmax="barrel_rmax" dz="10*cm"/>
      <extension axes="YZX" support_material="true" material_bins="36,10" material_position="outer"/>
      <element name="module_0" sensitive="true" material="Silicon">
        <box dx="0.01*cm" dy="1*cm" dz="5*cm"/>
        <position x="3.5*cm"/>
        <extension digitization_module="pixel"/>
      </element>
    </layer>
    <layer name="disc_p0" region="positive" material="Silicon">
      <tubs rmin="1*cm" rmax="2*cm" dz="5*mm"/>
      <position z="disc_z"/>
      <extension/>
    </layer>
    <layer name="disc_n0" region="negative">
      <tubs rmin="1*cm" rmax="2*cm" dz="5*mm"/>
      <position z="-disc_z"/>
      <rotation x="pi"/>
      <extension envelope_r="1*mm" envelope_z="1*mm"/>
    </layer>
  </detector>
</lccdd>
"""


@pytest.fixture
def tracker_xml(tmp_path):
    path = tmp_path / "tracker.xml"
    path.write_text(TRACKER_XML)
    return str(path)
