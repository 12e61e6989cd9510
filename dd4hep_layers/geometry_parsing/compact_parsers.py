"""
Reader for compact-style XML detector descriptions.

The description lists constants, materials, shared digitization modules
and one detector made of layers, each assigned to a region:

    <lccdd>
      <define><constant name="layer_r" value="3.2*cm"/></define>
      <materials>
        <material name="Silicon" radlen="9.37*cm" intlen="45.75*cm" A="28.09" Z="14" density="2.33"/>
      </materials>
      <digitization_modules><module name="pixel" pitch_x="20*um" pitch_y="20*um"/></digitization_modules>
      <detector name="Tracker">
        <layer name="barrel_0" region="central" material="Air">
          <tubs rmin="layer_r" rmax="layer_r + 0.4*cm" dz="30*cm"/>
          <extension axes="XYZ" support_material="true" material_bins="36,10"/>
          <element name="module_0" sensitive="true" material="Silicon">
            <box dx="1*cm" dy="3*cm" dz="0.015*cm"/>
            <position x="3.4*cm"/>
            <rotation z="0*deg"/>
            <extension material="Silicon" material_thickness="0.03*cm"/>
          </element>
        </layer>
      </detector>
    </lccdd>

Lengths are normalized to the native unit (cm), bare numbers are taken as
cm, angles are in rad unless a unit is given. Extension envelopes and
material thicknesses are handed on in mm.
"""

import ast
import math
import operator
import os
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

import numpy as np

from dd4hep_layers.geometry_parsing.detector_nodes import (
    VACUUM,
    Box,
    DetectorNode,
    DigitizationModule,
    Extension,
    LayerMaterialPos,
    NativeMaterial,
    NativeTransform,
    Trapezoid,
    TubeSegment,
)
from dd4hep_layers.geometry.material import resolve_bulk_material
from dd4hep_layers.utils.units import NATIVE_ANGLE_UNITS, NATIVE_LENGTH_UNITS, native_to_internal_length

REGIONS = ('negative', 'central', 'positive')

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_FUNCTIONS = {
    'sqrt': math.sqrt,
    'sin': math.sin,
    'cos': math.cos,
    'tan': math.tan,
    'atan': math.atan,
    'floor': math.floor,
    'abs': abs,
}

_TRUE_VALUES = {'true', '1', 'yes', 'on'}


def _unit_namespace():
    namespace = {'pi': math.pi}
    namespace.update(NATIVE_LENGTH_UNITS)
    namespace.update(NATIVE_ANGLE_UNITS)
    return namespace


def _evaluate_node(node, names):
    if isinstance(node, ast.Expression):
        return _evaluate_node(node.body, names)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        return float(node.value)
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        return _BINARY_OPERATORS[type(node.op)](_evaluate_node(node.left, names),
                                                _evaluate_node(node.right, names))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
        return _UNARY_OPERATORS[type(node.op)](_evaluate_node(node.operand, names))
    if isinstance(node, ast.Name):
        if node.id not in names:
            raise KeyError(node.id)
        return float(names[node.id])
    if (isinstance(node, ast.Call) and isinstance(node.func, ast.Name)
            and node.func.id in _FUNCTIONS and len(node.args) == 1):
        return float(_FUNCTIONS[node.func.id](_evaluate_node(node.args[0], names)))
    raise ValueError(f"Unsupported expression element: {ast.dump(node)}")


def evaluate_expression(expr_str, constants=None):
    """
    Evaluate an arithmetic expression with constants and units.

    Parameters:
    -----------
    expr_str : str or number
        Expression, e.g. "SiTracker_rmin + 2.5*mm"
    constants : dict, optional
        Already evaluated constants (native units)

    Returns:
    --------
    float

    Raises:
    -------
    KeyError : unknown name in the expression
    ValueError : malformed expression
    """
    if isinstance(expr_str, (int, float)):
        return float(expr_str)
    names = _unit_namespace()
    if constants:
        names.update(constants)
    try:
        tree = ast.parse(str(expr_str).strip(), mode='eval')
    except SyntaxError as exc:
        raise ValueError(f"Cannot parse expression {expr_str!r}") from exc
    return _evaluate_node(tree, names)


def parse_value(value_str, constants=None, default=None):
    """Evaluate an attribute value, returning `default` when it is missing"""
    if value_str is None:
        return default
    return evaluate_expression(value_str, constants)


def parse_detector_constants(root) -> Dict[str, float]:
    """
    Evaluate all <constant> definitions, resolving references between them
    regardless of the order in which they are defined.
    """
    raw_constants = {}
    for constant in root.findall('.//define/constant'):
        raw_constants[constant.get('name')] = constant.get('value')

    constants: Dict[str, float] = {}

    def evaluate_constant(name, visited):
        if name in constants:
            return constants[name]
        if name in visited:
            raise ValueError(f"Circular dependency detected for constant {name}: "
                             f"{' -> '.join(visited)} -> {name}")
        visited = visited + [name]
        while True:
            try:
                value = evaluate_expression(raw_constants[name], constants)
                break
            except KeyError as exc:
                missing = exc.args[0]
                if missing not in raw_constants:
                    raise ValueError(f"Constant {name} refers to undefined name {missing}") from exc
                evaluate_constant(missing, visited)
        constants[name] = value
        return value

    for name in raw_constants:
        evaluate_constant(name, [])
    return constants


def _flag(elem, attribute, default=False):
    value = elem.get(attribute)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def parse_materials(root, constants) -> Dict[str, NativeMaterial]:
    materials = {VACUUM.name: VACUUM}
    for elem in root.findall('.//materials/material'):
        name = elem.get('name')
        materials[name] = NativeMaterial(
            name,
            rad_length=parse_value(elem.get('radlen'), constants, 0.0),
            int_length=parse_value(elem.get('intlen'), constants, 0.0),
            a=parse_value(elem.get('A'), constants, 0.0),
            z=parse_value(elem.get('Z'), constants, 0.0),
            density=parse_value(elem.get('density'), constants, 0.0),
        )
    return materials


def parse_digitization_modules(root, constants) -> Dict[str, DigitizationModule]:
    modules = {}
    for elem in root.findall('.//digitization_modules/module'):
        name = elem.get('name')
        modules[name] = DigitizationModule(
            name,
            pitch_x=parse_value(elem.get('pitch_x'), constants),
            pitch_y=parse_value(elem.get('pitch_y'), constants),
            thickness=parse_value(elem.get('thickness'), constants),
        )
    return modules


def parse_shape(elem, constants):
    """Shape child of a layer or element (tubs, box or trd), or None"""
    tubs = elem.find('tubs')
    if tubs is not None:
        return TubeSegment(parse_value(tubs.get('rmin'), constants, 0.0),
                           parse_value(tubs.get('rmax'), constants),
                           parse_value(tubs.get('dz'), constants),
                           parse_value(tubs.get('phi1'), constants, 0.0) / NATIVE_ANGLE_UNITS['deg'],
                           parse_value(tubs.get('phi2'), constants, 2 * math.pi) / NATIVE_ANGLE_UNITS['deg'])
    box = elem.find('box')
    if box is not None:
        return Box(parse_value(box.get('dx'), constants),
                   parse_value(box.get('dy'), constants),
                   parse_value(box.get('dz'), constants))
    trd = elem.find('trd')
    if trd is not None:
        return Trapezoid(parse_value(trd.get('dx1'), constants),
                         parse_value(trd.get('dx2'), constants),
                         parse_value(trd.get('dy'), constants),
                         parse_value(trd.get('dz'), constants))
    return None


def rotation_zyx(angle_z, angle_y, angle_x):
    """Row-major rotation matrix Rz * Ry * Rx"""
    cz, sz = math.cos(angle_z), math.sin(angle_z)
    cy, sy = math.cos(angle_y), math.sin(angle_y)
    cx, sx = math.cos(angle_x), math.sin(angle_x)
    rz = np.array([[cz, -sz, 0.0], [sz, cz, 0.0], [0.0, 0.0, 1.0]])
    ry = np.array([[cy, 0.0, sy], [0.0, 1.0, 0.0], [-sy, 0.0, cy]])
    rx = np.array([[1.0, 0.0, 0.0], [0.0, cx, -sx], [0.0, sx, cx]])
    return rz @ ry @ rx


def parse_placement(elem, constants) -> NativeTransform:
    translation = [0.0, 0.0, 0.0]
    position = elem.find('position')
    if position is not None:
        translation = [parse_value(position.get(axis), constants, 0.0) for axis in 'xyz']

    rotation = np.identity(3)
    rot = elem.find('rotation')
    if rot is not None:
        rotation = rotation_zyx(parse_value(rot.get('z'), constants, 0.0),
                                parse_value(rot.get('y'), constants, 0.0),
                                parse_value(rot.get('x'), constants, 0.0))
    return NativeTransform(rotation.ravel().tolist(), translation)


def parse_extension(elem, constants, digitization_modules, materials=None) -> Optional[Extension]:
    """
    Extension of a layer or element, or None when there is no <extension> tag.

    Envelopes are converted to mm. A `material` reference needs a
    `material_thickness` and becomes the surface material of the module.
    """
    ext = elem.find('extension')
    if ext is None:
        return None

    bins = ext.get('material_bins', '1,1').split(',')
    if len(bins) != 2:
        raise ValueError(f"material_bins needs two values, got {ext.get('material_bins')!r}")

    position_name = ext.get('material_position', 'inner').strip().lower()
    try:
        position = LayerMaterialPos[position_name]
    except KeyError as exc:
        raise ValueError(f"Unknown material position {position_name!r}") from exc

    module = None
    module_name = ext.get('digitization_module')
    if module_name is not None:
        if module_name not in digitization_modules:
            raise ValueError(f"Unknown digitization module {module_name!r}")
        module = digitization_modules[module_name]

    surface_material = None
    material_name = ext.get('material')
    if material_name is not None:
        if materials is None or material_name not in materials:
            raise ValueError(f"Unknown extension material {material_name!r}")
        thickness = parse_value(ext.get('material_thickness'), constants)
        if thickness is None:
            raise ValueError(f"Extension material {material_name!r} needs a material_thickness")
        surface_material = resolve_bulk_material(materials[material_name],
                                                 native_to_internal_length(thickness))

    envelope_r = ext.get('envelope_r')
    envelope_z = ext.get('envelope_z')
    return Extension(
        axes=ext.get('axes', 'XYZ'),
        build_envelope=envelope_r is not None or envelope_z is not None,
        envelope_r=native_to_internal_length(parse_value(envelope_r, constants, 0.0)),
        envelope_z=native_to_internal_length(parse_value(envelope_z, constants, 0.0)),
        material_bins=(int(evaluate_expression(bins[0], constants)),
                       int(evaluate_expression(bins[1], constants))),
        layer_material_position=position,
        has_support_material=_flag(ext, 'support_material'),
        material=surface_material,
        digitization_module=module,
    )


def parse_node(elem, constants, materials, digitization_modules) -> DetectorNode:
    """Build a DetectorNode (and its element children) from a <layer> or <element> tag"""
    material_name = elem.get('material', VACUUM.name)
    if material_name not in materials:
        raise ValueError(f"Unknown material {material_name!r} in {elem.get('name')}")

    node = DetectorNode(
        elem.get('name'),
        shape=parse_shape(elem, constants),
        local_transform=parse_placement(elem, constants),
        material=materials[material_name],
        sensitive=_flag(elem, 'sensitive'),
        extension=parse_extension(elem, constants, digitization_modules, materials),
    )
    for child in elem.findall('element'):
        node.add_child(parse_node(child, constants, materials, digitization_modules))
    return node


def read_compact_description(xml_file):
    """
    Read a compact-style description into detector nodes.

    Parameters:
    -----------
    xml_file : str
        Path to the XML description

    Returns:
    --------
    dict with keys
        'name'      : detector name
        'world'     : DetectorNode holding all layers
        'regions'   : {'negative'|'central'|'positive': [DetectorNode]}
        'constants' : evaluated constants
    """
    if not os.path.exists(xml_file):
        raise FileNotFoundError(f"Detector description not found: {xml_file}")

    root = ET.parse(xml_file).getroot()
    detector = root if root.tag == 'detector' else root.find('.//detector')
    if detector is None:
        raise ValueError(f"No detector element found in {xml_file}")

    constants = parse_detector_constants(root)
    materials = parse_materials(root, constants)
    digitization_modules = parse_digitization_modules(root, constants)

    world = DetectorNode(detector.get('name'), local_transform=parse_placement(detector, constants))
    regions: Dict[str, List[DetectorNode]] = {region: [] for region in REGIONS}
    for layer_elem in detector.findall('layer'):
        region = layer_elem.get('region', 'central').strip().lower()
        if region not in regions:
            raise ValueError(f"Layer {layer_elem.get('name')} has unknown region {region!r}")
        layer = world.add_child(parse_node(layer_elem, constants, materials, digitization_modules))
        regions[region].append(layer)

    return {
        'name': detector.get('name'),
        'world': world,
        'regions': regions,
        'constants': constants,
    }
