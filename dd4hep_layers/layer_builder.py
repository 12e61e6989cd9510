"""
Builds tracking layers out of DD4hep-like detector nodes.

The negative and positive regions produce disc layers, the central region
cylinder layers. All three go through the same pipeline, parametrized by
the layer shape:

    extension -> sensitive surfaces -> transform -> proto-layer
    -> approach descriptor (support material) -> layer -> bulk material
"""

import enum
from typing import Dict, List

from dd4hep_layers.geometry.approach_descriptor import (
    cylinder_approach_descriptor,
    disc_approach_descriptor,
)
from dd4hep_layers.geometry.detector_element import collect_sensitive, create_sensitive_surface
from dd4hep_layers.geometry.layers import CylinderLayer, DiscLayer, LayerType, SurfaceArray
from dd4hep_layers.geometry.material import resolve_bulk_material
from dd4hep_layers.geometry.proto_layer import compute_proto_layer
from dd4hep_layers.geometry.surfaces import CylinderBounds, RadialBounds
from dd4hep_layers.geometry.transforms import convert_transform


class LayerShape(enum.Enum):
    disc = 'disc'
    cylinder = 'cylinder'


REGION_SHAPES = {
    'negative': LayerShape.disc,
    'central': LayerShape.cylinder,
    'positive': LayerShape.disc,
}


def cylinder_half_length(proto_layer):
    """Half length of a cylinder layer from its z extent"""
    return (proto_layer.max_z - proto_layer.min_z) * 0.5


def layer_thickness(proto_layer, shape: LayerShape):
    """Radial span for cylinders, longitudinal span for discs"""
    if shape == LayerShape.disc:
        return abs(proto_layer.max_z - proto_layer.min_z)
    return abs(proto_layer.max_r - proto_layer.min_r)


class DD4hepLayerBuilder:
    """
    Layer builder for one sub detector.

    Parameters:
    -----------
    config : LayerBuilderConfig
        Layer nodes per region, binning hints and the layer creator
    """

    def __init__(self, config):
        self.config = config

    @property
    def identification(self):
        return self.config.configuration_name

    def negative_layers(self) -> List:
        return self._build_layers(self.config.negative_layers, 'negative')

    def central_layers(self) -> List:
        return self._build_layers(self.config.central_layers, 'central')

    def positive_layers(self) -> List:
        return self._build_layers(self.config.positive_layers, 'positive')

    def build_all(self) -> Dict[str, List]:
        return {
            'negative': self.negative_layers(),
            'central': self.central_layers(),
            'positive': self.positive_layers(),
        }

    def _build_layers(self, nodes, region) -> List:
        shape = REGION_SHAPES[region]
        layers = []
        if not nodes:
            if self.config.verbose:
                print(f"[L] No layers handed over for {region} volume.")
            return layers

        if self.config.verbose:
            print(f"[L] Received layers for {region} volume -> creating {shape.value} layers")
        for node in nodes:
            layers.append(self._build_layer(node, shape))
        return layers

    def _build_layer(self, node, shape: LayerShape):
        cfg = self.config
        is_disc = shape == LayerShape.disc

        # all layer nodes carry an extension at this stage
        extension = node.get_extension()
        if extension is None:
            raise ValueError(f"Layer DetElement: {node.name} has no extension attached")
        axes = extension.axes

        surfaces = collect_sensitive(node, axes, cfg.build_digitization_modules, cfg.verbose)
        transform = convert_transform(node.world_transform)
        layer_surface = None
        if node.sensitive:
            layer_surface = create_sensitive_surface(node, is_disc, axes, cfg.build_digitization_modules,
                                                     cfg.verbose)
        proto_layer = compute_proto_layer(node, extension, surfaces, transform, is_disc, layer_surface)
        half_z = cylinder_half_length(proto_layer)

        approach_descriptor = None
        if extension.has_support_material:
            if is_disc:
                approach_descriptor = disc_approach_descriptor(proto_layer, transform, extension, cfg.verbose)
            else:
                approach_descriptor = cylinder_approach_descriptor(proto_layer, transform, extension,
                                                                   half_z, cfg.verbose)

        thickness = layer_thickness(proto_layer, shape)
        if layer_surface is not None:
            surface_array = SurfaceArray.single(layer_surface)
            if is_disc:
                layer = DiscLayer(transform, RadialBounds(proto_layer.min_r, proto_layer.max_r),
                                  surface_array, thickness, approach_descriptor, LayerType.active,
                                  proto_layer)
            else:
                layer_r = (proto_layer.min_r + proto_layer.max_r) * 0.5
                layer = CylinderLayer(transform, CylinderBounds(layer_r, half_z),
                                      surface_array, thickness, approach_descriptor, LayerType.active,
                                      proto_layer)
        elif is_disc:
            layer = cfg.layer_creator.disc_layer(surfaces, cfg.b_type_r, cfg.b_type_phi,
                                                 proto_layer, transform, approach_descriptor)
        else:
            layer = cfg.layer_creator.cylinder_layer(surfaces, cfg.b_type_phi, cfg.b_type_z,
                                                     proto_layer, transform, approach_descriptor)

        layer.surface_representation().set_associated_material(
            resolve_bulk_material(node.material, thickness))
        return layer
