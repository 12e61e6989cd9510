from dd4hep_layers.detector_config import LayerBuilderConfig
from dd4hep_layers.geometry_parsing.compact_parsers import read_compact_description
from dd4hep_layers.layer_builder import DD4hepLayerBuilder


def summarize_layer(layer):
    """Flat dictionary with the numbers worth printing for one layer"""
    proto_layer = layer.proto_layer
    material = layer.surface_material
    info = {
        'type': type(layer).__name__,
        'layer_type': layer.layer_type.name,
        'thickness': layer.thickness,
        'n_surfaces': len(layer.sensitive_surfaces()),
        'approach_surfaces': 0 if layer.approach_descriptor is None else len(layer.approach_descriptor),
        'material_x0': None if material is None else material.properties.thickness_in_x0(),
    }
    if proto_layer is not None:
        info.update({
            'min_r': proto_layer.min_r,
            'max_r': proto_layer.max_r,
            'min_z': proto_layer.min_z,
            'max_z': proto_layer.max_z,
            'env_r': proto_layer.env_r,
            'env_z': proto_layer.env_z,
        })
    return info


def get_layer_info(xml_file, verbose=None, **config_kwargs):
    """
    Build the tracking layers of a compact description and print a summary.

    Parameters:
    -----------
    xml_file : str
        Path to the XML description
    verbose : bool, optional
        Builder printout (see LayerBuilderConfig)
    **config_kwargs
        Further LayerBuilderConfig options (binning hints, layer creator, ...)

    Returns:
    --------
    dict with 'detector_name', 'layers' ({region: [Layer]}) and 'summary'
    ({region: [dict]})
    """
    try:
        description = read_compact_description(xml_file)
        config = LayerBuilderConfig.from_regions(description['name'], description['regions'],
                                                 verbose=verbose, **config_kwargs)
        layers = DD4hepLayerBuilder(config).build_all()

        layer_info = {
            'detector_name': description['name'],
            'layers': layers,
            'summary': {region: [summarize_layer(layer) for layer in region_layers]
                        for region, region_layers in layers.items()},
        }

        print(f"\nLayer info for {description['name']}:")
        for region, summaries in layer_info['summary'].items():
            print(f"  {region}: {len(summaries)} layers")
            for i, summary in enumerate(summaries):
                print(f"    Layer {i}:")
                for key, value in sorted(summary.items()):
                    print(f"      {key}: {value}")

        return layer_info

    except Exception as e:
        print(f"Error building layers from {xml_file}: {str(e)}")
        raise
