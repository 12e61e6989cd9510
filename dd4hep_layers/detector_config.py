import os

from dd4hep_layers.geometry.binning import BinningType
from dd4hep_layers.geometry.layer_creator import LayerCreator


def _verbose_from_env() -> bool:
    """DD4HEP_LAYER_BUILDER_VERBOSE=1 switches on builder printout"""
    value = os.getenv("DD4HEP_LAYER_BUILDER_VERBOSE", "").strip().lower()
    return value in {"1", "true", "yes", "on"}


class LayerBuilderConfig:
    """Configuration of the DD4hep layer builder"""

    REGIONS = ('negative', 'central', 'positive')

    def __init__(self, configuration_name, negative_layers=None, central_layers=None,
                 positive_layers=None, layer_creator=None,
                 b_type_r=BinningType.equidistant, b_type_phi=BinningType.equidistant,
                 b_type_z=BinningType.equidistant, build_digitization_modules=False,
                 verbose=None):
        """
        Parameters:
        -----------
        configuration_name : str
            Name of the sub detector (e.g. 'SiTrackerBarrel')
        negative_layers, central_layers, positive_layers : list of DetectorNode
            Layer nodes of the three regions, in the order they are built
        layer_creator : LayerCreator, optional
            Assembles layers out of several sensitive surfaces
        b_type_r, b_type_phi, b_type_z : BinningType
            Binning hints handed to the layer creator
        build_digitization_modules : bool
            Keep digitization modules on the sensitive detector elements
        verbose : bool, optional
            Print builder diagnostics; defaults to DD4HEP_LAYER_BUILDER_VERBOSE
        """
        self.configuration_name = configuration_name
        self.negative_layers = list(negative_layers or [])
        self.central_layers = list(central_layers or [])
        self.positive_layers = list(positive_layers or [])
        self.verbose = _verbose_from_env() if verbose is None else verbose
        self.layer_creator = layer_creator if layer_creator is not None else LayerCreator(self.verbose)
        self.b_type_r = b_type_r
        self.b_type_phi = b_type_phi
        self.b_type_z = b_type_z
        self.build_digitization_modules = build_digitization_modules

    def layers_for(self, region):
        if region not in self.REGIONS:
            raise ValueError(f"Unknown region: {region}")
        return getattr(self, f"{region}_layers")

    @classmethod
    def from_regions(cls, configuration_name, regions, **kwargs):
        """Build a configuration from a {region: [DetectorNode]} mapping"""
        unknown = set(regions) - set(cls.REGIONS)
        if unknown:
            raise ValueError(f"Unknown regions: {sorted(unknown)}")
        return cls(configuration_name,
                   negative_layers=regions.get('negative'),
                   central_layers=regions.get('central'),
                   positive_layers=regions.get('positive'),
                   **kwargs)
