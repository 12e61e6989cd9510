"""Tests for the layer summary printout and the r-z plot."""
import matplotlib
matplotlib.use('Agg')

import matplotlib.pyplot as plt
import pytest

from dd4hep_layers.geometry_parsing.geometry_info import get_layer_info, summarize_layer
from dd4hep_layers.geometry_parsing.plotting import layer_rz_box, plot_layers_rz


class TestGetLayerInfo:

    def test_builds_all_regions(self, tracker_xml, capsys):
        info = get_layer_info(tracker_xml, verbose=False)
        assert info['detector_name'] == 'Tracker'
        assert [len(info['layers'][r]) for r in ('negative', 'central', 'positive')] == [1, 1, 1]

        output = capsys.readouterr().out
        assert "Layer info for Tracker:" in output
        assert "central: 1 layers" in output

    def test_central_summary(self, tracker_xml):
        summary = get_layer_info(tracker_xml, verbose=False)['summary']['central'][0]
        assert summary['type'] == 'CylinderLayer'
        assert summary['layer_type'] == 'active'
        assert summary['n_surfaces'] == 1
        assert summary['approach_surfaces'] == 3
        assert summary['material_x0'] is None
        assert summary['min_r'] == pytest.approx(35.0)

    def test_endcap_summaries(self, tracker_xml):
        summary = get_layer_info(tracker_xml, verbose=False)['summary']
        positive = summary['positive'][0]
        assert positive['type'] == 'DiscLayer'
        assert positive['material_x0'] == pytest.approx(10.0 / 93.7)
        negative = summary['negative'][0]
        assert negative['env_z'] == pytest.approx((1.0, 1.0))
        assert negative['thickness'] == pytest.approx(12.0)

    def test_outer_surface_carries_proxy(self, tracker_xml):
        layer = get_layer_info(tracker_xml, verbose=False)['layers']['central'][0]
        assert layer.approach_descriptor.material_surface() is layer.approach_descriptor.outer

    def test_verbose_builder_output(self, tracker_xml, capsys):
        get_layer_info(tracker_xml, verbose=True)
        output = capsys.readouterr().out
        assert "[L] Received layers for central volume" in output
        assert "support material" in output

    def test_error_is_reported_and_raised(self, tmp_path, capsys):
        missing = str(tmp_path / "missing.xml")
        with pytest.raises(FileNotFoundError):
            get_layer_info(missing)
        assert f"Error building layers from {missing}" in capsys.readouterr().out


class TestPlotting:

    def test_rz_box_includes_envelopes(self, tracker_xml):
        layer = get_layer_info(tracker_xml, verbose=False)['layers']['negative'][0]
        assert layer_rz_box(layer) == pytest.approx((-1006.0, -994.0, 9.0, 21.0))

    def test_plot_and_save(self, tracker_xml, tmp_path):
        layers = get_layer_info(tracker_xml, verbose=False)['layers']
        output = tmp_path / "layers_rz.png"
        fig, ax = plot_layers_rz(layers, title='Tracker', output=str(output))
        assert output.exists()
        assert len(ax.patches) == 3
        assert ax.get_xlim()[1] == pytest.approx(1.05 * 1006.0)
        plt.close(fig)

    def test_summarize_passive_layer(self, make_config):
        from dd4hep_layers.layer_builder import DD4hepLayerBuilder
        from conftest import tube_layer

        layer = DD4hepLayerBuilder(make_config(central=[tube_layer('b', 1.0, 2.0, 5.0)])).central_layers()[0]
        summary = summarize_layer(layer)
        assert summary['layer_type'] == 'passive'
        assert summary['n_surfaces'] == 0
        assert summary['approach_surfaces'] == 0
