#!/usr/bin/env python3
"""
Build the tracking layers of one or more compact descriptions, print a
table of their extents and draw them in the r-z plane.
"""

import sys
from pathlib import Path

# Add the framework to path
sys.path.insert(0, str(Path(__file__).parent.parent))


def build_tracking_layers(xml_files, verbose=False):
    """Build layers for every description, keyed by detector name."""

    from dd4hep_layers.geometry_parsing.geometry_info import get_layer_info

    results = {}

    print("Building tracking layers...")
    print("=" * 80)

    for xml_file in xml_files:
        print(f"\nProcessing {xml_file}...")
        try:
            layer_info = get_layer_info(xml_file, verbose=verbose)
            results[layer_info['detector_name']] = layer_info
        except Exception as e:
            print(f"  Error: {e}")
            results[xml_file] = {'error': str(e)}

    return results


def print_layer_table(results):
    print("\n" + "=" * 80)
    print("LAYER EXTENTS")
    print("=" * 80)
    print(f"{'Detector':<20} {'Region':<10} {'Layer':<6} {'r [mm]':<20} {'z [mm]':<24} {'Surfaces':<8}")
    print("-" * 80)

    for detector, layer_info in results.items():
        if 'error' in layer_info:
            print(f"{detector:<20} {'failed':<10}")
            continue
        for region, summaries in layer_info['summary'].items():
            for i, summary in enumerate(summaries):
                r_range = f"{summary['min_r']:.1f} - {summary['max_r']:.1f}"
                z_range = f"{summary['min_z']:.1f} - {summary['max_z']:.1f}"
                print(f"{detector:<20} {region:<10} {i:<6} {r_range:<20} {z_range:<24} {summary['n_surfaces']:<8}")


def main(argv=None):
    from dd4hep_layers.geometry_parsing.plotting import plot_layers_rz

    xml_files = list(argv if argv is not None else sys.argv[1:])
    if not xml_files:
        print("Usage: build_tracking_layers.py description.xml [more.xml ...]")
        return 1

    results = build_tracking_layers(xml_files)
    print_layer_table(results)

    for detector, layer_info in results.items():
        if 'error' in layer_info:
            continue
        output = f"{detector}_layers_rz.png"
        plot_layers_rz(layer_info['layers'], title=detector, output=output)
        print(f"Saved {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
