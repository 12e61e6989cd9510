import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle


REGION_COLORS = {
    'negative': 'tab:blue',
    'central': 'tab:orange',
    'positive': 'tab:green',
}


def layer_rz_box(layer):
    """(z_min, z_max, r_min, r_max) of a layer including its envelopes"""
    proto_layer = layer.proto_layer
    r_min, r_max = proto_layer.radial_range()
    z_min, z_max = proto_layer.z_range()
    return z_min, z_max, r_min, r_max


def plot_layers_rz(layers_by_region, title=None, output=None, ax=None):
    """
    Draw the layers of all regions in the r-z plane.

    Parameters:
    -----------
    layers_by_region : dict
        {region: [Layer]} as returned by DD4hepLayerBuilder.build_all
    title : str, optional
    output : str, optional
        File name to save the figure to
    ax : matplotlib axes, optional
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(20, 10))
    else:
        fig = ax.figure

    z_lim = 0.0
    r_lim = 0.0
    for region, layers in layers_by_region.items():
        color = REGION_COLORS.get(region, 'gray')
        for i, layer in enumerate(layers):
            if layer.proto_layer is None:
                continue
            z_min, z_max, r_min, r_max = layer_rz_box(layer)
            ax.add_patch(Rectangle((z_min, r_min), z_max - z_min, r_max - r_min,
                                   facecolor=color, edgecolor='black', alpha=0.5,
                                   label=region if i == 0 else None))
            z_lim = max(z_lim, abs(z_min), abs(z_max))
            r_lim = max(r_lim, r_max)

    ax.set_xlim(-1.05 * z_lim if z_lim else -1.0, 1.05 * z_lim if z_lim else 1.0)
    ax.set_ylim(0.0, 1.05 * r_lim if r_lim else 1.0)
    ax.set_xlabel('z [mm]', fontsize=20)
    ax.set_ylabel('r [mm]', fontsize=20)
    if title:
        ax.set_title(title, fontsize=24)
    ax.legend(loc='upper right')

    plt.tight_layout()
    if output:
        fig.savefig(output, dpi=300)
    return fig, ax
