import os

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
from mpl_toolkits.mplot3d.art3d import Poly3DCollection  # noqa: E402


def _shell_polygons(hull, shells):
    polygons = []
    for shell in shells:
        corners = shell.corner_nodes()
        polygons.append(np.array([p.to_array() for p in hull.positions(corners)]))
    return polygons


def plot_association(hull, skeleton, association, output_file, cmap="tab20", dpi=150):
    """
    Render the hull coloured by associated beam, with the skeleton overlaid.

    Parameters
    ----------
    hull : MeshModel
        Shell mesh.
    skeleton : MeshModel
        Mesh holding the beams.
    association : AssociationMap
        Shell to beam mapping. Unassociated shells are drawn in grey.
    output_file : str
        Path of the PNG image to write.
    cmap : str
        Qualitative colormap used for the beams.
    dpi : int
        Resolution of the saved image.

    Returns
    -------
    str
        Path to the generated PNG image.
    """
    shells = hull.fetch_by_keyword("shell")
    beam_ids = association.target_ids()
    colormap = plt.get_cmap(cmap)
    colours = {
        beam_id: colormap(i % colormap.N) for i, beam_id in enumerate(beam_ids)
    }
    face_colours = [
        colours.get(association.target_of(s.id), (0.6, 0.6, 0.6, 1.0)) for s in shells
    ]

    fig = plt.figure(figsize=(8, 8))
    ax = fig.add_subplot(projection="3d")
    collection = Poly3DCollection(
        _shell_polygons(hull, shells),
        facecolors=face_colours,
        edgecolors="black",
        linewidths=0.2,
        alpha=0.6,
    )
    ax.add_collection3d(collection)

    starts, ends = skeleton.beam_endpoints()
    for start, end in zip(starts, ends):
        ax.plot(*zip(start, end), color="black", linewidth=2.0)

    points = np.array([n.position.to_array() for n in hull.fetch_by_keyword("node")])
    points = np.vstack([points, starts, ends])
    lo, hi = points.min(axis=0), points.max(axis=0)
    ax.set_xlim(lo[0], hi[0])
    ax.set_ylim(lo[1], hi[1])
    ax.set_zlim(lo[2], hi[2])
    ax.set_box_aspect(np.maximum(hi - lo, 1e-9))
    ax.set_axis_off()
    ax.set_title(f"{len(shells)} shells mapped onto {len(beam_ids)} beams")

    output_dir = os.path.dirname(os.path.abspath(output_file))
    os.makedirs(output_dir, exist_ok=True)
    fig.savefig(output_file, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    print(f"Saved association plot to {output_file}")
    return output_file
