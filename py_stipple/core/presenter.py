"""
Stipple presenter: draw relaxed sites as filled disks.

Presentation policy only. A site is drawn when its 0-255 weight exceeds
the visibility threshold, with radius

    scale * base_radius * (0.4 + 0.01 * weight / 255)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Union

import matplotlib.image
import numpy as np
import structlog
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.collections import PatchCollection
from matplotlib.figure import Figure
from matplotlib.patches import Circle

from .sites import Site, SiteSet

logger = structlog.get_logger()

DEFAULT_VISIBILITY_THRESHOLD = 10.0


@dataclass(frozen=True)
class StippleDisk:
    """One disk in output pixel coordinates."""

    x: float
    y: float
    radius: float


def disk_radius(weight: float, base_radius: float = 1.0) -> float:
    """Radius of a disk for a 0-255 weight, before output scaling."""
    return base_radius * (0.4 + 0.01 * weight / 255.0)


def stipple_disks(
    sites: Union[SiteSet, Sequence[Site]],
    scale: float = 1.0,
    base_radius: float = 1.0,
    visibility_threshold: float = DEFAULT_VISIBILITY_THRESHOLD,
) -> List[StippleDisk]:
    """
    Disks for every visible site, in id order.

    Args:
        sites: Final sites
        scale: Output pixels per site unit
        base_radius: Radius multiplier in site units
        visibility_threshold: Sites with weight <= this are not drawn

    Returns:
        List of StippleDisk
    """
    disks = []
    for site in sites:
        if site.weight > visibility_threshold:
            disks.append(
                StippleDisk(
                    x=site.x * scale,
                    y=site.y * scale,
                    radius=scale * disk_radius(site.weight, base_radius),
                )
            )
    return disks


def render_stipples(
    sites: Union[SiteSet, Sequence[Site]],
    width: int,
    height: int,
    scale: float = 1.0,
    base_radius: float = 1.0,
    visibility_threshold: float = DEFAULT_VISIBILITY_THRESHOLD,
    color: str = "black",
    background: str = "white",
) -> np.ndarray:
    """
    Rasterize the stipples onto an RGBA canvas.

    Args:
        sites: Final sites
        width: Field width in site units
        height: Field height in site units
        scale: Output pixels per site unit

    Returns:
        (round(height*scale), round(width*scale), 4) uint8 array
    """
    out_w = max(1, int(round(width * scale)))
    out_h = max(1, int(round(height * scale)))
    disks = stipple_disks(sites, scale, base_radius, visibility_threshold)

    # One inch per output pixel keeps the canvas size exact
    fig = Figure(figsize=(out_w, out_h), dpi=1)
    fig.patch.set_facecolor(background)
    canvas = FigureCanvasAgg(fig)
    ax = fig.add_axes([0, 0, 1, 1])
    ax.set_xlim(0, out_w)
    ax.set_ylim(out_h, 0)
    ax.set_axis_off()

    if disks:
        patches = [Circle((d.x, d.y), d.radius) for d in disks]
        ax.add_collection(PatchCollection(patches, facecolor=color, edgecolor="none"))

    canvas.draw()
    image = np.asarray(canvas.buffer_rgba()).copy()
    logger.info("Stipples rendered", disks=len(disks), width=out_w, height=out_h)
    return image


def save_stipples(path: Union[str, Path], sites, width: int, height: int, **kwargs) -> Path:
    """Render and write a PNG; returns the path written."""
    path = Path(path)
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    image = render_stipples(sites, width, height, **kwargs)
    matplotlib.image.imsave(path, image)
    logger.info("Stipples saved", path=str(path))
    return path
