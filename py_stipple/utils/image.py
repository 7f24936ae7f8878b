"""Image file helpers: decode an image into a DensityField."""

from pathlib import Path
from typing import Optional, Union

import matplotlib.image
import numpy as np

from ..core.density import DensityField
from ..errors import ConfigurationError


def load_density_field(path: Union[str, Path], max_side: Optional[int] = None) -> DensityField:
    """
    Read an image file and convert it to a luminance density field.

    Args:
        path: Image file readable by matplotlib (PNG natively, others via Pillow)
        max_side: Downsample by an integer stride so the longest side is at
            most this many pixels

    Returns:
        DensityField

    Raises:
        ConfigurationError: If the file is missing or cannot be decoded
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Image not found: {path}")

    try:
        image = np.asarray(matplotlib.image.imread(path))
    except (OSError, ValueError, SyntaxError) as e:
        raise ConfigurationError(f"Cannot read image {path}: {e}") from e
    if max_side is not None and max_side > 0:
        stride = int(np.ceil(max(image.shape[:2]) / max_side))
        if stride > 1:
            image = image[::stride, ::stride]

    if image.ndim == 2:
        return DensityField.from_luminance(image)
    return DensityField.from_rgb(image)
