"""
py_stipple: weighted Voronoi stippling by raster Lloyd relaxation.

Quick start:
  from py_stipple import DensityField, stipple, render_stipples
  field = DensityField.from_luminance(gray)
  sites = stipple(field, n_sites=2000, iterations=20, seed=1)
"""

__version__ = "0.1.0"

from .errors import (
    CapabilityError,
    CodecRangeError,
    ConfigurationError,
    RelaxationCancelled,
    StippleError,
)
from .core import (
    DensityField,
    RelaxationOptions,
    Site,
    SiteSet,
    StippleRelaxer,
    render_stipples,
    stipple,
)

__all__ = [
    "__version__",
    "StippleError",
    "ConfigurationError",
    "CapabilityError",
    "CodecRangeError",
    "RelaxationCancelled",
    "DensityField",
    "RelaxationOptions",
    "Site",
    "SiteSet",
    "StippleRelaxer",
    "render_stipples",
    "stipple",
]
