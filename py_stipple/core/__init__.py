"""
Core stippling functionality.
"""

from .density import DensityField
from .sites import Site, SiteSet
from .initializer import initialize_sites
from .ownership import RASTERIZERS, OwnershipRasterizer, get_rasterizer
from .reduction import CentroidResult, reduce_columns, reduce_ownership, reduce_rows, extract_centroids
from .transport import CentroidTransport, TransportMode
from .relaxation import (
    CancellationToken,
    EngineState,
    RelaxationOptions,
    RelaxationPhase,
    StippleRelaxer,
    log_progress,
    stipple,
)
from .presenter import StippleDisk, render_stipples, save_stipples, stipple_disks

__all__ = ['DensityField', 'Site', 'SiteSet', 'initialize_sites',
           'RASTERIZERS', 'OwnershipRasterizer', 'get_rasterizer',
           'CentroidResult', 'reduce_rows', 'reduce_columns', 'extract_centroids', 'reduce_ownership',
           'CentroidTransport', 'TransportMode',
           'CancellationToken', 'EngineState', 'RelaxationOptions', 'RelaxationPhase',
           'StippleRelaxer', 'log_progress', 'stipple',
           'StippleDisk', 'render_stipples', 'save_stipples', 'stipple_disks']
