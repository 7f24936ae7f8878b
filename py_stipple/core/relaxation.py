"""
Relaxation driver: weighted Lloyd relaxation over a fixed iteration budget.

Each iteration rasterizes ownership for the current sites, reduces
ownership and pixel weights into weighted centroids, sends the centroids
through the transport codec and blends them into a new site set:

    new_position = blend * centroid + (1 - blend) * old_position

Sites whose owned region carries no weight keep their position. The loop
always runs the full budget; there is no convergence-based early exit.
"""

import asyncio
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, List, Optional

import numpy as np
import structlog

from ..errors import ConfigurationError, RelaxationCancelled, StippleError
from ..utils.random import Seed
from .analysis import lloyd_energy, mean_displacement
from .density import DensityField
from .initializer import initialize_sites
from .ownership import OwnershipRasterizer, get_rasterizer
from .reduction import reduce_ownership
from .sites import SiteSet
from .transport import CentroidTransport

logger = structlog.get_logger()

OnIterate = Callable[[int], None]

REDUCTION_STRATEGIES = ("scatter", "scan")


class RelaxationPhase(str, Enum):
    """Driver state machine: INITIALIZING -> ITERATING(k) -> DONE."""

    INITIALIZING = "initializing"
    ITERATING = "iterating"
    DONE = "done"


@dataclass
class RelaxationOptions:
    """Parameters of one relaxation run."""

    n_sites: int
    iterations: int
    supersampling: int = 1
    blend: float = 1.0
    rasterizer: str = "kdtree"
    transport: str = "multi_channel"
    reduction: str = "scatter"
    weight_floor: float = 0.0
    workers: int = 1
    seed: Seed = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check every parameter.

        Raises:
            ConfigurationError: On the first invalid parameter
        """
        if self.n_sites <= 0:
            raise ConfigurationError(f"n_sites must be positive, got {self.n_sites}")
        if self.iterations <= 0:
            raise ConfigurationError(f"iterations must be positive, got {self.iterations}")
        if int(self.supersampling) != self.supersampling or self.supersampling < 1:
            raise ConfigurationError(f"supersampling must be an integer >= 1, got {self.supersampling}")
        if not 0.0 < self.blend <= 1.0:
            raise ConfigurationError(f"blend must be in (0, 1], got {self.blend}")
        if not 0.0 <= self.weight_floor < 1.0:
            raise ConfigurationError(f"weight_floor must be in [0, 1), got {self.weight_floor}")
        if self.reduction not in REDUCTION_STRATEGIES:
            raise ConfigurationError(f"Unknown reduction strategy: {self.reduction!r}")
        if self.workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {self.workers}")

    @classmethod
    def from_settings(cls, settings=None, **overrides) -> "RelaxationOptions":
        """Build options from application settings, then apply overrides."""
        if settings is None:
            from ..config import settings
        values = dict(
            n_sites=settings.default_stipples,
            iterations=settings.default_iterations,
            supersampling=settings.default_supersampling,
            blend=settings.default_blend,
            rasterizer=settings.rasterizer,
            transport=settings.transport,
            reduction=settings.reduction,
            weight_floor=settings.weight_floor,
            workers=settings.workers,
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass(frozen=True)
class IterationStats:
    """What one iteration did."""

    iteration: int
    remaining: int
    energy: float  # Lloyd energy of the sites entering the iteration
    frozen: int
    displacement: float


@dataclass
class EngineState:
    """Mutable run state, owned by the driver."""

    phase: RelaxationPhase = RelaxationPhase.INITIALIZING
    remaining: int = 0
    completed: int = 0
    sites: Optional[SiteSet] = None
    history: List[IterationStats] = field(default_factory=list)


class CancellationToken:
    """Thread-safe flag checked by the driver between iterations."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class StippleRelaxer:
    """
    Runs weighted Lloyd relaxation of stipple sites over a density field.

    Configuration and capability problems are raised from the constructor,
    before any iteration runs.
    """

    def __init__(
        self,
        density: DensityField,
        options: RelaxationOptions,
        rasterizer: Optional[OwnershipRasterizer] = None,
    ):
        """
        Initialize the driver.

        Args:
            density: Field to stipple
            options: Run parameters
            rasterizer: Explicit ownership backend; resolved from
                ``options.rasterizer`` when omitted

        Raises:
            ConfigurationError: Invalid options or field too large for the transport
            CapabilityError: Rasterizer backend unknown or unavailable
        """
        options.validate()
        self.density = density
        self.options = options
        self.transport = CentroidTransport.for_mode(options.transport, options.supersampling)
        self.transport.check_capacity(density.width, density.height)
        self.rasterizer = rasterizer or get_rasterizer(options.rasterizer, workers=options.workers)
        self._weights = density.supersampled_weights(options.supersampling, options.weight_floor)
        self.state = EngineState(remaining=options.iterations)

        logger.info(
            "Relaxer configured",
            width=density.width,
            height=density.height,
            n_sites=options.n_sites,
            iterations=options.iterations,
            supersampling=options.supersampling,
            blend=options.blend,
            rasterizer=self.rasterizer.name,
            transport=self.transport.mode.value,
        )

    @property
    def sites(self) -> Optional[SiteSet]:
        return self.state.sites

    def initialize(self, sites: Optional[SiteSet] = None) -> SiteSet:
        """
        Place the initial sites and enter the ITERATING phase.

        Args:
            sites: Explicit starting sites; rejection-sampled when omitted

        Raises:
            ConfigurationError: If explicit sites are empty, miscounted or out of bounds
        """
        if self.state.phase is not RelaxationPhase.INITIALIZING:
            raise StippleError(f"Cannot initialize in phase {self.state.phase.value}")

        if sites is None:
            sites = initialize_sites(
                self.density,
                self.options.n_sites,
                seed=self.options.seed,
                weight_floor=self.options.weight_floor,
            )
        else:
            self._check_sites(sites)

        self.state.sites = sites
        self.state.phase = RelaxationPhase.ITERATING
        return sites

    def _check_sites(self, sites: SiteSet) -> None:
        if len(sites) != self.options.n_sites:
            raise ConfigurationError(
                f"Expected {self.options.n_sites} sites, got {len(sites)}"
            )
        pos = sites.positions
        inside = (
            (pos[:, 0] >= 0) & (pos[:, 0] < self.density.width)
            & (pos[:, 1] >= 0) & (pos[:, 1] < self.density.height)
        )
        if not np.all(inside):
            raise ConfigurationError("Initial sites must lie within the density field")

    def step(self) -> IterationStats:
        """Run one iteration and replace the site set."""
        if self.state.phase is RelaxationPhase.INITIALIZING:
            self.initialize()
        if self.state.phase is not RelaxationPhase.ITERATING or self.state.remaining <= 0:
            raise StippleError("No iterations remaining")

        opts = self.options
        sites = self.state.sites
        old = sites.positions

        ownership = self.rasterizer.rasterize(old, self.density.width, self.density.height, opts.supersampling)
        energy = lloyd_energy(old, ownership, self._weights, opts.supersampling)
        result = reduce_ownership(
            ownership, self._weights, len(sites), opts.supersampling, strategy=opts.reduction
        )
        centroids, weights = self.transport.round_trip(result.centroids, result.mean_weights)

        blended = opts.blend * centroids + (1.0 - opts.blend) * old
        positions = np.where(result.valid[:, None], blended, old)
        self.state.sites = sites.replace(positions, weights)

        self.state.remaining -= 1
        self.state.completed += 1
        stats = IterationStats(
            iteration=self.state.completed,
            remaining=self.state.remaining,
            energy=energy,
            frozen=int(np.count_nonzero(~result.valid)),
            displacement=mean_displacement(old, positions),
        )
        self.state.history.append(stats)
        logger.info(
            "Relaxation iteration complete",
            iteration=stats.iteration,
            remaining=stats.remaining,
            energy=round(stats.energy, 4),
            frozen=stats.frozen,
            displacement=round(stats.displacement, 4),
        )
        return stats

    def _iterate(self, cancel_token: Optional[CancellationToken]) -> Iterator[int]:
        if self.state.phase is RelaxationPhase.INITIALIZING:
            self.initialize()
        while self.state.remaining > 0:
            if cancel_token is not None and cancel_token.cancelled:
                logger.warning("Relaxation cancelled", remaining=self.state.remaining)
                raise RelaxationCancelled(self.state.remaining)
            self.step()
            yield self.state.remaining
        self.state.phase = RelaxationPhase.DONE
        yield 0

    def run(
        self,
        on_iterate: Optional[OnIterate] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SiteSet:
        """
        Run the remaining iterations.

        ``on_iterate(remaining)`` is called after every iteration and once
        more with 0 when the run is done.

        Raises:
            RelaxationCancelled: If ``cancel_token`` was cancelled
        """
        try:
            for remaining in self._iterate(cancel_token):
                if on_iterate is not None:
                    on_iterate(remaining)
        except RelaxationCancelled:
            raise
        except StippleError as e:
            logger.error("Relaxation failed", error=str(e))
            raise
        return self.state.sites

    async def run_async(
        self,
        on_iterate: Optional[OnIterate] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SiteSet:
        """Like ``run``, yielding to the event loop between iterations."""
        for remaining in self._iterate(cancel_token):
            if on_iterate is not None:
                on_iterate(remaining)
            await asyncio.sleep(0)
        return self.state.sites


def log_progress(total: int) -> OnIterate:
    """Build an ``on_iterate`` callback that logs completion percentage."""

    def on_iterate(remaining: int) -> None:
        if remaining == 0:
            logger.info("Stippling progress", percent=100)
        else:
            logger.info("Stippling progress", percent=int(100 * (total - remaining) / total))

    return on_iterate


def stipple(
    density: DensityField,
    n_sites: int,
    iterations: int,
    on_iterate: Optional[OnIterate] = None,
    **kwargs,
) -> SiteSet:
    """
    Stipple ``density`` in one call.

    Extra keyword arguments are passed to RelaxationOptions.
    """
    options = RelaxationOptions(n_sites=n_sites, iterations=iterations, **kwargs)
    return StippleRelaxer(density, options).run(on_iterate=on_iterate)

