"""Fixed-cadence orbit sampling.

Seeds a Cartesian two-body state from an element set, integrates it
numerically with ``scipy.integrate.solve_ivp`` and converts every sampled
state to geodetic latitude, longitude and altitude against a reference
ellipsoid with skyfield (GCRS → ITRS → ellipsoid).

Two products are built per catalog object:

- a *path*: samples over one revolution, finishing one sampling step past
  the period so that the rendered polyline closes on itself;
- a *current position*: the single sample at "now", after the elapsed time
  since epoch has been folded back into one period.

Everything configurable lives in a ``PropagationContext`` that is built once
and passed explicitly to each call.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, NamedTuple, Optional, Sequence

import numpy as np
from scipy.integrate import solve_ivp
from skyfield.api import load
from skyfield.constants import AU_M, DAY_S
from skyfield.positionlib import Geocentric
from skyfield.timelib import Time, Timescale
from skyfield.toposlib import Geoid

from .errors import InvalidElementsError, PropagationError
from .orbit import (
    MU_EARTH,
    WGS84_EQUATORIAL_RADIUS,
    WGS84_INVERSE_FLATTENING,
    OrbitalElements,
    kepler_to_cartesian,
)

logger = logging.getLogger(__name__)

SampleCallback = Callable[[float, "GeodeticPoint"], None]


class GeodeticPoint(NamedTuple):
    """A position relative to the reference ellipsoid."""

    latitude: float
    """Geodetic latitude (rad)."""

    longitude: float
    """Longitude (rad), in (-π, π]."""

    altitude: float
    """Height above the ellipsoid (m)."""

    @property
    def latitude_deg(self) -> float:
        return math.degrees(self.latitude)

    @property
    def longitude_deg(self) -> float:
        return math.degrees(self.longitude)


class Trajectory(NamedTuple):
    """Derived positions for one object."""

    path: tuple[GeodeticPoint, ...]
    initial: GeodeticPoint
    current: GeodeticPoint


@dataclass(frozen=True)
class PropagationContext:
    """Immutable propagation settings shared by every object in a catalog.

    Attributes:
        mu: Gravitational parameter of the primary (m³/s²).
        equatorial_radius: Ellipsoid equatorial radius (m).
        inverse_flattening: Ellipsoid inverse flattening.
        sampling_step: Time between path samples (s).
        max_integrator_step: Largest step the integrator may take (s).
        method: ``solve_ivp`` integration method.
        rtol: Relative integration tolerance.
        atol: Absolute integration tolerance (m, m/s).
        timescale: skyfield timescale used for every epoch and "now".
    """

    mu: float = MU_EARTH
    equatorial_radius: float = WGS84_EQUATORIAL_RADIUS
    inverse_flattening: float = WGS84_INVERSE_FLATTENING
    sampling_step: float = 60.0
    max_integrator_step: float = 100.0
    method: str = "DOP853"
    rtol: float = 1e-10
    atol: float = 1e-3
    timescale: Timescale = field(default_factory=lambda: load.timescale(), repr=False)

    def __post_init__(self) -> None:
        if not self.sampling_step > 0:
            raise ValueError(f"sampling_step must be positive, got {self.sampling_step!r}")
        if not self.max_integrator_step > 0:
            raise ValueError(
                f"max_integrator_step must be positive, got {self.max_integrator_step!r}"
            )

    @classmethod
    def default(cls) -> PropagationContext:
        """WGS84 Earth, one sample per minute."""
        return cls()

    @classmethod
    def coarse(cls) -> PropagationContext:
        """Cheaper settings for large catalogs (one sample every 5 minutes)."""
        return cls(sampling_step=300.0, max_integrator_step=300.0, rtol=1e-8, atol=1.0)

    @property
    def ellipsoid(self) -> Geoid:
        """Reference ellipsoid for geodetic conversion."""
        return Geoid("orbitview", self.equatorial_radius, self.inverse_flattening)

    def to_time(self, dt: datetime) -> Time:
        """Convert a UTC datetime to a skyfield Time.

        Naive datetimes are taken to be UTC.
        """
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return self.timescale.from_datetime(dt)


def sample_offsets(duration: float, step: float) -> np.ndarray:
    """Sampling instants (s from epoch) covering ``duration`` plus one step.

    Samples fall on ``0, h, 2h, ...``; the final sample is always exactly
    ``duration + h``, appended after the last grid point when it is not on
    the grid itself.

    Args:
        duration: Nominal time span, typically one period (s).
        step: Sampling step ``h`` (s).

    Returns:
        Increasing array of offsets.
    """
    if not step > 0:
        raise ValueError(f"Sampling step must be positive, got {step!r}")
    if duration < 0:
        raise ValueError(f"Duration must be non-negative, got {duration!r}")

    end = duration + step
    count = int(math.floor(end / step + 1e-9))
    offsets = step * np.arange(count + 1, dtype=float)
    if end - offsets[-1] <= 1e-9 * step:
        offsets[-1] = end
    else:
        offsets = np.append(offsets, end)
    return offsets


def adjust_time(time: float, period: float) -> float:
    """Fold a time offset into ``[0, period)`` by repeated subtraction.

    For ``time = k·period + r`` returns ``r``. Offsets before epoch are
    raised by repeated addition.
    """
    if not period > 0:
        raise InvalidElementsError(f"Period must be positive, got {period!r}")
    while time >= period:
        time -= period
    while time < 0.0:
        time += period
    return time


def propagate(
    elements: OrbitalElements,
    epoch: datetime,
    offsets: Sequence[float],
    context: PropagationContext,
    on_sample: Optional[SampleCallback] = None,
) -> list[GeodeticPoint]:
    """Propagate an orbit and return geodetic samples at the given offsets.

    Args:
        elements: Keplerian elements at ``epoch``.
        epoch: Element epoch (timezone-aware UTC).
        offsets: Non-negative, increasing sample instants (s from epoch).
        context: Propagation settings.
        on_sample: Called with ``(offset, point)`` for each sample, in
            temporal order.

    Returns:
        One geodetic point per offset, in temporal order.

    Raises:
        PropagationError: If integration or the ellipsoid transform fails.
    """
    t_eval = np.asarray(offsets, dtype=float)
    if t_eval.ndim != 1 or t_eval.size == 0:
        raise ValueError("At least one sampling offset is required")
    if t_eval[0] < 0 or np.any(np.diff(t_eval) < 0):
        raise ValueError("Sampling offsets must be non-negative and increasing")

    states = _integrate(elements, t_eval, context)
    points = _to_geodetic(states[:3], epoch, t_eval, context)

    if on_sample is not None:
        for offset, point in zip(t_eval, points):
            on_sample(float(offset), point)
    return points


def sample_revolution(
    elements: OrbitalElements,
    epoch: datetime,
    context: PropagationContext,
    revolutions: float = 1.0,
    on_sample: Optional[SampleCallback] = None,
) -> list[GeodeticPoint]:
    """Geodetic path covering ``revolutions`` periods plus one sampling step."""
    offsets = sample_offsets(revolutions * elements.period, context.sampling_step)
    return propagate(elements, epoch, offsets, context, on_sample)


def current_position(
    elements: OrbitalElements,
    epoch: datetime,
    context: PropagationContext,
    now: Optional[datetime] = None,
) -> GeodeticPoint:
    """Position at ``now`` (default: the current time).

    The time since epoch is folded into one period with ``adjust_time``
    before propagating, so stale epochs cost no more than fresh ones.
    """
    t_epoch = context.to_time(epoch)
    t_now = context.timescale.now() if now is None else context.to_time(now)
    elapsed = (t_now - t_epoch) * DAY_S
    reduced = adjust_time(elapsed, elements.period)

    if reduced == 0.0:
        return propagate(elements, epoch, [0.0], context)[0]
    return propagate(elements, epoch, [0.0, reduced], context)[1]


def compute_trajectory(
    elements: OrbitalElements,
    epoch: datetime,
    context: PropagationContext,
    now: Optional[datetime] = None,
) -> Trajectory:
    """Path over one revolution, position at epoch, and position at ``now``."""
    path = sample_revolution(elements, epoch, context)
    current = current_position(elements, epoch, context, now)
    return Trajectory(path=tuple(path), initial=path[0], current=current)


# ── Private helpers ──


def _two_body(t: float, y: np.ndarray, mu: float) -> np.ndarray:
    r = y[:3]
    acc = -mu * r / np.linalg.norm(r) ** 3
    return np.concatenate((y[3:], acc))


def _integrate(
    elements: OrbitalElements,
    t_eval: np.ndarray,
    context: PropagationContext,
) -> np.ndarray:
    """Integrate the two-body problem; returns a (6, N) state array."""
    r0, v0 = kepler_to_cartesian(elements)
    y0 = np.concatenate((r0, v0))

    if t_eval[-1] == 0.0:
        return np.repeat(y0[:, np.newaxis], t_eval.size, axis=1)

    try:
        sol = solve_ivp(
            _two_body,
            (0.0, t_eval[-1]),
            y0,
            method=context.method,
            t_eval=t_eval,
            args=(context.mu,),
            rtol=context.rtol,
            atol=context.atol,
            max_step=context.max_integrator_step,
        )
    except (ValueError, ArithmeticError) as exc:
        raise PropagationError(f"Integration failed: {exc}") from exc

    if not sol.success:
        raise PropagationError(f"Integration failed: {sol.message}")
    if sol.y.shape[1] != t_eval.size or not np.all(np.isfinite(sol.y)):
        raise PropagationError("Integrator returned an invalid state")
    return sol.y


def _to_geodetic(
    positions: np.ndarray,
    epoch: datetime,
    t_eval: np.ndarray,
    context: PropagationContext,
) -> list[GeodeticPoint]:
    """Convert (3, N) GCRS positions (m) to geodetic points."""
    try:
        t_epoch = context.to_time(epoch)
        times = context.timescale.tt_jd(t_epoch.tt + t_eval / DAY_S)
        geocentric = Geocentric(positions / AU_M, t=times, center=399)
        geographic = context.ellipsoid.geographic_position_of(geocentric)
    except (ValueError, ArithmeticError) as exc:
        raise PropagationError(f"Geodetic transform failed: {exc}") from exc

    lat = np.atleast_1d(geographic.latitude.radians)
    lon = np.atleast_1d(geographic.longitude.radians)
    alt = np.atleast_1d(geographic.elevation.m)
    if not (np.all(np.isfinite(lat)) and np.all(np.isfinite(lon)) and np.all(np.isfinite(alt))):
        raise PropagationError("Geodetic transform produced non-finite values")

    return [GeodeticPoint(float(a), float(b), float(c)) for a, b, c in zip(lat, lon, alt)]
