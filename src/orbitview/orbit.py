"""Orbit parameter derivation.

Turns the mean motion read from a TLE into the orbital period and the
semi-major axis (Kepler's third law), and converts a Keplerian element set
into the inertial Cartesian state that seeds numerical propagation.

All quantities are SI: meters, seconds, radians.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from .errors import InvalidElementsError

if TYPE_CHECKING:
    from .tle_parser import TleRecord

# ── Physical constants (WGS84) ──

MU_EARTH = 3.986004418e14
"""Earth gravitational parameter (m³/s²)."""

WGS84_EQUATORIAL_RADIUS = 6378137.0
"""WGS84 equatorial radius (m)."""

WGS84_INVERSE_FLATTENING = 298.257223563
"""WGS84 inverse flattening."""

SOLAR_DAY = 86400.0
"""Seconds in a solar day."""

TWO_PI = 2.0 * math.pi

KEPLER_TOLERANCE = 1e-12
KEPLER_MAX_ITERATIONS = 50


def orbital_period(mean_motion: float) -> float:
    """Orbital period ``T = 2π / n`` (s) from mean motion (rad/s).

    Raises:
        InvalidElementsError: If the mean motion is zero or negative.
    """
    if not mean_motion > 0.0:
        raise InvalidElementsError(
            f"Mean motion must be positive, got {mean_motion!r} rad/s"
        )
    return TWO_PI / mean_motion


def semi_major_axis(period: float, mu: float = MU_EARTH) -> float:
    """Semi-major axis (m) from the period via Kepler's third law.

    Computed as ``cbrt(T·√μ / 2π)²`` rather than with a 2/3 exponent.
    """
    return float(np.cbrt(period * math.sqrt(mu) / TWO_PI)) ** 2


@dataclass(frozen=True)
class OrbitalElements:
    """Normalized Keplerian element set.

    Attributes:
        inclination: Inclination (rad).
        raan: Right ascension of the ascending node (rad).
        eccentricity: Eccentricity, in [0, 1).
        arg_perigee: Argument of perigee (rad).
        mean_anomaly: Mean anomaly at epoch (rad).
        mean_motion: Mean motion (rad/s).
        mu: Gravitational parameter of the primary (m³/s²).
    """

    inclination: float
    raan: float
    eccentricity: float
    arg_perigee: float
    mean_anomaly: float
    mean_motion: float
    mu: float = MU_EARTH

    def __post_init__(self) -> None:
        if not 0.0 <= self.eccentricity < 1.0:
            raise InvalidElementsError(
                f"Eccentricity must be in [0, 1), got {self.eccentricity!r}"
            )
        orbital_period(self.mean_motion)

    @property
    def period(self) -> float:
        """Keplerian period (s)."""
        return orbital_period(self.mean_motion)

    @property
    def semi_major_axis(self) -> float:
        """Semi-major axis (m)."""
        return semi_major_axis(self.period, self.mu)

    @classmethod
    def from_record(cls, record: TleRecord, mu: float = MU_EARTH) -> OrbitalElements:
        """Build elements from a parsed TLE record, converting to SI units."""
        return cls(
            inclination=math.radians(record.inclination_deg),
            raan=math.radians(record.raan_deg),
            eccentricity=record.eccentricity,
            arg_perigee=math.radians(record.arg_perigee_deg),
            mean_anomaly=math.radians(record.mean_anomaly_deg),
            mean_motion=record.mean_motion_rev_per_day * TWO_PI / SOLAR_DAY,
            mu=mu,
        )

    def to_dict(self) -> dict:
        """Elements in the units they are read in (degrees, rev/day)."""
        return {
            "inclination_deg": math.degrees(self.inclination),
            "raan_deg": math.degrees(self.raan),
            "eccentricity": self.eccentricity,
            "arg_perigee_deg": math.degrees(self.arg_perigee),
            "mean_anomaly_deg": math.degrees(self.mean_anomaly),
            "mean_motion_rev_day": self.mean_motion * SOLAR_DAY / TWO_PI,
            "period_s": self.period,
            "sma_m": self.semi_major_axis,
        }


def eccentric_anomaly(mean_anomaly: float, eccentricity: float) -> float:
    """Solve Kepler's equation ``M = E - e·sin(E)`` by Newton iteration."""
    m = math.remainder(mean_anomaly, TWO_PI)
    e_anom = m if eccentricity < 0.8 else math.pi
    for _ in range(KEPLER_MAX_ITERATIONS):
        delta = (e_anom - eccentricity * math.sin(e_anom) - m) / (
            1.0 - eccentricity * math.cos(e_anom)
        )
        e_anom -= delta
        if abs(delta) < KEPLER_TOLERANCE:
            break
    return e_anom


def kepler_to_cartesian(elements: OrbitalElements) -> tuple[np.ndarray, np.ndarray]:
    """Inertial position (m) and velocity (m/s) for an element set.

    Args:
        elements: Keplerian elements at epoch.

    Returns:
        ``(r, v)`` as 3-vectors in the frame the elements are expressed in.
    """
    a = elements.semi_major_axis
    e = elements.eccentricity
    big_e = eccentric_anomaly(elements.mean_anomaly, e)

    true_anomaly = 2.0 * math.atan2(
        math.sqrt(1.0 + e) * math.sin(big_e / 2.0),
        math.sqrt(1.0 - e) * math.cos(big_e / 2.0),
    )
    radius = a * (1.0 - e * math.cos(big_e))
    p = a * (1.0 - e**2)

    r_pf = radius * np.array([math.cos(true_anomaly), math.sin(true_anomaly), 0.0])
    v_pf = math.sqrt(elements.mu / p) * np.array(
        [-math.sin(true_anomaly), e + math.cos(true_anomaly), 0.0]
    )

    rotation = (
        _rot_z(elements.raan) @ _rot_x(elements.inclination) @ _rot_z(elements.arg_perigee)
    )
    return rotation @ r_pf, rotation @ v_pf


def _rot_x(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[1.0, 0.0, 0.0], [0.0, c, -s], [0.0, s, c]])


def _rot_z(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])
