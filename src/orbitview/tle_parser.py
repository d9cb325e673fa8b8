"""Three-line TLE catalog parsing.

Space-Track catalog dumps group each object into three lines, each tagged
by its first character:

- ``0`` — the object name (``0 STARLINK-1007``, ``0 CZ-4C DEB``).
- ``1`` — line 1 of the element set; only the epoch is read.
- ``2`` — line 2 of the element set; the six Keplerian fields are read.

Fields are positional. Column offsets follow the TLE format exactly:

=================  ============
Field              Columns
=================  ============
epoch (line 1)     ``[18, 33)``
inclination        ``[8, 17)``
RAAN               ``[17, 26)``
eccentricity       ``[26, 34)``
arg. of perigee    ``[34, 43)``
mean anomaly       ``[43, 52)``
mean motion        ``[52, 64)``
=================  ============

References:
    - Kelso, T.S. "CelesTrak TLE Format Documentation"
      https://celestrak.org/columns/v04n03/
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .errors import MalformedCatalogError
from .orbit import MU_EARTH, OrbitalElements

logger = logging.getLogger(__name__)

EPOCH_COLUMNS = slice(18, 33)
INCLINATION_COLUMNS = slice(8, 17)
RAAN_COLUMNS = slice(17, 26)
ECCENTRICITY_COLUMNS = slice(26, 34)
ARG_PERIGEE_COLUMNS = slice(34, 43)
MEAN_ANOMALY_COLUMNS = slice(43, 52)
MEAN_MOTION_COLUMNS = slice(52, 64)


@dataclass(frozen=True, slots=True)
class TleRecord:
    """One catalog entry as read from its three lines.

    Angles are kept in degrees and mean motion in revolutions per day,
    exactly as they appear in the file. Use ``to_elements`` for SI units.

    Attributes:
        name: Object name from line 0, including tokens such as "DEB".
        epoch_raw: Compact ``YYDDD.DDDDDDDD`` epoch token, spaces removed.
        inclination_deg: Inclination (degrees).
        raan_deg: Right ascension of the ascending node (degrees).
        eccentricity: Eccentricity, from the digits after an implied "0.".
        arg_perigee_deg: Argument of perigee (degrees).
        mean_anomaly_deg: Mean anomaly (degrees).
        mean_motion_rev_per_day: Mean motion (revolutions per day).
        line_number: 0-based index of the name line in the source.
    """

    name: str
    epoch_raw: str
    inclination_deg: float
    raan_deg: float
    eccentricity: float
    arg_perigee_deg: float
    mean_anomaly_deg: float
    mean_motion_rev_per_day: float
    line_number: int = 0

    @staticmethod
    def parse(line0: str, line1: str, line2: str) -> TleRecord:
        """Parse a single name/line-1/line-2 triplet.

        Raises:
            MalformedCatalogError: If a line carries the wrong type tag or a
                numeric field cannot be read.
        """
        for index, (line, tag) in enumerate(((line0, "0"), (line1, "1"), (line2, "2"))):
            if not line.startswith(tag):
                raise MalformedCatalogError(
                    f"expected a line starting with '{tag}', got {line[:1]!r}", index
                )
        try:
            return _build_record(line0[1:].strip(), _epoch_token(line1), line2, 0)
        except ValueError as exc:
            raise MalformedCatalogError(str(exc), 2) from exc

    def to_elements(self, mu: float = MU_EARTH) -> OrbitalElements:
        """Convert to SI elements (radians, rad/s)."""
        return OrbitalElements.from_record(self, mu)


def parse_eccentricity(digits: str) -> float:
    """Read the eccentricity field, which has an implied leading ``0.``.

    ``"1234567"`` becomes ``0.1234567``.
    """
    return float(f"0.{digits.strip()}")


def parse_catalog(lines: Iterable[str], strict: bool = False) -> list[TleRecord]:
    """Parse catalog lines into records, in file order.

    Lines whose first character is not ``0``, ``1`` or ``2`` are skipped.
    A line 1 or line 2 with no open name line, a line 2 with no epoch, or a
    name line that never receives its line 2 breaks the triplet structure.

    Args:
        lines: Catalog text lines (trailing newlines are tolerated).
        strict: Raise on the first structural or numeric error instead of
            logging it and dropping the affected object.

    Returns:
        Parsed records.

    Raises:
        MalformedCatalogError: In strict mode, on any violation.
    """
    records: list[TleRecord] = []
    name: Optional[str] = None
    name_index = 0
    epoch_raw: Optional[str] = None

    for index, raw in enumerate(lines):
        line = raw.rstrip("\r\n")
        tag = line[:1]

        if tag == "0":
            if name is not None:
                _violation(
                    f"record {name!r} from line {name_index} has no line 2",
                    index,
                    strict,
                )
            name = line[1:].strip()
            name_index = index
            epoch_raw = None

        elif tag == "1":
            if name is None:
                _violation("line 1 without a preceding name line", index, strict)
                continue
            _verify_checksum(line, index)
            epoch_raw = _epoch_token(line)

        elif tag == "2":
            if name is None:
                _violation("line 2 without a preceding name line", index, strict)
                continue
            if epoch_raw is None:
                _violation(f"line 2 for {name!r} without a line 1", index, strict)
                name = None
                continue
            _verify_checksum(line, index)
            try:
                records.append(_build_record(name, epoch_raw, line, name_index))
            except ValueError as exc:
                if strict:
                    raise MalformedCatalogError(str(exc), index) from exc
                logger.warning("Skipping %r (line %d): %s", name, index, exc)
            name = None
            epoch_raw = None

    if name is not None:
        _violation(f"record {name!r} from line {name_index} has no line 2", None, strict)

    logger.debug("Parsed %d records", len(records))
    return records


def read_catalog_lines(filepath: str | Path) -> list[str]:
    """Read a catalog file into a list of lines."""
    return Path(filepath).read_text(encoding="utf-8").splitlines()


# ── Private helpers ──


def _epoch_token(line1: str) -> str:
    return line1[EPOCH_COLUMNS].replace(" ", "")


def _build_record(name: str, epoch_raw: str, line2: str, line_number: int) -> TleRecord:
    return TleRecord(
        name=name,
        epoch_raw=epoch_raw,
        inclination_deg=_field(line2, INCLINATION_COLUMNS, "inclination"),
        raan_deg=_field(line2, RAAN_COLUMNS, "RAAN"),
        eccentricity=_eccentricity(line2),
        arg_perigee_deg=_field(line2, ARG_PERIGEE_COLUMNS, "argument of perigee"),
        mean_anomaly_deg=_field(line2, MEAN_ANOMALY_COLUMNS, "mean anomaly"),
        mean_motion_rev_per_day=_field(line2, MEAN_MOTION_COLUMNS, "mean motion"),
        line_number=line_number,
    )


def _field(line: str, columns: slice, label: str) -> float:
    text = line[columns].strip()
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"unreadable {label} field {text!r}") from None


def _eccentricity(line: str) -> float:
    digits = line[ECCENTRICITY_COLUMNS]
    if not digits.strip().isdigit():
        raise ValueError(f"unreadable eccentricity field {digits.strip()!r}")
    return parse_eccentricity(digits)


def _violation(message: str, index: Optional[int], strict: bool) -> None:
    if strict:
        raise MalformedCatalogError(message, index)
    if index is None:
        logger.warning("Malformed catalog: %s", message)
    else:
        logger.warning("Malformed catalog at line %d: %s", index, message)


def _verify_checksum(line: str, index: int) -> None:
    """Check a TLE line's modulo-10 checksum.

    Logs a warning on mismatch rather than raising; many catalog sources
    carry minor formatting differences.
    """
    if len(line) < 69 or not line[68].isdigit():
        return

    expected = int(line[68])
    total = 0
    for ch in line[:68]:
        if ch.isdigit():
            total += int(ch)
        elif ch == "-":
            total += 1

    computed = total % 10
    if computed != expected:
        logger.warning(
            "Checksum mismatch on line %d: expected %d, computed %d",
            index,
            expected,
            computed,
        )
