"""Catalog object registry.

Owns every object loaded from a catalog, along with its derived orbit data,
and indexes the objects by category. Categories come from tokens in the
object name, checked in a fixed priority order:

1. ``R/B``  → rocket body
2. ``DEB``  → debris
3. ``STARLINK``, ``ONEWEB``, ``BEIDOU``, ``IRIDIUM`` → that constellation
   *and* satellite
4. anything else → satellite

So ``"FENGYUN DEB R/B"`` is a rocket body, not debris.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from pathlib import Path
from typing import Iterable, Iterator, Optional

import pandas as pd
from tqdm import tqdm

from .epoch import decode_epoch
from .errors import EpochParseError, InvalidElementsError, PropagationError
from .orbit import OrbitalElements
from .propagation import GeodeticPoint, PropagationContext, compute_trajectory
from .tle_parser import TleRecord, parse_catalog, read_catalog_lines

logger = logging.getLogger(__name__)


class Category(Enum):
    """Object categories used to filter and color the catalog."""
    SATELLITE = auto()
    DEBRIS = auto()
    ROCKET_BODY = auto()
    ONEWEB = auto()
    BEIDOU = auto()
    IRIDIUM = auto()
    STARLINK = auto()


# First match wins.
CLASSIFICATION_RULES: tuple[tuple[str, tuple[Category, ...]], ...] = (
    ("R/B", (Category.ROCKET_BODY,)),
    ("DEB", (Category.DEBRIS,)),
    ("STARLINK", (Category.STARLINK, Category.SATELLITE)),
    ("ONEWEB", (Category.ONEWEB, Category.SATELLITE)),
    ("BEIDOU", (Category.BEIDOU, Category.SATELLITE)),
    ("IRIDIUM", (Category.IRIDIUM, Category.SATELLITE)),
)

CATEGORY_COLORS: dict[Category, str] = {
    Category.SATELLITE: "#e74c3c",
    Category.DEBRIS: "#95a5a6",
    Category.ROCKET_BODY: "#e67e22",
    Category.ONEWEB: "#3498db",
    Category.BEIDOU: "#9b59b6",
    Category.IRIDIUM: "#1abc9c",
    Category.STARLINK: "#f1c40f",
}


def classify(name: str) -> tuple[Category, ...]:
    """Every category an object name belongs to, primary category first."""
    for token, categories in CLASSIFICATION_RULES:
        if token in name:
            return categories
    return (Category.SATELLITE,)


@dataclass
class CatalogObject:
    """A catalog entry with its orbit and derived positions.

    ``path``, ``initial_position`` and ``current_position`` are ``None``
    when propagation failed; such an object is *unavailable*, which is not
    the same as having an empty path.

    Attributes:
        name: Object name from the catalog.
        epoch: Element epoch (UTC).
        elements: Keplerian elements at epoch (SI).
        categories: Categories the object belongs to, primary first.
        color: Display color (hex).
        path: Geodetic samples over one revolution.
        initial_position: Position at epoch (first path sample).
        current_position: Position at load time.
        visible: Whether a renderer should draw the path.
    """
    name: str
    epoch: datetime
    elements: OrbitalElements
    categories: tuple[Category, ...]
    color: str
    path: Optional[tuple[GeodeticPoint, ...]] = None
    initial_position: Optional[GeodeticPoint] = None
    current_position: Optional[GeodeticPoint] = None
    visible: bool = False

    @property
    def category(self) -> Category:
        return self.categories[0]

    @property
    def period(self) -> float:
        """Orbital period (s)."""
        return self.elements.period

    @property
    def semi_major_axis(self) -> float:
        """Semi-major axis (m)."""
        return self.elements.semi_major_axis

    @property
    def available(self) -> bool:
        return self.path is not None and self.current_position is not None

    def to_dict(self) -> dict:
        """Flat row for DataFrame construction (angles in degrees, km)."""
        row = {
            "name": self.name,
            "category": self.category.name,
            "epoch": self.epoch,
            "period_s": self.period,
            "sma_km": self.semi_major_axis / 1000.0,
            "inclination_deg": self.elements.to_dict()["inclination_deg"],
            "eccentricity": self.elements.eccentricity,
            "available": self.available,
            "path_points": len(self.path) if self.path is not None else 0,
        }
        pos = self.current_position
        row["lat_deg"] = pos.latitude_deg if pos else None
        row["lon_deg"] = pos.longitude_deg if pos else None
        row["alt_km"] = pos.altitude / 1000.0 if pos else None
        return row


class Catalog:
    """Registry of catalog objects, indexed by category.

    Args:
        context: Propagation settings (defaults to ``PropagationContext()``).
        strict: Raise on the first bad triplet or failed object instead of
            logging and continuing.
        now: Instant for current positions (defaults to load time). A naive
            datetime is taken to be UTC.
        progress: Show a progress bar while propagating.

    Example:
        >>> catalog = Catalog.from_file("catalog.txt")
        >>> for obj in catalog.by_category(Category.STARLINK):
        ...     print(obj.name, obj.current_position)
    """

    def __init__(
        self,
        context: Optional[PropagationContext] = None,
        strict: bool = False,
        now: Optional[datetime] = None,
        progress: bool = False,
    ) -> None:
        self.context = context or PropagationContext()
        self.strict = strict
        if now is not None and now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        self.now = now
        self.progress = progress
        self._objects: list[CatalogObject] = []
        self._by_category: dict[Category, list[CatalogObject]] = {
            category: [] for category in Category
        }

    @classmethod
    def from_file(cls, filepath: str | Path, **kwargs) -> Catalog:
        """Build a catalog from a three-line TLE file."""
        catalog = cls(**kwargs)
        catalog.load_file(filepath)
        return catalog

    def load_file(self, filepath: str | Path) -> int:
        """Load every object from a three-line TLE file."""
        logger.info("Reading catalog %s", filepath)
        return self.load(read_catalog_lines(filepath))

    def load(self, lines: Iterable[str]) -> int:
        """Parse catalog lines and add every object they describe.

        Returns:
            Number of objects added.
        """
        records = parse_catalog(lines, strict=self.strict)
        if self.now is None:
            self.now = datetime.now(timezone.utc)

        added = 0
        for record in tqdm(records, desc="Propagating", disable=not self.progress):
            if self.add_record(record) is not None:
                added += 1

        unavailable = sum(1 for obj in self._objects if not obj.available)
        logger.info(
            "Loaded %d of %d records (%d unavailable)", added, len(records), unavailable
        )
        return added

    def add_record(self, record: TleRecord) -> Optional[CatalogObject]:
        """Derive, propagate and register one record.

        Returns:
            The new object, or ``None`` if the record was rejected.
        """
        try:
            epoch = decode_epoch(record.epoch_raw)
            elements = record.to_elements(self.context.mu)
        except (EpochParseError, InvalidElementsError) as exc:
            if self.strict:
                raise
            logger.warning("Skipping %r (line %d): %s", record.name, record.line_number, exc)
            return None

        categories = classify(record.name)
        obj = CatalogObject(
            name=record.name,
            epoch=epoch,
            elements=elements,
            categories=categories,
            color=CATEGORY_COLORS[categories[0]],
        )

        now = self.now or datetime.now(timezone.utc)
        try:
            trajectory = compute_trajectory(elements, epoch, self.context, now)
        except PropagationError as exc:
            if self.strict:
                raise
            logger.error("Propagation failed for %r: %s", record.name, exc)
        else:
            obj.path = trajectory.path
            obj.initial_position = trajectory.initial
            obj.current_position = trajectory.current

        self._register(obj)
        return obj

    def _register(self, obj: CatalogObject) -> None:
        self._objects.append(obj)
        for category in obj.categories:
            self._by_category[category].append(obj)

    # ── Views ──

    @property
    def objects(self) -> tuple[CatalogObject, ...]:
        return tuple(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[CatalogObject]:
        return iter(self._objects)

    def by_category(self, category: Category) -> list[CatalogObject]:
        """Objects in a category (same objects as ``objects``, not copies)."""
        return list(self._by_category[category])

    def category_counts(self) -> dict[Category, int]:
        return {category: len(members) for category, members in self._by_category.items()}

    def available(self) -> list[CatalogObject]:
        """Objects whose path and positions were computed."""
        return [obj for obj in self._objects if obj.available]

    def get(self, name: str) -> Optional[CatalogObject]:
        """First object with exactly this name."""
        for obj in self._objects:
            if obj.name == name:
                return obj
        return None

    # ── Display tags ──

    def set_visible(self, category: Category, visible: bool = True) -> None:
        for obj in self._by_category[category]:
            obj.visible = visible

    def set_color(self, category: Category, color: str) -> None:
        for obj in self._by_category[category]:
            obj.color = color

    def to_frame(self) -> pd.DataFrame:
        """One row per object, in load order."""
        return pd.DataFrame([obj.to_dict() for obj in self._objects])
