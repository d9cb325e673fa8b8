"""
Example: Orbit sampling on a synthetic catalog.

This example doesn't need a Space-Track download — it writes a small
three-line catalog with one object per category, loads it, and prints the
derived orbit and current position of each object.
"""

import sys
sys.path.insert(0, "src")

from datetime import datetime, timedelta, timezone
from orbitview.catalog import Catalog, Category
from orbitview.epoch import encode_epoch
from orbitview.propagation import PropagationContext
from orbitview.viz import plot_ground_tracks


def make_synthetic_lines(
    name: str,
    epoch: datetime,
    inclination: float,
    mean_motion: float,
    raan: float = 0.0,
    ecc_digits: str = "0001500",
    satnum: int = 55001,
) -> list[str]:
    """Create the three catalog lines for one object."""
    line1 = (
        f"1 {satnum:05d}U 24001A   {encode_epoch(epoch)}  .00000000  00000-0  00000-0 0  999"
    )
    line2 = (
        f"2 {satnum:05d} {inclination:8.4f} {raan:8.4f} {ecc_digits} "
        f"{90.0:8.4f} {0.0:8.4f} {mean_motion:11.8f}000000"
    )
    return [f"0 {name}", line1, line2]


def main():
    print("=" * 65)
    print("  ORBITVIEW — Synthetic Catalog Demo")
    print("=" * 65)

    epoch = datetime.now(timezone.utc) - timedelta(days=3)
    lines = []
    lines += make_synthetic_lines("ISS (ZARYA)", epoch, 51.64, 15.4956, raan=208.5, satnum=25544)
    lines += make_synthetic_lines("STARLINK-1007", epoch, 53.05, 15.06, raan=40.0, satnum=44713)
    lines += make_synthetic_lines("ONEWEB-0012", epoch, 87.9, 13.16, raan=100.0, satnum=44057)
    lines += make_synthetic_lines("IRIDIUM 106", epoch, 86.4, 14.34, raan=160.0, satnum=41917)
    lines += make_synthetic_lines("BEIDOU-3 M1", epoch, 55.0, 1.86, raan=220.0, satnum=43001)
    lines += make_synthetic_lines("FENGYUN 1C DEB", epoch, 98.6, 14.2, ecc_digits="0051234", satnum=29744)
    lines += make_synthetic_lines("CZ-2C R/B", epoch, 98.0, 14.8, raan=300.0, satnum=43010)

    catalog = Catalog(context=PropagationContext.coarse())
    catalog.load(lines)

    print(f"\nLoaded {len(catalog)} objects\n")
    print(f"{'NAME':18s} {'CATEGORY':12s} {'PERIOD':>8} {'SMA (km)':>9} {'LAT':>7} {'LON':>8} {'ALT (km)':>9}")
    print("-" * 77)

    for obj in catalog:
        pos = obj.current_position
        print(
            f"{obj.name:18s} {obj.category.name:12s} "
            f"{obj.period / 60.0:7.1f}m {obj.semi_major_axis / 1000.0:9.1f} "
            f"{pos.latitude_deg:+7.2f} {pos.longitude_deg:+8.2f} {pos.altitude / 1000.0:9.1f}"
        )

    print()
    for category, count in catalog.category_counts().items():
        print(f"  {category.name:12s} {count}")

    plot_ground_tracks(
        catalog.objects,
        title="Synthetic Catalog — Ground Tracks",
        save_path="synthetic_ground_tracks.png",
    )
    print("\nPlot saved to synthetic_ground_tracks.png")

    starlink = catalog.by_category(Category.STARLINK)
    print(f"Starlink objects also listed as satellites: "
          f"{all(obj in catalog.by_category(Category.SATELLITE) for obj in starlink)}")


if __name__ == "__main__":
    main()
