#!/usr/bin/env python3
"""Plots of catalog orbits.

Draws what a globe renderer would: one path per object over a revolution,
and a marker at each object's current position, colored by category.
Supports both interactive analysis (Jupyter) and saved PNG reports.
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.lines import Line2D

from .catalog import Catalog, CatalogObject, Category


# Use a clean style
plt.rcParams.update({
    "figure.facecolor": "white",
    "axes.facecolor": "#fafafa",
    "axes.grid": True,
    "grid.alpha": 0.3,
    "font.family": "sans-serif",
    "font.size": 10,
})


def ground_track(obj: CatalogObject) -> tuple[np.ndarray, np.ndarray]:
    """Longitude/latitude arrays (degrees) for an object's path.

    A NaN is inserted wherever the track crosses the antimeridian so the
    plotted line does not streak across the map.
    """
    if obj.path is None:
        return np.array([]), np.array([])

    lon = np.degrees([p.longitude for p in obj.path])
    lat = np.degrees([p.latitude for p in obj.path])

    breaks = np.where(np.abs(np.diff(lon)) > 180.0)[0] + 1
    return np.insert(lon, breaks, np.nan), np.insert(lat, breaks, np.nan)


def plot_ground_tracks(
    objects: Iterable[CatalogObject],
    title: str = "Ground Tracks",
    visible_only: bool = False,
    save_path: Optional[str | Path] = None,
    figsize: tuple = (14, 7),
) -> plt.Figure:
    """Plot one-revolution ground tracks and current positions.

    Args:
        objects: Catalog objects to draw; unavailable objects are skipped.
        title: Plot title.
        visible_only: Only draw paths of objects flagged visible. Markers
            are drawn for every available object.
        save_path: Path to save figure (optional).

    Returns:
        matplotlib Figure
    """
    fig, ax = plt.subplots(figsize=figsize)
    seen: dict[Category, str] = {}

    for obj in objects:
        if not obj.available:
            continue
        seen.setdefault(obj.category, obj.color)

        if obj.visible or not visible_only:
            lon, lat = ground_track(obj)
            ax.plot(lon, lat, linewidth=0.5, alpha=0.6, color=obj.color)

        pos = obj.current_position
        ax.scatter(
            pos.longitude_deg,
            pos.latitude_deg,
            s=8,
            color=obj.color,
            edgecolors="white",
            linewidths=0.3,
            zorder=3,
        )

    ax.set_xlim(-180, 180)
    ax.set_ylim(-90, 90)
    ax.set_xlabel("Longitude (°)")
    ax.set_ylabel("Latitude (°)")
    ax.set_title(title)

    if seen:
        legend_elements = [
            Line2D([0], [0], marker="o", color=seen[c], linestyle="-",
                   linewidth=1, markersize=4, label=c.name.replace("_", " ").title())
            for c in Category if c in seen
        ]
        ax.legend(handles=legend_elements, loc="lower left", fontsize=8, ncols=2)

    plt.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")

    return fig


def plot_altitude_profile(
    obj: CatalogObject,
    save_path: Optional[str | Path] = None,
    figsize: tuple = (12, 4),
) -> plt.Figure:
    """Altitude along one revolution, against sample index."""
    fig, ax = plt.subplots(figsize=figsize)

    if obj.path is None:
        ax.text(0.5, 0.5, "Orbit unavailable", transform=ax.transAxes,
                ha="center", va="center", fontsize=14, color="#95a5a6")
        return fig

    alts = np.array([p.altitude for p in obj.path]) / 1000.0
    ax.plot(np.arange(alts.size), alts, linewidth=0.8, color=obj.color)
    ax.set_ylabel("Altitude (km)")
    ax.set_xlabel("Sample")
    ax.set_title(f"{obj.name} — period {obj.period / 60.0:.1f} min")

    plt.tight_layout()
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")

    return fig


def generate_report(
    catalog: Catalog,
    output_dir: str | Path = "data/reports",
    catalog_name: str = "Catalog",
) -> Path:
    """Write a markdown summary, ground-track and altitude plots for a catalog.

    Returns the output directory path.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    counts = catalog.category_counts()
    n_available = len(catalog.available())

    summary = (
        f"# ORBITVIEW — Catalog Report\n"
        f"## {catalog_name}\n\n"
        f"- **Objects loaded:** {len(catalog)}\n"
        f"- **Orbits available:** {n_available}\n"
        f"- **Report generated:** {datetime.now():%Y-%m-%d %H:%M}\n\n"
        "### Category Distribution\n"
    )
    for category, count in counts.items():
        if count:
            summary += f"- {category.name.replace('_', ' ').title()}: {count}\n"

    (output_dir / "report.md").write_text(summary)

    if n_available:
        plot_ground_tracks(
            catalog,
            title=f"{catalog_name} — Ground Tracks",
            save_path=output_dir / "ground_tracks.png",
        )
        for category, count in counts.items():
            if count and category is not Category.SATELLITE:
                plot_ground_tracks(
                    catalog.by_category(category),
                    title=f"{catalog_name} — {category.name.replace('_', ' ').title()}",
                    save_path=output_dir / f"{category.name.lower()}.png",
                )

        # Altitude profile of the first available object in each category
        for category in Category:
            members = [obj for obj in catalog.by_category(category) if obj.available]
            if members:
                plot_altitude_profile(
                    members[0],
                    save_path=output_dir / f"{category.name.lower()}_altitude.png",
                )

    plt.close("all")
    return output_dir
