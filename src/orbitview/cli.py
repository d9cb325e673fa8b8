#!/usr/bin/env python3
"""ORBITVIEW command-line interface.

Usage::

    orbitview summary data/catalog.txt
    orbitview list data/catalog.txt --category starlink --limit 20
    orbitview plot data/catalog.txt --category debris --output debris.png
    orbitview report data/catalog.txt --report-dir data/reports
"""
from __future__ import annotations

import sys
import logging
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich import box

from .catalog import Catalog, CatalogObject, Category
from .errors import OrbitViewError
from .propagation import PropagationContext

console = Console()

CATEGORY_CHOICES = [c.name.lower() for c in Category]


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--strict", is_flag=True, help="Abort on the first malformed object")
@click.option("--step", "-s", type=click.FloatRange(min=0, min_open=True),
              default=60.0, show_default=True, help="Path sampling step (seconds)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, strict: bool, step: float):
    """ORBITVIEW — orbits and positions of Space-Track catalog objects."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s — %(message)s")
    ctx.obj = {"strict": strict, "step": step}


@main.command()
@click.argument("filepath", type=click.Path(exists=True))
@click.pass_context
def summary(ctx: click.Context, filepath: str):
    """Count catalog objects per category."""
    catalog = _load(ctx, filepath)

    counts = catalog.category_counts()
    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("Category", style="cyan")
    table.add_column("Objects", justify="right")
    for category, count in counts.items():
        table.add_row(category.name.replace("_", " "), str(count))

    console.print(
        Panel(
            f"[bold]{filepath}[/bold]\n"
            f"Objects loaded: [bold green]{len(catalog)}[/bold green]\n"
            f"Orbits available: {len(catalog.available())}",
            title="Catalog Summary",
            box=box.ROUNDED,
        )
    )
    console.print(table)


@main.command(name="list")
@click.argument("filepath", type=click.Path(exists=True))
@click.option("--category", "-c", type=click.Choice(CATEGORY_CHOICES),
              help="Only list objects in this category")
@click.option("--limit", "-n", default=50, show_default=True, help="Maximum rows")
@click.option("--output", "-o", type=click.Path(), help="Save all rows to CSV")
@click.pass_context
def list_objects(
    ctx: click.Context,
    filepath: str,
    category: Optional[str],
    limit: int,
    output: Optional[str],
):
    """List objects with their orbit and current position."""
    catalog = _load(ctx, filepath)
    objects = _select(catalog, category)

    if not objects:
        console.print("[yellow]No objects found.[/yellow]")
        return

    _display_objects(objects, limit)

    if output:
        import pandas as pd
        pd.DataFrame([o.to_dict() for o in objects]).to_csv(output, index=False)
        console.print(f"\nResults saved to {output}")


@main.command()
@click.argument("filepath", type=click.Path(exists=True))
@click.option("--category", "-c", type=click.Choice(CATEGORY_CHOICES),
              help="Only plot objects in this category")
@click.option("--output", "-o", type=click.Path(), help="Save the plot as PNG")
@click.pass_context
def plot(ctx: click.Context, filepath: str, category: Optional[str], output: Optional[str]):
    """Plot ground tracks and current positions."""
    from .viz import plot_ground_tracks

    catalog = _load(ctx, filepath)
    objects = _select(catalog, category)
    title = category.replace("_", " ").title() if category else "All objects"

    fig = plot_ground_tracks(objects, title=title, save_path=output)
    if output:
        console.print(f"Plot saved to {output}")
    else:
        import matplotlib.pyplot as plt
        plt.show()
        plt.close(fig)


@main.command()
@click.argument("filepath", type=click.Path(exists=True))
@click.option("--report-dir", type=click.Path(), default="data/reports", show_default=True)
@click.option("--name", default="Catalog", help="Catalog name used in titles")
@click.pass_context
def report(ctx: click.Context, filepath: str, report_dir: str, name: str):
    """Write a markdown summary and plots for a catalog."""
    from .viz import generate_report

    catalog = _load(ctx, filepath)
    path = generate_report(catalog, output_dir=report_dir, catalog_name=name)
    console.print(f"Report generated in {path}")


def _load(ctx: click.Context, filepath: str) -> Catalog:
    context = PropagationContext(sampling_step=ctx.obj["step"])
    catalog = Catalog(context=context, strict=ctx.obj["strict"], progress=True)
    try:
        catalog.load_file(filepath)
    except OrbitViewError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)
    return catalog


def _select(catalog: Catalog, category: Optional[str]) -> list[CatalogObject]:
    if category is None:
        return list(catalog.objects)
    return catalog.by_category(Category[category.upper()])


def _display_objects(objects: list[CatalogObject], limit: int):
    """Display catalog objects as a rich table."""
    table = Table(box=box.SIMPLE_HEAVY, show_lines=False)
    table.add_column("Name", style="cyan")
    table.add_column("Category", style="bold")
    table.add_column("Epoch (UTC)")
    table.add_column("Period (min)", justify="right")
    table.add_column("SMA (km)", justify="right")
    table.add_column("Lat (°)", justify="right")
    table.add_column("Lon (°)", justify="right")
    table.add_column("Alt (km)", justify="right")

    for obj in objects[:limit]:
        pos = obj.current_position
        if pos is None:
            position = ["[red]—[/red]"] * 3
        else:
            position = [
                f"{pos.latitude_deg:+.2f}",
                f"{pos.longitude_deg:+.2f}",
                f"{pos.altitude / 1000.0:.1f}",
            ]
        table.add_row(
            obj.name,
            obj.category.name.replace("_", " "),
            f"{obj.epoch:%Y-%m-%d %H:%M:%S}",
            f"{obj.period / 60.0:.2f}",
            f"{obj.semi_major_axis / 1000.0:.1f}",
            *position,
        )

    if len(objects) > limit:
        console.print(f"(showing {limit} of {len(objects)} objects)")
    console.print(table)


if __name__ == "__main__":
    main()
