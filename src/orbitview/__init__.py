"""ORBITVIEW — orbits and positions of Space-Track catalog objects.

Reads three-line TLE catalogs, derives each object's orbit, propagates it
over one revolution and reports geodetic paths and current positions,
classified by object category.

Modules:
    tle_parser:  Parse three-line catalog text into element records.
    epoch:       Decode compact TLE epochs into UTC datetimes.
    orbit:       Period, semi-major axis and Cartesian state from elements.
    propagation: Numerical propagation and geodetic sampling.
    catalog:     Registry of catalog objects with category views.
    viz:         Ground-track and marker plots.
    cli:         Command-line interface.

Example:
    >>> from orbitview.catalog import Catalog, Category
    >>>
    >>> catalog = Catalog.from_file("catalog.txt")
    >>> for obj in catalog.by_category(Category.DEBRIS):
    ...     print(obj.name, obj.current_position)
"""

__version__ = "0.1.0"
