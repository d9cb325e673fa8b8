#!/usr/bin/env python3
"""
Unit test driver for ORBITVIEW: catalog parsing, epoch decoding, orbit
derivation, propagation sampling and the object registry.
"""
import pytest
import math
from datetime import datetime, timedelta, timezone

import numpy as np
import pandas as pd

import matplotlib
matplotlib.use("Agg")

from click.testing import CliRunner

from orbitview.tle_parser import TleRecord, parse_catalog, parse_eccentricity
from orbitview.epoch import decode_epoch, encode_epoch
from orbitview.orbit import (
    MU_EARTH,
    OrbitalElements,
    kepler_to_cartesian,
    orbital_period,
    semi_major_axis,
)
from orbitview.propagation import (
    GeodeticPoint,
    PropagationContext,
    adjust_time,
    current_position,
    propagate,
    sample_offsets,
    sample_revolution,
)
from orbitview.catalog import Catalog, CatalogObject, Category, classify
from orbitview.errors import (
    EpochParseError,
    InvalidElementsError,
    MalformedCatalogError,
    PropagationError,
)
from orbitview import catalog as catalog_module
from orbitview import propagation as propagation_module
from orbitview.cli import main
from orbitview.viz import ground_track, plot_ground_tracks


ISS_LINE0 = "0 ISS (ZARYA)"
ISS_LINE1 = "1 25544U 98067A   24001.50000000  .00016717  00000-0  10270-3 0  9003"
ISS_LINE2 = "2 25544  51.6400 208.5000 0007417  68.0000 292.1000 15.49560000400000"

UTC = timezone.utc
NOW = datetime(2024, 1, 3, 6, 30, tzinfo=UTC)


def _make_lines(
    name: str = "TEST-SAT",
    epoch: str = "24001.50000000",
    inclination: float = 53.0,
    raan: float = 120.0,
    ecc_digits: str = "0001500",
    arg_perigee: float = 90.0,
    mean_anomaly: float = 10.0,
    mean_motion: float = 15.05,
    satnum: int = 55001,
) -> list[str]:
    """Build a synthetic three-line catalog entry with exact TLE columns."""
    line1 = (
        f"1 {satnum:05d}U 24001A   {epoch:<14s}  .00000000  00000-0  00000-0 0  999"
    )
    line2 = (
        f"2 {satnum:05d} {inclination:8.4f} {raan:8.4f} {ecc_digits} "
        f"{arg_perigee:8.4f} {mean_anomaly:8.4f} {mean_motion:11.8f}000000"
    )
    return [f"0 {name}", line1, line2]


@pytest.fixture(scope="module")
def context():
    return PropagationContext()


@pytest.fixture(scope="module")
def coarse():
    return PropagationContext.coarse()


@pytest.fixture(scope="module")
def leo():
    return OrbitalElements(
        inclination=math.radians(51.64),
        raan=math.radians(208.5),
        eccentricity=0.0007417,
        arg_perigee=math.radians(68.0),
        mean_anomaly=math.radians(292.1),
        mean_motion=15.4956 * 2 * math.pi / 86400.0,
    )


EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


# TLE PARSER TESTS
class TestTleParser:
    def test_parse_iss(self):
        rec = TleRecord.parse(ISS_LINE0, ISS_LINE1, ISS_LINE2)
        assert rec.name == "ISS (ZARYA)"
        assert rec.epoch_raw == "24001.50000000"
        assert abs(rec.inclination_deg - 51.64) < 1e-9
        assert abs(rec.raan_deg - 208.5) < 1e-9
        assert rec.eccentricity == 0.0007417
        assert abs(rec.arg_perigee_deg - 68.0) < 1e-9
        assert abs(rec.mean_anomaly_deg - 292.1) < 1e-9
        # Columns [52, 64) take the first revolution-number digit too
        assert rec.mean_motion_rev_per_day == pytest.approx(15.495600004)

    @pytest.mark.parametrize("name", ["ISS (ZARYA)", "CZ-4C DEB", "  FENGYUN 1C  "])
    def test_name_is_stripped_remainder(self, name):
        lines = _make_lines()
        lines[0] = "0" + name
        rec = parse_catalog(lines)[0]
        assert rec.name == name.strip()

    @pytest.mark.parametrize("digits", ["1234567", "0000001", "9999999", "0007417"])
    def test_eccentricity_implied_decimal(self, digits):
        assert parse_eccentricity(digits) == float("0." + digits)

    def test_eccentricity_example(self):
        assert parse_eccentricity("1234567") == 0.1234567

    def test_epoch_spaces_removed(self):
        lines = _make_lines(epoch="24 01.25000000")
        rec = parse_catalog(lines)[0]
        assert rec.epoch_raw == "2401.25000000"

    def test_to_elements_units(self):
        rec = TleRecord.parse(ISS_LINE0, ISS_LINE1, ISS_LINE2)
        el = rec.to_elements()
        assert el.inclination == pytest.approx(math.radians(51.64))
        assert el.mean_motion == pytest.approx(15.495600004 * 2 * math.pi / 86400.0)

    def test_parse_catalog_multiple(self):
        lines = _make_lines("A") + _make_lines("B") + _make_lines("C")
        records = parse_catalog(lines)
        assert [r.name for r in records] == ["A", "B", "C"]
        assert [r.line_number for r in records] == [0, 3, 6]

    def test_other_lines_ignored(self):
        lines = ["# catalog dump", ""] + _make_lines("A") + ["9 trailer"]
        records = parse_catalog(lines, strict=True)
        assert len(records) == 1

    def test_line2_without_name_strict(self):
        lines = [ISS_LINE2] + _make_lines("A")
        with pytest.raises(MalformedCatalogError) as info:
            parse_catalog(lines, strict=True)
        assert info.value.line_index == 0

    def test_line2_without_name_lenient(self):
        lines = [ISS_LINE2] + _make_lines("A")
        records = parse_catalog(lines)
        assert [r.name for r in records] == ["A"]

    def test_line2_without_line1(self):
        lines = [ISS_LINE0, ISS_LINE2] + _make_lines("A")
        with pytest.raises(MalformedCatalogError):
            parse_catalog(lines, strict=True)
        assert [r.name for r in parse_catalog(lines)] == ["A"]

    def test_truncated_record(self):
        lines = _make_lines("A") + [ISS_LINE0, ISS_LINE1]
        with pytest.raises(MalformedCatalogError):
            parse_catalog(lines, strict=True)
        assert len(parse_catalog(lines)) == 1

    def test_bad_numeric_field(self):
        bad = _make_lines("BAD")
        bad[2] = bad[2][:8] + "   abc.d" + bad[2][16:]
        lines = bad + _make_lines("GOOD")
        with pytest.raises(MalformedCatalogError):
            parse_catalog(lines, strict=True)
        assert [r.name for r in parse_catalog(lines)] == ["GOOD"]

    def test_parse_wrong_tag(self):
        with pytest.raises(MalformedCatalogError, match="expected a line starting with '1'"):
            TleRecord.parse(ISS_LINE0, ISS_LINE2, ISS_LINE2)


# EPOCH DECODER TESTS
class TestEpoch:
    def test_new_year(self):
        assert decode_epoch("24001.00000000") == datetime(2024, 1, 1, tzinfo=UTC)

    def test_day_365_of_2024(self):
        assert decode_epoch("24365.50000000") == datetime(2024, 12, 30, 12, tzinfo=UTC)

    def test_leap_day(self):
        assert decode_epoch("24060.00000000") == datetime(2024, 2, 29, tzinfo=UTC)

    def test_truncates_seconds(self):
        # 0.99999999 day = 86399.99914 s, floored to 23:59:59
        assert decode_epoch("24001.99999999") == datetime(2024, 1, 1, 23, 59, 59, tzinfo=UTC)

    def test_quarter_day(self):
        assert decode_epoch("25100.25000000") == datetime(2025, 4, 10, 6, tzinfo=UTC)

    @pytest.mark.parametrize("token", ["24000.50000000", "23366.00000000", "24367.0", "ab001.0", "24", "24abc"])
    def test_invalid(self, token):
        with pytest.raises(EpochParseError):
            decode_epoch(token)

    def test_encode(self):
        assert encode_epoch(datetime(2024, 1, 1, 12, tzinfo=UTC)) == "24001.50000000"


# ORBIT PARAMETER TESTS
class TestOrbitParameters:
    def test_geostationary_like(self):
        n = 2 * math.pi / 86400.0
        period = orbital_period(n)
        assert period == pytest.approx(86400.0)
        assert semi_major_axis(period, MU_EARTH) / 1000.0 == pytest.approx(42241.1, abs=1.0)

    def test_iss_period(self, leo):
        # ~92.9 minutes
        assert 5550 < leo.period < 5600
        assert 6700e3 < leo.semi_major_axis < 6800e3

    @pytest.mark.parametrize("n", [0.0, -1e-3])
    def test_non_positive_mean_motion(self, n):
        with pytest.raises(InvalidElementsError):
            orbital_period(n)

    def test_eccentricity_range(self):
        with pytest.raises(InvalidElementsError):
            OrbitalElements(0.0, 0.0, 1.0, 0.0, 0.0, 1e-3)

    def test_cartesian_radius_and_energy(self, leo):
        r, v = kepler_to_cartesian(leo)
        a = leo.semi_major_axis
        e = leo.eccentricity
        radius = math.sqrt(r @ r)
        assert a * (1 - e) - 1e-3 <= radius <= a * (1 + e) + 1e-3
        energy = (v @ v) / 2 - MU_EARTH / radius
        assert energy == pytest.approx(-MU_EARTH / (2 * a), rel=1e-9)

    def test_cartesian_circular_equatorial(self):
        el = OrbitalElements(0.0, 0.0, 0.0, 0.0, 0.0, 2 * math.pi / 86400.0)
        r, v = kepler_to_cartesian(el)
        assert r[0] == pytest.approx(el.semi_major_axis)
        assert abs(r[1]) < 1e-6 and abs(r[2]) < 1e-6
        assert v[1] == pytest.approx(math.sqrt(MU_EARTH / el.semi_major_axis))


# ORBIT SAMPLER TESTS
class TestSampling:
    @pytest.mark.parametrize("period,step", [(5400.0, 60.0), (5572.3, 60.0), (10.0, 3.0), (86400.0, 300.0)])
    def test_offsets_close_the_path(self, period, step):
        offsets = sample_offsets(period, step)
        assert len(offsets) >= math.ceil(period / step) + 1
        assert offsets[0] == 0.0
        assert offsets[-1] == period + step
        assert offsets[-1] - offsets[-2] <= step + 1e-9
        assert all(b > a for a, b in zip(offsets, offsets[1:]))

    def test_offsets_invalid_step(self):
        with pytest.raises(ValueError):
            sample_offsets(100.0, 0.0)

    @pytest.mark.parametrize("k", [0, 1, 7, 1000, 250000])
    def test_adjust_time_exact(self, k):
        assert adjust_time(k * 100.0 + 37.5, 100.0) == 37.5

    def test_adjust_time_many_periods(self):
        period = 5572.3
        assert adjust_time(10000 * period + 1234.5, period) == pytest.approx(1234.5, abs=1e-3)

    def test_adjust_time_whole_period(self):
        assert adjust_time(300.0, 100.0) == 0.0

    def test_adjust_time_negative(self):
        assert adjust_time(-25.0, 100.0) == 75.0

    def test_revolution_path(self, leo, context):
        seen = []
        path = sample_revolution(leo, EPOCH, context, on_sample=lambda t, p: seen.append(t))
        assert len(path) == len(seen) >= math.ceil(leo.period / context.sampling_step) + 1
        assert seen[-1] == pytest.approx(leo.period + context.sampling_step)
        assert all(isinstance(p, GeodeticPoint) for p in path)
        for p in path:
            assert 350e3 < p.altitude < 450e3
            # geodetic latitude runs slightly past the inclination
            assert abs(p.latitude) <= math.radians(51.64 + 0.5)
            assert -math.pi <= p.longitude <= math.pi

    def test_current_position_matches_path(self, leo, context):
        path = sample_revolution(leo, EPOCH, context)
        now = EPOCH + timedelta(seconds=2 * leo.period + 600.0)
        pos = current_position(leo, EPOCH, context, now=now)
        expected = path[10]  # 600 s at 60 s sampling
        assert pos.latitude == pytest.approx(expected.latitude, abs=1e-5)
        assert pos.longitude == pytest.approx(expected.longitude, abs=1e-5)
        assert pos.altitude == pytest.approx(expected.altitude, abs=10.0)

    def test_current_position_at_epoch(self, leo, context):
        path = propagate(leo, EPOCH, [0.0], context)
        pos = current_position(leo, EPOCH, context, now=EPOCH)
        assert pos == path[0]

    def test_integrator_failure_surfaces(self, leo, context, monkeypatch):
        from orbitview import propagation

        class FailedSolution:
            success = False
            message = "step size too small"

        monkeypatch.setattr(propagation, "solve_ivp", lambda *a, **k: FailedSolution())
        with pytest.raises(PropagationError, match="step size too small"):
            sample_revolution(leo, EPOCH, context)

    def test_non_finite_state_surfaces(self, leo, context, monkeypatch):
        class NanSolution:
            success = True
            message = ""

            def __init__(self, n):
                self.y = np.full((6, n), np.nan)

        monkeypatch.setattr(
            propagation_module, "solve_ivp",
            lambda *a, **k: NanSolution(len(k["t_eval"])),
        )
        with pytest.raises(PropagationError, match="invalid state"):
            sample_revolution(leo, EPOCH, context)

    def test_non_finite_geodetic_surfaces(self, context):
        positions = np.full((3, 2), np.nan)
        with pytest.raises(PropagationError):
            propagation_module._to_geodetic(positions, EPOCH, np.array([0.0, 60.0]), context)


# REGISTRY TESTS
class TestClassification:
    @pytest.mark.parametrize("name,expected", [
        ("FENGYUN DEB R/B", (Category.ROCKET_BODY,)),
        ("SL-16 R/B", (Category.ROCKET_BODY,)),
        ("CZ-4C DEB", (Category.DEBRIS,)),
        ("STARLINK DEB", (Category.DEBRIS,)),
        ("STARLINK-1007", (Category.STARLINK, Category.SATELLITE)),
        ("ONEWEB-0012", (Category.ONEWEB, Category.SATELLITE)),
        ("BEIDOU-3 M1", (Category.BEIDOU, Category.SATELLITE)),
        ("IRIDIUM 106", (Category.IRIDIUM, Category.SATELLITE)),
        ("ISS (ZARYA)", (Category.SATELLITE,)),
    ])
    def test_priority_order(self, name, expected):
        assert classify(name) == expected


class TestCatalog:
    def _catalog_lines(self):
        return (
            _make_lines("ISS (ZARYA)", inclination=51.64, mean_motion=15.4956)
            + _make_lines("STARLINK-1007", inclination=53.05, mean_motion=15.06)
            + _make_lines("FENGYUN 1C DEB", inclination=98.6, ecc_digits="0051234", mean_motion=14.2)
            + _make_lines("CZ-2C R/B", inclination=98.0, mean_motion=14.8)
        )

    def test_load_and_views(self, coarse):
        catalog = Catalog(context=coarse, now=NOW)
        added = catalog.load(self._catalog_lines())
        assert added == 4
        assert len(catalog) == 4
        assert all(obj.available for obj in catalog)

        sats = catalog.by_category(Category.SATELLITE)
        starlink = catalog.by_category(Category.STARLINK)
        assert [o.name for o in sats] == ["ISS (ZARYA)", "STARLINK-1007"]
        assert starlink[0] is sats[1]
        assert catalog.get("CZ-2C R/B").category is Category.ROCKET_BODY

        counts = catalog.category_counts()
        assert counts[Category.DEBRIS] == 1
        assert counts[Category.IRIDIUM] == 0

    def test_object_derived_fields(self, coarse):
        catalog = Catalog(context=coarse, now=NOW)
        catalog.load(self._catalog_lines())
        iss = catalog.get("ISS (ZARYA)")
        assert iss.epoch == datetime(2024, 1, 1, 12, tzinfo=UTC)
        assert iss.initial_position == iss.path[0]
        assert len(iss.path) >= math.ceil(iss.period / coarse.sampling_step) + 1
        assert 350e3 < iss.current_position.altitude < 450e3

    def test_bad_epoch_skipped(self, coarse):
        lines = _make_lines("BAD", epoch="24400.00000000") + _make_lines("GOOD")
        catalog = Catalog(context=coarse, now=NOW)
        assert catalog.load(lines) == 1
        assert catalog.get("BAD") is None

        with pytest.raises(EpochParseError):
            Catalog(context=coarse, now=NOW, strict=True).load(lines)

    def test_zero_mean_motion_skipped(self, coarse):
        lines = _make_lines("STUCK", mean_motion=0.0) + _make_lines("GOOD")
        catalog = Catalog(context=coarse, now=NOW)
        assert catalog.load(lines) == 1
        assert [o.name for o in catalog] == ["GOOD"]

    def test_orphan_line2_does_not_abort(self, coarse):
        lines = [ISS_LINE2] + _make_lines("GOOD")
        catalog = Catalog(context=coarse, now=NOW)
        assert catalog.load(lines) == 1

        with pytest.raises(MalformedCatalogError):
            Catalog(context=coarse, now=NOW, strict=True).load(lines)

    def test_propagation_failure_leaves_unavailable(self, coarse, monkeypatch):
        def fail(*args, **kwargs):
            raise PropagationError("transform failed")

        monkeypatch.setattr(catalog_module, "compute_trajectory", fail)
        catalog = Catalog(context=coarse, now=NOW)
        catalog.load(_make_lines("LOST"))

        obj = catalog.get("LOST")
        assert obj is not None
        assert not obj.available
        assert obj.path is None
        assert obj.current_position is None
        assert catalog.available() == []

        with pytest.raises(PropagationError):
            Catalog(context=coarse, now=NOW, strict=True).load(_make_lines("LOST"))

    def test_non_finite_state_leaves_unavailable(self, coarse, monkeypatch):
        class NanSolution:
            success = True
            message = ""

            def __init__(self, n):
                self.y = np.full((6, n), np.nan)

        monkeypatch.setattr(
            propagation_module, "solve_ivp",
            lambda *a, **k: NanSolution(len(k["t_eval"])),
        )
        catalog = Catalog(context=coarse, now=NOW)
        obj = catalog.add_record(TleRecord.parse(*_make_lines("NAN")))
        assert obj is not None
        assert obj.path is None
        assert not obj.available

    def test_naive_now_is_utc(self, coarse):
        naive = Catalog(context=coarse, now=NOW.replace(tzinfo=None))
        aware = Catalog(context=coarse, now=NOW)
        naive.load(_make_lines("GOOD"))
        aware.load(_make_lines("GOOD"))
        assert naive.now == NOW
        assert naive.get("GOOD").current_position == aware.get("GOOD").current_position

    def test_display_tags(self, coarse):
        catalog = Catalog(context=coarse, now=NOW)
        catalog.load(self._catalog_lines())
        catalog.set_visible(Category.STARLINK)
        catalog.set_color(Category.DEBRIS, "#ffffff")
        assert catalog.get("STARLINK-1007").visible
        assert not catalog.get("ISS (ZARYA)").visible
        assert catalog.get("FENGYUN 1C DEB").color == "#ffffff"

    def test_to_frame(self, coarse):
        catalog = Catalog(context=coarse, now=NOW)
        catalog.load(self._catalog_lines())
        df = catalog.to_frame()
        assert len(df) == 4
        assert {"name", "category", "period_s", "sma_km", "lat_deg", "alt_km"} <= set(df.columns)
        assert list(df["category"]) == ["SATELLITE", "STARLINK", "DEBRIS", "ROCKET_BODY"]

    def test_from_file(self, coarse, tmp_path):
        path = tmp_path / "catalog.txt"
        path.write_text("\n".join(self._catalog_lines()) + "\n")
        catalog = Catalog.from_file(path, context=coarse, now=NOW)
        assert len(catalog) == 4


# RENDERING / CLI TESTS
class TestOutputs:
    def test_ground_track_breaks_at_antimeridian(self):
        path = tuple(
            GeodeticPoint(0.0, math.radians(lon), 400e3) for lon in (170.0, 178.0, -176.0, -170.0)
        )
        obj = CatalogObject(
            name="X",
            epoch=EPOCH,
            elements=OrbitalElements(0.0, 0.0, 0.0, 0.0, 0.0, 1e-3),
            categories=(Category.SATELLITE,),
            color="#000000",
            path=path,
            initial_position=path[0],
            current_position=path[0],
        )
        lon, lat = ground_track(obj)
        assert len(lon) == 5
        assert math.isnan(lon[2]) and math.isnan(lat[2])
        assert plot_ground_tracks([obj]) is not None

    def test_cli_summary(self, tmp_path):
        path = tmp_path / "catalog.txt"
        path.write_text("\n".join(_make_lines("STARLINK-1007") + _make_lines("CZ-4C DEB")) + "\n")
        result = CliRunner().invoke(main, ["--step", "300", "summary", str(path)])
        assert result.exit_code == 0, result.output
        assert "Objects loaded" in result.output
        assert "STARLINK" in result.output

    def _write_catalog(self, tmp_path):
        path = tmp_path / "catalog.txt"
        lines = (
            _make_lines("STARLINK-1007", mean_motion=15.06)
            + _make_lines("STARLINK-1008", raan=150.0, mean_motion=15.06)
            + _make_lines("CZ-4C DEB", inclination=98.6, mean_motion=14.2)
        )
        path.write_text("\n".join(lines) + "\n")
        return path

    def test_cli_list_category(self, tmp_path):
        path = self._write_catalog(tmp_path)
        csv_path = tmp_path / "starlink.csv"
        result = CliRunner().invoke(main, [
            "--step", "300", "list", str(path),
            "--category", "starlink", "--limit", "1", "--output", str(csv_path),
        ])
        assert result.exit_code == 0, result.output
        assert "showing 1 of 2 objects" in result.output
        assert csv_path.exists()
        df = pd.read_csv(csv_path)
        assert len(df) == 2
        assert set(df["category"]) == {"STARLINK"}

    def test_cli_plot_output(self, tmp_path):
        path = self._write_catalog(tmp_path)
        png = tmp_path / "tracks.png"
        result = CliRunner().invoke(main, ["--step", "300", "plot", str(path), "--output", str(png)])
        assert result.exit_code == 0, result.output
        assert png.exists()

    def test_cli_report(self, tmp_path):
        path = self._write_catalog(tmp_path)
        report_dir = tmp_path / "reports"
        result = CliRunner().invoke(
            main, ["--step", "300", "report", str(path), "--report-dir", str(report_dir)]
        )
        assert result.exit_code == 0, result.output
        assert (report_dir / "report.md").exists()
        assert (report_dir / "ground_tracks.png").exists()
        assert (report_dir / "starlink.png").exists()
        assert (report_dir / "starlink_altitude.png").exists()
        assert (report_dir / "debris_altitude.png").exists()
        assert "Starlink: 2" in (report_dir / "report.md").read_text()

    @pytest.mark.parametrize("step", ["0", "-60"])
    def test_cli_rejects_non_positive_step(self, tmp_path, step):
        path = self._write_catalog(tmp_path)
        result = CliRunner().invoke(main, ["--step", step, "summary", str(path)])
        assert result.exit_code == 2
        assert "Invalid value" in result.output
