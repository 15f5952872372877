"""
Pytest configuration and fixtures for seasonRange tests.
"""

import os
from pathlib import Path

import pytest

from seasonrange.utils.config import Config

REGISTRY_HEADER = '"USAF","WBAN","STATION NAME","CTRY","ST","LAT","LON","ELEV(M)","BEGIN","END"'
READINGS_HEADER = (
    "STN--- WBAN   YEARMODA    TEMP       DEWP      SLP        STP       VISIB      "
    "WDSP     MXSPD   GUST    MAX     MIN   PRCP   SNDP   FRSHTT"
)


def make_station_line(usaf, wban="99999", name="TEST STATION", country="US",
                      region="", lat="+21300", lon="-157900", elev="+0005.0",
                      begin="20050101", end="20101231"):
    fields = [usaf, wban, name, country, region, lat, lon, elev, begin, end]
    return ",".join(f'"{f}"' for f in fields)


def make_reading_line(stn, date, temp, prcp="0.00G", wban="99999", count=24):
    return (
        f"{stn:<6} {wban:<5}  {date}  {temp:6.1f} {count:2d}    15.9 24  1008.4 24  "
        f"1007.1 24    9.2 24   12.1 24   17.5   24.1    26.8*   19.4  {prcp} 999.9  001000"
    )


@pytest.fixture
def station_line():
    return make_station_line


@pytest.fixture
def reading_line():
    return make_reading_line


@pytest.fixture
def example_registry_lines():
    """Registry of the reference scenario: A1 in HI, B2 in MN, C3 without a region."""
    return [
        REGISTRY_HEADER,
        make_station_line("A1", name="HONOLULU", region="HI"),
        make_station_line("B2", name="MINNEAPOLIS", region="MN", lat="+44883", lon="-93229"),
        make_station_line("C3", name="NOWHERE BUOY", region=""),
    ]


@pytest.fixture
def example_reading_lines():
    """Readings of the reference scenario."""
    return [
        READINGS_HEADER,
        make_reading_line("A1", "20090101", 70.0),
        make_reading_line("A1", "20090102", 70.0),
        make_reading_line("A1", "20090701", 75.0),
        READINGS_HEADER,
        make_reading_line("B2", "20090101", -10.0),
        make_reading_line("B2", "20090701", 60.0),
        READINGS_HEADER,
        make_reading_line("C3", "20090101", 50.0),
    ]


@pytest.fixture(scope="session")
def spark():
    """Create a local Spark session for integration tests."""
    from pyspark.sql import SparkSession

    # Python workers must import seasonrange even when it is not installed
    src = str(Path(__file__).resolve().parent.parent / "src")
    paths = [p for p in os.environ.get("PYTHONPATH", "").split(os.pathsep) if p]
    if src not in paths:
        os.environ["PYTHONPATH"] = os.pathsep.join([src] + paths)

    spark = (
        SparkSession.builder
        .appName("seasonRange-Tests")
        .master("local[2]")
        .config("spark.sql.shuffle.partitions", "2")
        .config("spark.ui.enabled", "false")
        .getOrCreate()
    )
    spark.sparkContext.setLogLevel("ERROR")

    yield spark

    spark.stop()


@pytest.fixture
def pipeline_config(tmp_path):
    """Config writing intermediates under a temporary work directory."""
    return Config(work_dir=str(tmp_path / "work"), join_partitions=3)
