"""
Parsing of the station registry and the daily readings log.

The registry is a quoted CSV with one header row:

    "USAF","WBAN","STATION NAME","CTRY","ST","LAT","LON","ELEV(M)","BEGIN","END"

The readings are NOAA GSOD fixed-field text with a header row repeated at
the top of every station file:

    STN--- WBAN   YEARMODA    TEMP       DEWP  ...  MAX     MIN   PRCP   SNDP   FRSHTT
    010010 99999  20090101    23.3 24    15.9 24 ...  26.8*   19.4   0.00G 999.9  001000

Malformed lines raise ParseError from the line parsers; the Spark loaders
skip them and count them in an accumulator.
"""

import csv
import logging
import math
import re
from typing import Iterable, Iterator, Optional, Tuple

from pyspark import Accumulator, RDD
from pyspark.sql import SparkSession

from .errors import ParseError
from .models import StationRecord, ReadingRecord

logger = logging.getLogger(__name__)

STATION_FIELD_COUNT = 10
READING_MIN_TOKENS = 20
PRCP_INDEX = 19
MISSING_SCALED_COORDINATES = (99999, 999999)

DEFAULT_PRECIPITATION_SENTINEL = 99.99
DEFAULT_TEMPERATURE_MISSING = 9999.9

_PRECIPITATION_RE = re.compile(r"^(-?\d+(?:\.\d+)?)([A-Z])?$", re.ASCII)

# Multiplier that turns a precipitation figure into a 24 hour equivalent,
# keyed by the accumulation-window letter.
DAILY_SCALE = {
    "A": 4.0,         # 6 hours
    "B": 2.0,         # 12 hours
    "C": 24.0 / 18.0,  # 18 hours
    "D": 1.0,
    "E": 2.0,         # 12 hours
    "F": 1.0,
    "G": 1.0,
    "H": 0.0,         # recorded as 0 although some precipitation occurred
    "I": 0.0,         # recorded as 0, no precipitation
}


def make_station_id(usaf: str, wban: str) -> str:
    """Combine the two registry identifiers into one opaque station key."""
    return f"{usaf}-{wban}"


def _is_missing(value: float, marker: float) -> bool:
    return abs(value - marker) < 1e-9


def _parse_coordinate(raw: str, line: str) -> Optional[float]:
    # Scaled integers are thousandths of a degree
    if not raw:
        return None
    try:
        if "." in raw:
            value = float(raw)
        else:
            scaled = int(raw)
            if abs(scaled) in MISSING_SCALED_COORDINATES:
                return None
            value = scaled / 1000.0
    except ValueError as e:
        raise ParseError(f"Invalid coordinate '{raw}'", line) from e
    if not math.isfinite(value):
        raise ParseError(f"Invalid coordinate '{raw}'", line)
    if abs(value) > 180.0:
        return None
    return value


def _parse_elevation(raw: str, line: str) -> Optional[float]:
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError as e:
        raise ParseError(f"Invalid elevation '{raw}'", line) from e
    if not math.isfinite(value):
        raise ParseError(f"Invalid elevation '{raw}'", line)
    if value <= -999.0:
        return None
    return value


def parse_station_line(line: str) -> Optional[StationRecord]:
    """
    Parse one registry line.

    Args:
        line: Raw CSV line.

    Returns:
        A StationRecord, or None for header and blank lines.

    Raises:
        ParseError: If the line has too few fields or bad numeric values.
    """
    if not line or not line.strip():
        return None

    try:
        fields = next(csv.reader([line]))
    except (csv.Error, StopIteration) as e:
        raise ParseError(f"Unreadable registry line: {e}", line) from e

    if fields and fields[0].strip().upper() == "USAF":
        return None
    if len(fields) < STATION_FIELD_COUNT:
        raise ParseError(
            f"Expected {STATION_FIELD_COUNT} registry fields, got {len(fields)}", line
        )

    usaf, wban, name, country, region, lat, lon, elev, begin, end = (
        f.strip() for f in fields[:STATION_FIELD_COUNT]
    )
    if not usaf or not wban:
        raise ParseError("Missing station identifier", line)

    return StationRecord(
        station_id=make_station_id(usaf, wban),
        name=name,
        country_code=country or None,
        region_code=region or None,
        latitude=_parse_coordinate(lat, line),
        longitude=_parse_coordinate(lon, line),
        elevation=_parse_elevation(elev, line),
        begin=begin or None,
        end=end or None,
    )


def _parse_precipitation(
    raw: str, sentinel: float, line: str
) -> Tuple[Optional[float], Optional[str]]:
    match = _PRECIPITATION_RE.match(raw)
    if match is None:
        raise ParseError(f"Invalid precipitation '{raw}'", line)
    value = float(match.group(1))
    code = match.group(2)
    if _is_missing(value, sentinel):
        return None, code
    return value, code


def parse_reading_line(
    line: str,
    precipitation_sentinel: float = DEFAULT_PRECIPITATION_SENTINEL,
    temperature_missing: float = DEFAULT_TEMPERATURE_MISSING,
) -> Optional[ReadingRecord]:
    """
    Parse one GSOD readings line.

    Args:
        line: Raw whitespace-separated line.
        precipitation_sentinel: PRCP value meaning "no data".
        temperature_missing: TEMP value meaning "no data".

    Returns:
        A ReadingRecord, or None for header and blank lines.

    Raises:
        ParseError: If the line is truncated or a field does not parse.
    """
    tokens = line.split() if line else []
    if not tokens or tokens[0].startswith("STN"):
        return None
    if len(tokens) < READING_MIN_TOKENS:
        raise ParseError(
            f"Expected at least {READING_MIN_TOKENS} reading fields, got {len(tokens)}", line
        )

    stn, wban, datestamp = tokens[0], tokens[1], tokens[2]
    if len(datestamp) != 8 or not (datestamp.isascii() and datestamp.isdigit()):
        raise ParseError(f"Invalid date '{datestamp}'", line)
    year, month, day = int(datestamp[:4]), int(datestamp[4:6]), int(datestamp[6:])
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        raise ParseError(f"Invalid date '{datestamp}'", line)

    try:
        temperature = float(tokens[3])
        temperature_count = int(tokens[4])
    except ValueError as e:
        raise ParseError(f"Invalid temperature field: {e}", line) from e
    if not math.isfinite(temperature):
        raise ParseError(f"Invalid temperature '{tokens[3]}'", line)
    if _is_missing(temperature, temperature_missing):
        raise ParseError("Missing temperature", line)

    precipitation, code = _parse_precipitation(tokens[PRCP_INDEX], precipitation_sentinel, line)

    return ReadingRecord(
        station_id=make_station_id(stn, wban),
        year=year,
        month=month,
        day=day,
        avg_temperature=temperature,
        temperature_count=temperature_count,
        precipitation=precipitation,
        accumulation_code=code,
    )


def normalize_precipitation(
    value: Optional[float], code: Optional[str], mode: str = "raw"
) -> Optional[float]:
    """
    Apply the configured accumulation-window treatment to a precipitation value.

    "raw" keeps the recorded value. "daily" scales it to a 24 hour figure
    using DAILY_SCALE; unknown codes are left as recorded.
    """
    if value is None or mode == "raw":
        return value
    if mode != "daily":
        raise ValueError(f"Unknown precipitation mode '{mode}'")
    return value * DAILY_SCALE.get(code, 1.0)


def parse_lines(
    lines: Iterable[str], parser, malformed: Optional[Accumulator] = None
) -> Iterator:
    """Parse a partition of lines, dropping headers and counting malformed lines."""
    for line in lines:
        try:
            record = parser(line)
        except ParseError:
            if malformed is not None:
                malformed.add(1)
            continue
        if record is not None:
            yield record


def load_station_records(
    spark: SparkSession,
    path: str,
    malformed: Optional[Accumulator] = None,
    country_filter: Optional[str] = None,
) -> RDD:
    """
    Read the station registry from a file, directory or glob.

    Args:
        spark: The Spark session.
        path: Registry location (local or hdfs://).
        malformed: Accumulator counting skipped lines.
        country_filter: Keep only stations with this country code.

    Returns:
        An RDD of (line_index, StationRecord); the index is the line's
        position in the registry and orders duplicate station ids.
    """
    logger.info(f"Reading station registry from {path}")

    # Index raw lines so the zipWithIndex job does not run the parser
    def parse_indexed(pairs):
        for line, index in pairs:
            for record in parse_lines((line,), parse_station_line, malformed):
                yield index, record

    records = spark.sparkContext.textFile(path).zipWithIndex().mapPartitions(parse_indexed)
    if country_filter:
        records = records.filter(lambda pair: pair[1].country_code == country_filter)
    return records


def load_reading_records(
    spark: SparkSession,
    path: str,
    malformed: Optional[Accumulator] = None,
    precipitation_sentinel: float = DEFAULT_PRECIPITATION_SENTINEL,
    temperature_missing: float = DEFAULT_TEMPERATURE_MISSING,
) -> RDD:
    """
    Read the daily readings log from a file, directory or glob.

    Returns:
        An RDD of ReadingRecord.
    """
    logger.info(f"Reading daily readings from {path}")

    def parser(line):
        return parse_reading_line(line, precipitation_sentinel, temperature_missing)

    return spark.sparkContext.textFile(path).mapPartitions(
        lambda lines: parse_lines(lines, parser, malformed)
    )
