"""
Record types flowing between the pipeline stages, and the Spark schemas of
the intermediate datasets they are stored in.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from pyspark.sql.types import (
    StructType, StructField, StringType, IntegerType, LongType, DoubleType
)


@dataclass(frozen=True)
class StationRecord:
    """One line of the station registry."""
    station_id: str
    name: str
    country_code: Optional[str]
    region_code: Optional[str]
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    elevation: Optional[float] = None
    begin: Optional[str] = None
    end: Optional[str] = None

    @property
    def has_region(self) -> bool:
        return bool(self.region_code)


@dataclass(frozen=True)
class ReadingRecord:
    """One station-day of the daily readings log."""
    station_id: str
    year: int
    month: int
    day: int
    avg_temperature: float
    temperature_count: int
    precipitation: Optional[float]
    accumulation_code: Optional[str]


@dataclass(frozen=True)
class JoinedTuple:
    region_code: str
    year: int
    month: int
    temperature: float
    precipitation: Optional[float]

    def to_row(self) -> Tuple:
        return (self.region_code, self.year, self.month, self.temperature, self.precipitation)


@dataclass(frozen=True)
class PartialMonthAggregate:
    """Sums and counts for one (region, year, month)."""
    region_code: str
    year: int
    month: int
    temp_sum: float
    temp_count: int
    precip_sum: float
    precip_count: int


@dataclass(frozen=True)
class RegionMonthStat:
    """Long-run averages for one (region, calendar month)."""
    region_code: str
    month: int
    avg_temp: float
    avg_precip: Optional[float]


@dataclass(frozen=True)
class RegionSummary:
    """Warmest and coldest month of a region and the spread between them."""
    region_code: str
    high_month: int
    high_avg_temp: float
    high_avg_precip: Optional[float]
    low_month: int
    low_avg_temp: float
    low_avg_precip: Optional[float]
    spread: float


JOINED_SCHEMA = StructType([
    StructField("region_code", StringType(), False),
    StructField("year", IntegerType(), False),
    StructField("month", IntegerType(), False),
    StructField("temperature", DoubleType(), False),
    StructField("precipitation", DoubleType(), True),
])

PARTIAL_SCHEMA = StructType([
    StructField("region_code", StringType(), False),
    StructField("year", IntegerType(), False),
    StructField("month", IntegerType(), False),
    StructField("temp_sum", DoubleType(), False),
    StructField("temp_count", LongType(), False),
    StructField("precip_sum", DoubleType(), False),
    StructField("precip_count", LongType(), False),
])

MONTH_STAT_SCHEMA = StructType([
    StructField("region_code", StringType(), False),
    StructField("month", IntegerType(), False),
    StructField("avg_temp", DoubleType(), False),
    StructField("avg_precip", DoubleType(), True),
])

# Final output is text, so months may be rendered as names.
OUTPUT_SCHEMA = StructType([
    StructField("region", StringType(), False),
    StructField("high_month", StringType(), False),
    StructField("high_avg_temp", DoubleType(), False),
    StructField("high_avg_precip", DoubleType(), True),
    StructField("low_month", StringType(), False),
    StructField("low_avg_temp", DoubleType(), False),
    StructField("low_avg_precip", DoubleType(), True),
    StructField("spread", DoubleType(), False),
])

MONTH_NAMES = (
    "JANUARY", "FEBRUARY", "MARCH", "APRIL", "MAY", "JUNE",
    "JULY", "AUGUST", "SEPTEMBER", "OCTOBER", "NOVEMBER", "DECEMBER",
)


def month_name(month: int) -> str:
    """Return the upper-case English name of a 1-based month number."""
    return MONTH_NAMES[month - 1]
