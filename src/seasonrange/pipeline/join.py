"""
Join stage: reduce-side secondary-sort join of the station registry against
the daily readings.

Every record is keyed by (station_id, source_tag, sequence). Partitioning
looks at station_id only, sorting inside a partition uses the whole key, so
each station arrives as one contiguous run with its registry record(s)
first and its readings after. The join then holds one effective station
per run and streams the readings through without buffering them.
"""

import logging
import zlib
from itertools import groupby
from typing import Dict, Iterable, Iterator, Optional, Tuple

from pyspark import Accumulator, RDD
from pyspark.sql import SparkSession

from ..utils.config import Config
from .models import JoinedTuple, JOINED_SCHEMA, ReadingRecord, StationRecord
from .readers import load_reading_records, load_station_records, normalize_precipitation
from .storage import write_mode

logger = logging.getLogger(__name__)

STATION_TAG = 0
READING_TAG = 1

JoinKey = Tuple[str, int, int]


def station_key(station: StationRecord, sequence: int) -> JoinKey:
    return (station.station_id, STATION_TAG, sequence)


def reading_key(reading: ReadingRecord) -> JoinKey:
    return (reading.station_id, READING_TAG, 0)


def partition_by_station(key: JoinKey) -> int:
    """Partition hash over the station id alone, stable across processes."""
    return zlib.crc32(key[0].encode("utf-8"))


def sort_key(key: JoinKey) -> JoinKey:
    return key


def group_key(pair: Tuple[JoinKey, object]) -> str:
    return pair[0][0]


def join_sorted_partition(
    pairs: Iterable[Tuple[JoinKey, object]],
    duplicate_policy: str = "last",
    precipitation_mode: str = "raw",
    misses: Optional[Accumulator] = None,
) -> Iterator[JoinedTuple]:
    """
    Join one partition whose records are sorted by the full composite key.

    Args:
        pairs: (key, record) pairs; StationRecord values before ReadingRecord
            values within each station.
        duplicate_policy: Which registry record wins when a station id is
            listed more than once: "last" or "first" in registry order.
        precipitation_mode: Passed to normalize_precipitation.
        misses: Accumulator counting readings dropped for lack of a region.

    Yields:
        One JoinedTuple per reading of a region-bearing station.
    """
    for _, group in groupby(pairs, key=group_key):
        station = None
        for (_, tag, _), record in group:
            if tag == STATION_TAG:
                if station is None or duplicate_policy == "last":
                    station = record
                continue

            if station is None or not station.has_region:
                if misses is not None:
                    misses.add(1)
                continue

            yield JoinedTuple(
                region_code=station.region_code,
                year=record.year,
                month=record.month,
                temperature=record.avg_temperature,
                precipitation=normalize_precipitation(
                    record.precipitation, record.accumulation_code, precipitation_mode
                ),
            )


def secondary_sort_join(
    stations: RDD,
    readings: RDD,
    num_partitions: int,
    duplicate_policy: str = "last",
    precipitation_mode: str = "raw",
    misses: Optional[Accumulator] = None,
) -> RDD:
    """
    Join keyed station and reading RDDs.

    Args:
        stations: RDD of (registry_line_index, StationRecord).
        readings: RDD of ReadingRecord.
        num_partitions: Number of join partitions.

    Returns:
        An RDD of JoinedTuple.
    """
    keyed_stations = stations.map(lambda pair: (station_key(pair[1], pair[0]), pair[1]))
    keyed_readings = readings.map(lambda r: (reading_key(r), r))

    return (
        keyed_stations
        .union(keyed_readings)
        .repartitionAndSortWithinPartitions(
            num_partitions, partition_by_station, True, sort_key
        )
        .mapPartitions(
            lambda pairs: join_sorted_partition(
                pairs, duplicate_policy, precipitation_mode, misses
            ),
            preservesPartitioning=False,
        )
    )


def run_join_stage(
    spark: SparkSession,
    stations_path: str,
    readings_path: str,
    output_path: str,
    config: Config,
) -> Dict[str, int]:
    """
    Join the registry and readings and write JoinedTuple Parquet.

    Returns:
        Counters of skipped and dropped lines. They are accumulated inside
        transformations, so a retried task adds its lines again; treat them
        as approximate diagnostics.
    """
    sc = spark.sparkContext
    malformed_stations = sc.accumulator(0)
    malformed_readings = sc.accumulator(0)
    misses = sc.accumulator(0)

    stations = load_station_records(
        spark, stations_path, malformed_stations, config.country_filter
    )
    readings = load_reading_records(
        spark,
        readings_path,
        malformed_readings,
        config.precipitation_sentinel,
        config.temperature_missing,
    )

    num_partitions = config.join_partitions or sc.defaultParallelism
    joined = secondary_sort_join(
        stations,
        readings,
        num_partitions,
        config.duplicate_station_policy,
        config.precipitation_mode,
        misses,
    )

    joined_df = spark.createDataFrame(joined.map(JoinedTuple.to_row), schema=JOINED_SCHEMA)
    joined_df.write.mode(write_mode(config.overwrite)).parquet(output_path)

    counters = {
        "malformed_stations": malformed_stations.value,
        "malformed_readings": malformed_readings.value,
        "join_misses": misses.value,
    }
    logger.info(
        f"Join wrote {output_path}: skipped {counters['malformed_stations']} registry "
        f"and {counters['malformed_readings']} reading lines, "
        f"dropped {counters['join_misses']} readings without a region "
        f"(counts are approximate under task retries)"
    )
    return counters
